"""
Upgrade calculation: how many levels a hand's winning team climbs.

Pure functions only. Nothing here reads or writes round state; the
calculator runs once per hand before any mutation happens.
"""

import re
from collections.abc import Iterable, Mapping

from guandan.logic.enums import GameMode, ScoreErrorCode, Team
from guandan.logic.exceptions import InvalidRankingError, InvalidRanksError
from guandan.logic.settings import ALWAYS_VALID_PAIRS, MAX_UPGRADE, GameSettings, rank_pair_key
from guandan.logic.types import Player, UpgradeDiagnostics, UpgradeResult

SWEEP_RANKS = (1, 2, 3, 4)

NO_UPGRADE_LABEL = "不升级"
SWEEP_LABEL = "完胜"
DEFAULT_FOUR_PLAYER_LABEL = "赢"

FOUR_PLAYER_LABELS: dict[str, str] = {
    "1,2": "双下",
    "1,3": "单下",
    "1,4": "过牌",
    "2,3": "小胜",
}

_NON_DIGITS = re.compile(r"[^0-9]+")


def tier_label(upgrade: int) -> str:
    return f"升{upgrade}级" if upgrade > 0 else NO_UPGRADE_LABEL


def normalize_ranks(ranks: Iterable[int], mode: GameMode) -> tuple[int, ...]:
    """
    Sort and validate a winning team's ranks.

    Raises:
        InvalidRanksError: If a rank is not a whole number, the count is not
            mode/2, a rank falls outside 1..mode, or a rank repeats.

    """
    try:
        values = tuple(sorted(int(r) for r in ranks))
    except (TypeError, ValueError):
        raise InvalidRanksError(f"ranks must be whole numbers, got {ranks!r}") from None
    if len(values) != mode.team_size:
        raise InvalidRanksError(f"{int(mode)}-player mode needs {mode.team_size} ranks, got {len(values)}")
    out_of_range = [r for r in values if not (1 <= r <= mode.last_rank)]
    if out_of_range:
        raise InvalidRanksError(f"ranks must be within 1~{mode.last_rank}, got {out_of_range}")
    if len(set(values)) != len(values):
        raise InvalidRanksError(f"ranks must not repeat, got {list(values)}")
    return values


def parse_ranks(text: str, mode: GameMode) -> tuple[int, ...]:
    """
    Parse typed rank input such as ``"13"``, ``"1 3"`` or ``"1,3"``.

    A run of exactly mode/2 digits is read one digit per rank; anything else
    is split on non-digit characters.
    """
    stripped = str(text or "").strip()
    if not stripped:
        raise InvalidRanksError("enter the winning team's ranks")
    if stripped.isdigit() and len(stripped) == mode.team_size:
        return normalize_ranks((int(ch) for ch in stripped), mode)
    parts = _NON_DIGITS.sub(" ", stripped).split()
    if len(parts) != mode.team_size:
        raise InvalidRanksError(f"{int(mode)}-player mode needs {mode.team_size} ranks")
    return normalize_ranks((int(p) for p in parts), mode)


def validate_ranking(ranking: Mapping[int, Player], mode: GameMode) -> tuple[Player, ...]:
    """
    Check a full finishing order and return the players ordered by rank.

    Raises:
        InvalidRankingError: If ranks 1..mode are not all filled, a player
            appears twice, or the teams do not have mode/2 players each.

    """
    expected = set(range(1, mode.last_rank + 1))
    missing = sorted(expected - set(ranking))
    extra = sorted(set(ranking) - expected)
    if missing or extra:
        raise InvalidRankingError(
            f"ranking must fill ranks 1..{mode.last_rank} exactly (missing {missing}, unexpected {extra})",
        )
    ordered = tuple(ranking[rank] for rank in sorted(expected))

    seen: set[str] = set()
    for player in ordered:
        if player.player_id in seen:
            raise InvalidRankingError(
                f"player {player.display_name} appears more than once",
                code=ScoreErrorCode.DUPLICATE_PLAYER,
            )
        seen.add(player.player_id)

    for team in Team:
        count = sum(1 for player in ordered if player.team is team)
        if count != mode.team_size:
            raise InvalidRankingError(
                f"each team needs {mode.team_size} players, {team.value} has {count}",
                code=ScoreErrorCode.UNBALANCED_TEAMS,
            )
    return ordered


def winner_from_ranking(ranking: Mapping[int, Player]) -> Team:
    """The hand is won by the team of the first-place finisher."""
    return ranking[1].team


def team_ranks(ranking: Mapping[int, Player], team: Team) -> tuple[int, ...]:
    return tuple(sorted(rank for rank, player in ranking.items() if player.team is team))


def compute_upgrade(
    mode: GameMode,
    winner_ranks: Iterable[int],
    settings: GameSettings,
    must1: bool,
) -> UpgradeResult:
    """
    Compute the upgrade amount (0-4) and label for a winning team.

    Four-player hands look the rank pair up in the configured table; six and
    eight player hands tier the score difference against the thresholds. An
    eight-player sweep of ranks 1-4 always climbs four levels. With ``must1``
    set, a winning team without the first-place finisher never climbs.

    Never raises for bad input: invalid ranks and unknown four-player pairs
    come back as failure results.
    """
    mode = GameMode(mode)
    try:
        ranks = normalize_ranks(winner_ranks, mode)
    except InvalidRanksError as exc:
        return UpgradeResult(ok=False, error=exc.code, message=exc.message)

    combination = rank_pair_key(ranks)
    has_first = 1 in ranks

    if mode == GameMode.FOUR:
        return _compute_four_player(combination, settings, must1=must1, has_first=has_first)

    if mode == GameMode.EIGHT and ranks == SWEEP_RANKS:
        return UpgradeResult(
            ok=True,
            upgrade=MAX_UPGRADE,
            label=SWEEP_LABEL,
            diagnostics=UpgradeDiagnostics(
                mode=mode,
                combination=combination,
                has_first_place=True,
                sweep=True,
            ),
        )

    points = settings.points_for(mode)
    thresholds = settings.thresholds_for(mode)
    winner_score = sum(points[r] for r in ranks)
    loser_score = sum(points.values()) - winner_score
    diff = winner_score - loser_score

    must1_blocked = must1 and not has_first
    upgrade = 0 if must1_blocked else thresholds.tier(diff)

    return UpgradeResult(
        ok=True,
        upgrade=upgrade,
        label=tier_label(upgrade),
        diagnostics=UpgradeDiagnostics(
            mode=mode,
            combination=combination,
            winner_score=winner_score,
            loser_score=loser_score,
            difference=diff,
            thresholds=thresholds,
            has_first_place=has_first,
            must1_blocked=must1_blocked,
        ),
    )


def _compute_four_player(
    combination: str,
    settings: GameSettings,
    *,
    must1: bool,
    has_first: bool,
) -> UpgradeResult:
    if combination in settings.c4:
        upgrade = settings.c4[combination]
    elif combination in ALWAYS_VALID_PAIRS:
        upgrade = 0
    else:
        return UpgradeResult(
            ok=False,
            error=ScoreErrorCode.INVALID_RANK_COMBINATION,
            message=f"invalid rank combination ({combination})",
        )

    must1_blocked = must1 and not has_first
    if must1_blocked:
        upgrade = 0

    return UpgradeResult(
        ok=True,
        upgrade=upgrade,
        label=NO_UPGRADE_LABEL if must1_blocked else FOUR_PLAYER_LABELS.get(combination, DEFAULT_FOUR_PLAYER_LABEL),
        diagnostics=UpgradeDiagnostics(
            mode=GameMode.FOUR,
            combination=combination,
            has_first_place=has_first,
            must1_blocked=must1_blocked,
        ),
    )
