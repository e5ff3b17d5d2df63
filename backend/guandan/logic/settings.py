"""Centralized scoring settings for Guandan - all configurable upgrade rules."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from guandan.logic.enums import GameMode, Team
from guandan.logic.exceptions import UnsupportedSettingsError

MAX_UPGRADE = 4  # 8-player sweep

# Pairs that are legal four-player finishes even when the table omits them.
ALWAYS_VALID_PAIRS: frozenset[str] = frozenset({"1,2", "1,3", "1,4", "2,3"})


def rank_pair_key(ranks: tuple[int, ...] | list[int]) -> str:
    """Build the ``"a,b"`` lookup key used by the four-player table."""
    return ",".join(str(r) for r in sorted(ranks))


class UpgradeThresholds(BaseModel):
    """Score-difference tiers for 6 and 8 player modes."""

    model_config = ConfigDict(frozen=True)

    g1: int
    g2: int
    g3: int

    @model_validator(mode="after")
    def _validate_order(self) -> UpgradeThresholds:
        if not (self.g1 <= self.g2 <= self.g3):
            raise ValueError(f"thresholds must satisfy g1 <= g2 <= g3, got {self.g1}, {self.g2}, {self.g3}")
        return self

    def tier(self, diff: int) -> int:
        """Return the upgrade amount (0-3) earned by a score difference."""
        if diff >= self.g3:
            return 3
        if diff >= self.g2:
            return 2
        if diff >= self.g1:
            return 1
        return 0


class GameSettings(BaseModel):
    """
    Centralized configuration for all Guandan upgrade rules.

    All fields have default values matching the classic scorekeeper.
    The engine treats an instance as read-only; replacing settings mid-match
    is allowed, but replaying history only reproduces the current state while
    the rules stay unchanged.
    """

    model_config = ConfigDict(frozen=True)

    # --- Table ---
    mode: GameMode = GameMode.FOUR

    # --- Four-player upgrade table ---
    c4: dict[str, int] = Field(default_factory=lambda: {"1,2": 3, "1,3": 2, "1,4": 1})

    # --- Six-player scoring ---
    points6: dict[int, int] = Field(default_factory=lambda: {1: 5, 2: 4, 3: 3, 4: 3, 5: 1, 6: 0})
    thresholds6: UpgradeThresholds = Field(default_factory=lambda: UpgradeThresholds(g1=1, g2=4, g3=7))

    # --- Eight-player scoring ---
    points8: dict[int, int] = Field(
        default_factory=lambda: {1: 7, 2: 6, 3: 5, 4: 4, 5: 3, 6: 2, 7: 1, 8: 0},
    )
    thresholds8: UpgradeThresholds = Field(default_factory=lambda: UpgradeThresholds(g1=1, g2=6, g3=11))

    # --- Rule toggles ---
    must1: bool = True  # winner needs a first-place finisher to climb
    auto_next: bool = True  # move to the next round as soon as a hand is applied
    strict_a: bool = True  # A passes only on the team's own A round

    # --- History ---
    history_limit: int = Field(default=100, ge=1)

    # --- Display ---
    team_names: dict[Team, str] = Field(default_factory=lambda: {Team.T1: "Blue", Team.T2: "Red"})

    @field_validator("c4")
    @classmethod
    def _validate_c4(cls, value: dict[str, int]) -> dict[str, int]:
        for key, amount in value.items():
            parts = key.split(",")
            if len(parts) != 2 or not all(p.strip().isdigit() for p in parts):  # noqa: PLR2004
                raise ValueError(f"c4 key {key!r} must look like 'a,b'")
            first, second = (int(p) for p in parts)
            if not (1 <= first < second <= GameMode.FOUR):
                raise ValueError(f"c4 key {key!r} must hold two ascending ranks in 1..4")
            if not (0 <= amount <= MAX_UPGRADE):
                raise ValueError(f"c4[{key!r}]={amount} must be within 0..{MAX_UPGRADE}")
        return {rank_pair_key([int(p) for p in key.split(",")]): amount for key, amount in value.items()}

    @field_validator("points6")
    @classmethod
    def _validate_points6(cls, value: dict[int, int]) -> dict[int, int]:
        return _validate_point_table(value, GameMode.SIX)

    @field_validator("points8")
    @classmethod
    def _validate_points8(cls, value: dict[int, int]) -> dict[int, int]:
        return _validate_point_table(value, GameMode.EIGHT)

    @field_validator("team_names")
    @classmethod
    def _validate_team_names(cls, value: dict[Team, str]) -> dict[Team, str]:
        missing = set(Team) - set(value)
        if missing:
            raise ValueError(f"team_names is missing {sorted(t.value for t in missing)}")
        return value

    def team_name(self, team: Team) -> str:
        return self.team_names[team]

    def points_for(self, mode: GameMode) -> dict[int, int]:
        """Return the per-rank point table for a 6 or 8 player mode."""
        if mode == GameMode.SIX:
            return self.points6
        if mode == GameMode.EIGHT:
            return self.points8
        raise ValueError(f"mode {int(mode)} has no point table")

    def thresholds_for(self, mode: GameMode) -> UpgradeThresholds:
        if mode == GameMode.SIX:
            return self.thresholds6
        if mode == GameMode.EIGHT:
            return self.thresholds8
        raise ValueError(f"mode {int(mode)} has no thresholds")


def _validate_point_table(value: dict[int, int], mode: GameMode) -> dict[int, int]:
    expected = set(range(1, mode.last_rank + 1))
    if set(value) != expected:
        raise ValueError(f"point table for {int(mode)} players must cover ranks 1..{mode.last_rank}")
    negative = sorted(rank for rank, points in value.items() if points < 0)
    if negative:
        raise ValueError(f"point table for {int(mode)} players has negative points at ranks {negative}")
    return dict(sorted(value.items()))


def validate_settings(settings: GameSettings) -> None:
    """Validate that the settings describe a playable match.

    Raises UnsupportedSettingsError for combinations that pass field-level
    validation but leave the engine unable to ever award an upgrade.
    """
    errors: list[str] = []

    if settings.mode == GameMode.FOUR and not any(settings.c4.values()):
        errors.append("c4 awards no upgrade for any rank pair")

    if settings.mode != GameMode.FOUR:
        points = settings.points_for(settings.mode)
        pool = sum(points.values())
        best = sum(points[r] for r in range(1, settings.mode.team_size + 1))
        if best - (pool - best) < settings.thresholds_for(settings.mode).g1:
            errors.append(f"no {int(settings.mode)}-player finish can reach the first threshold")

    if errors:
        raise UnsupportedSettingsError("; ".join(errors))
