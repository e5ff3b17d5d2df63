"""
Scorekeeper: the single entry point for recording Guandan hands.

Each operation calculates first and mutates second, in one call, so a
rejected hand never leaves partial state behind and undo can never
interleave with a half-applied hand. Bad input comes back as a failure
result; nothing here raises for user mistakes.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

import structlog

from guandan.logic.a_level import apply_verdict, evaluate_a_level
from guandan.logic.enums import ScoreErrorCode, Team
from guandan.logic.exceptions import ScoreRuleError
from guandan.logic.history import HistoryLedger
from guandan.logic.levels import Level, next_level
from guandan.logic.round_state import RoundState, RoundStateMachine
from guandan.logic.settings import GameSettings, validate_settings
from guandan.logic.types import (
    AdvanceResult,
    ApplyResult,
    HandOutcome,
    HandPreview,
    HistoryEntry,
    LevelChange,
    Player,
    PlayerStats,
    RollbackResult,
    RoundTransition,
    Snapshot,
)
from guandan.logic.upgrade import compute_upgrade, team_ranks, validate_ranking, winner_from_ranking

if TYPE_CHECKING:
    from guandan.replay.models import MatchRecord

logger = structlog.get_logger()


class Scorekeeper:
    """
    One match: settings, round state and hand history.

    The caller owns the instance; there is no global match.
    """

    def __init__(
        self,
        settings: GameSettings | None = None,
        state: RoundState | None = None,
    ) -> None:
        self._settings = settings or GameSettings()
        validate_settings(self._settings)
        self._initial_state = state or RoundState()
        self._machine = RoundStateMachine(self._initial_state)
        self._history = HistoryLedger(self._machine, self._settings.history_limit)

    @classmethod
    def from_record(cls, record: MatchRecord) -> Scorekeeper:
        """Rebuild a match from an exported record without replaying it."""
        keeper = cls(settings=record.settings, state=record.initial_state)
        keeper._machine = RoundStateMachine(record.final_state)
        keeper._history = HistoryLedger(keeper._machine, keeper._settings.history_limit)
        keeper._history.load(record.entries)
        return keeper

    @property
    def settings(self) -> GameSettings:
        return self._settings

    @property
    def state(self) -> RoundState:
        return self._machine.state

    @property
    def entries(self) -> tuple[HistoryEntry, ...]:
        return self._history.entries

    @property
    def finished(self) -> bool:
        return self._machine.state.finished

    def snapshot(self) -> Snapshot:
        return self._machine.snapshot()

    # --- Hand entry ---

    def preview_hand(self, ranking: Mapping[int, Player], winner: Team | None = None) -> HandPreview:
        """Calculate a hand from a full finishing order without applying it."""
        try:
            _, winner, ranks = self._resolve_ranking(ranking, winner)
            outcome = self._evaluate(winner, ranks)
        except ScoreRuleError as exc:
            return HandPreview(ok=False, error=exc.code, message=exc.message)
        return HandPreview(ok=True, outcome=outcome, next_round_level=self._projected_level(outcome))

    def preview_ranks(self, winner: Team, ranks: Iterable[int]) -> HandPreview:
        """Calculate a hand from the winning team's ranks without applying it."""
        try:
            outcome = self._evaluate(winner, ranks)
        except ScoreRuleError as exc:
            return HandPreview(ok=False, error=exc.code, message=exc.message)
        return HandPreview(ok=True, outcome=outcome, next_round_level=self._projected_level(outcome))

    def apply_hand(self, ranking: Mapping[int, Player], winner: Team | None = None) -> ApplyResult:
        """
        Record a hand from a full finishing order (rank -> player).

        The winner defaults to the team of the first-place finisher.
        """
        try:
            ordered, winner, ranks = self._resolve_ranking(ranking, winner)
            outcome = self._evaluate(winner, ranks)
        except ScoreRuleError as exc:
            return self._rejected(exc)
        return self._commit(outcome, ordered)

    def apply_ranks(self, winner: Team, ranks: Iterable[int]) -> ApplyResult:
        """Record a hand from the winning team and its ranks; no player ranking is kept."""
        try:
            outcome = self._evaluate(winner, ranks)
        except ScoreRuleError as exc:
            return self._rejected(exc)
        return self._commit(outcome, ())

    def _resolve_ranking(
        self,
        ranking: Mapping[int, Player],
        winner: Team | None,
    ) -> tuple[tuple[Player, ...], Team, tuple[int, ...]]:
        ordered = validate_ranking(ranking, self._settings.mode)
        if winner is None:
            winner = winner_from_ranking(ranking)
        return ordered, winner, team_ranks(ranking, winner)

    def _evaluate(self, winner: Team, ranks: Iterable[int]) -> HandOutcome:
        try:
            winner = Team(winner)
        except ValueError:
            raise ScoreRuleError(f"unknown team {winner!r}", code=ScoreErrorCode.UNKNOWN_TEAM) from None
        ranks = tuple(ranks)
        if self._machine.state.finished:
            raise ScoreRuleError(
                f"{self._settings.team_name(self._machine.state.match_winner)} has already won the match",
                code=ScoreErrorCode.MATCH_FINISHED,
            )
        mode = self._settings.mode
        result = compute_upgrade(mode, ranks, self._settings, self._settings.must1)
        if not result.ok:
            raise ScoreRuleError(result.message, code=result.error)

        winner_ranks = tuple(sorted(int(r) for r in ranks))
        verdict = evaluate_a_level(self._machine.state, winner, winner_ranks, mode, self._settings)
        return HandOutcome(
            mode=mode,
            winning_team=winner,
            winner_ranks=winner_ranks,
            upgrade_amount=result.upgrade,
            label=result.label,
            diagnostics=result.diagnostics,
            a_level=verdict,
        )

    def _projected_level(self, outcome: HandOutcome) -> Level:
        """Level the winner would reach, which is also the next round's level."""
        verdict = outcome.a_level
        if verdict.winner_level is not None:
            return verdict.winner_level
        amount = outcome.upgrade_amount if verdict.upgrade_override is None else verdict.upgrade_override
        return next_level(self._machine.team(outcome.winning_team).level, amount)

    def _rejected(self, exc: ScoreRuleError) -> ApplyResult:
        logger.info("hand rejected", error=exc.code, reason=exc.message)
        return ApplyResult(ok=False, error=exc.code, message=exc.message)

    def _commit(self, outcome: HandOutcome, ranking: tuple[Player, ...]) -> ApplyResult:
        winner = outcome.winning_team
        before = self._machine.snapshot()
        change = apply_verdict(self._machine, winner, outcome.upgrade_amount, outcome.a_level)
        transition = self._machine.advance_round(
            auto_next=self._settings.auto_next,
            winner=winner,
            winner_new_level=change.winner_after,
            final_win=outcome.final_win,
        )
        entry = self._history.add_entry(
            outcome,
            before,
            ranking,
            after=self._machine.snapshot(),
            transition=transition,
        )
        logger.info(
            "hand applied",
            hand_number=entry.hand_number,
            winner=winner,
            ranks=list(outcome.winner_ranks),
            upgrade=outcome.upgrade_amount,
            winner_level=change.winner_after.label,
            loser_level=change.loser_after.label,
            round_level=transition.new_level.label,
        )
        return ApplyResult(
            ok=True,
            outcome=outcome,
            entry=entry,
            transition=transition,
            message=self._summarize(outcome, change, transition),
        )

    def _summarize(self, outcome: HandOutcome, change: LevelChange, transition: RoundTransition) -> str:
        winner_name = self._settings.team_name(change.winner)
        loser_name = self._settings.team_name(change.winner.other)
        parts = [
            f"{winner_name} won ({outcome.label}): "
            f"{change.winner_before.label} -> {change.winner_after.label}, "
            f"{loser_name} {change.loser_before.label} -> {change.loser_after.label}",
        ]
        if outcome.a_level_note:
            parts.append(outcome.a_level_note)
        if outcome.final_win:
            parts.append(f"{winner_name} won the match")
        elif transition.advanced:
            owner = self._settings.team_name(transition.new_owner) if transition.new_owner else "nobody"
            parts.append(f"next round {transition.new_level.label} ({owner})")
        elif transition.pending_level is not None:
            parts.append(f"next round {transition.pending_level.label} pending")
        return "; ".join(parts)

    # --- Round and history control ---

    def advance_round(self) -> AdvanceResult:
        """Move to the pending round stored while auto-advance is off."""
        return self._machine.advance_manually()

    def undo_last(self) -> RollbackResult:
        return self._history.undo_last()

    def rollback_to(self, index: int) -> RollbackResult:
        return self._history.rollback_to(index)

    def reset(self) -> None:
        """Start the match over from level 2 with an empty history."""
        self._initial_state = RoundState()
        self._machine.reset()
        self._history.clear()
        logger.info("match reset")

    def update_settings(self, settings: GameSettings) -> None:
        """
        Replace the rule settings for subsequent hands.

        Already-recorded hands keep the outcome they were applied with.

        Raises:
            UnsupportedSettingsError: If the settings describe an unplayable match.

        """
        validate_settings(settings)
        self._settings = settings
        self._history.set_limit(settings.history_limit)
        logger.info("settings updated", mode=settings.mode, strict_a=settings.strict_a, auto_next=settings.auto_next)

    def player_stats(self) -> dict[str, PlayerStats]:
        return self._history.player_stats()

    def export_match(self) -> MatchRecord:
        from guandan.replay.models import MatchRecord

        return MatchRecord(
            settings=self._settings,
            initial_state=self._initial_state,
            entries=self._history.entries,
            final_state=self._machine.state,
        )
