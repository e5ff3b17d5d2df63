"""
Round state machine: both teams' ladder positions and the contested round.

The machine owns a frozen ``RoundState`` and replaces it on every mutation,
so a state handed out to a caller never changes underneath them.
"""

from __future__ import annotations

import structlog
from pydantic import BaseModel, ConfigDict, Field

from guandan.logic.enums import ScoreErrorCode, Team
from guandan.logic.levels import START_LEVEL, Level
from guandan.logic.types import (
    MAX_A_FAILURES,
    AdvanceResult,
    RoundTransition,
    Snapshot,
    TeamState,
)

logger = structlog.get_logger()


class RoundState(BaseModel):
    """Complete mutable match position, stored immutably."""

    model_config = ConfigDict(frozen=True)

    t1: TeamState = Field(default_factory=TeamState)
    t2: TeamState = Field(default_factory=TeamState)
    round_level: Level = START_LEVEL
    round_owner: Team | None = None
    next_round_base: Level | None = None  # pending level while auto-advance is off
    last_winner: Team | None = None
    match_winner: Team | None = None

    def team(self, team: Team) -> TeamState:
        return self.t1 if team is Team.T1 else self.t2

    @property
    def finished(self) -> bool:
        return self.match_winner is not None


def _update_team(state: RoundState, team: Team, team_state: TeamState) -> RoundState:
    key = "t1" if team is Team.T1 else "t2"
    return state.model_copy(update={key: team_state})


class RoundStateMachine:
    """Caller-owned holder of the round state; one instance per match."""

    def __init__(self, state: RoundState | None = None) -> None:
        self._state = state or RoundState()

    @property
    def state(self) -> RoundState:
        return self._state

    def team(self, team: Team) -> TeamState:
        return self._state.team(team)

    def apply_upgrade(self, team: Team, new_level: Level) -> None:
        """Move a team to ``new_level``; leaving A clears its failure count."""
        new_level = Level(new_level)
        current = self._state.team(team)
        failures = current.a_failures if new_level.is_ace else 0
        self._state = _update_team(self._state, team, TeamState(level=new_level, a_failures=failures))

    def set_a_failures(self, team: Team, count: int) -> None:
        current = self._state.team(team)
        if not current.level.is_ace:
            raise ValueError(f"{team.value} is at {current.level.label}, failures are only tracked at A")
        if not (0 <= count < MAX_A_FAILURES):
            raise ValueError(f"A-level failure count must be within 0..{MAX_A_FAILURES - 1}, got {count}")
        self._state = _update_team(self._state, team, current.model_copy(update={"a_failures": count}))

    def advance_round(
        self,
        *,
        auto_next: bool,
        winner: Team,
        winner_new_level: Level,
        final_win: bool = False,
    ) -> RoundTransition:
        """
        Settle the contested round after a hand.

        With auto-advance on (or on a final win) the winner's new level becomes
        the next round and the winner owns it. Otherwise the round stays put and
        the would-be level is kept until ``advance_manually`` is called.
        """
        state = self._state
        advance = auto_next or final_win
        update: dict[str, object] = {"last_winner": winner}
        if advance:
            update.update(round_level=winner_new_level, round_owner=winner, next_round_base=None)
        else:
            update["next_round_base"] = winner_new_level
        if final_win:
            update["match_winner"] = winner
        self._state = state.model_copy(update=update)

        transition = RoundTransition(
            previous_level=state.round_level,
            new_level=self._state.round_level,
            previous_owner=state.round_owner,
            new_owner=self._state.round_owner,
            pending_level=self._state.next_round_base,
            advanced=advance,
        )
        logger.debug(
            "round settled",
            winner=winner,
            round_level=transition.new_level.label,
            round_owner=transition.new_owner,
            advanced=advance,
            final_win=final_win,
        )
        return transition

    def advance_manually(self) -> AdvanceResult:
        """Consume the pending round level stored while auto-advance was off."""
        state = self._state
        if state.next_round_base is None:
            return AdvanceResult(
                ok=False,
                error=ScoreErrorCode.NO_PENDING_ADVANCE,
                message="no pending round to advance to",
            )
        self._state = state.model_copy(
            update={
                "round_level": state.next_round_base,
                "round_owner": state.last_winner,
                "next_round_base": None,
            },
        )
        transition = RoundTransition(
            previous_level=state.round_level,
            new_level=self._state.round_level,
            previous_owner=state.round_owner,
            new_owner=self._state.round_owner,
            advanced=True,
        )
        logger.info("round advanced manually", round_level=transition.new_level.label, round_owner=transition.new_owner)
        return AdvanceResult(ok=True, transition=transition)

    def snapshot(self) -> Snapshot:
        state = self._state
        return Snapshot(t1=state.t1, t2=state.t2, round_level=state.round_level, round_owner=state.round_owner)

    def restore(self, snapshot: Snapshot, round_owner: Team | None) -> None:
        """
        Restore levels, failure counts and round level from a snapshot.

        The owner is supplied by the caller (the winner of the hand before the
        snapshot, or None at the start of the match). Any pending advance and
        the match winner are cleared.
        """
        self._state = RoundState(
            t1=snapshot.t1,
            t2=snapshot.t2,
            round_level=snapshot.round_level,
            round_owner=round_owner,
            next_round_base=None,
            last_winner=round_owner,
            match_winner=None,
        )

    def reset(self) -> None:
        self._state = RoundState()
