"""
A-level rules: what happens when a team at A plays a hand.

A team at A must win its own A round without holding last place. Three
failures send it back to level 2. The evaluation is pure; the verdict is
applied to the round state in a separate step so a preview never mutates.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

import structlog

from guandan.logic.enums import ALevelOutcome, GameMode, Team
from guandan.logic.levels import START_LEVEL, Level, next_level
from guandan.logic.types import MAX_A_FAILURES, ALevelVerdict, LevelChange

if TYPE_CHECKING:
    from guandan.logic.round_state import RoundState, RoundStateMachine
    from guandan.logic.settings import GameSettings

logger = structlog.get_logger()


def find_a_team(state: RoundState, winner: Team) -> Team | None:
    """The team at A; the winner when both teams are there."""
    t1_ace = state.t1.level.is_ace
    t2_ace = state.t2.level.is_ace
    if t1_ace and t2_ace:
        return winner
    if t1_ace:
        return Team.T1
    if t2_ace:
        return Team.T2
    return None


def _count_failure(current: int) -> tuple[int, bool]:
    """Return the new failure count and whether it triggered a reset."""
    failures = current + 1
    if failures >= MAX_A_FAILURES:
        return 0, True
    return failures, False


def evaluate_a_level(
    state: RoundState,
    winner: Team,
    winner_ranks: Iterable[int],
    mode: GameMode,
    settings: GameSettings,
) -> ALevelVerdict:
    """
    Decide the A-level consequences of one hand.

    Returns a verdict with ``NOT_APPLICABLE`` when no team is at A. In every
    other case the verdict carries the outcome, the A-team's new failure
    count (when it changed) and any overrides for levels and upgrade.
    """
    a_team = find_a_team(state, winner)
    if a_team is None:
        return ALevelVerdict()

    mode = GameMode(mode)
    a_name = settings.team_name(a_team)
    a_state = state.team(a_team)
    owns_round = state.round_owner is a_team

    if winner is a_team:
        winner_has_last = mode.last_rank in set(winner_ranks)
        if winner_has_last:
            if not owns_round:
                return ALevelVerdict(
                    outcome=ALevelOutcome.WON_WITH_LAST_NOT_COUNTED,
                    a_team=a_team,
                    upgrade_override=0,
                    note=f"{a_name} won at A holding last place on the opponent's round: not counted, no upgrade",
                )
            failures, reset = _count_failure(a_state.a_failures)
            if reset:
                return ALevelVerdict(
                    outcome=ALevelOutcome.FAILED_WITH_LAST,
                    a_team=a_team,
                    upgrade_override=0,
                    winner_level=START_LEVEL,
                    a_failures=0,
                    reset=True,
                    note=f"{a_name} failed at A while holding last place for the third time: back to 2",
                )
            return ALevelVerdict(
                outcome=ALevelOutcome.FAILED_WITH_LAST,
                a_team=a_team,
                upgrade_override=0,
                a_failures=failures,
                note=f"{a_name} failed at A while holding last place ({failures}/{MAX_A_FAILURES})",
            )

        if settings.strict_a:
            if state.round_level is not Level.ACE:
                return ALevelVerdict(
                    outcome=ALevelOutcome.STRICT_WRONG_LEVEL,
                    a_team=a_team,
                    upgrade_override=0,
                    note=f"{a_name} must win an A round to pass; this round is {state.round_level.label}",
                )
            if not owns_round:
                return ALevelVerdict(
                    outcome=ALevelOutcome.STRICT_WRONG_OWNER,
                    a_team=a_team,
                    upgrade_override=0,
                    note=f"{a_name} must win its own A round to pass; this round belongs to the opponent",
                )
        return ALevelVerdict(
            outcome=ALevelOutcome.PASSED,
            a_team=a_team,
            final_win=True,
            note=f"{a_name} passed A and won the match",
        )

    if not owns_round:
        owner = settings.team_name(state.round_owner) if state.round_owner is not None else "nobody"
        return ALevelVerdict(
            outcome=ALevelOutcome.LOST_NOT_COUNTED,
            a_team=a_team,
            note=f"{a_name} lost at A on a round owned by {owner}: failure not counted",
        )

    failures, reset = _count_failure(a_state.a_failures)
    if reset:
        return ALevelVerdict(
            outcome=ALevelOutcome.FAILED_OWN_ROUND,
            a_team=a_team,
            loser_level=START_LEVEL,
            a_failures=0,
            reset=True,
            note=f"{a_name} lost its own A round for the third time: back to 2",
        )
    return ALevelVerdict(
        outcome=ALevelOutcome.FAILED_OWN_ROUND,
        a_team=a_team,
        a_failures=failures,
        note=f"{a_name} failed while not winning its own A round ({failures}/{MAX_A_FAILURES})",
    )


def apply_verdict(
    machine: RoundStateMachine,
    winner: Team,
    upgrade: int,
    verdict: ALevelVerdict,
) -> LevelChange:
    """
    Apply a hand's upgrade and A-level verdict to the round state.

    This is the only path through which a hand changes team levels or
    failure counts.
    """
    loser = winner.other
    winner_before = machine.team(winner).level
    loser_before = machine.team(loser).level

    amount = upgrade if verdict.upgrade_override is None else verdict.upgrade_override
    winner_after = verdict.winner_level if verdict.winner_level is not None else next_level(winner_before, amount)
    loser_after = verdict.loser_level if verdict.loser_level is not None else loser_before

    machine.apply_upgrade(winner, winner_after)
    machine.apply_upgrade(loser, loser_after)
    if verdict.a_team is not None and verdict.a_failures is not None and machine.team(verdict.a_team).level.is_ace:
        machine.set_a_failures(verdict.a_team, verdict.a_failures)

    if verdict.outcome is not ALevelOutcome.NOT_APPLICABLE:
        logger.info(
            "a-level verdict applied",
            outcome=verdict.outcome,
            a_team=verdict.a_team,
            a_failures=verdict.a_failures,
            reset=verdict.reset,
            final_win=verdict.final_win,
        )
    return LevelChange(
        winner=winner,
        winner_before=winner_before,
        winner_after=winner_after,
        loser_before=loser_before,
        loser_after=loser_after,
    )
