"""
Deterministic match replay.

Feeds every recorded hand through a fresh Scorekeeper and checks that each
hand reproduces the recorded before/after snapshots and outcome. A match
whose rules were changed part-way through will not replay cleanly; the
record only keeps the settings in force at export time.
"""

from __future__ import annotations

import structlog

from guandan.logic.round_state import RoundState
from guandan.logic.scorekeeper import Scorekeeper
from guandan.logic.types import ApplyResult, HistoryEntry
from guandan.replay.models import MatchRecord, ReplayInvariantError, ReplayStep, ReplayTrace

logger = structlog.get_logger()


def _seed_state(record: MatchRecord) -> RoundState:
    """Start from the first surviving entry, or the initial state when there is none."""
    if not record.entries:
        return record.initial_state
    before = record.entries[0].before
    return RoundState(
        t1=before.t1,
        t2=before.t2,
        round_level=before.round_level,
        round_owner=before.round_owner,
        last_winner=before.round_owner,
    )


def _apply_entry(keeper: Scorekeeper, entry: HistoryEntry) -> ApplyResult:
    if entry.ranking:
        ranking = {index + 1: player for index, player in enumerate(entry.ranking)}
        return keeper.apply_hand(ranking, winner=entry.winner)
    return keeper.apply_ranks(entry.winner, entry.outcome.winner_ranks)


def replay_match(record: MatchRecord) -> ReplayTrace:
    """
    Replay a match record and verify it hand by hand.

    Raises:
        ReplayInvariantError: If a hand is rejected, or its outcome or the
            state before or after it differs from the record.

    """
    keeper = Scorekeeper(settings=record.settings, state=_seed_state(record))
    steps: list[ReplayStep] = []

    for entry in record.entries:
        advanced = False
        if keeper.snapshot() != entry.before and keeper.state.next_round_base is not None:
            advanced = keeper.advance_round().ok

        before = keeper.snapshot()
        if before != entry.before:
            raise ReplayInvariantError(entry.hand_number, "state before the hand differs from the record")

        result = _apply_entry(keeper, entry)
        if not result.ok:
            raise ReplayInvariantError(entry.hand_number, f"hand was rejected: {result.message}")
        if result.outcome != entry.outcome:
            raise ReplayInvariantError(entry.hand_number, "hand outcome differs from the record")

        after = keeper.snapshot()
        if after != entry.after:
            raise ReplayInvariantError(entry.hand_number, "state after the hand differs from the record")

        steps.append(
            ReplayStep(
                hand_number=entry.hand_number,
                advanced_manually=advanced,
                before=before,
                after=after,
                outcome=result.outcome,
            ),
        )

    logger.info("match replayed", hands=len(steps))
    return ReplayTrace(steps=tuple(steps), final_state=keeper.state)
