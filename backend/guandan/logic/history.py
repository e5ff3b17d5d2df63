"""
History ledger: the append-only record of applied hands.

Entries are frozen and are only ever removed (by undo or rollback), never
edited. Every entry keeps the snapshot taken just before its hand, which is
what rollback restores.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from guandan.logic.enums import ScoreErrorCode
from guandan.logic.statistics import compute_player_stats
from guandan.logic.types import (
    HandOutcome,
    HistoryEntry,
    Player,
    PlayerStats,
    RollbackResult,
    RoundTransition,
    Snapshot,
)

if TYPE_CHECKING:
    from guandan.logic.round_state import RoundStateMachine

logger = structlog.get_logger()


class HistoryLedger:
    """Ordered hand history bound to the round state machine it rolls back."""

    def __init__(self, machine: RoundStateMachine, limit: int = 100) -> None:
        if limit < 1:
            raise ValueError(f"history limit must be at least 1, got {limit}")
        self._machine = machine
        self._limit = limit
        self._entries: list[HistoryEntry] = []
        self._first_hand_number = 1

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    @property
    def limit(self) -> int:
        return self._limit

    def set_limit(self, limit: int) -> None:
        if limit < 1:
            raise ValueError(f"history limit must be at least 1, got {limit}")
        self._limit = limit
        self._trim()

    def add_entry(
        self,
        outcome: HandOutcome,
        before: Snapshot,
        ranking: Iterable[Player] = (),
        *,
        after: Snapshot,
        transition: RoundTransition,
        recorded_at: datetime | None = None,
    ) -> HistoryEntry:
        entry = HistoryEntry(
            hand_number=self._first_hand_number + len(self._entries),
            recorded_at=recorded_at or datetime.now(UTC),
            outcome=outcome,
            before=before,
            after=after,
            transition=transition,
            ranking=tuple(ranking),
        )
        self._entries.append(entry)
        self._trim()
        return entry

    def load(self, entries: Iterable[HistoryEntry]) -> None:
        """Replace the ledger contents with previously recorded entries."""
        self._entries = list(entries)
        self._first_hand_number = self._entries[0].hand_number if self._entries else 1
        self._trim()

    def clear(self) -> None:
        self._entries = []
        self._first_hand_number = 1

    def _trim(self) -> None:
        overflow = len(self._entries) - self._limit
        if overflow <= 0:
            return
        dropped = self._entries[:overflow]
        del self._entries[:overflow]
        self._first_hand_number = dropped[-1].hand_number + 1
        logger.debug("history trimmed", dropped=overflow, limit=self._limit)

    def undo_last(self) -> RollbackResult:
        if not self._entries:
            return RollbackResult(ok=False, error=ScoreErrorCode.NOTHING_TO_UNDO, message="no hand to undo")
        return self.rollback_to(len(self._entries) - 1)

    def rollback_to(self, index: int) -> RollbackResult:
        """
        Restore the state from just before ``entries[index]`` and drop it and
        every later entry.

        The round owner becomes the winner of the entry before ``index``, or
        nobody when rolling back to the start.
        ``Snapshot.round_owner`` is not consulted here; it is recorded so replay
        can check the state before and after each hand.
        """
        if not (0 <= index < len(self._entries)):
            return RollbackResult(
                ok=False,
                error=ScoreErrorCode.ROLLBACK_OUT_OF_RANGE,
                message=f"rollback index {index} is out of range (0..{len(self._entries) - 1})",
            )
        target = self._entries[index]
        owner = self._entries[index - 1].winner if index > 0 else None
        self._machine.restore(target.before, owner)

        removed = tuple(self._entries[index:])
        del self._entries[index:]
        logger.info("history rolled back", index=index, removed=len(removed), hand_number=target.hand_number)
        return RollbackResult(
            ok=True,
            removed=removed,
            restored=self._machine.snapshot(),
            stats=self.player_stats(),
        )

    def player_stats(self) -> dict[str, PlayerStats]:
        return compute_player_stats(self._entries)
