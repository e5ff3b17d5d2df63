"""Match record and replay trace models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from guandan.logic.round_state import RoundState
from guandan.logic.settings import GameSettings
from guandan.logic.types import HandOutcome, HistoryEntry, Snapshot

MATCH_RECORD_VERSION = "1"


class ReplayInvariantError(Exception):
    """Raised when a replayed hand does not reproduce the recorded state."""

    def __init__(self, hand_number: int, reason: str) -> None:
        self.hand_number = hand_number
        self.reason = reason
        super().__init__(f"replay diverged at hand {hand_number}: {reason}")


class MatchRecord(BaseModel):
    """
    Everything needed to restore or replay a match.

    ``initial_state`` is the state the match started from; ``entries`` are
    the surviving history entries (the oldest may have been trimmed) and
    ``final_state`` is the live state at export time.
    """

    model_config = ConfigDict(frozen=True)

    version: str = MATCH_RECORD_VERSION
    settings: GameSettings = Field(default_factory=GameSettings)
    initial_state: RoundState = Field(default_factory=RoundState)
    entries: tuple[HistoryEntry, ...] = ()
    final_state: RoundState = Field(default_factory=RoundState)

    @model_validator(mode="after")
    def _validate_hand_numbers(self) -> MatchRecord:
        numbers = [entry.hand_number for entry in self.entries]
        expected = list(range(numbers[0], numbers[0] + len(numbers))) if numbers else []
        if numbers != expected:
            raise ValueError(f"hand numbers must be consecutive, got {numbers}")
        return self

    def to_json(self) -> str:
        return self.model_dump_json(indent=2)


class ReplayStep(BaseModel):
    """One replayed hand and the states around it."""

    model_config = ConfigDict(frozen=True)

    hand_number: int
    advanced_manually: bool = False  # a pending round was consumed before this hand
    before: Snapshot
    after: Snapshot
    outcome: HandOutcome


class ReplayTrace(BaseModel):
    """Result of replaying a match record hand by hand."""

    model_config = ConfigDict(frozen=True)

    version: str = MATCH_RECORD_VERSION
    steps: tuple[ReplayStep, ...] = ()
    final_state: RoundState
