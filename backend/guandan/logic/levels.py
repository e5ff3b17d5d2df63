"""
The 13-step level ladder shared by both teams.

Levels are integer ordinals; display labels are produced only at the
presentation boundary so comparisons never depend on string ordering.
"""

from __future__ import annotations

from enum import IntEnum


class Level(IntEnum):
    """Ladder position, from 2 (start) to A (top)."""

    TWO = 0
    THREE = 1
    FOUR = 2
    FIVE = 3
    SIX = 4
    SEVEN = 5
    EIGHT = 6
    NINE = 7
    TEN = 8
    JACK = 9
    QUEEN = 10
    KING = 11
    ACE = 12

    @property
    def label(self) -> str:
        return LEVEL_LABELS[self]

    @property
    def is_ace(self) -> bool:
        return self is Level.ACE

    @classmethod
    def from_label(cls, text: str) -> Level:
        """Parse a display label such as ``"10"`` or ``"a"``."""
        key = str(text).strip().upper()
        try:
            return _LEVEL_BY_LABEL[key]
        except KeyError:
            raise ValueError(f"Unknown level label {text!r}") from None


LEVEL_LABELS: dict[Level, str] = {
    Level.TWO: "2",
    Level.THREE: "3",
    Level.FOUR: "4",
    Level.FIVE: "5",
    Level.SIX: "6",
    Level.SEVEN: "7",
    Level.EIGHT: "8",
    Level.NINE: "9",
    Level.TEN: "10",
    Level.JACK: "J",
    Level.QUEEN: "Q",
    Level.KING: "K",
    Level.ACE: "A",
}

_LEVEL_BY_LABEL: dict[str, Level] = {label: level for level, label in LEVEL_LABELS.items()}

START_LEVEL = Level.TWO
TOP_LEVEL = Level.ACE


def next_level(level: Level, amount: int) -> Level:
    """
    Return the level reached after climbing ``amount`` steps.

    The ladder is clamped at A; a team never climbs past the top.
    """
    if amount < 0:
        raise ValueError(f"Upgrade amount must be non-negative, got {amount}")
    return Level(min(TOP_LEVEL, level + amount))
