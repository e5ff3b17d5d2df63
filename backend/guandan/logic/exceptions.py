"""Typed domain exceptions for scorekeeping rule violations.

Validators in the logic layer raise subclasses of ScoreRuleError rather
than raw ValueError. The Scorekeeper catches them at its boundary and
converts them into failure results before any state is touched, so
callers never see these exceptions for bad user input.
"""

from guandan.logic.enums import ScoreErrorCode


class ScoreRuleError(Exception):
    """Base exception for scorekeeping rule violations.

    Carries the error code reported to the caller once the exception is
    converted into a failure result.
    """

    code: ScoreErrorCode = ScoreErrorCode.INVALID_RANKS

    def __init__(self, message: str, *, code: ScoreErrorCode | None = None) -> None:
        if code is not None:
            self.code = code
        self.message = message
        super().__init__(message)


class InvalidRankingError(ScoreRuleError):
    """Finishing order is incomplete, repeats a player, or splits teams unevenly."""

    code = ScoreErrorCode.INCOMPLETE_RANKING


class InvalidRanksError(ScoreRuleError):
    """Winner ranks have the wrong count, fall outside 1..mode, or repeat."""

    code = ScoreErrorCode.INVALID_RANKS


class UnsupportedSettingsError(ScoreRuleError):
    """Game settings contain values the engine cannot honour."""

