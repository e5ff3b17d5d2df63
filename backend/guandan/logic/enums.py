"""
String and integer enum definitions for Guandan scorekeeping concepts.
"""

from __future__ import annotations

from enum import Enum, IntEnum


class Team(str, Enum):
    """One of the two partnerships climbing the ladder."""

    T1 = "t1"
    T2 = "t2"

    @property
    def other(self) -> Team:
        """Return the opposing team."""
        return Team.T2 if self is Team.T1 else Team.T1


class GameMode(IntEnum):
    """Number of seated players; fixes the finishing-order length."""

    FOUR = 4
    SIX = 6
    EIGHT = 8

    @property
    def team_size(self) -> int:
        return self.value // 2

    @property
    def last_rank(self) -> int:
        return self.value


class ALevelOutcome(str, Enum):
    """Classification of an A-level verdict."""

    NOT_APPLICABLE = "not_applicable"  # neither team at A
    PASSED = "passed"  # final victory
    STRICT_WRONG_LEVEL = "strict_wrong_level"  # strict mode, contested level is not A
    STRICT_WRONG_OWNER = "strict_wrong_owner"  # strict mode, round belongs to the other team
    FAILED_WITH_LAST = "failed_with_last"  # won own A round but holds last place
    WON_WITH_LAST_NOT_COUNTED = "won_with_last_not_counted"
    FAILED_OWN_ROUND = "failed_own_round"  # lost own A round
    LOST_NOT_COUNTED = "lost_not_counted"


class ScoreErrorCode(str, Enum):
    """Error codes reported to callers for rejected operations."""

    INCOMPLETE_RANKING = "incomplete_ranking"
    DUPLICATE_PLAYER = "duplicate_player"
    UNBALANCED_TEAMS = "unbalanced_teams"
    UNKNOWN_TEAM = "unknown_team"
    INVALID_RANKS = "invalid_ranks"
    INVALID_RANK_COMBINATION = "invalid_rank_combination"
    MATCH_FINISHED = "match_finished"
    NO_PENDING_ADVANCE = "no_pending_advance"
    NOTHING_TO_UNDO = "nothing_to_undo"
    ROLLBACK_OUT_OF_RANGE = "rollback_out_of_range"
