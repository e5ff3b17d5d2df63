"""
Pydantic models for scorekeeping data structures.

Contains typed models for players, upgrade calculations, A-level verdicts,
state snapshots, history entries, and the result values returned to callers.
Every model is frozen: a value, once produced, is never edited in place.
"""

from __future__ import annotations

from datetime import datetime
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from guandan.logic.enums import ALevelOutcome, GameMode, ScoreErrorCode, Team
from guandan.logic.levels import Level
from guandan.logic.settings import UpgradeThresholds

MAX_A_FAILURES = 3  # the third failure resets the team to the start of the ladder


class Player(BaseModel):
    """A seated player and the team they play for."""

    model_config = ConfigDict(frozen=True)

    player_id: str = Field(min_length=1)
    name: str = ""
    team: Team

    @property
    def display_name(self) -> str:
        return self.name or self.player_id


class UpgradeDiagnostics(BaseModel):
    """How an upgrade amount was derived, for display and debugging."""

    model_config = ConfigDict(frozen=True)

    mode: GameMode
    combination: str  # e.g. "1,3" or "1,3,5"
    winner_score: int | None = None
    loser_score: int | None = None
    difference: int | None = None
    thresholds: UpgradeThresholds | None = None
    has_first_place: bool
    must1_blocked: bool = False
    sweep: bool = False


class UpgradeResult(BaseModel):
    """Outcome of the upgrade calculator for one hand."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    upgrade: int = Field(default=0, ge=0, le=4)
    label: str = ""
    diagnostics: UpgradeDiagnostics | None = None
    error: ScoreErrorCode | None = None
    message: str = ""


class ALevelVerdict(BaseModel):
    """
    Decision of the A-level rule engine for one hand.

    ``upgrade_override`` replaces the calculator's amount for the winner when
    set. ``winner_level`` / ``loser_level`` force a team to a specific level
    (a reset after the third failure). ``a_failures`` is the A-team's new
    failure count when the hand touched it.
    """

    model_config = ConfigDict(frozen=True)

    outcome: ALevelOutcome = ALevelOutcome.NOT_APPLICABLE
    a_team: Team | None = None
    upgrade_override: int | None = None
    winner_level: Level | None = None
    loser_level: Level | None = None
    a_failures: int | None = Field(default=None, ge=0, lt=MAX_A_FAILURES)
    reset: bool = False
    final_win: bool = False
    note: str = ""


class HandOutcome(BaseModel):
    """Everything decided about one hand before it touches the round state."""

    model_config = ConfigDict(frozen=True)

    mode: GameMode
    winning_team: Team
    winner_ranks: tuple[int, ...]
    upgrade_amount: int = Field(ge=0, le=4)  # as computed, before A-level overrides
    label: str
    diagnostics: UpgradeDiagnostics
    a_level: ALevelVerdict = Field(default_factory=ALevelVerdict)

    @property
    def a_level_note(self) -> str:
        return self.a_level.note

    @property
    def final_win(self) -> bool:
        return self.a_level.final_win


class TeamState(BaseModel):
    """A team's position on the ladder."""

    model_config = ConfigDict(frozen=True)

    level: Level = Level.TWO
    a_failures: int = Field(default=0, ge=0, lt=MAX_A_FAILURES)

    @model_validator(mode="after")
    def _failures_only_at_ace(self) -> TeamState:
        if self.a_failures and self.level is not Level.ACE:
            raise ValueError(f"a_failures={self.a_failures} is only valid at level A, got {self.level.label}")
        return self


class Snapshot(BaseModel):
    """
    Full mutable state captured immediately before (or after) a hand.

    ``round_owner`` is kept for replay verification only. Restoring a
    snapshot takes the owner from the previous hand's winner instead.
    """

    model_config = ConfigDict(frozen=True)

    t1: TeamState = Field(default_factory=TeamState)
    t2: TeamState = Field(default_factory=TeamState)
    round_level: Level = Level.TWO
    round_owner: Team | None = None

    def team(self, team: Team) -> TeamState:
        return self.t1 if team is Team.T1 else self.t2


class RoundTransition(BaseModel):
    """What happened to the contested round after a hand or manual advance."""

    model_config = ConfigDict(frozen=True)

    previous_level: Level
    new_level: Level
    previous_owner: Team | None = None
    new_owner: Team | None = None
    pending_level: Level | None = None  # preview stored while auto-advance is off
    advanced: bool


class HistoryEntry(BaseModel):
    """One applied hand. Removed by rollback, never edited."""

    model_config = ConfigDict(frozen=True)

    hand_number: int = Field(ge=1)
    recorded_at: datetime
    outcome: HandOutcome
    before: Snapshot
    after: Snapshot
    transition: RoundTransition
    ranking: tuple[Player, ...] = ()  # index 0 finished first; empty in rank-entry mode

    @property
    def winner(self) -> Team:
        return self.outcome.winning_team

    @property
    def mode(self) -> GameMode:
        return self.outcome.mode

    @property
    def round_level(self) -> Level:
        """Level contested by this hand."""
        return self.before.round_level

    def rank_of(self, player_id: str) -> int | None:
        for index, player in enumerate(self.ranking):
            if player.player_id == player_id:
                return index + 1
        return None


class PlayerStats(BaseModel):
    """Rank statistics for one player, derived from history."""

    model_config = ConfigDict(frozen=True)

    player_id: str
    name: str = ""
    team: Team | None = None
    games: int = 0
    wins: int = 0
    losses: int = 0
    total_rank: int = 0
    best_rank: int | None = None
    worst_rank: int | None = None
    first_place_count: int = 0
    last_place_count: int = 0
    rankings: tuple[int, ...] = ()

    @property
    def average_rank(self) -> float:
        return self.total_rank / self.games if self.games else 0.0


class LevelChange(NamedTuple):
    """Team levels before and after a verdict was applied."""

    winner: Team
    winner_before: Level
    winner_after: Level
    loser_before: Level
    loser_after: Level


class HandPreview(BaseModel):
    """Calculated outcome of a hand that has not been applied."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    outcome: HandOutcome | None = None
    next_round_level: Level | None = None
    error: ScoreErrorCode | None = None
    message: str = ""


class ApplyResult(BaseModel):
    """Result of applying one hand to the match."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    outcome: HandOutcome | None = None
    entry: HistoryEntry | None = None
    transition: RoundTransition | None = None
    error: ScoreErrorCode | None = None
    message: str = ""


class AdvanceResult(BaseModel):
    """Result of a manual round advance."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    transition: RoundTransition | None = None
    error: ScoreErrorCode | None = None
    message: str = ""


class RollbackResult(BaseModel):
    """Result of an undo or rollback."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    removed: tuple[HistoryEntry, ...] = ()
    restored: Snapshot | None = None
    stats: dict[str, PlayerStats] = Field(default_factory=dict)
    error: ScoreErrorCode | None = None
    message: str = ""
