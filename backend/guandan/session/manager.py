"""
Match session manager: keeps live matches by id and persists them.

Each successful mutation exports the match and hands it to the storage
collaborator. Storage is fire-and-forget: a failed write is logged and the
in-memory match carries on unchanged.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

import structlog

from guandan.logic.scorekeeper import Scorekeeper
from guandan.replay.loader import MatchLoadError, load_match_from_string
from shared.logging import match_context

if TYPE_CHECKING:
    from guandan.logic.enums import Team
    from guandan.logic.settings import GameSettings
    from guandan.logic.types import AdvanceResult, ApplyResult, Player, PlayerStats, RollbackResult
    from shared.storage import MatchStorage

logger = structlog.get_logger()


class MatchNotFoundError(KeyError):
    """Raised when an operation names a match that is neither live nor stored."""

    def __init__(self, match_id: str) -> None:
        self.match_id = match_id
        super().__init__(f"match {match_id!r} not found")


class MatchSessionManager:
    """Routes scorekeeping operations to the right match and saves the result."""

    def __init__(
        self,
        storage: MatchStorage | None = None,
        default_settings: GameSettings | None = None,
    ) -> None:
        self._storage = storage
        self._default_settings = default_settings
        self._matches: dict[str, Scorekeeper] = {}

    @property
    def match_ids(self) -> list[str]:
        return sorted(self._matches)

    def create_match(self, match_id: str, settings: GameSettings | None = None) -> Scorekeeper:
        """Start a fresh match, replacing any live match with the same id."""
        keeper = Scorekeeper(settings=settings or self._default_settings)
        self._matches[match_id] = keeper
        with match_context(match_id):
            logger.info("match created", mode=keeper.settings.mode)
        self._persist(match_id, keeper)
        return keeper

    def get_match(self, match_id: str) -> Scorekeeper:
        """
        Return a live match, loading it from storage on first access.

        Raises:
            MatchNotFoundError: If the match is not live and cannot be loaded.

        """
        keeper = self._matches.get(match_id)
        if keeper is not None:
            return keeper
        keeper = self._load(match_id)
        if keeper is None:
            raise MatchNotFoundError(match_id)
        self._matches[match_id] = keeper
        return keeper

    def _load(self, match_id: str) -> Scorekeeper | None:
        if self._storage is None:
            return None
        with match_context(match_id):
            try:
                content = self._storage.load_match(match_id)
            except (OSError, ValueError):
                logger.exception("failed to read stored match")
                return None
            if content is None:
                return None
            try:
                record = load_match_from_string(content)
            except MatchLoadError:
                logger.exception("stored match is unreadable")
                return None
            logger.info("match loaded", hands=len(record.entries))
        return Scorekeeper.from_record(record)

    def close_match(self, match_id: str, *, delete: bool = False) -> None:
        """Drop a live match from memory, optionally deleting its stored record."""
        self._matches.pop(match_id, None)
        if delete and self._storage is not None:
            with match_context(match_id):
                try:
                    self._storage.delete_match(match_id)
                except (OSError, ValueError):
                    logger.exception("failed to delete stored match")

    def _persist(self, match_id: str, keeper: Scorekeeper) -> None:
        if self._storage is None:
            return
        with match_context(match_id):
            try:
                self._storage.save_match(match_id, keeper.export_match().to_json())
            except (OSError, ValueError):
                logger.exception("failed to save match")

    # --- Routed operations ---

    def apply_hand(
        self,
        match_id: str,
        ranking: Mapping[int, Player],
        winner: Team | None = None,
    ) -> ApplyResult:
        keeper = self.get_match(match_id)
        with match_context(match_id):
            result = keeper.apply_hand(ranking, winner)
        if result.ok:
            self._persist(match_id, keeper)
        return result

    def apply_ranks(self, match_id: str, winner: Team, ranks: Iterable[int]) -> ApplyResult:
        keeper = self.get_match(match_id)
        with match_context(match_id):
            result = keeper.apply_ranks(winner, ranks)
        if result.ok:
            self._persist(match_id, keeper)
        return result

    def advance_round(self, match_id: str) -> AdvanceResult:
        keeper = self.get_match(match_id)
        with match_context(match_id):
            result = keeper.advance_round()
        if result.ok:
            self._persist(match_id, keeper)
        return result

    def undo_last(self, match_id: str) -> RollbackResult:
        keeper = self.get_match(match_id)
        with match_context(match_id):
            result = keeper.undo_last()
        if result.ok:
            self._persist(match_id, keeper)
        return result

    def rollback_to(self, match_id: str, index: int) -> RollbackResult:
        keeper = self.get_match(match_id)
        with match_context(match_id):
            result = keeper.rollback_to(index)
        if result.ok:
            self._persist(match_id, keeper)
        return result

    def reset(self, match_id: str) -> None:
        keeper = self.get_match(match_id)
        with match_context(match_id):
            keeper.reset()
        self._persist(match_id, keeper)

    def update_settings(self, match_id: str, settings: GameSettings) -> None:
        keeper = self.get_match(match_id)
        with match_context(match_id):
            keeper.update_settings(settings)
        self._persist(match_id, keeper)

    def player_stats(self, match_id: str) -> dict[str, PlayerStats]:
        return self.get_match(match_id).player_stats()
