"""Storage abstraction for match persistence.

Matches are stored as one pretty-printed JSON match record per file, named
after the match id. Files are written atomically with owner-only permissions
(0o600) inside an owner-only directory (0o700).
"""

import contextlib
import os
import tempfile
from pathlib import Path
from typing import Protocol

import structlog

logger = structlog.get_logger()

# Owner-only directory permissions for match storage.
_MATCH_DIR_MODE = 0o700

# Owner-only file permissions for match records.
_MATCH_FILE_MODE = 0o600

_MATCH_SUFFIX = ".json"


class MatchStorage(Protocol):
    """Protocol for persisting exported match records."""

    def save_match(self, match_id: str, content: str) -> None: ...

    def load_match(self, match_id: str) -> str | None: ...

    def delete_match(self, match_id: str) -> bool: ...


class LocalMatchStorage:
    """Reads and writes match records on the local filesystem."""

    def __init__(self, match_dir: str | Path) -> None:
        self._match_dir = Path(match_dir).resolve()

    def _path_for(self, match_id: str) -> Path:
        """Resolve a match id to its file, rejecting ids that escape the root."""
        if not match_id:
            raise ValueError("Match id must not be empty")
        target = (self._match_dir / f"{match_id}{_MATCH_SUFFIX}").resolve()
        if not target.is_relative_to(self._match_dir):
            raise ValueError(f"Path traversal rejected: '{match_id}' resolves outside match directory")
        return target

    def save_match(self, match_id: str, content: str) -> None:
        """Save a match record under the configured directory.

        Creates the directory lazily on first write. The record is written to
        a temp file and renamed into place, so a crash mid-write never leaves
        a truncated record behind.
        """
        target = self._path_for(match_id)

        self._match_dir.mkdir(mode=_MATCH_DIR_MODE, parents=True, exist_ok=True)
        self._match_dir.chmod(_MATCH_DIR_MODE)

        fd, tmp_path = tempfile.mkstemp(dir=str(self._match_dir), suffix=".tmp", prefix=".match_")
        fd_owned = True
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                fd_owned = False  # os.fdopen took ownership; it will close fd
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, _MATCH_FILE_MODE)  # noqa: PTH101
            Path(tmp_path).replace(target)
        except BaseException:
            if fd_owned:
                with contextlib.suppress(OSError):
                    os.close(fd)
            with contextlib.suppress(OSError):
                Path(tmp_path).unlink()
            raise
        logger.info("saved match", match_id=match_id, path=str(target))

    def load_match(self, match_id: str) -> str | None:
        """Return the stored record, or None when the match was never saved."""
        target = self._path_for(match_id)
        try:
            return target.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def delete_match(self, match_id: str) -> bool:
        target = self._path_for(match_id)
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        logger.info("deleted match", match_id=match_id)
        return True

    def list_matches(self) -> list[str]:
        """Return stored match ids, sorted."""
        if not self._match_dir.is_dir():
            return []
        return sorted(path.stem for path in self._match_dir.glob(f"*{_MATCH_SUFFIX}"))
