"""Match loader: parse an exported JSON match record into a MatchRecord.

The record is a single JSON object written by ``MatchRecord.to_json``. The
version tag is checked before schema validation so an incompatible file
fails with a clear message instead of a wall of field errors.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from guandan.replay.models import MATCH_RECORD_VERSION, MatchRecord

if TYPE_CHECKING:
    from shared.storage import MatchStorage

# Safety limit to prevent memory exhaustion from maliciously large match files.
_MAX_MATCH_BYTES = 16 * 1024 * 1024


class MatchLoadError(Exception):
    """Raised when a match record cannot be loaded or parsed."""


def load_match_from_string(content: str) -> MatchRecord:
    """Parse a JSON match record."""
    content = content.strip()
    if not content:
        raise MatchLoadError("Empty match content")
    if len(content) > _MAX_MATCH_BYTES:
        raise MatchLoadError(f"Match record exceeds maximum size ({_MAX_MATCH_BYTES} bytes)")

    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise MatchLoadError(f"Malformed JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise MatchLoadError(f"Match record must be a JSON object, got {type(data).__name__}")

    version = data.get("version")
    if version is None:
        raise MatchLoadError("Match record missing 'version' field")
    if version != MATCH_RECORD_VERSION:
        raise MatchLoadError(f"Match version mismatch: expected {MATCH_RECORD_VERSION}, got {version}")

    try:
        return MatchRecord.model_validate(data)
    except ValidationError as exc:
        raise MatchLoadError(f"Invalid match record: {exc.error_count()} error(s): {exc}") from exc


def load_match_from_file(path: str | Path) -> MatchRecord:
    """Load a match record from a file path."""
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise MatchLoadError(f"Cannot read match file {path}: {exc}") from exc
    return load_match_from_string(content)


def load_stored_match(storage: MatchStorage, match_id: str) -> MatchRecord:
    """
    Load a match record saved under ``match_id`` by a match storage.

    Raises:
        MatchLoadError: If the id is rejected by the storage, the record is
            missing or unreadable, or its content fails to parse.

    """
    try:
        content = storage.load_match(match_id)
    except (OSError, ValueError) as exc:
        raise MatchLoadError(f"Cannot read stored match {match_id!r}: {exc}") from exc
    if content is None:
        raise MatchLoadError(f"No stored match {match_id!r}")
    return load_match_from_string(content)
