from guandan.replay.loader import MatchLoadError, load_match_from_file, load_match_from_string, load_stored_match
from guandan.replay.models import (
    MATCH_RECORD_VERSION,
    MatchRecord,
    ReplayInvariantError,
    ReplayStep,
    ReplayTrace,
)
from guandan.replay.runner import replay_match

__all__ = [
    "MATCH_RECORD_VERSION",
    "MatchLoadError",
    "MatchRecord",
    "ReplayInvariantError",
    "ReplayStep",
    "ReplayTrace",
    "load_match_from_file",
    "load_match_from_string",
    "load_stored_match",
    "replay_match",
]
