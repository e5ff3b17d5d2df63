"""Shared test setup: .env.tests, caplog-visible engine logs and per-test match storage."""

from pathlib import Path

import pytest
import structlog
from dotenv import load_dotenv

from shared.logging import _serialize_enums

load_dotenv(Path(__file__).resolve().parent.parent / ".env.tests")

# Engine events ("hand applied", "history trimmed") reach caplog through stdlib
# logging, with levels shown as card labels just like the real log files.
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        _serialize_enums,
        structlog.processors.UnicodeDecoder(),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ],
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=False,
)


@pytest.fixture(autouse=True)
def _isolate_match(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Unbind match_id between tests and keep GUANDAN_* directories inside tmp_path."""
    structlog.contextvars.clear_contextvars()
    monkeypatch.setenv("GUANDAN_MATCH_DIR", str(tmp_path / "matches"))
    monkeypatch.setenv("GUANDAN_LOG_DIR", str(tmp_path / "logs"))
    yield
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def match_dir(tmp_path: Path) -> Path:
    """Directory a LocalMatchStorage under test writes to; not created up front."""
    return tmp_path / "matches"
