import json
import logging
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from unittest.mock import patch

import pytest
import structlog

from guandan.logic.enums import Team
from guandan.logic.levels import Level
from shared.logging import _serialize_enums, match_context, setup_logging


@pytest.fixture(autouse=True)
def _restore_logging():
    """Undo handler, level and structlog changes made by setup_logging."""
    root = logging.getLogger()
    level = root.level
    config = structlog.get_config()
    yield
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)
    root.setLevel(level)
    structlog.configure(**config)


@pytest.fixture(autouse=True)
def _allow_file_logging():
    """Disable the _is_test guard so logging tests can create real file handlers."""
    with patch("shared.logging._is_test", return_value=False):
        yield


class TestSetupLogging:
    def test_configures_stdout_handler(self):
        setup_logging()
        root = logging.getLogger()

        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)

    def test_configures_file_handler_in_log_dir(self, tmp_path):
        log_dir = tmp_path / "guandan"
        setup_logging(log_dir=log_dir)
        root = logging.getLogger()

        assert len(root.handlers) == 2
        file_handler = root.handlers[1]
        assert isinstance(file_handler, logging.FileHandler)
        assert Path(file_handler.baseFilename).parent == log_dir

    def test_log_file_name_has_prefix_and_datetime(self, tmp_path):
        fixed_time = datetime(2025, 3, 15, 10, 30, 45, tzinfo=UTC)
        with patch("shared.logging.datetime") as mock_dt:
            mock_dt.now.return_value = fixed_time
            log_path = setup_logging(log_dir=tmp_path / "guandan")

        assert log_path is not None
        assert log_path.name == "guandan_2025-03-15_10-30-45.log"

    def test_returns_none_without_log_dir(self):
        assert setup_logging() is None

    def test_skips_file_under_test_runner(self, tmp_path):
        with patch("shared.logging._is_test", return_value=True):
            result = setup_logging(log_dir=tmp_path / "guandan")

        assert result is None
        assert not (tmp_path / "guandan").exists()

    def test_writes_to_file(self, tmp_path):
        log_path = setup_logging(log_dir=tmp_path / "nested" / "dir")

        structlog.get_logger("test.writes_to_file").info("hand applied", winner=Team.T1)

        assert log_path is not None
        assert "hand applied" in log_path.read_text()

    def test_clears_existing_handlers_on_repeated_calls(self):
        setup_logging()
        setup_logging()

        assert len(logging.getLogger().handlers) == 1

    def test_custom_log_level(self):
        setup_logging(level=logging.DEBUG)

        assert logging.getLogger().level == logging.DEBUG

    def test_log_level_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        setup_logging()

        assert logging.getLogger().level == logging.WARNING

    def test_invalid_log_level_raises(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "bogus")
        with pytest.raises(ValueError, match="Invalid LOG_LEVEL"):
            setup_logging()

    def test_invalid_log_format_raises(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "xml")
        with pytest.raises(ValueError, match="Invalid LOG_FORMAT"):
            setup_logging()

    def test_json_mode_renders_match_events(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        log_path = setup_logging(log_dir=tmp_path / "guandan")

        with match_context("table-7"):
            structlog.get_logger("test.json").info(
                "hand applied",
                winner=Team.T2,
                winner_level=Level.ACE,
                ranks=(1, 2),
            )

        assert log_path is not None
        parsed = json.loads(log_path.read_text().strip().splitlines()[0])
        assert parsed["event"] == "hand applied"
        assert parsed["match_id"] == "table-7"
        assert parsed["winner"] == "t2"
        assert parsed["winner_level"] == "A"
        assert parsed["ranks"] == [1, 2]


class TestMatchContext:
    def test_binds_and_unbinds_match_id(self):
        with match_context("table-1"):
            assert structlog.contextvars.get_contextvars()["match_id"] == "table-1"

        assert "match_id" not in structlog.contextvars.get_contextvars()

    def test_nested_contexts_restore_outer_id(self):
        with match_context("outer"):
            with match_context("inner"):
                assert structlog.contextvars.get_contextvars()["match_id"] == "inner"
            assert structlog.contextvars.get_contextvars()["match_id"] == "outer"


class TestSerializeEnums:
    class _Color(Enum):
        RED = "red"
        BLUE = "blue"

    def test_replaces_enum_with_value(self):
        result = _serialize_enums(None, "", {"action": self._Color.RED, "msg": "hello"})

        assert result == {"action": "red", "msg": "hello"}

    def test_levels_render_as_card_labels(self):
        result = _serialize_enums(None, "", {"before": Level.TEN, "after": Level.JACK, "team": Team.T1})

        assert result == {"before": "10", "after": "J", "team": "t1"}

    def test_replaces_enums_inside_containers(self):
        event_dict = {
            "levels": {Team.T1: Level.TWO, Team.T2: Level.KING},
            "history": (Level.THREE, Level.FOUR),
        }

        result = _serialize_enums(None, "", event_dict)

        assert result["levels"] == {"t1": "2", "t2": "K"}
        assert result["history"] == ["3", "4"]

    def test_leaves_plain_values_unchanged(self):
        event_dict = {"count": 42, "name": "test"}

        assert _serialize_enums(None, "", event_dict) == {"count": 42, "name": "test"}
