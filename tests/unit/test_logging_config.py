"""Tests for log formatting."""

import json
import logging
import sys

import pytest

from showreel.logging_config import JsonFormatter, configure_logging


def record(message: str = "[venue_completed] Rio Cinema: 3 added", **extra) -> logging.LogRecord:
    rec = logging.LogRecord("showreel.tasks.runner", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(rec, key, value)
    return rec


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


class TestJsonFormatter:
    def test_event_fields_at_top_level(self) -> None:
        line = JsonFormatter().format(
            record(event="venue_completed", data={"venue_id": "rio-dalston", "added": 3})
        )
        payload = json.loads(line)
        assert payload["level"] == "info"
        assert payload["logger"] == "showreel.tasks.runner"
        assert payload["message"] == "[venue_completed] Rio Cinema: 3 added"
        assert payload["event"] == "venue_completed"
        assert (payload["venue_id"], payload["added"]) == ("rio-dalston", 3)

    def test_plain_record(self) -> None:
        payload = json.loads(JsonFormatter().format(record("Found 12 screenings")))
        assert "event" not in payload
        assert payload["timestamp"].endswith("+00:00")

    def test_exception_included(self) -> None:
        try:
            raise ValueError("bad page")
        except ValueError:
            rec = record("parse failed")
            rec.exc_info = sys.exc_info()
        payload = json.loads(JsonFormatter().format(rec))
        assert "ValueError: bad page" in payload["exception"]


class TestConfigureLogging:
    def test_structured(self, restore_root_logger: logging.Logger) -> None:
        configure_logging(level="debug", structured=True)
        [handler] = restore_root_logger.handlers
        assert isinstance(handler.formatter, JsonFormatter)
        assert restore_root_logger.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_readable(self, restore_root_logger: logging.Logger) -> None:
        configure_logging(level="info", structured=False)
        [handler] = restore_root_logger.handlers
        assert not isinstance(handler.formatter, JsonFormatter)
