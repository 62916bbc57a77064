"""Logging setup: JSON lines in production, readable lines otherwise."""

import json
import logging
from datetime import datetime, timezone

from showreel.config import settings

TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """Render each record as a single JSON object.

    Records logged with ``extra={"event": ..., "data": {...}}`` keep those
    fields at the top level so log aggregators can filter on them.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        event = getattr(record, "event", None)
        if event:
            payload["event"] = event
        data = getattr(record, "data", None)
        if data:
            payload.update(data)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str | None = None, structured: bool | None = None) -> None:
    """Install a root handler once.

    Args:
        level: Log level name (defaults to ``settings.log_level``)
        structured: Force JSON output on or off (defaults to settings)
    """
    if structured is None:
        structured = settings.structured_logging

    handler = logging.StreamHandler()
    if structured:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel((level or settings.log_level).upper())

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
