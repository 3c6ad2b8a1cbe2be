"""Logging setup for the Rotation Planner."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

ISO_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_RESERVED_ATTRS = {
    "args", "asctime", "created", "exc_info", "exc_text",
    "filename", "funcName", "levelname", "levelno", "lineno", "msecs",
    "message", "module", "msg", "name", "pathname", "process",
    "processName", "relativeCreated", "stack_info",
    "thread", "threadName", "taskName",
}


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON.

    Structured data attached through ``extra`` is copied into the output.
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        base: Dict[str, Any] = {
            "timestamp": created.strftime(ISO_FORMAT),
            "level": record.levelname,
            "module": record.name,
        }
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            base[key] = value

        base["message"] = record.getMessage()
        if record.exc_info:
            base["exception"] = self.formatException(record.exc_info)
        return json.dumps(base, separators=(",", ":"), ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """
    Configure the root logger for the application.

    Args:
        level: Log level name (e.g. "INFO", "DEBUG")
        json_format: Emit single-line JSON records instead of plain text
    """
    handler = logging.StreamHandler()
    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
