"""Tests for logging helpers."""

import json
import logging

from rotation_planner.utils import JsonFormatter, setup_logging


def test_json_formatter_includes_extra_fields():
    record = logging.LogRecord(
        name="rotation_planner.test", level=logging.WARNING, pathname=__file__, lineno=1,
        msg="Rotation %s rebased", args=(3,), exc_info=None,
    )
    record.plan_id = "plan-1"

    data = json.loads(JsonFormatter().format(record))

    assert data["level"] == "WARNING"
    assert data["module"] == "rotation_planner.test"
    assert data["message"] == "Rotation 3 rebased"
    assert data["plan_id"] == "plan-1"
    assert "args" not in data


def test_setup_logging_replaces_handlers():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        setup_logging(level="debug", json_format=True)

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
        for handler in saved_handlers:
            root.addHandler(handler)
        root.setLevel(saved_level)
