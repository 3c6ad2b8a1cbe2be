"""
Utilities package for the Rotation Planner.

This package contains constants and helper functions used throughout the application.
"""
from .time_utils import now_ts
from .constants import (
    APP_TITLE, DEFAULT_HALF_LENGTH_MIN, DEFAULT_ROTATION_INTERVAL_MIN,
    DEFAULT_FIELD_SIZE, MIN_FIELD_SIZE, MAX_FIELD_SIZE, HALVES_PER_GAME,
    FAIRNESS_THRESHOLD_MIN, FAIRNESS_ORDER, MAX_CONCURRENT_WRITES,
    DEFAULT_HOST, DEFAULT_PORT, DEFAULT_DATA_FILE, POS_SHORT_TO_FULL
)
from .log_utils import setup_logging, JsonFormatter

__all__ = [
    "now_ts", "APP_TITLE",
    "DEFAULT_HALF_LENGTH_MIN", "DEFAULT_ROTATION_INTERVAL_MIN",
    "DEFAULT_FIELD_SIZE", "MIN_FIELD_SIZE", "MAX_FIELD_SIZE", "HALVES_PER_GAME",
    "FAIRNESS_THRESHOLD_MIN", "FAIRNESS_ORDER", "MAX_CONCURRENT_WRITES",
    "DEFAULT_HOST", "DEFAULT_PORT", "DEFAULT_DATA_FILE", "POS_SHORT_TO_FULL",
    "setup_logging", "JsonFormatter"
]
