"""
Constants for the Rotation Planner application.

This module contains configuration defaults used throughout the application.
"""

# Application metadata
APP_TITLE = "Rotation Planner"

# Schedule defaults
DEFAULT_HALF_LENGTH_MIN = 30
DEFAULT_ROTATION_INTERVAL_MIN = 10
HALVES_PER_GAME = 2

# Field size configuration (flexible for different youth soccer formats)
MIN_FIELD_SIZE = 4   # Smallest small-sided format (4v4)
MAX_FIELD_SIZE = 11  # Standard 11v11
DEFAULT_FIELD_SIZE = 11

# Fairness classification for projected minutes
FAIRNESS_THRESHOLD_MIN = 5  # +/- 5 minutes regarded as notable variance
FAIRNESS_ORDER = {"under": 0, "ok": 1, "over": 2}

# Batch writes to the persistence collaborator
MAX_CONCURRENT_WRITES = 8

# Web server defaults
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 7122
DEFAULT_DATA_FILE = "game_plans.json"

# Default position labels used when a roster provider has none
POS_SHORT_TO_FULL = {
    "GK": "Goalkeeper",
    "DF": "Defender",
    "MF": "Midfielder",
    "ST": "Striker",
}
