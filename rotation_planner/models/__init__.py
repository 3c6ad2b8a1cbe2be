"""
Models package for the Rotation Planner.

This package contains the core data models used throughout the application.
"""
from .lineup import LineupState, Substitution, LineupInvariantError
from .codec import (
    PayloadDecodeError, encode_substitutions, decode_substitutions,
    encode_lineup, decode_lineup
)
from .player import Player, Position, AvailabilityStatus, parse_preferred
from .game_plan import (
    GamePlan, RotationPoint, ScheduleConfig, RotationPointSync, sync_rotation_points
)
from .plan_report import PlanReport, PlayerMinutesSummary

__all__ = [
    "LineupState", "Substitution", "LineupInvariantError",
    "PayloadDecodeError", "encode_substitutions", "decode_substitutions",
    "encode_lineup", "decode_lineup",
    "Player", "Position", "AvailabilityStatus", "parse_preferred",
    "GamePlan", "RotationPoint", "ScheduleConfig", "RotationPointSync",
    "sync_rotation_points", "PlanReport", "PlayerMinutesSummary"
]
