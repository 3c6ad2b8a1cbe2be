"""
Rotation Planner

Plans player rotations for youth soccer games: a sequence of lineups across
timed rotation points, kept consistent when earlier points are edited, with
a generator that balances playing time from player availability.

This package provides the planning core and a Flask web API.
"""
from .models import LineupState, Substitution, GamePlan, ScheduleConfig, Player, Position
from .services import (
    apply_substitutions, diff_lineups, RotationTimeline, recalculate_downstream,
    generate_fair_rotations, ConcurrencyReconciler, SyncCategory, PlanService, ServiceFactory
)
from .ui import create_app, run_web_app
from .utils import APP_TITLE, setup_logging

__version__ = "1.0.0"
__author__ = "Soccer Coach Development Team"

__all__ = [
    "LineupState", "Substitution", "GamePlan", "ScheduleConfig", "Player", "Position",
    "apply_substitutions", "diff_lineups", "RotationTimeline", "recalculate_downstream",
    "generate_fair_rotations", "ConcurrencyReconciler", "SyncCategory",
    "PlanService", "ServiceFactory", "create_app", "run_web_app",
    "APP_TITLE", "setup_logging"
]
