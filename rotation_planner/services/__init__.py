"""
Services package for the Rotation Planner.

This package contains the lineup algebra, the rotation timeline, the rebaser,
the fair rotation generator, the concurrency reconciler and the services
built on them. Includes a factory for dependency injection.
"""
from .lineup_algebra import apply_substitutions, diff_lineups, cleared_positions
from .diagnostics import DiagnosticLog
from .rotation_timeline import RotationTimeline
from .rebaser import (
    IntentSnapshot, RotationUpdate, RebaseResult,
    snapshot_intents, rebase_downstream, recalculate_downstream
)
from .fair_rotation import (
    FairRotationResult, GeneratedRotation, eligible_roster, generate_fair_rotations
)
from .reconciler import (
    ConcurrencyReconciler, CategoryTracker, CategorySnapshot, SyncCategory,
    SyncPhase, ReconcilerStateError
)
from .persistence_service import (
    PlanStore, PlanChange, InMemoryPlanStore, JsonFilePlanStore,
    PlanStoreError, PlanNotFoundError, copy_plan
)
from .remote_store import HttpPlanStore
from .roster_service import (
    RosterProvider, AvailabilityProvider, StaticRosterProvider, StaticAvailabilityProvider
)
from .plan_validator import ValidationResult, validate_rotation_plan
from .analytics_service import (
    PlanAnalyticsService, PlanReportExporter, PlayTimeProjection, project_play_time
)
from .plan_service import PlanService, BatchWriteError, AvailabilityChange, coerce_lineup
from .service_factory import ServiceFactory

__all__ = [
    "apply_substitutions", "diff_lineups", "cleared_positions", "DiagnosticLog",
    "RotationTimeline", "IntentSnapshot", "RotationUpdate", "RebaseResult",
    "snapshot_intents", "rebase_downstream", "recalculate_downstream",
    "FairRotationResult", "GeneratedRotation", "eligible_roster", "generate_fair_rotations",
    "ConcurrencyReconciler", "CategoryTracker", "CategorySnapshot", "SyncCategory",
    "SyncPhase", "ReconcilerStateError",
    "PlanStore", "PlanChange", "InMemoryPlanStore", "JsonFilePlanStore",
    "PlanStoreError", "PlanNotFoundError", "copy_plan", "HttpPlanStore",
    "RosterProvider", "AvailabilityProvider", "StaticRosterProvider", "StaticAvailabilityProvider",
    "ValidationResult", "validate_rotation_plan",
    "PlanAnalyticsService", "PlanReportExporter", "PlayTimeProjection", "project_play_time",
    "PlanService", "BatchWriteError", "AvailabilityChange", "coerce_lineup",
    "ServiceFactory"
]
