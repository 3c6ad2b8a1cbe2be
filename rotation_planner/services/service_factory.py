"""
Service Factory for dependency injection.

This module provides a factory for creating plan services with their
collaborators (plan store, roster and availability providers) injected.
"""
import logging
from typing import Optional

from ..models import ScheduleConfig
from ..utils import DEFAULT_FIELD_SIZE, MAX_CONCURRENT_WRITES
from .analytics_service import PlanAnalyticsService, PlanReportExporter
from .persistence_service import InMemoryPlanStore, JsonFilePlanStore, PlanStore
from .plan_service import PlanService
from .remote_store import HttpPlanStore
from .roster_service import StaticAvailabilityProvider, StaticRosterProvider

logger = logging.getLogger(__name__)


class ServiceFactory:
    """
    Factory for creating service instances with proper dependency injection.

    The factory owns one plan store and one roster/availability pair and
    hands them to every PlanService it creates.
    """

    def __init__(
        self,
        store: Optional[PlanStore] = None,
        roster: Optional[StaticRosterProvider] = None,
        availability: Optional[StaticAvailabilityProvider] = None,
        max_workers: int = MAX_CONCURRENT_WRITES,
    ):
        """Initialize factory with optional collaborators."""
        self._store = store
        self._roster = roster
        self._availability = availability
        self._export_service: Optional[PlanReportExporter] = None
        self.max_workers = max_workers

    @classmethod
    def from_config(cls, data_file: Optional[str] = None, store_url: Optional[str] = None,
                    **kwargs) -> "ServiceFactory":
        """
        Build a factory for a storage location.

        Args:
            data_file: JSON file for a local plan store
            store_url: Base URL of a remote plan store (takes precedence)
        """
        if store_url:
            logger.info("Using remote plan store at %s", store_url)
            return cls(store=HttpPlanStore(store_url), **kwargs)
        if data_file:
            logger.info("Using plan file %s", data_file)
            return cls(store=JsonFilePlanStore(data_file), **kwargs)
        return cls(**kwargs)

    @property
    def store(self) -> PlanStore:
        """Get singleton plan store."""
        if self._store is None:
            self._store = InMemoryPlanStore()
        return self._store

    @property
    def roster(self) -> StaticRosterProvider:
        """Get singleton roster provider."""
        if self._roster is None:
            self._roster = StaticRosterProvider()
        return self._roster

    @property
    def availability(self) -> StaticAvailabilityProvider:
        """Get singleton availability provider, backed by the roster."""
        if self._availability is None:
            self._availability = StaticAvailabilityProvider(self.roster)
        return self._availability

    def configure_roster(self, roster: StaticRosterProvider) -> None:
        """Replace the roster; availability records are kept."""
        self._roster = roster
        self.availability.roster = roster

    def create_plan_service(self, plan_id: str) -> PlanService:
        """
        Create a PlanService for an existing plan.

        Raises:
            PlanNotFoundError: If the plan does not exist in the store
        """
        return PlanService(
            store=self.store,
            plan_id=plan_id,
            roster=self.roster,
            availability=self.availability,
            max_workers=self.max_workers,
        )

    def create_new_plan(self, plan_id: str, game_id: str = "",
                        schedule: Optional[ScheduleConfig] = None,
                        starting_lineup=None,
                        max_players_on_field: int = DEFAULT_FIELD_SIZE) -> PlanService:
        """Create a plan in the store and return its service."""
        return PlanService.create(
            self.store, plan_id,
            game_id=game_id,
            schedule=schedule,
            starting_lineup=starting_lineup,
            max_players_on_field=max_players_on_field,
            roster=self.roster,
            availability=self.availability,
            max_workers=self.max_workers,
        )

    def create_analytics_service(self, plan_service: PlanService) -> PlanAnalyticsService:
        """
        Create PlanAnalyticsService over a plan service's current state.

        Args:
            plan_service: Service whose plan and timeline are analysed

        Returns:
            Configured PlanAnalyticsService instance
        """
        return PlanAnalyticsService(
            plan=plan_service.plan,
            roster=plan_service.players_for_game(),
            exempt_position_id=plan_service.exempt_position_id(),
            timeline=plan_service.timeline,
            export_service=self._get_export_service(),
        )

    def _get_export_service(self) -> PlanReportExporter:
        """Get singleton export service."""
        if self._export_service is None:
            self._export_service = PlanReportExporter()
        return self._export_service

    def configure_custom_export_service(self, exporter: PlanReportExporter) -> None:
        """Configure custom export service."""
        self._export_service = exporter
