"""
Persistence collaborators for the Rotation Planner application.

The planner treats storage as an external collaborator: it reads plans,
writes individual fields and rotation points, and listens to an
eventually-consistent change stream. This module defines that interface and
two local implementations (in-memory and JSON file).
"""
import copy
import json
import logging
import os
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol

from ..models import GamePlan, RotationPoint
from ..utils import now_ts

logger = logging.getLogger(__name__)

PLAN_FIELDS = {"game_id", "schedule", "starting_lineup", "halftime_lineup", "max_players_on_field"}


class PlanStoreError(Exception):
    """Raised when a read or write to the plan store fails."""
    pass


class PlanNotFoundError(PlanStoreError):
    """Raised when a plan does not exist."""
    pass


@dataclass(frozen=True)
class PlanChange:
    """
    A change notification from the store.

    Attributes:
        plan_id: Plan that changed
        category: "starting_lineup", "halftime_lineup", "rotations", "schedule" or "deleted"
        payload: New value (encoded lineup, rotation point dict, ...)
    """
    plan_id: str
    category: str
    payload: Any = None


ChangeListener = Callable[[PlanChange], None]


class PlanStore(Protocol):
    """Interface of the persistence collaborator."""

    def create_plan(self, plan: GamePlan) -> None:
        ...

    def load_plan(self, plan_id: str) -> GamePlan:
        ...

    def save_plan_fields(self, plan_id: str, fields: Dict[str, Any]) -> None:
        ...

    def save_rotation_point(self, plan_id: str, point: RotationPoint) -> None:
        ...

    def delete_rotation_point(self, plan_id: str, ordinal: int) -> None:
        ...

    def delete_plan(self, plan_id: str) -> None:
        ...

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        ...


class InMemoryPlanStore:
    """
    Thread-safe in-memory plan store.

    Plans are kept in their serialised form, like a remote store would.
    Change notifications are queued and delivered by
    :meth:`flush_notifications` on the caller's thread, which models the
    lag of a real change stream.
    """

    def __init__(self, notify_immediately: bool = False) -> None:
        self._plans: Dict[str, dict] = {}
        self._lock = threading.RLock()
        self._listeners: List[ChangeListener] = []
        self._queue: List[PlanChange] = []
        self.notify_immediately = notify_immediately

    # ---------- Notifications ---------- #

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, change: PlanChange) -> None:
        with self._lock:
            self._queue.append(change)
        if self.notify_immediately:
            self.flush_notifications()

    def pending_notifications(self) -> List[PlanChange]:
        with self._lock:
            return list(self._queue)

    def flush_notifications(self) -> int:
        """Deliver queued notifications in order. Returns how many were sent."""
        with self._lock:
            queued, self._queue = self._queue, []
        for change in queued:
            for listener in list(self._listeners):
                listener(change)
        return len(queued)

    # ---------- Reads ---------- #

    def list_plan_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._plans)

    def load_plan(self, plan_id: str) -> GamePlan:
        with self._lock:
            data = self._plans.get(plan_id)
            if data is None:
                raise PlanNotFoundError(f"Game plan not found: {plan_id}")
            data = json.loads(json.dumps(data))
        return GamePlan.from_json(data)

    # ---------- Writes ---------- #

    def create_plan(self, plan: GamePlan) -> None:
        with self._lock:
            if plan.plan_id in self._plans:
                raise PlanStoreError(f"Game plan already exists: {plan.plan_id}")
            plan.updated_at = now_ts()
            self._commit({**self._plans, plan.plan_id: plan.to_json()})

    def save_plan_fields(self, plan_id: str, fields: Dict[str, Any]) -> None:
        """
        Update top-level plan fields.

        Args:
            plan_id: Plan to update
            fields: Serialised values keyed by field name

        Raises:
            PlanNotFoundError: If the plan does not exist
            PlanStoreError: If a field name is unknown
        """
        unknown = set(fields) - PLAN_FIELDS
        if unknown:
            raise PlanStoreError(f"Unknown plan fields: {', '.join(sorted(unknown))}")
        with self._lock:
            data = self._editable(plan_id)
            data.update(copy.deepcopy(fields))
            data["updated_at"] = now_ts()
            self._commit({**self._plans, plan_id: data})
        for name, value in fields.items():
            self._notify(PlanChange(plan_id, name, value))

    def save_rotation_point(self, plan_id: str, point: RotationPoint) -> None:
        """Create or replace the rotation point with the same ordinal."""
        with self._lock:
            data = self._editable(plan_id)
            points = [p for p in data.get("rotation_points", []) if p["ordinal"] != point.ordinal]
            points.append(point.to_dict())
            data["rotation_points"] = sorted(points, key=lambda p: p["ordinal"])
            data["updated_at"] = now_ts()
            self._commit({**self._plans, plan_id: data})
        self._notify(PlanChange(plan_id, "rotations", point.to_dict()))

    def delete_rotation_point(self, plan_id: str, ordinal: int) -> None:
        with self._lock:
            data = self._editable(plan_id)
            data["rotation_points"] = [p for p in data.get("rotation_points", []) if p["ordinal"] != ordinal]
            data["updated_at"] = now_ts()
            self._commit({**self._plans, plan_id: data})
        self._notify(PlanChange(plan_id, "rotations", {"ordinal": ordinal, "deleted": True}))

    def delete_plan(self, plan_id: str) -> None:
        """Delete a plan together with its rotation points."""
        with self._lock:
            self._require(plan_id)
            self._commit({k: v for k, v in self._plans.items() if k != plan_id})
        self._notify(PlanChange(plan_id, "deleted"))

    def _require(self, plan_id: str) -> dict:
        data = self._plans.get(plan_id)
        if data is None:
            raise PlanNotFoundError(f"Game plan not found: {plan_id}")
        return data

    def _editable(self, plan_id: str) -> dict:
        """Working copy of a stored plan; changes land only through :meth:`_commit`."""
        return copy.deepcopy(self._require(plan_id))

    def _commit(self, plans: Dict[str, dict]) -> None:
        # Only swap in plans that were persisted
        self._persist(plans)
        self._plans = plans

    def _persist(self, plans: Dict[str, dict]) -> None:
        """Hook for subclasses that keep plans on disk."""


class JsonFilePlanStore(InMemoryPlanStore):
    """
    Plan store backed by a JSON file.

    The whole file is rewritten after every change.
    """

    def __init__(self, file_path: str, notify_immediately: bool = False) -> None:
        super().__init__(notify_immediately=notify_immediately)
        self.file_path = file_path
        self._load_file()

    def _load_file(self) -> None:
        if not os.path.exists(self.file_path):
            return
        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PlanStoreError(f"Could not read plan file {self.file_path}: {e}") from e
        self._plans = dict(data.get("plans", {}))
        logger.info("Loaded %d plan(s) from %s", len(self._plans), self.file_path)

    def _persist(self, plans: Dict[str, dict]) -> None:
        temp_path = f"{self.file_path}.tmp"
        try:
            directory = os.path.dirname(self.file_path)
            if directory and not os.path.exists(directory):
                os.makedirs(directory)
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump({"plans": plans}, f, indent=2)
            os.replace(temp_path, self.file_path)
        except OSError as e:
            raise PlanStoreError(f"Could not write plan file {self.file_path}: {e}") from e


def copy_plan(store: PlanStore, source_plan_id: str, target_plan_id: str,
              target_game_id: str) -> Optional[GamePlan]:
    """
    Copy a plan and its rotation points into another game.

    Returns:
        The new plan, or None if the source plan does not exist
    """
    try:
        source = store.load_plan(source_plan_id)
    except PlanNotFoundError:
        logger.info("No game plan %s to copy", source_plan_id)
        return None

    copied = GamePlan.from_json(source.to_json())
    copied.plan_id = target_plan_id
    copied.game_id = target_game_id
    store.create_plan(copied)
    logger.info("Copied %d rotation(s) from %s to %s", len(copied.rotation_points),
                source_plan_id, target_plan_id)
    return copied
