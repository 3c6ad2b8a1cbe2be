"""
REST client implementation of the plan store.

Talks to a plan backend that answers in the ``{"success": ..., ...}``
envelope used by the web API. Change notifications are pulled with
:meth:`HttpPlanStore.poll_changes` and delivered to subscribers on the
caller's thread.
"""
import logging
import threading
from typing import Any, Callable, Dict, List, Optional

import requests

from ..models import GamePlan, RotationPoint
from .persistence_service import ChangeListener, PlanChange, PlanNotFoundError, PlanStoreError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


class HttpPlanStore:
    """
    Plan store backed by a remote REST API.

    Endpoints (relative to ``base_url``):
        GET    /plans/<plan_id>
        POST   /plans
        PATCH  /plans/<plan_id>
        DELETE /plans/<plan_id>
        PUT    /plans/<plan_id>/rotations/<ordinal>
        DELETE /plans/<plan_id>/rotations/<ordinal>
        GET    /plans/<plan_id>/changes?since=<cursor>
    """

    def __init__(self, base_url: str, session_factory: Callable[[], requests.Session] = requests.Session,
                 timeout: float = DEFAULT_TIMEOUT, headers: Optional[Dict[str, str]] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.session_factory = session_factory
        self.headers = dict(headers or {})
        self.timeout = timeout
        self._local = threading.local()
        self._listeners: List[ChangeListener] = []
        self._cursors: Dict[str, Any] = {}

    @property
    def session(self) -> requests.Session:
        """Session of the calling thread; writes of a group run on several threads."""
        session = getattr(self._local, "session", None)
        if session is None:
            session = self.session_factory()
            if self.headers:
                session.headers.update(self.headers)
            self._local.session = session
        return session

    # ---------- HTTP ---------- #

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error("%s %s failed: %s", method, url, e)
            raise PlanStoreError(f"{method} {url} failed: {e}") from e

        if resp.status_code == 404:
            raise PlanNotFoundError(f"Not found: {path}")
        if resp.status_code >= 400:
            logger.error("%s %s returned HTTP %s: %s", method, url, resp.status_code, resp.text[:200])
            raise PlanStoreError(f"{method} {url} returned HTTP {resp.status_code}")

        if not resp.content:
            return {}
        try:
            body = resp.json()
        except ValueError as e:
            raise PlanStoreError(f"{method} {url} returned invalid JSON") from e
        if isinstance(body, dict) and body.get("success") is False:
            raise PlanStoreError(body.get("error") or f"{method} {url} was rejected")
        return body if isinstance(body, dict) else {}

    # ---------- PlanStore ---------- #

    def create_plan(self, plan: GamePlan) -> None:
        self._request("POST", "/plans", json=plan.to_json())

    def load_plan(self, plan_id: str) -> GamePlan:
        body = self._request("GET", f"/plans/{plan_id}")
        data = body.get("plan")
        if not isinstance(data, dict):
            raise PlanStoreError(f"Response for plan {plan_id} has no plan object")
        return GamePlan.from_json(data)

    def save_plan_fields(self, plan_id: str, fields: Dict[str, Any]) -> None:
        self._request("PATCH", f"/plans/{plan_id}", json=fields)

    def save_rotation_point(self, plan_id: str, point: RotationPoint) -> None:
        self._request("PUT", f"/plans/{plan_id}/rotations/{point.ordinal}", json=point.to_dict())

    def delete_rotation_point(self, plan_id: str, ordinal: int) -> None:
        self._request("DELETE", f"/plans/{plan_id}/rotations/{ordinal}")

    def delete_plan(self, plan_id: str) -> None:
        self._request("DELETE", f"/plans/{plan_id}")

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---------- Change feed ---------- #

    def poll_changes(self, plan_id: str) -> int:
        """
        Fetch changes since the last poll and deliver them to subscribers.

        Returns:
            Number of changes delivered
        """
        params = {}
        if plan_id in self._cursors:
            params["since"] = self._cursors[plan_id]
        body = self._request("GET", f"/plans/{plan_id}/changes", params=params)

        changes = body.get("changes") or []
        if "cursor" in body:
            self._cursors[plan_id] = body["cursor"]
        for entry in changes:
            change = PlanChange(plan_id, entry.get("category", ""), entry.get("payload"))
            for listener in list(self._listeners):
                listener(change)
        return len(changes)
