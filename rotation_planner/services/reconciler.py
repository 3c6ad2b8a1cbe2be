"""
Optimistic-concurrency reconciler.

Local edits are shown immediately and written in the background, while the
persistence layer pushes change notifications that may lag behind. Applying
such a notification while our own write is still in flight would clobber the
optimistic state with stale data.

Each data category therefore tracks its in-flight writes. While any are
pending, external updates for that category are parked in a single-slot
buffer (latest wins); when the last write settles, the buffered update is
applied once and cleared. Categories never block each other.

The counters are plain integers and must be driven from a single thread.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterator, Optional

logger = logging.getLogger(__name__)

UpdateSink = Callable[[Any], None]


class SyncCategory(Enum):
    """Independently tracked kinds of plan data."""
    STARTING_LINEUP = "starting_lineup"
    HALFTIME_LINEUP = "halftime_lineup"
    ROTATIONS = "rotations"


class SyncPhase(Enum):
    """States of a category."""
    IDLE = "idle"
    PENDING = "pending"
    BUFFERED = "buffered"  # pending, with an external update parked


class ReconcilerStateError(Exception):
    """Raised on a transition the state machine does not allow."""
    pass


_NOTHING = object()


@dataclass(frozen=True)
class CategorySnapshot:
    """Read-only view of one category's state."""
    category: SyncCategory
    phase: SyncPhase
    pending: int
    has_buffered: bool


class CategoryTracker:
    """
    State machine for one category.

    States: ``Idle``, ``Pending(n)``, ``Pending(n) + Buffered(data)``.
    Transitions: :meth:`write_started`, :meth:`write_settled`, :meth:`observe`.
    """

    def __init__(self, category: SyncCategory, sink: Optional[UpdateSink] = None) -> None:
        self.category = category
        self._sink = sink
        self._pending = 0
        self._buffered: Any = _NOTHING

    @property
    def pending(self) -> int:
        return self._pending

    @property
    def phase(self) -> SyncPhase:
        if self._pending == 0:
            return SyncPhase.IDLE
        if self._buffered is _NOTHING:
            return SyncPhase.PENDING
        return SyncPhase.BUFFERED

    def set_sink(self, sink: Optional[UpdateSink]) -> None:
        self._sink = sink

    def snapshot(self) -> CategorySnapshot:
        return CategorySnapshot(
            category=self.category,
            phase=self.phase,
            pending=self._pending,
            has_buffered=self._buffered is not _NOTHING,
        )

    def write_started(self) -> None:
        """Idle -> Pending(1); Pending(n) -> Pending(n+1); buffer is kept."""
        self._pending += 1

    def write_settled(self) -> bool:
        """
        Record that one write finished (successfully or not).

        Returns:
            True if a buffered update was flushed

        Raises:
            ReconcilerStateError: If no write was pending
        """
        if self._pending == 0:
            raise ReconcilerStateError(f"No pending write to settle for {self.category.value}")
        self._pending -= 1
        if self._pending > 0 or self._buffered is _NOTHING:
            return False

        update = self._buffered
        self._buffered = _NOTHING
        logger.debug("Flushing buffered %s update", self.category.value)
        self._deliver(update)
        return True

    def observe(self, update: Any) -> bool:
        """
        Handle an externally observed update.

        Returns:
            True if applied now, False if buffered behind pending writes
        """
        if self._pending == 0:
            self._deliver(update)
            return True
        if self._buffered is not _NOTHING:
            logger.debug("Replacing buffered %s update", self.category.value)
        self._buffered = update
        return False

    def _deliver(self, update: Any) -> None:
        if self._sink is not None:
            self._sink(update)


class ConcurrencyReconciler:
    """One :class:`CategoryTracker` per :class:`SyncCategory`."""

    def __init__(self, sinks: Optional[Dict[SyncCategory, UpdateSink]] = None) -> None:
        sinks = sinks or {}
        self._trackers = {
            category: CategoryTracker(category, sinks.get(category))
            for category in SyncCategory
        }

    def tracker(self, category: SyncCategory) -> CategoryTracker:
        return self._trackers[category]

    def set_sink(self, category: SyncCategory, sink: Optional[UpdateSink]) -> None:
        self._trackers[category].set_sink(sink)

    def write_started(self, category: SyncCategory) -> None:
        self._trackers[category].write_started()

    def write_settled(self, category: SyncCategory) -> bool:
        return self._trackers[category].write_settled()

    def observe(self, category: SyncCategory, update: Any) -> bool:
        return self._trackers[category].observe(update)

    def is_pending(self, category: SyncCategory) -> bool:
        return self._trackers[category].pending > 0

    def snapshot(self) -> Dict[str, CategorySnapshot]:
        return {category.value: tracker.snapshot() for category, tracker in self._trackers.items()}

    @contextmanager
    def pending_write(self, category: SyncCategory) -> Iterator[None]:
        """Bracket a write so the counter is always released, even on failure."""
        self.write_started(category)
        try:
            yield
        finally:
            self.write_settled(category)
