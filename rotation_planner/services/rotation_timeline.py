"""
Rotation timeline: the lineup at every rotation point.

Each rotation point stores substitutions relative to its predecessor, so the
lineup at point ``n`` is the starting lineup with points ``1..n`` applied in
order. Results are cached per ``(version, ordinal)``; any structural change
bumps the version and drops the whole cache.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..models import (
    LineupState, PayloadDecodeError, RotationPoint, Substitution,
    decode_substitutions, encode_substitutions
)
from .diagnostics import DiagnosticLog
from .lineup_algebra import apply_substitutions

logger = logging.getLogger(__name__)


class RotationTimeline:
    """
    Cached query layer folding substitution lists over a starting lineup.

    Lineups returned by :meth:`lineup_at` are frozen; call ``copy()`` to edit.
    A point whose stored payload cannot be decoded counts as having no
    substitutions; the problem is logged and recorded in ``diagnostics``.
    """

    def __init__(
        self,
        starting_lineup: LineupState,
        rotation_points: Iterable[RotationPoint] = (),
        diagnostics: Optional[DiagnosticLog] = None,
    ) -> None:
        self.diagnostics = diagnostics if diagnostics is not None else DiagnosticLog()
        self._version = 0
        self._lineups: Dict[Tuple[int, int], LineupState] = {}
        self._substitutions: Dict[Tuple[int, int], List[Substitution]] = {}
        self._starting_lineup = starting_lineup.frozen()
        self._points: Dict[int, RotationPoint] = {}
        self._load_points(rotation_points)

    # ---------- Structural changes ---------- #

    @property
    def version(self) -> int:
        return self._version

    def _invalidate(self) -> None:
        self._version += 1
        self._lineups.clear()
        self._substitutions.clear()

    def _load_points(self, rotation_points: Iterable[RotationPoint]) -> None:
        self._points = {}
        for point in sorted(rotation_points, key=lambda p: p.ordinal):
            if point.ordinal < 1:
                logger.warning("Ignoring rotation point with ordinal %s", point.ordinal)
                continue
            self._points[point.ordinal] = point

    def set_starting_lineup(self, lineup: LineupState) -> None:
        self._starting_lineup = lineup.frozen()
        self._invalidate()

    def set_rotation_points(self, rotation_points: Iterable[RotationPoint]) -> None:
        self._load_points(rotation_points)
        self._invalidate()

    def replace_substitutions(self, ordinal: int, substitutions: Sequence[Substitution]) -> RotationPoint:
        """Store a new substitution list for one point and return the updated point."""
        point = self._points.get(ordinal)
        if point is None:
            raise KeyError(f"No rotation point with ordinal {ordinal}")
        updated = replace(point, planned_substitutions=encode_substitutions(substitutions))
        self._points[ordinal] = updated
        self._invalidate()
        return updated

    # ---------- Queries ---------- #

    @property
    def starting_lineup(self) -> LineupState:
        return self._starting_lineup

    @property
    def total_rotations(self) -> int:
        return max(self._points, default=0)

    def rotation_points(self) -> List[RotationPoint]:
        return [self._points[o] for o in sorted(self._points)]

    def get_point(self, ordinal: int) -> Optional[RotationPoint]:
        return self._points.get(ordinal)

    def substitutions_at(self, ordinal: int) -> List[Substitution]:
        """Decoded substitutions stored at a point (empty if missing or corrupt)."""
        key = (self._version, ordinal)
        cached = self._substitutions.get(key)
        if cached is not None:
            return list(cached)

        point = self._points.get(ordinal)
        substitutions: List[Substitution] = []
        if point is not None:
            try:
                substitutions = decode_substitutions(point.planned_substitutions)
            except PayloadDecodeError as e:
                logger.error("Rotation %s: could not decode planned substitutions: %s", ordinal, e)
                self.diagnostics.add_corrupt_payload("planned_substitutions", str(e), ordinal=ordinal)

        self._substitutions[key] = substitutions
        return list(substitutions)

    def lineup_at(self, ordinal: int) -> LineupState:
        """
        Lineup in effect after rotation point ``ordinal``.

        Args:
            ordinal: 0 for the starting lineup, up to ``total_rotations``

        Raises:
            IndexError: If ordinal is outside 0..total_rotations
        """
        if ordinal < 0 or ordinal > self.total_rotations:
            raise IndexError(f"Rotation {ordinal} is outside 0..{self.total_rotations}")
        if ordinal == 0:
            return self._starting_lineup

        # Resume from the closest cached predecessor
        start = ordinal
        while start > 0 and (self._version, start) not in self._lineups:
            start -= 1
        lineup = self._lineups[(self._version, start)] if start > 0 else self._starting_lineup

        for current in range(start + 1, ordinal + 1):
            lineup = apply_substitutions(lineup, self.substitutions_at(current)).frozen()
            self._lineups[(self._version, current)] = lineup
        return lineup

    def lineups(self) -> List[LineupState]:
        """Lineups for every ordinal from 0 to ``total_rotations``."""
        return [self.lineup_at(ordinal) for ordinal in range(self.total_rotations + 1)]

    def with_overrides(self, overrides: Mapping[int, Sequence[Substitution]]) -> RotationTimeline:
        """
        Detached timeline where some points use the given substitution lists.

        The receiver is not modified.
        """
        points = []
        for point in self.rotation_points():
            if point.ordinal in overrides:
                point = replace(point, planned_substitutions=encode_substitutions(overrides[point.ordinal]))
            points.append(point)
        return RotationTimeline(self._starting_lineup, points)

    def rotations_involving(self, player_id: str, after_minute: Optional[int] = None) -> List[int]:
        """Ordinals of points where the player comes on or goes off."""
        ordinals = []
        for point in self.rotation_points():
            if after_minute is not None and point.game_minute <= after_minute:
                continue
            before = self.lineup_at(point.ordinal - 1)
            after = self.lineup_at(point.ordinal)
            if (player_id in before.players()) != (player_id in after.players()):
                ordinals.append(point.ordinal)
            elif any(sub.player_in_id == player_id or sub.player_out_id == player_id
                     for sub in self.substitutions_at(point.ordinal)):
                ordinals.append(point.ordinal)
        return ordinals
