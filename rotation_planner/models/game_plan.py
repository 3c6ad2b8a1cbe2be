"""
GamePlan model for the Rotation Planner application.

This module contains the schedule configuration, the rotation points of a
plan and the GamePlan dataclass that ties them to a starting lineup, together
with the JSON persistence methods.
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from .codec import (
    EMPTY_LIST_PAYLOAD, PayloadDecodeError, decode_lineup, encode_lineup
)
from .lineup import LineupState
from ..utils import (
    DEFAULT_FIELD_SIZE, DEFAULT_HALF_LENGTH_MIN, DEFAULT_ROTATION_INTERVAL_MIN,
    HALVES_PER_GAME
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduleConfig:
    """
    Rotation timing for a game.

    Attributes:
        rotation_interval_minutes: Minutes between rotation points
        half_length_minutes: Length of each half
    """
    rotation_interval_minutes: int = DEFAULT_ROTATION_INTERVAL_MIN
    half_length_minutes: int = DEFAULT_HALF_LENGTH_MIN

    def __post_init__(self):
        if int(self.rotation_interval_minutes) <= 0:
            raise ValueError("Rotation interval must be a positive number of minutes")
        if int(self.half_length_minutes) <= 0:
            raise ValueError("Half length must be a positive number of minutes")

    @property
    def rotations_per_half(self) -> int:
        return max(0, self.half_length_minutes // self.rotation_interval_minutes - 1)

    @property
    def total_rotations(self) -> int:
        """Rotation points in the game; the extra one is the halftime boundary."""
        return self.rotations_per_half * 2 + 1

    @property
    def halftime_ordinal(self) -> int:
        return self.rotations_per_half + 1

    @property
    def game_length_minutes(self) -> int:
        return self.half_length_minutes * HALVES_PER_GAME

    def half_for(self, ordinal: int) -> int:
        """Half a rotation point belongs to; the halftime point opens half 2."""
        return 1 if ordinal < self.halftime_ordinal else 2

    def minute_for(self, ordinal: int) -> int:
        """
        Game minute at which a rotation point happens.

        Example:
            >>> config = ScheduleConfig(10, 30)
            >>> [config.minute_for(n) for n in range(1, config.total_rotations + 1)]
            [10, 20, 30, 40, 50]
        """
        if ordinal <= 0:
            return 0
        if ordinal < self.halftime_ordinal:
            return ordinal * self.rotation_interval_minutes
        return self.half_length_minutes + (ordinal - self.halftime_ordinal) * self.rotation_interval_minutes

    def segment_end_minute(self, ordinal: int, total_rotations: Optional[int] = None) -> int:
        """
        Minute at which the segment starting at ``ordinal`` ends.

        Args:
            ordinal: Rotation point opening the segment (0 for kick-off)
            total_rotations: Number of rotation points when it differs from the schedule's
        """
        last = self.total_rotations if total_rotations is None else total_rotations
        if ordinal >= last:
            return self.game_length_minutes
        return self.minute_for(ordinal + 1)

    def to_dict(self) -> Dict[str, int]:
        return {
            "rotation_interval_minutes": self.rotation_interval_minutes,
            "half_length_minutes": self.half_length_minutes,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ScheduleConfig':
        if not data:
            return cls()
        return cls(
            rotation_interval_minutes=int(data.get("rotation_interval_minutes", DEFAULT_ROTATION_INTERVAL_MIN)),
            half_length_minutes=int(data.get("half_length_minutes", DEFAULT_HALF_LENGTH_MIN)),
        )


@dataclass
class RotationPoint:
    """
    A scheduled rotation.

    Attributes:
        ordinal: Position in the sequence (1-based, dense)
        game_minute: Minute the rotation happens
        half: Half indicator (1 or 2); informational only
        planned_substitutions: Encoded substitution list relative to the previous point
    """
    ordinal: int
    game_minute: int = 0
    half: int = 1
    planned_substitutions: str = EMPTY_LIST_PAYLOAD

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ordinal": self.ordinal,
            "game_minute": self.game_minute,
            "half": self.half,
            "planned_substitutions": self.planned_substitutions,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RotationPoint':
        payload = data.get("planned_substitutions", EMPTY_LIST_PAYLOAD)
        if not isinstance(payload, str):
            # Kept as-is so the timeline reports it as a corrupt point
            payload = repr(payload)
        return cls(
            ordinal=int(data["ordinal"]),
            game_minute=int(data.get("game_minute", 0)),
            half=int(data.get("half", 1)),
            planned_substitutions=payload,
        )


@dataclass
class RotationPointSync:
    """Outcome of aligning rotation points with a schedule."""
    points: List[RotationPoint]
    created: List[int] = field(default_factory=list)
    pruned: List[int] = field(default_factory=list)
    retimed: List[int] = field(default_factory=list)


def sync_rotation_points(existing: List[RotationPoint], schedule: ScheduleConfig) -> RotationPointSync:
    """
    Align rotation points with a schedule.

    Stale trailing points are pruned, missing points are created with empty
    substitutions, and minute/half are recomputed for every kept point.
    """
    by_ordinal = {point.ordinal: point for point in existing}
    result = RotationPointSync(points=[])

    for ordinal in range(1, schedule.total_rotations + 1):
        minute = schedule.minute_for(ordinal)
        half = schedule.half_for(ordinal)
        point = by_ordinal.get(ordinal)
        if point is None:
            point = RotationPoint(ordinal=ordinal, game_minute=minute, half=half)
            result.created.append(ordinal)
        elif point.game_minute != minute or point.half != half:
            point = replace(point, game_minute=minute, half=half)
            result.retimed.append(ordinal)
        result.points.append(point)

    result.pruned = sorted(o for o in by_ordinal if o < 1 or o > schedule.total_rotations)
    return result


@dataclass
class GamePlan:
    """
    Represents the rotation plan of one game.

    Attributes:
        plan_id: Unique identifier of the plan
        game_id: Game the plan belongs to
        schedule: Rotation timing
        starting_lineup: Lineup at kick-off (ordinal 0)
        halftime_lineup: Lineup the coach fixed for the start of half 2
        rotation_points: Rotation points ordered by ordinal
        max_players_on_field: Field capacity
        updated_at: Last modification (epoch seconds)
        load_warnings: Problems found while loading (not persisted)
    """
    plan_id: str
    game_id: str = ""
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    starting_lineup: LineupState = field(default_factory=LineupState)
    halftime_lineup: Optional[LineupState] = None
    rotation_points: List[RotationPoint] = field(default_factory=list)
    max_players_on_field: int = DEFAULT_FIELD_SIZE
    updated_at: Optional[float] = None
    load_warnings: List[str] = field(default_factory=list, compare=False)

    def ensure_rotation_points(self) -> RotationPointSync:
        """Make rotation points match the schedule."""
        sync = sync_rotation_points(self.rotation_points, self.schedule)
        self.rotation_points = sync.points
        return sync

    def get_point(self, ordinal: int) -> Optional[RotationPoint]:
        for point in self.rotation_points:
            if point.ordinal == ordinal:
                return point
        return None

    def to_json(self) -> dict:
        """
        Convert GamePlan to JSON-serializable dictionary.

        Returns:
            Dictionary representation suitable for JSON serialization
        """
        return {
            "plan_id": self.plan_id,
            "game_id": self.game_id,
            "schedule": self.schedule.to_dict(),
            "starting_lineup": encode_lineup(self.starting_lineup),
            "halftime_lineup": encode_lineup(self.halftime_lineup) if self.halftime_lineup is not None else None,
            "rotation_points": [p.to_dict() for p in sorted(self.rotation_points, key=lambda p: p.ordinal)],
            "max_players_on_field": self.max_players_on_field,
            "updated_at": self.updated_at,
        }

    @staticmethod
    def from_json(data: dict) -> "GamePlan":
        """
        Create GamePlan from JSON dictionary.

        A corrupt lineup payload is logged and loaded as empty; the problem is
        kept in ``load_warnings``.

        Args:
            data: Dictionary with game plan data

        Returns:
            New GamePlan instance
        """
        plan = GamePlan(plan_id=str(data["plan_id"]))
        plan.game_id = data.get("game_id", "")
        plan.schedule = ScheduleConfig.from_dict(data.get("schedule"))
        plan.max_players_on_field = int(data.get("max_players_on_field", DEFAULT_FIELD_SIZE))
        plan.updated_at = data.get("updated_at")

        plan.starting_lineup = _decode_lineup_field(plan, "starting_lineup", data.get("starting_lineup")) \
            or LineupState()
        if data.get("halftime_lineup") is not None:
            plan.halftime_lineup = _decode_lineup_field(plan, "halftime_lineup", data.get("halftime_lineup"))

        points = [RotationPoint.from_dict(p) for p in data.get("rotation_points", []) or []]
        plan.rotation_points = sorted(points, key=lambda p: p.ordinal)
        return plan


def _decode_lineup_field(plan: GamePlan, name: str, payload: Any) -> Optional[LineupState]:
    try:
        return decode_lineup(payload)
    except PayloadDecodeError as e:
        logger.error("Plan %s: could not decode %s: %s", plan.plan_id, name, e)
        plan.load_warnings.append(f"{name}: {e}")
        return None
