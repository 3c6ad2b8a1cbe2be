"""
Plan validation service for checking rotation plan integrity.

Each check is a small ValidationRule; validate_rotation_plan runs them all
over a plan and combines their results.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import Counter
from typing import Dict, List, Optional, Sequence

from ..models import GamePlan, Player, PayloadDecodeError, decode_substitutions
from .fair_rotation import eligible_roster
from .lineup_algebra import apply_substitutions
from .rotation_timeline import RotationTimeline


class ValidationResult:
    """Result of a validation operation with success status and error messages."""

    def __init__(self, is_valid: bool = True, errors: Optional[List[str]] = None):
        self.is_valid = is_valid
        self.errors = errors or []

    def add_error(self, error: str) -> None:
        """Add an error message and mark as invalid."""
        self.errors.append(error)
        self.is_valid = False

    def combine(self, other: 'ValidationResult') -> 'ValidationResult':
        """Combine with another validation result."""
        return ValidationResult(
            is_valid=self.is_valid and other.is_valid,
            errors=self.errors + other.errors
        )

    def to_dict(self) -> Dict[str, object]:
        return {"is_valid": self.is_valid, "errors": list(self.errors)}


class ValidationRule(ABC):
    """Abstract base class for plan validation rules."""

    @abstractmethod
    def validate(self, plan: GamePlan) -> ValidationResult:
        """Perform validation and return result."""
        pass


class ScheduleConsistencyValidator(ValidationRule):
    """Rotation points must match the schedule."""

    def validate(self, plan: GamePlan) -> ValidationResult:
        result = ValidationResult()
        if not plan.rotation_points:
            result.add_error("No rotations planned")
            return result

        ordinals = [p.ordinal for p in plan.rotation_points]
        expected = list(range(1, plan.schedule.total_rotations + 1))
        if sorted(ordinals) != expected:
            result.add_error(
                f"Rotation ordinals {sorted(ordinals)} do not match the schedule "
                f"(expected 1..{plan.schedule.total_rotations})"
            )
        return result


class SubstitutionPayloadValidator(ValidationRule):
    """Payloads must decode, and a point must not move the same player twice."""

    def validate(self, plan: GamePlan) -> ValidationResult:
        result = ValidationResult()
        for point in sorted(plan.rotation_points, key=lambda p: p.ordinal):
            try:
                subs = decode_substitutions(point.planned_substitutions)
            except PayloadDecodeError:
                result.add_error(f"Rotation {point.ordinal}: Failed to parse substitutions data")
                continue

            outgoing = Counter(s.player_out_id for s in subs if s.player_out_id is not None)
            incoming = Counter(s.player_in_id for s in subs)
            positions = Counter(s.position_id for s in subs)
            if any(count > 1 for count in outgoing.values()):
                result.add_error(f"Rotation {point.ordinal}: Duplicate players being subbed out")
            if any(count > 1 for count in incoming.values()):
                result.add_error(f"Rotation {point.ordinal}: Duplicate players being subbed in")
            if any(count > 1 for count in positions.values()):
                result.add_error(f"Rotation {point.ordinal}: Position changed more than once")
        return result


class FieldStateValidator(ValidationRule):
    """Outgoing players must be on the field and the field must not overflow."""

    def validate(self, plan: GamePlan) -> ValidationResult:
        result = ValidationResult()
        lineup = plan.starting_lineup
        if len(lineup) > plan.max_players_on_field:
            result.add_error(f"Starting lineup: Too many players on field ({len(lineup)})")

        for point in sorted(plan.rotation_points, key=lambda p: p.ordinal):
            try:
                subs = decode_substitutions(point.planned_substitutions)
            except PayloadDecodeError:
                continue
            for sub in subs:
                if sub.player_out_id is not None and lineup.get(sub.position_id) != sub.player_out_id:
                    if lineup.position_of(sub.player_out_id) is None:
                        result.add_error(f"Rotation {point.ordinal}: Player {sub.player_out_id} not on field")
                    else:
                        result.add_error(
                            f"Rotation {point.ordinal}: Player {sub.player_out_id} is not at {sub.position_id}"
                        )
                lineup = apply_substitutions(lineup, [sub])
            if len(lineup) > plan.max_players_on_field:
                result.add_error(f"Rotation {point.ordinal}: Too many players on field ({len(lineup)})")
        return result


class AvailabilityValidator(ValidationRule):
    """Players must be schedulable and only on the field inside their availability window."""

    def __init__(self, roster: Sequence[Player]):
        self.players = {p.player_id: p for p in roster}
        self.eligible = {p.player_id for p in eligible_roster(roster)}

    def validate(self, plan: GamePlan) -> ValidationResult:
        result = ValidationResult()
        timeline = RotationTimeline(plan.starting_lineup, plan.rotation_points)
        schedule = plan.schedule
        total = timeline.total_rotations

        for ordinal in range(total + 1):
            start = schedule.minute_for(ordinal)
            end = schedule.segment_end_minute(ordinal, total)
            label = "Starting lineup" if ordinal == 0 else f"Rotation {ordinal}"
            for position_id, player_id in timeline.lineup_at(ordinal).items():
                player = self.players.get(player_id)
                if player is None:
                    result.add_error(f"{label}: Player {player_id} at {position_id} is not on the roster")
                elif player_id not in self.eligible:
                    result.add_error(f"{label}: Player {player_id} is {player.status.value} and cannot play")
                elif not player.is_available_between(start, end):
                    result.add_error(
                        f"{label}: Player {player_id} is not available for minutes {start}-{end}"
                    )
        return result


def validate_rotation_plan(plan: GamePlan, roster: Optional[Sequence[Player]] = None) -> ValidationResult:
    """
    Run every plan check.

    Args:
        plan: Plan to validate
        roster: Players with availability; availability is only checked when given

    Returns:
        Combined ValidationResult
    """
    rules: List[ValidationRule] = [
        ScheduleConsistencyValidator(),
        SubstitutionPayloadValidator(),
        FieldStateValidator(),
    ]
    if roster is not None:
        rules.append(AvailabilityValidator(roster))

    result = ValidationResult()
    for rule in rules:
        result = result.combine(rule.validate(plan))
    return result
