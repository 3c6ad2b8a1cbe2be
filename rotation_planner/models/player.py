"""
Player and position models for the Rotation Planner application.

This module contains the roster records consumed by the planner: field
positions (one of which may be exempt from rotation) and players with their
preferred positions and availability for a game.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class AvailabilityStatus(Enum):
    """Availability of a player for one game."""
    AVAILABLE = "available"
    LATE_ARRIVAL = "late-arrival"
    ABSENT = "absent"
    INJURED = "injured"


@dataclass(frozen=True)
class Position:
    """
    A field position.

    Attributes:
        position_id: Unique identifier
        label: Short label shown to coaches (e.g. "GK", "LB")
        exempt: True for the position never touched by automatic rotation
    """
    position_id: str
    label: str
    exempt: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"position_id": self.position_id, "label": self.label, "exempt": self.exempt}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Position':
        """Create from dictionary for JSON deserialization."""
        return cls(
            position_id=str(data["position_id"]),
            label=data.get("label") or str(data["position_id"]),
            exempt=bool(data.get("exempt", False)),
        )


@dataclass
class Player:
    """
    Represents a rostered player and their availability for a game.

    Attributes:
        player_id: Unique identifier
        number: Jersey number (used as a deterministic tie-breaker)
        name: Display name (optional)
        preferred_positions: Ordered preferred position ids
        status: Availability for the game
        available_from_minute: Earliest game minute the player may be on field
        available_until_minute: Latest game minute the player may be on field
    """
    player_id: str
    number: int = 0
    name: str = ""
    preferred_positions: Tuple[str, ...] = field(default_factory=tuple)
    status: AvailabilityStatus = AvailabilityStatus.AVAILABLE
    available_from_minute: Optional[int] = None
    available_until_minute: Optional[int] = None

    def __post_init__(self):
        if isinstance(self.preferred_positions, str):
            self.preferred_positions = tuple(parse_preferred(self.preferred_positions))
        else:
            self.preferred_positions = tuple(self.preferred_positions)
        if isinstance(self.status, str):
            self.status = AvailabilityStatus(self.status)

    def prefers(self, position_id: str) -> bool:
        """Whether the position is in this player's preferred list."""
        return position_id in self.preferred_positions

    def is_available_between(self, start_minute: float, end_minute: float) -> bool:
        """
        Check the availability window covers a whole on-field segment.

        Args:
            start_minute: Segment start (inclusive)
            end_minute: Segment end

        Returns:
            True if the player may be on the field for the entire segment
        """
        if self.available_from_minute is not None and start_minute < self.available_from_minute:
            return False
        if self.available_until_minute is not None and end_minute > self.available_until_minute:
            return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "player_id": self.player_id,
            "number": self.number,
            "name": self.name,
            "preferred_positions": list(self.preferred_positions),
            "status": self.status.value,
            "available_from_minute": self.available_from_minute,
            "available_until_minute": self.available_until_minute,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Player':
        """Create from dictionary for JSON deserialization."""
        preferred = data.get("preferred_positions") or ()
        return cls(
            player_id=str(data["player_id"]),
            number=int(data.get("number") or 0),
            name=data.get("name") or "",
            preferred_positions=preferred,
            status=AvailabilityStatus(data.get("status", AvailabilityStatus.AVAILABLE.value)),
            available_from_minute=data.get("available_from_minute"),
            available_until_minute=data.get("available_until_minute"),
        )


def parse_preferred(preferred: Optional[str]) -> List[str]:
    """
    Split a comma-separated preferred position string.

    Example:
        >>> parse_preferred("pos-st, pos-mf,")
        ['pos-st', 'pos-mf']
    """
    if not preferred:
        return []
    return [p.strip() for p in preferred.split(",") if p.strip()]
