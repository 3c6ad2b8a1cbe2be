"""Dataclasses representing projected play-time reports for a rotation plan."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class PlayerMinutesSummary:
    """Projected playing time for a single player."""

    player_id: str
    number: Optional[int]
    projected_minutes: int
    on_field_ordinals: List[int]
    exempt: bool
    target_minutes: float
    delta_minutes: float
    fairness: str


@dataclass
class PlanReport:
    """Snapshot of projected playing time across a whole plan."""

    generated_ts: float
    plan_id: str
    game_length_minutes: int
    rotation_count: int
    players: List[PlayerMinutesSummary] = field(default_factory=list)
    average_minutes: float = 0.0
    median_minutes: float = 0.0
    min_minutes: int = 0
    max_minutes: int = 0
    spread_minutes: int = 0
    fairness_counts: Dict[str, int] = field(default_factory=dict)
    diagnostics: List[Dict[str, object]] = field(default_factory=list)
