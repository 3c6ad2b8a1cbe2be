"""
Fair rotation generator.

Builds a whole rotation schedule from a starting lineup and the players
available for a game, balancing total minutes on the field. The heuristic is
greedy and fully deterministic: at each rotation point the on-field players
with the most minutes are swapped for the bench players with the fewest,
as long as the swap narrows the gap.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..models import AvailabilityStatus, LineupState, Player, ScheduleConfig, Substitution
from .lineup_algebra import apply_substitutions, diff_lineups

logger = logging.getLogger(__name__)


@dataclass
class GeneratedRotation:
    """Substitutions generated for one rotation point."""
    ordinal: int
    game_minute: int
    substitutions: List[Substitution] = field(default_factory=list)


@dataclass
class FairRotationResult:
    """
    Output of :func:`generate_fair_rotations`.

    Attributes:
        rotations: One entry per rotation point, in ordinal order
        warnings: Human-readable notes about constraints that could not be met
        projected_minutes: Minutes on the field per player for the whole game
        exempt_players: Players who spent time in the exempt position
    """
    rotations: List[GeneratedRotation] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    projected_minutes: Dict[str, int] = field(default_factory=dict)
    exempt_players: List[str] = field(default_factory=list)

    def substitutions_by_ordinal(self) -> Dict[int, List[Substitution]]:
        return {rotation.ordinal: list(rotation.substitutions) for rotation in self.rotations}

    def minutes_spread(self) -> int:
        """Gap between most and least minutes among non-exempt players."""
        minutes = [m for pid, m in self.projected_minutes.items() if pid not in self.exempt_players]
        if not minutes:
            return 0
        return max(minutes) - min(minutes)


def eligible_roster(players: Iterable[Player]) -> List[Player]:
    """
    Players who can be scheduled at all.

    Available and late-arrival players are kept; injured players only when
    they carry an ``available_until_minute`` (they played until then).
    Absent players are dropped.
    """
    eligible = []
    for player in players:
        if player.status in (AvailabilityStatus.AVAILABLE, AvailabilityStatus.LATE_ARRIVAL):
            eligible.append(player)
        elif player.status == AvailabilityStatus.INJURED and player.available_until_minute is not None:
            eligible.append(player)
    return eligible


def generate_fair_rotations(
    roster: Sequence[Player],
    starting_lineup: LineupState,
    schedule: ScheduleConfig,
    field_capacity: int,
    exempt_position_id: Optional[str] = None,
    halftime_lineup: Optional[LineupState] = None,
    total_rotations: Optional[int] = None,
    max_substitutions: Optional[int] = None,
) -> FairRotationResult:
    """
    Generate substitutions for every rotation point.

    Args:
        roster: Players that may be scheduled (see :func:`eligible_roster`)
        starting_lineup: Lineup at kick-off; never changed
        schedule: Rotation timing
        field_capacity: Players allowed on the field
        exempt_position_id: Position never substituted automatically
        halftime_lineup: Lineup the coach fixed for the second half, applied verbatim
        total_rotations: Number of points to generate (defaults to the schedule's)
        max_substitutions: Cap on voluntary substitutions per point

    Returns:
        FairRotationResult; infeasible slots keep their incumbent and add a warning
    """
    generator = _FairRotationGenerator(
        roster=roster,
        schedule=schedule,
        exempt_position_id=exempt_position_id,
        max_substitutions=max_substitutions,
    )
    return generator.run(
        starting_lineup=starting_lineup,
        field_capacity=field_capacity,
        halftime_lineup=halftime_lineup,
        total_rotations=schedule.total_rotations if total_rotations is None else total_rotations,
    )


class _FairRotationGenerator:
    """Mutable bookkeeping for one generation run."""

    def __init__(
        self,
        roster: Sequence[Player],
        schedule: ScheduleConfig,
        exempt_position_id: Optional[str],
        max_substitutions: Optional[int],
    ) -> None:
        self.players: Dict[str, Player] = {}
        for player in roster:
            self.players.setdefault(player.player_id, player)
        self.schedule = schedule
        self.exempt_position_id = exempt_position_id
        self.max_substitutions = max_substitutions
        self.minutes: Dict[str, int] = {pid: 0 for pid in self.players}
        self.result = FairRotationResult()

    # ---------- Helpers ---------- #

    def _warn(self, message: str) -> None:
        logger.info(message)
        self.result.warnings.append(message)

    def _label(self, player_id: str) -> str:
        player = self.players.get(player_id)
        return f"#{player.number} ({player_id})" if player and player.number else player_id

    def _number(self, player_id: str) -> int:
        player = self.players.get(player_id)
        return player.number if player else 0

    def _bench_key(self, player_id: str) -> Tuple[int, int, str]:
        return (self.minutes[player_id], self._number(player_id), player_id)

    def _field_key(self, player_id: str) -> Tuple[int, int, str]:
        return (-self.minutes[player_id], self._number(player_id), player_id)

    def _eligible(self, player_id: str, start: int, end: int) -> bool:
        player = self.players.get(player_id)
        return player is not None and player.is_available_between(start, end)

    def _segment(self, ordinal: int, total_rotations: int) -> Tuple[int, int]:
        start = self.schedule.minute_for(ordinal)
        return start, max(start, self.schedule.segment_end_minute(ordinal, total_rotations))

    def _credit(self, lineup: LineupState, minutes: int) -> None:
        for position_id, player_id in lineup.items():
            self.minutes.setdefault(player_id, 0)
            self.minutes[player_id] += minutes
            if position_id == self.exempt_position_id and player_id not in self.result.exempt_players:
                self.result.exempt_players.append(player_id)

    # ---------- Run ---------- #

    def run(
        self,
        starting_lineup: LineupState,
        field_capacity: int,
        halftime_lineup: Optional[LineupState],
        total_rotations: int,
    ) -> FairRotationResult:
        lineup = starting_lineup.copy()
        if len(lineup) > field_capacity:
            self._warn(f"Starting lineup has {len(lineup)} players but only {field_capacity} fit on the field")

        start, end = self._segment(0, total_rotations)
        for position_id, player_id in lineup.items():
            if player_id not in self.players:
                self._warn(f"Starter {player_id} at {position_id} is not in the available roster")
                self.minutes.setdefault(player_id, 0)
            elif not self._eligible(player_id, start, end):
                self._warn(f"Starter {self._label(player_id)} is not available from kick-off")
        self._credit(lineup, end - start)

        halftime_ordinal = self.schedule.halftime_ordinal
        for ordinal in range(1, total_rotations + 1):
            start, end = self._segment(ordinal, total_rotations)
            if ordinal == halftime_ordinal and halftime_lineup is not None and len(halftime_lineup) > 0:
                substitutions = self._apply_fixed_lineup(lineup, halftime_lineup, ordinal, start, end)
            else:
                substitutions = self._rotate(lineup, ordinal, start, end)

            lineup = apply_substitutions(lineup, substitutions)
            self._credit(lineup, end - start)
            self.result.rotations.append(
                GeneratedRotation(ordinal=ordinal, game_minute=start, substitutions=substitutions)
            )

        self.result.projected_minutes = dict(self.minutes)
        return self.result

    def _apply_fixed_lineup(
        self, lineup: LineupState, target: LineupState, ordinal: int, start: int, end: int
    ) -> List[Substitution]:
        for position_id, player_id in target.items():
            if not self._eligible(player_id, start, end):
                self._warn(
                    f"Rotation {ordinal} ({start}'): halftime lineup places {self._label(player_id)} "
                    f"at {position_id} outside their availability"
                )
        for position_id in lineup:
            if position_id not in target:
                self._warn(
                    f"Rotation {ordinal} ({start}'): halftime lineup leaves {position_id} empty; "
                    f"keeping {self._label(lineup.get(position_id))}"
                )
        return diff_lineups(lineup, target)

    def _rotate(self, lineup: LineupState, ordinal: int, start: int, end: int) -> List[Substitution]:
        on_field = set(lineup.players())
        bench = sorted(
            (pid for pid in self.players if pid not in on_field and self._eligible(pid, start, end)),
            key=self._bench_key,
        )

        forced: List[Tuple[str, str]] = []
        voluntary: List[Tuple[str, str]] = []
        for position_id, player_id in lineup.items():
            if position_id == self.exempt_position_id:
                if not self._eligible(player_id, start, end):
                    self._warn(
                        f"Rotation {ordinal} ({start}'): {self._label(player_id)} is unavailable but "
                        f"{position_id} is never rotated automatically"
                    )
                continue
            if self._eligible(player_id, start, end):
                voluntary.append((position_id, player_id))
            else:
                forced.append((position_id, player_id))
        forced.sort(key=lambda entry: self._field_key(entry[1]))
        voluntary.sort(key=lambda entry: self._field_key(entry[1]))

        outgoing: List[Tuple[str, str]] = []
        for position_id, player_id in forced:
            if len(outgoing) < len(bench):
                outgoing.append((position_id, player_id))
            else:
                self._warn(
                    f"Rotation {ordinal} ({start}'): no eligible bench player to replace "
                    f"{self._label(player_id)} at {position_id}; keeping incumbent"
                )

        voluntary_count = 0
        for position_id, player_id in voluntary:
            if len(outgoing) >= len(bench):
                break
            if self.max_substitutions is not None and voluntary_count >= self.max_substitutions:
                break
            if self.minutes[player_id] <= self.minutes[bench[len(outgoing)]]:
                break
            outgoing.append((position_id, player_id))
            voluntary_count += 1

        if not outgoing:
            return []

        vacated = [position_id for position_id, _ in outgoing]
        incoming = self._select_incoming(bench, len(outgoing), vacated)
        assignments = self._assign_to_positions(vacated, incoming)

        order = {position_id: index for index, position_id in enumerate(lineup.positions())}
        substitutions = [
            Substitution(position_id, player_id, assignments[position_id])
            for position_id, player_id in outgoing
        ]
        substitutions.sort(key=lambda sub: order[sub.position_id])
        return substitutions

    def _select_incoming(self, bench: List[str], count: int, vacated: List[str]) -> List[str]:
        """
        Pick ``count`` bench players.

        Everyone with fewer minutes than the cut-off is taken; remaining slots go
        to cut-off players, preferring those who list a vacated position.
        """
        cutoff = self.minutes[bench[count - 1]]
        selected = [pid for pid in bench if self.minutes[pid] < cutoff]
        tier = [pid for pid in bench if self.minutes[pid] == cutoff]

        def preference_key(pid: str) -> Tuple[int, int, str]:
            player = self.players[pid]
            prefers_vacated = any(player.prefers(position_id) for position_id in vacated)
            return (0 if prefers_vacated else 1, player.number, pid)

        selected.extend(sorted(tier, key=preference_key)[: count - len(selected)])
        return sorted(selected, key=self._bench_key)

    def _assign_to_positions(self, positions: List[str], candidates: List[str]) -> Dict[str, str]:
        """Match incoming players to vacated positions, preferred positions first."""
        assignments: Dict[str, str] = {}
        used = set()

        # Pass 1: players to a position they prefer
        for pid in candidates:
            player = self.players[pid]
            for position_id in positions:
                if position_id not in assignments and player.prefers(position_id):
                    assignments[position_id] = pid
                    used.add(pid)
                    break

        # Pass 2: everyone else to what is left
        remaining = [position_id for position_id in positions if position_id not in assignments]
        for pid in candidates:
            if pid in used:
                continue
            position_id = remaining.pop(0)
            assignments[position_id] = pid
            used.add(pid)

        return assignments
