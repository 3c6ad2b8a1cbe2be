"""
Plan service: edits, generation and synchronisation of one game plan.

Edits are applied to the local plan first (optimistic) and then written to the
plan store. Writes are bracketed by the concurrency reconciler so change
notifications arriving meanwhile cannot overwrite the local state with stale
data. Grouped writes run on a thread pool; reconciler transitions always
happen on the calling thread.
"""

from __future__ import annotations

import logging
import queue
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from ..models import (
    AvailabilityStatus, GamePlan, LineupState, PayloadDecodeError, Player, RotationPoint,
    RotationPointSync, ScheduleConfig, Substitution, decode_lineup, encode_lineup,
    encode_substitutions, sync_rotation_points
)
from ..utils import DEFAULT_FIELD_SIZE, MAX_CONCURRENT_WRITES, MAX_FIELD_SIZE, MIN_FIELD_SIZE
from .diagnostics import DiagnosticLog
from .fair_rotation import FairRotationResult, eligible_roster, generate_fair_rotations
from .persistence_service import PlanChange, PlanStore, PlanStoreError, copy_plan
from .rebaser import RebaseResult, recalculate_downstream
from .reconciler import ConcurrencyReconciler, SyncCategory
from .roster_service import AvailabilityProvider, RosterProvider, with_availability
from .rotation_timeline import RotationTimeline

logger = logging.getLogger(__name__)

LineupInput = Union[LineupState, Mapping[str, str], Iterable[Any]]

WAIT_POLL_SECONDS = 0.05


class BatchWriteError(Exception):
    """
    Raised when some writes of a group failed.

    Successful writes are not rolled back.

    Attributes:
        failed: Exception per failed write key (ordinal or field name)
        succeeded: Keys of the writes that went through
    """

    def __init__(self, failed: Dict[Any, Exception], succeeded: List[Any]):
        self.failed = failed
        self.succeeded = succeeded
        keys = ", ".join(str(k) for k in failed)
        super().__init__(f"{len(failed)} of {len(failed) + len(succeeded)} write(s) failed: {keys}")

    @property
    def failed_ordinals(self) -> List[int]:
        return sorted(k for k in self.failed if isinstance(k, int))

    @property
    def succeeded_ordinals(self) -> List[int]:
        return sorted(k for k in self.succeeded if isinstance(k, int))


@dataclass
class WriteJob:
    """A single store write, tracked under one reconciler category."""
    category: SyncCategory
    key: Any
    action: Callable[[], None]


@dataclass
class AvailabilityChange:
    """Outcome of :meth:`PlanService.update_availability`."""
    player: Player
    affected_ordinals: List[int] = field(default_factory=list)
    regenerated: Optional[FairRotationResult] = None


def coerce_lineup(value: Optional[LineupInput], strict: bool = False) -> LineupState:
    """
    Build a LineupState from the shapes callers send.

    Accepts a LineupState, a position -> player mapping, encoded lineup text,
    or a list of ``(position, player)`` pairs / ``{"positionId", "playerId"}``
    records. Duplicate players are normalised last-write-wins unless strict.
    """
    if value is None:
        return LineupState()
    if isinstance(value, LineupState):
        return value.copy()
    if isinstance(value, str):
        return decode_lineup(value, strict=strict)
    if isinstance(value, Mapping):
        return LineupState.from_pairs(list(value.items()), strict=strict)

    pairs = []
    for entry in value:
        if isinstance(entry, Mapping):
            pairs.append((str(entry["positionId"]), str(entry["playerId"])))
        else:
            position_id, player_id = entry
            pairs.append((str(position_id), str(player_id)))
    return LineupState.from_pairs(pairs, strict=strict)


class PlanService:
    """
    Orchestrates edits of one game plan against a plan store.

    Args:
        store: Persistence collaborator
        plan_id: Plan to manage
        roster: Players and positions of the team
        availability: Per-game availability of players
        max_workers: Upper bound on concurrent writes in a group
    """

    def __init__(
        self,
        store: PlanStore,
        plan_id: str,
        roster: Optional[RosterProvider] = None,
        availability: Optional[AvailabilityProvider] = None,
        max_workers: int = MAX_CONCURRENT_WRITES,
    ) -> None:
        self.store = store
        self.plan_id = plan_id
        self.roster = roster
        self.availability = availability
        self.max_workers = max(1, max_workers)
        self.diagnostics = DiagnosticLog()
        self.reconciler = ConcurrencyReconciler({
            SyncCategory.STARTING_LINEUP: self._apply_external_starting_lineup,
            SyncCategory.HALFTIME_LINEUP: self._apply_external_halftime_lineup,
            SyncCategory.ROTATIONS: self._apply_external_rotations,
        })
        self._inbox: "queue.SimpleQueue[PlanChange]" = queue.SimpleQueue()

        self.plan = store.load_plan(plan_id)
        for warning in self.plan.load_warnings:
            source, _, reason = warning.partition(": ")
            self.diagnostics.add_corrupt_payload(source, reason)
        self.timeline = RotationTimeline(self.plan.starting_lineup, self.plan.rotation_points, self.diagnostics)
        self._unsubscribe = store.subscribe(self._on_store_change)

        sync = self.plan.ensure_rotation_points()
        if sync.created or sync.pruned or sync.retimed:
            logger.info("Plan %s: aligning rotation points with schedule", plan_id)
            self.timeline.set_rotation_points(self.plan.rotation_points)
            self._run_writes(self._sync_jobs(sync))

    @classmethod
    def create(
        cls,
        store: PlanStore,
        plan_id: str,
        game_id: str = "",
        schedule: Optional[ScheduleConfig] = None,
        starting_lineup: Optional[LineupInput] = None,
        max_players_on_field: int = DEFAULT_FIELD_SIZE,
        **kwargs,
    ) -> "PlanService":
        """
        Create a plan with a full set of empty rotation points and manage it.

        Raises:
            ValueError: If the field size is outside the supported formats
        """
        if not MIN_FIELD_SIZE <= max_players_on_field <= MAX_FIELD_SIZE:
            raise ValueError(
                f"Field size must be between {MIN_FIELD_SIZE} and {MAX_FIELD_SIZE} players"
            )
        plan = GamePlan(
            plan_id=plan_id,
            game_id=game_id,
            schedule=schedule or ScheduleConfig(),
            starting_lineup=coerce_lineup(starting_lineup),
            max_players_on_field=max_players_on_field,
        )
        plan.ensure_rotation_points()
        store.create_plan(plan)
        logger.info("Created plan %s with %d rotation point(s)", plan_id, len(plan.rotation_points))
        return cls(store, plan_id, **kwargs)

    def close(self) -> None:
        """Stop listening to store notifications."""
        self._unsubscribe()

    # ---------- Queries ---------- #

    def lineup_at(self, ordinal: int) -> LineupState:
        return self.timeline.lineup_at(ordinal)

    def substitutions_at(self, ordinal: int) -> List[Substitution]:
        return self.timeline.substitutions_at(ordinal)

    def exempt_position_id(self) -> Optional[str]:
        if self.roster is None:
            return None
        for position in self.roster.list_positions():
            if position.exempt:
                return position.position_id
        return None

    def players_for_game(self) -> List[Player]:
        """Roster players with their availability for this plan's game."""
        if self.roster is None:
            return []
        players = []
        for player in self.roster.list_players():
            record = None
            if self.availability is not None:
                record = self.availability.get_availability(self.plan.game_id, player.player_id)
            players.append(record or player)
        return players

    def state(self) -> Dict[str, Any]:
        """Plan, lineups and sync state as a JSON-serialisable dictionary."""
        schedule = self.plan.schedule
        rotations = []
        for point in self.timeline.rotation_points():
            rotations.append({
                "ordinal": point.ordinal,
                "game_minute": point.game_minute,
                "half": point.half,
                "substitutions": [s.to_dict() for s in self.timeline.substitutions_at(point.ordinal)],
                "lineup": self.timeline.lineup_at(point.ordinal).as_dict(),
            })
        return {
            "plan_id": self.plan.plan_id,
            "game_id": self.plan.game_id,
            "schedule": schedule.to_dict(),
            "total_rotations": schedule.total_rotations,
            "halftime_ordinal": schedule.halftime_ordinal,
            "max_players_on_field": self.plan.max_players_on_field,
            "starting_lineup": self.timeline.starting_lineup.as_dict(),
            "halftime_lineup": self.plan.halftime_lineup.as_dict() if self.plan.halftime_lineup is not None else None,
            "rotations": rotations,
            "sync": {name: snap.phase.value for name, snap in self.reconciler.snapshot().items()},
            "diagnostics": self.diagnostics.to_list(),
        }

    # ---------- Lineup edits ---------- #

    def set_starting_lineup(self, lineup: LineupInput, strict: bool = False) -> RebaseResult:
        """
        Replace the starting lineup, rebasing every rotation point.

        Raises:
            ValueError: If the lineup has more players than fit on the field
        """
        new_lineup = coerce_lineup(lineup, strict=strict)
        self._check_capacity(new_lineup)
        result = recalculate_downstream(self.timeline, 0, edited_lineup=new_lineup)

        self.plan.starting_lineup = result.edited_lineup.copy()
        self.timeline.set_starting_lineup(result.edited_lineup)
        points = self._stage_rotation_updates({u.ordinal: list(u.substitutions) for u in result.updates})

        encoded = encode_lineup(result.edited_lineup)
        jobs = [WriteJob(SyncCategory.STARTING_LINEUP, "starting_lineup",
                         lambda: self.store.save_plan_fields(self.plan_id, {"starting_lineup": encoded}))]
        jobs.extend(self._point_jobs(points))
        self._run_writes(jobs)
        return result

    def set_rotation_substitutions(self, ordinal: int, substitutions: Sequence[Substitution]) -> RebaseResult:
        """Store a new substitution list at a point, keeping later lineups unchanged."""
        self._check_rotation_ordinal(ordinal)
        result = recalculate_downstream(self.timeline, ordinal, edited_substitutions=list(substitutions))
        return self._commit_rotation_edit(result)

    def set_rotation_lineup(self, ordinal: int, lineup: LineupInput, strict: bool = False) -> RebaseResult:
        """
        Set the absolute lineup at a point.

        Ordinal 0 edits the starting lineup. Positions the new lineup leaves
        empty cannot be expressed as substitutions; they stay filled and are
        reported in the result's warnings.
        """
        new_lineup = coerce_lineup(lineup, strict=strict)
        if ordinal == 0:
            return self.set_starting_lineup(new_lineup)
        self._check_rotation_ordinal(ordinal)
        self._check_capacity(new_lineup)
        result = recalculate_downstream(self.timeline, ordinal, edited_lineup=new_lineup)
        return self._commit_rotation_edit(result)

    def swap_player(self, ordinal: int, position_id: str, player_in_id: str) -> RebaseResult:
        """
        Put a player at a position from a given point on.

        If the player is already on the field elsewhere, the previous occupant
        of ``position_id`` takes their spot.
        """
        lineup = self.timeline.lineup_at(ordinal).copy()
        displaced = lineup.get(position_id)
        previous_position = lineup.position_of(player_in_id)
        lineup.assign(position_id, player_in_id)
        if displaced is not None and previous_position is not None and previous_position != position_id:
            lineup.assign(previous_position, displaced)
        return self.set_rotation_lineup(ordinal, lineup)

    def clear_position(self, ordinal: int, position_id: str) -> Optional[RebaseResult]:
        """
        Leave a position unfilled.

        Only absolute lineups can be cleared: the starting lineup (ordinal 0)
        and the halftime lineup (the halftime ordinal). Rotation points store
        substitutions, which cannot express an empty position.

        Raises:
            ValueError: For any other ordinal
        """
        if ordinal == 0:
            lineup = self.timeline.starting_lineup.copy()
            lineup.remove_position(position_id)
            return self.set_starting_lineup(lineup)
        if ordinal == self.plan.schedule.halftime_ordinal and self.plan.halftime_lineup is not None:
            lineup = self.plan.halftime_lineup.copy()
            lineup.remove_position(position_id)
            self.set_halftime_lineup(lineup)
            return None
        raise ValueError(
            f"Rotation {ordinal}: positions can only be cleared in the starting or halftime lineup"
        )

    def set_halftime_lineup(self, lineup: Optional[LineupInput], strict: bool = False) -> None:
        """Fix (or with None, release) the lineup used to start the second half."""
        new_lineup = coerce_lineup(lineup, strict=strict) if lineup is not None else None
        if new_lineup is not None:
            self._check_capacity(new_lineup)
        self.plan.halftime_lineup = new_lineup
        encoded = encode_lineup(new_lineup) if new_lineup is not None else None
        self._run_writes([WriteJob(
            SyncCategory.HALFTIME_LINEUP, "halftime_lineup",
            lambda: self.store.save_plan_fields(self.plan_id, {"halftime_lineup": encoded}),
        )])

    # ---------- Generation & schedule ---------- #

    def regenerate_rotations(self, max_substitutions: Optional[int] = None) -> FairRotationResult:
        """
        Replace every rotation point with a fairness-balanced schedule.

        Only points whose stored list changes are written.
        """
        players = eligible_roster(self.players_for_game())
        result = generate_fair_rotations(
            roster=players,
            starting_lineup=self.timeline.starting_lineup,
            schedule=self.plan.schedule,
            field_capacity=self.plan.max_players_on_field,
            exempt_position_id=self.exempt_position_id(),
            halftime_lineup=self.plan.halftime_lineup,
            total_rotations=self.timeline.total_rotations,
            max_substitutions=max_substitutions,
        )

        changed = {}
        for rotation in result.rotations:
            if self.timeline.substitutions_at(rotation.ordinal) != rotation.substitutions:
                changed[rotation.ordinal] = rotation.substitutions
        points = self._stage_rotation_updates(changed)
        logger.info("Plan %s: generated %d rotation(s), %d changed, %d warning(s)",
                    self.plan_id, len(result.rotations), len(points), len(result.warnings))
        self._run_writes(self._point_jobs(points))
        return result

    def change_schedule(self, rotation_interval_minutes: Optional[int] = None,
                        half_length_minutes: Optional[int] = None) -> RotationPointSync:
        """
        Change rotation timing and realign rotation points.

        Stale trailing points are deleted, missing ones created empty and
        minute/half refreshed for the rest.

        Raises:
            ValueError: If a value is not a positive number of minutes
        """
        current = self.plan.schedule
        schedule = ScheduleConfig(
            rotation_interval_minutes=int(rotation_interval_minutes or current.rotation_interval_minutes),
            half_length_minutes=int(half_length_minutes or current.half_length_minutes),
        )
        self.plan.schedule = schedule
        sync = self.plan.ensure_rotation_points()
        self.timeline.set_rotation_points(self.plan.rotation_points)
        logger.info("Plan %s: schedule %s; created %s, pruned %s",
                    self.plan_id, schedule.to_dict(), sync.created, sync.pruned)

        jobs = [WriteJob(SyncCategory.ROTATIONS, "schedule",
                         lambda: self.store.save_plan_fields(self.plan_id, {"schedule": schedule.to_dict()}))]
        jobs.extend(self._sync_jobs(sync))
        self._run_writes(jobs)
        return sync

    def copy_plan_to(self, target_plan_id: str, target_game_id: str) -> Optional[GamePlan]:
        """Duplicate this plan and its rotation points into another game."""
        copied = copy_plan(self.store, self.plan_id, target_plan_id, target_game_id)
        copy_game = getattr(self.availability, "copy_game", None)
        if copied is not None and copy_game is not None:
            copy_game(self.plan.game_id, target_game_id)
        return copied

    def update_availability(self, player_id: str, status: Union[AvailabilityStatus, str],
                            elapsed_minutes: Optional[int] = None,
                            regenerate: bool = False) -> AvailabilityChange:
        """
        Record a player's availability change for this game.

        Late arrivals may play from the second half; injured players until the
        elapsed minute; available and absent players have no window.

        Args:
            player_id: Player to update
            status: New availability status
            elapsed_minutes: Game minute of the change (required for injuries)
            regenerate: Regenerate rotations afterwards

        Raises:
            KeyError: If the player is not on the roster
            ValueError: If an injury has no elapsed minute
        """
        status = AvailabilityStatus(status)
        current = None
        if self.availability is not None:
            current = self.availability.get_availability(self.plan.game_id, player_id)
        if current is None and self.roster is not None:
            current = next((p for p in self.roster.list_players() if p.player_id == player_id), None)
        if current is None:
            raise KeyError(f"Player not found: {player_id}")

        available_from = available_until = None
        if status == AvailabilityStatus.LATE_ARRIVAL:
            available_from = self.plan.schedule.half_length_minutes
        elif status == AvailabilityStatus.INJURED:
            if elapsed_minutes is None:
                raise ValueError("An injury needs the elapsed game minute")
            available_until = int(elapsed_minutes)

        updated = with_availability(current, status, available_from, available_until)
        set_availability = getattr(self.availability, "set_availability", None)
        if set_availability is None:
            raise ValueError("Availability provider does not accept updates")
        set_availability(self.plan.game_id, updated)
        logger.info("Player %s is now %s", player_id, status.value)

        change = AvailabilityChange(
            player=updated,
            affected_ordinals=self.timeline.rotations_involving(player_id, after_minute=elapsed_minutes),
        )
        if regenerate:
            change.regenerated = self.regenerate_rotations()
        return change

    # ---------- External updates ---------- #

    def receive_external_update(self, category: Union[SyncCategory, str], payload: Any) -> bool:
        """
        Hand an externally observed value to the reconciler.

        Returns:
            True if applied now, False if parked behind pending writes
        """
        return self.reconciler.observe(SyncCategory(category), payload)

    def process_external_updates(self, pull: bool = True) -> int:
        """
        Feed store notifications to the reconciler.

        Args:
            pull: Ask the store for undelivered changes first

        Returns:
            Number of notifications handled
        """
        if pull:
            self._pull_store_changes()
        changes: List[PlanChange] = []
        while True:
            try:
                changes.append(self._inbox.get_nowait())
            except queue.Empty:
                break

        rotations_changed = False
        for change in changes:
            if change.category in (SyncCategory.STARTING_LINEUP.value, SyncCategory.HALFTIME_LINEUP.value):
                self.receive_external_update(change.category, change.payload)
            elif change.category in (SyncCategory.ROTATIONS.value, "schedule"):
                rotations_changed = True
            elif change.category == "deleted":
                logger.warning("Plan %s was deleted in the store", self.plan_id)

        # Rotation notifications are per point; the reconciler works on snapshots
        if rotations_changed:
            try:
                fresh = self.store.load_plan(self.plan_id)
            except PlanStoreError as e:
                logger.error("Plan %s: could not reload rotations after a change: %s", self.plan_id, e)
                self.diagnostics.add_warning("rotations", f"Reload failed: {e}")
                return len(changes)
            self.receive_external_update(SyncCategory.ROTATIONS, {
                "schedule": fresh.schedule.to_dict(),
                "rotation_points": [p.to_dict() for p in fresh.rotation_points],
            })
        return len(changes)

    def _pull_store_changes(self) -> None:
        # Remote stores are polled; local stores release their queued notifications
        poll_changes = getattr(self.store, "poll_changes", None)
        flush_notifications = getattr(self.store, "flush_notifications", None)
        try:
            if poll_changes is not None:
                poll_changes(self.plan_id)
            elif flush_notifications is not None:
                flush_notifications()
        except PlanStoreError as e:
            logger.error("Plan %s: could not fetch store changes: %s", self.plan_id, e)
            self.diagnostics.add_warning("store", f"Change feed unavailable: {e}")

    def _on_store_change(self, change: PlanChange) -> None:
        # May run on any thread; reconciler work happens in process_external_updates
        if change.plan_id == self.plan_id:
            self._inbox.put(change)

    def _apply_external_starting_lineup(self, payload: Any) -> None:
        lineup = self._decode_external_lineup("starting_lineup", payload)
        if lineup is None:
            return
        self.plan.starting_lineup = lineup
        self.timeline.set_starting_lineup(lineup)

    def _apply_external_halftime_lineup(self, payload: Any) -> None:
        if payload is None:
            self.plan.halftime_lineup = None
            return
        lineup = self._decode_external_lineup("halftime_lineup", payload)
        if lineup is not None:
            self.plan.halftime_lineup = lineup

    def _apply_external_rotations(self, payload: Any) -> None:
        if isinstance(payload, Mapping):
            if payload.get("schedule"):
                try:
                    self.plan.schedule = ScheduleConfig.from_dict(payload["schedule"])
                except (AttributeError, TypeError, ValueError) as e:
                    logger.error("Ignoring external schedule: %s", e)
                    self.diagnostics.add_corrupt_payload("schedule", str(e))
            records = payload.get("rotation_points") or []
        else:
            records = payload or []

        local = {point.ordinal: point for point in self.plan.rotation_points}
        points: Dict[int, RotationPoint] = {}
        for index, record in enumerate(records):
            if isinstance(record, RotationPoint):
                points[record.ordinal] = record
                continue
            try:
                point = RotationPoint.from_dict(record)
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                ordinal = self._record_ordinal(record)
                logger.error("Ignoring external rotation record %s: %r", ordinal or index, e)
                self.diagnostics.add_corrupt_payload("rotations", f"Unreadable rotation record: {e!r}", ordinal=ordinal)
                if ordinal in local:
                    points[ordinal] = local[ordinal]
                continue
            points[point.ordinal] = point

        # Unreadable records must not change the number of points
        sync = sync_rotation_points(list(points.values()), self.plan.schedule)
        self.plan.rotation_points = sync.points
        self.timeline.set_rotation_points(self.plan.rotation_points)

    @staticmethod
    def _record_ordinal(record: Any) -> Optional[int]:
        try:
            return int(record["ordinal"])
        except (KeyError, TypeError, ValueError):
            return None

    def _decode_external_lineup(self, source: str, payload: Any) -> Optional[LineupState]:
        try:
            return coerce_lineup(payload)
        except (PayloadDecodeError, KeyError, TypeError, ValueError) as e:
            logger.error("Ignoring external %s update: %s", source, e)
            self.diagnostics.add_corrupt_payload(source, str(e))
            return None

    # ---------- Internals ---------- #

    def _check_rotation_ordinal(self, ordinal: int) -> None:
        if ordinal < 1 or ordinal > self.timeline.total_rotations:
            raise IndexError(f"Rotation {ordinal} is outside 1..{self.timeline.total_rotations}")

    def _check_capacity(self, lineup: LineupState) -> None:
        if len(lineup) > self.plan.max_players_on_field:
            raise ValueError(
                f"Lineup has {len(lineup)} players but only {self.plan.max_players_on_field} fit on the field"
            )

    def _commit_rotation_edit(self, result: RebaseResult) -> RebaseResult:
        changes = {result.edited_ordinal: list(result.edited_substitutions or [])}
        changes.update({u.ordinal: list(u.substitutions) for u in result.updates})
        points = self._stage_rotation_updates(changes)
        self._run_writes(self._point_jobs(points))
        return result

    def _stage_rotation_updates(self, changes: Mapping[int, Sequence[Substitution]]) -> List[RotationPoint]:
        """Apply new substitution lists locally; returns the points to write."""
        if not changes:
            return []
        updated = []
        points = []
        for point in self.plan.rotation_points:
            if point.ordinal in changes:
                point = replace(point, planned_substitutions=encode_substitutions(changes[point.ordinal]))
                updated.append(point)
            points.append(point)
        self.plan.rotation_points = points
        self.timeline.set_rotation_points(points)
        return updated

    def _point_jobs(self, points: Iterable[RotationPoint]) -> List[WriteJob]:
        return [
            WriteJob(SyncCategory.ROTATIONS, point.ordinal,
                     lambda point=point: self.store.save_rotation_point(self.plan_id, point))
            for point in points
        ]

    def _sync_jobs(self, sync: RotationPointSync) -> List[WriteJob]:
        changed = set(sync.created) | set(sync.retimed)
        jobs = self._point_jobs(p for p in sync.points if p.ordinal in changed)
        jobs.extend(
            WriteJob(SyncCategory.ROTATIONS, ordinal,
                     lambda ordinal=ordinal: self.store.delete_rotation_point(self.plan_id, ordinal))
            for ordinal in sync.pruned
        )
        return jobs

    def _run_writes(self, jobs: List[WriteJob]) -> None:
        """
        Run writes concurrently and wait for all of them.

        Store notifications received while waiting go through the reconciler
        and are parked behind the pending writes.

        Raises:
            PlanStoreError: The error of a single failed write
            BatchWriteError: If several writes ran and any failed
        """
        if not jobs:
            return

        for job in jobs:
            self.reconciler.write_started(job.category)

        failed: Dict[Any, Exception] = {}
        succeeded: List[Any] = []
        workers = min(len(jobs), self.max_workers)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="plan-write") as executor:
            futures: Dict[Future, WriteJob] = {executor.submit(job.action): job for job in jobs}
            remaining = set(futures)
            while remaining:
                done, remaining = wait(remaining, timeout=WAIT_POLL_SECONDS, return_when=FIRST_COMPLETED)
                self.process_external_updates(pull=False)
                for future in done:
                    job = futures[future]
                    error = future.exception()
                    if error is None:
                        succeeded.append(job.key)
                    else:
                        logger.error("Plan %s: write %s failed: %s", self.plan_id, job.key, error)
                        failed[job.key] = error
                    self.reconciler.write_settled(job.category)

        # Echoes of the writes above are queued by now; apply them while idle
        self.process_external_updates()
        if not failed:
            return
        if len(jobs) == 1:
            raise next(iter(failed.values()))
        raise BatchWriteError(failed, succeeded)
