"""Play-time projection and reporting for rotation plans."""

from __future__ import annotations

import csv
import datetime as dt
import io
import statistics
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Sequence, Set

from ..models import GamePlan, Player, PlanReport, PlayerMinutesSummary, ScheduleConfig
from ..utils import FAIRNESS_ORDER, FAIRNESS_THRESHOLD_MIN, now_ts
from .rotation_timeline import RotationTimeline


class ExportServiceInterface(Protocol):
    """Interface for report export."""

    def export_to_csv(self, report: PlanReport) -> str:
        """Export report to CSV format."""
        ...


@dataclass
class PlayTimeProjection:
    """Projected minutes and on-field ordinals per player."""
    minutes: Dict[str, int] = field(default_factory=dict)
    ordinals: Dict[str, List[int]] = field(default_factory=dict)
    exempt_players: Set[str] = field(default_factory=set)


def project_play_time(timeline: RotationTimeline, schedule: ScheduleConfig,
                      exempt_position_id: Optional[str] = None) -> PlayTimeProjection:
    """
    Minutes each player would play if the plan ran as written.

    The lineup at ordinal ``n`` is credited with the segment from its
    rotation minute up to the next rotation (or the final whistle).
    """
    projection = PlayTimeProjection()
    total = timeline.total_rotations
    for ordinal in range(total + 1):
        start = schedule.minute_for(ordinal)
        length = max(0, schedule.segment_end_minute(ordinal, total) - start)
        for position_id, player_id in timeline.lineup_at(ordinal).items():
            projection.minutes[player_id] = projection.minutes.get(player_id, 0) + length
            projection.ordinals.setdefault(player_id, []).append(ordinal)
            if position_id == exempt_position_id:
                projection.exempt_players.add(player_id)
    return projection


class PlanReportExporter:
    """CSV export of a plan report."""

    def export_to_csv(self, report: PlanReport) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")

        generated_dt = dt.datetime.fromtimestamp(report.generated_ts)
        writer.writerow(["Rotation Plan Report"])
        writer.writerow(["Plan", report.plan_id])
        writer.writerow(["Generated", generated_dt.isoformat(timespec="seconds")])
        writer.writerow(["Game Length (min)", report.game_length_minutes])
        writer.writerow(["Rotations", report.rotation_count])
        writer.writerow(["Average Minutes", round(report.average_minutes, 2)])
        writer.writerow(["Median Minutes", round(report.median_minutes, 2)])
        writer.writerow(["Minimum Minutes", report.min_minutes])
        writer.writerow(["Maximum Minutes", report.max_minutes])
        writer.writerow(["Spread (min)", report.spread_minutes])

        fairness_counts = report.fairness_counts or {}
        writer.writerow(["Players Under Target", fairness_counts.get("under", 0)])
        writer.writerow(["Players On Target", fairness_counts.get("ok", 0)])
        writer.writerow(["Players Over Target", fairness_counts.get("over", 0)])
        writer.writerow([])

        writer.writerow([
            "Player", "Number", "Projected Minutes", "Target Minutes",
            "Delta Minutes", "Rotations On Field", "Exempt", "Fairness",
        ])
        for summary in report.players:
            writer.writerow([
                summary.player_id,
                summary.number or "",
                summary.projected_minutes,
                round(summary.target_minutes, 1),
                f"{summary.delta_minutes:+.1f}",
                " ".join(str(o) for o in summary.on_field_ordinals),
                "yes" if summary.exempt else "no",
                summary.fairness,
            ])

        csv_text = buffer.getvalue()
        buffer.close()
        return csv_text


class PlanAnalyticsService:
    """
    Generate reports describing projected playing time of a plan.

    Players who spend time in the exempt position are listed but left out of
    the target, the statistics and the fairness counts.
    """

    def __init__(
        self,
        plan: GamePlan,
        roster: Optional[Sequence[Player]] = None,
        exempt_position_id: Optional[str] = None,
        timeline: Optional[RotationTimeline] = None,
        export_service: Optional[ExportServiceInterface] = None,
    ) -> None:
        self.plan = plan
        self.roster = list(roster or [])
        self.exempt_position_id = exempt_position_id
        self.timeline = timeline or RotationTimeline(plan.starting_lineup, plan.rotation_points)
        self.export_service = export_service or PlanReportExporter()

    def generate_plan_report(self) -> PlanReport:
        """Build a :class:`PlanReport` snapshot for the plan."""
        projection = project_play_time(self.timeline, self.plan.schedule, self.exempt_position_id)

        numbers = {p.player_id: p.number for p in self.roster}
        player_ids = list(dict.fromkeys([p.player_id for p in self.roster] + list(projection.minutes)))
        rotating = [pid for pid in player_ids if pid not in projection.exempt_players]

        field_minutes = sum(projection.minutes.get(pid, 0) for pid in rotating)
        target = field_minutes / len(rotating) if rotating else 0.0

        summaries: List[PlayerMinutesSummary] = []
        for pid in player_ids:
            minutes = projection.minutes.get(pid, 0)
            exempt = pid in projection.exempt_players
            delta = 0.0 if exempt else minutes - target
            summaries.append(PlayerMinutesSummary(
                player_id=pid,
                number=numbers.get(pid),
                projected_minutes=minutes,
                on_field_ordinals=list(projection.ordinals.get(pid, [])),
                exempt=exempt,
                target_minutes=0.0 if exempt else target,
                delta_minutes=delta,
                fairness="exempt" if exempt else self._classify_fairness(delta),
            ))

        summaries.sort(key=lambda item: (
            FAIRNESS_ORDER.get(item.fairness, len(FAIRNESS_ORDER)),
            item.delta_minutes,
            item.number if item.number is not None else 0,
            item.player_id,
        ))

        totals = [s.projected_minutes for s in summaries if not s.exempt]
        fairness_counter = Counter(s.fairness for s in summaries if not s.exempt)
        fairness_counts = {
            "under": fairness_counter.get("under", 0),
            "ok": fairness_counter.get("ok", 0),
            "over": fairness_counter.get("over", 0),
        }

        return PlanReport(
            generated_ts=now_ts(),
            plan_id=self.plan.plan_id,
            game_length_minutes=self.plan.schedule.game_length_minutes,
            rotation_count=self.timeline.total_rotations,
            players=summaries,
            average_minutes=statistics.mean(totals) if totals else 0.0,
            median_minutes=statistics.median(totals) if totals else 0.0,
            min_minutes=min(totals) if totals else 0,
            max_minutes=max(totals) if totals else 0,
            spread_minutes=(max(totals) - min(totals)) if totals else 0,
            fairness_counts=fairness_counts,
            diagnostics=self.timeline.diagnostics.to_list(),
        )

    def generate_report_csv(self, report: Optional[PlanReport] = None) -> str:
        """
        Return a CSV document describing projected playing time.

        Args:
            report: Optional pre-generated report; a fresh one is built when omitted

        Returns:
            CSV text with summary rows followed by one row per player

        Raises:
            ValueError: If the plan puts nobody on the field
        """
        report = report or self.generate_plan_report()
        if not report.players:
            raise ValueError("Cannot export a report for a plan without players")
        return self.export_service.export_to_csv(report)

    @staticmethod
    def _classify_fairness(delta_minutes: float) -> str:
        if delta_minutes <= -FAIRNESS_THRESHOLD_MIN:
            return "under"
        if delta_minutes >= FAIRNESS_THRESHOLD_MIN:
            return "over"
        return "ok"
