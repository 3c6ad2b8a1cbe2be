"""Tests for play-time projection and plan reports."""

import csv
import io

import pytest

from rotation_planner.models import (
    GamePlan, LineupState, Player, ScheduleConfig, Substitution, encode_substitutions
)
from rotation_planner.services import PlanAnalyticsService, RotationTimeline, project_play_time


def _plan():
    plan = GamePlan(
        plan_id="plan-1",
        game_id="game-1",
        schedule=ScheduleConfig(10, 30),
        starting_lineup=LineupState({"gk": "g", "a": "p1", "b": "p2"}),
    )
    plan.ensure_rotation_points()
    plan.get_point(1).planned_substitutions = encode_substitutions([Substitution("a", "p1", "p3")])
    plan.get_point(3).planned_substitutions = encode_substitutions([Substitution("a", "p3", "p1")])
    return plan


ROSTER = [
    Player("g", number=1),
    Player("p1", number=5),
    Player("p2", number=2),
    Player("p3", number=3),
    Player("p4", number=4),
]


def test_project_play_time_credits_segments():
    plan = _plan()
    timeline = RotationTimeline(plan.starting_lineup, plan.rotation_points)

    projection = project_play_time(timeline, plan.schedule, exempt_position_id="gk")

    assert projection.minutes == {"g": 60, "p1": 40, "p2": 60, "p3": 20}
    assert projection.ordinals["p1"] == [0, 3, 4, 5]
    assert projection.ordinals["p3"] == [1, 2]
    assert projection.exempt_players == {"g"}


def test_generate_plan_report_targets_and_fairness():
    analytics = PlanAnalyticsService(_plan(), roster=ROSTER, exempt_position_id="gk")

    report = analytics.generate_plan_report()

    assert report.plan_id == "plan-1"
    assert report.game_length_minutes == 60
    assert report.rotation_count == 5
    assert [s.player_id for s in report.players] == ["p4", "p3", "p1", "p2", "g"]

    players = {s.player_id: s for s in report.players}
    assert players["p2"].target_minutes == pytest.approx(30.0)
    assert players["p2"].delta_minutes == pytest.approx(30.0)
    assert players["p2"].fairness == "over"
    assert players["p4"].projected_minutes == 0
    assert players["p4"].fairness == "under"
    assert players["g"].exempt
    assert players["g"].fairness == "exempt"

    assert report.fairness_counts == {"under": 2, "ok": 0, "over": 2}
    assert report.average_minutes == pytest.approx(30.0)
    assert report.median_minutes == pytest.approx(30.0)
    assert (report.min_minutes, report.max_minutes, report.spread_minutes) == (0, 60, 60)


def test_report_without_roster_uses_lineups():
    report = PlanAnalyticsService(_plan(), exempt_position_id="gk").generate_plan_report()

    assert {s.player_id for s in report.players} == {"g", "p1", "p2", "p3"}
    assert all(s.number is None for s in report.players)
    assert report.fairness_counts == {"under": 1, "ok": 1, "over": 1}


def test_report_includes_timeline_diagnostics():
    plan = _plan()
    plan.get_point(2).planned_substitutions = "garbage"

    report = PlanAnalyticsService(plan).generate_plan_report()

    assert report.diagnostics[0]["ordinal"] == 2


def test_generate_report_csv_contains_player_rows():
    analytics = PlanAnalyticsService(_plan(), roster=ROSTER, exempt_position_id="gk")

    csv_text = analytics.generate_report_csv()
    rows = list(csv.reader(io.StringIO(csv_text)))

    assert rows[0] == ["Rotation Plan Report"]
    assert rows[1] == ["Plan", "plan-1"]
    header_index = rows.index([
        "Player", "Number", "Projected Minutes", "Target Minutes",
        "Delta Minutes", "Rotations On Field", "Exempt", "Fairness",
    ])
    table = {row[0]: row for row in rows[header_index + 1:]}
    assert table["p2"] == ["p2", "2", "60", "30.0", "+30.0", "0 1 2 3 4 5", "no", "over"]
    assert table["p4"][2] == "0"
    assert table["p4"][5] == ""
    assert table["g"][6:] == ["yes", "exempt"]


def test_generate_report_csv_requires_players():
    plan = GamePlan(plan_id="empty", schedule=ScheduleConfig(10, 30))
    plan.ensure_rotation_points()

    with pytest.raises(ValueError):
        PlanAnalyticsService(plan).generate_report_csv()


def test_custom_export_service_is_used():
    class Exporter:
        def export_to_csv(self, report):
            return f"custom,{report.plan_id}"

    analytics = PlanAnalyticsService(_plan(), export_service=Exporter())

    assert analytics.generate_report_csv() == "custom,plan-1"
