"""
Unit tests for the schedule, rotation point and game plan models.
"""
import unittest

from rotation_planner.models import (
    GamePlan, LineupState, Player, RotationPoint, ScheduleConfig, Substitution,
    encode_substitutions, sync_rotation_points
)


class TestScheduleConfig(unittest.TestCase):
    """Test derived rotation timing."""

    def test_default_schedule(self) -> None:
        schedule = ScheduleConfig(rotation_interval_minutes=10, half_length_minutes=30)

        self.assertEqual(schedule.rotations_per_half, 2)
        self.assertEqual(schedule.total_rotations, 5)
        self.assertEqual(schedule.halftime_ordinal, 3)
        self.assertEqual(schedule.game_length_minutes, 60)
        self.assertEqual([schedule.minute_for(n) for n in range(1, 6)], [10, 20, 30, 40, 50])
        self.assertEqual([schedule.half_for(n) for n in range(1, 6)], [1, 1, 2, 2, 2])

    def test_interval_not_dividing_half(self) -> None:
        schedule = ScheduleConfig(rotation_interval_minutes=15, half_length_minutes=40)

        self.assertEqual(schedule.rotations_per_half, 1)
        self.assertEqual(schedule.total_rotations, 3)
        self.assertEqual([schedule.minute_for(n) for n in range(1, 4)], [15, 40, 55])

    def test_interval_longer_than_half_leaves_only_halftime(self) -> None:
        schedule = ScheduleConfig(rotation_interval_minutes=40, half_length_minutes=30)

        self.assertEqual(schedule.rotations_per_half, 0)
        self.assertEqual(schedule.total_rotations, 1)
        self.assertEqual(schedule.halftime_ordinal, 1)
        self.assertEqual(schedule.minute_for(1), 30)

    def test_segment_end_minute(self) -> None:
        schedule = ScheduleConfig(10, 30)

        self.assertEqual(schedule.segment_end_minute(0), 10)
        self.assertEqual(schedule.segment_end_minute(2), 30)
        self.assertEqual(schedule.segment_end_minute(5), 60)

    def test_segment_end_minute_with_fewer_rotations(self) -> None:
        schedule = ScheduleConfig(10, 30)

        self.assertEqual(schedule.segment_end_minute(2, total_rotations=3), 30)
        self.assertEqual(schedule.segment_end_minute(3, total_rotations=3), 60)

    def test_invalid_values_raise(self) -> None:
        with self.assertRaises(ValueError):
            ScheduleConfig(rotation_interval_minutes=0, half_length_minutes=30)
        with self.assertRaises(ValueError):
            ScheduleConfig(rotation_interval_minutes=10, half_length_minutes=-5)

    def test_dict_round_trip(self) -> None:
        schedule = ScheduleConfig(12, 35)

        self.assertEqual(ScheduleConfig.from_dict(schedule.to_dict()), schedule)
        self.assertEqual(ScheduleConfig.from_dict(None), ScheduleConfig())


class TestSyncRotationPoints(unittest.TestCase):
    """Test aligning rotation points with a schedule."""

    def test_prunes_stale_trailing_points(self) -> None:
        existing = [RotationPoint(ordinal=n, game_minute=n * 10) for n in range(1, 8)]

        sync = sync_rotation_points(existing, ScheduleConfig(10, 30))

        self.assertEqual([p.ordinal for p in sync.points], [1, 2, 3, 4, 5])
        self.assertEqual(sync.pruned, [6, 7])

    def test_creates_missing_points_empty(self) -> None:
        payload = encode_substitutions([Substitution("a", "p1", "p2")])
        existing = [RotationPoint(ordinal=1, game_minute=10, half=1, planned_substitutions=payload)]

        sync = sync_rotation_points(existing, ScheduleConfig(10, 30))

        self.assertEqual(sync.created, [2, 3, 4, 5])
        self.assertEqual(sync.points[0].planned_substitutions, payload)
        self.assertEqual(sync.points[3].planned_substitutions, "[]")

    def test_refreshes_minute_and_half(self) -> None:
        existing = [RotationPoint(ordinal=n, game_minute=n * 10, half=1) for n in range(1, 6)]

        sync = sync_rotation_points(existing, ScheduleConfig(10, 30))

        self.assertEqual(sync.retimed, [3, 4, 5])
        self.assertEqual([p.half for p in sync.points], [1, 1, 2, 2, 2])


class TestGamePlan(unittest.TestCase):
    """Test GamePlan serialization."""

    def test_json_round_trip(self) -> None:
        plan = GamePlan(
            plan_id="plan-1",
            game_id="game-1",
            schedule=ScheduleConfig(10, 30),
            starting_lineup=LineupState({"gk": "g", "lb": "p1"}),
            halftime_lineup=LineupState({"gk": "g", "lb": "p2"}),
            max_players_on_field=7,
        )
        plan.ensure_rotation_points()

        restored = GamePlan.from_json(plan.to_json())

        self.assertEqual(restored, plan)
        self.assertEqual(restored.starting_lineup.positions(), ["gk", "lb"])

    def test_corrupt_lineup_loads_empty_with_warning(self) -> None:
        data = {"plan_id": "plan-1", "starting_lineup": "{broken"}

        with self.assertLogs("rotation_planner.models.game_plan", level="ERROR"):
            plan = GamePlan.from_json(data)

        self.assertEqual(len(plan.starting_lineup), 0)
        self.assertEqual(len(plan.load_warnings), 1)
        self.assertTrue(plan.load_warnings[0].startswith("starting_lineup"))

    def test_missing_halftime_lineup_is_none(self) -> None:
        plan = GamePlan.from_json({"plan_id": "plan-1"})

        self.assertIsNone(plan.halftime_lineup)
        self.assertEqual(plan.rotation_points, [])


class TestPlayer(unittest.TestCase):
    """Test Player availability windows."""

    def test_window_must_cover_whole_segment(self) -> None:
        player = Player("p1", available_from_minute=30, available_until_minute=50)

        self.assertFalse(player.is_available_between(20, 30))
        self.assertTrue(player.is_available_between(30, 40))
        self.assertTrue(player.is_available_between(40, 50))
        self.assertFalse(player.is_available_between(40, 60))

    def test_preferred_positions_from_text(self) -> None:
        player = Player("p1", preferred_positions="st, cm,")

        self.assertEqual(player.preferred_positions, ("st", "cm"))
        self.assertTrue(player.prefers("cm"))

    def test_dict_round_trip(self) -> None:
        player = Player("p1", number=7, preferred_positions=("st",), status="injured",
                        available_until_minute=20)

        self.assertEqual(Player.from_dict(player.to_dict()), player)


if __name__ == "__main__":
    unittest.main()
