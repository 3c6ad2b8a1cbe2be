"""
Unit tests for the consistency rebaser.

Editing a rotation point must leave every later lineup exactly as it was.
"""
import unittest

from rotation_planner.models import LineupState, RotationPoint, Substitution, encode_substitutions
from rotation_planner.services import (
    RotationTimeline, rebase_downstream, recalculate_downstream, snapshot_intents
)


def _timeline(start, subs_by_ordinal):
    points = [
        RotationPoint(ordinal=o, game_minute=o * 10, planned_substitutions=encode_substitutions(subs))
        for o, subs in sorted(subs_by_ordinal.items())
    ]
    return RotationTimeline(start, points)


class TestRecalculateDownstream(unittest.TestCase):
    """Test the edit-then-rebase scenarios."""

    def setUp(self) -> None:
        self.start = LineupState({"gk": "g", "a": "p1", "b": "p2", "c": "p3"})
        self.stored = {
            1: [Substitution("a", "p1", "p4")],
            2: [Substitution("b", "p2", "p5")],
            3: [Substitution("c", "p3", "p2")],
            4: [Substitution("a", "p4", "p1")],
        }
        self.timeline = _timeline(self.start, self.stored)
        self.before = self.timeline.lineups()

    def _after(self, result):
        overrides = {u.ordinal: list(u.substitutions) for u in result.updates}
        if result.edited_ordinal > 0:
            overrides[result.edited_ordinal] = result.edited_substitutions
            return self.timeline.with_overrides(overrides)
        subs = {o: overrides.get(o, s) for o, s in self.stored.items()}
        return _timeline(result.edited_lineup, subs)

    def test_editing_point_two_keeps_point_four(self) -> None:
        edited = [Substitution("b", "p2", "p6")]

        result = recalculate_downstream(self.timeline, 2, edited_substitutions=edited)

        self.assertEqual(result.edited_substitutions, edited)
        self.assertEqual(result.changed_ordinals, [3])
        self.assertEqual(
            list(result.updates[0].substitutions),
            [Substitution("b", "p6", "p5"), Substitution("c", "p3", "p2")],
        )
        after = self._after(result)
        self.assertEqual(after.lineup_at(2).get("b"), "p6")
        self.assertEqual(after.lineup_at(3), self.before[3])
        self.assertEqual(after.lineup_at(4), self.before[4])

    def test_rebase_is_idempotent(self) -> None:
        edited = [Substitution("b", "p2", "p6")]
        first = recalculate_downstream(self.timeline, 2, edited_substitutions=edited)

        rebased = self._after(first)
        second = recalculate_downstream(rebased, 2, edited_substitutions=edited)

        self.assertEqual(second.updates, [])

    def test_editing_starting_lineup_rewrites_first_point(self) -> None:
        new_start = LineupState({"gk": "g", "a": "p6", "b": "p2", "c": "p3"})

        result = recalculate_downstream(self.timeline, 0, edited_lineup=new_start)

        self.assertIsNone(result.edited_substitutions)
        self.assertEqual(result.changed_ordinals, [1])
        self.assertEqual(list(result.updates[0].substitutions), [Substitution("a", "p6", "p4")])
        after = self._after(result)
        for ordinal in range(1, 5):
            self.assertEqual(after.lineup_at(ordinal), self.before[ordinal])

    def test_edit_by_lineup_diffs_against_predecessor(self) -> None:
        target = LineupState({"gk": "g", "a": "p4", "b": "p6", "c": "p3"})

        result = recalculate_downstream(self.timeline, 2, edited_lineup=target)

        self.assertEqual(result.edited_substitutions, [Substitution("b", "p2", "p6")])
        self.assertEqual(result.edited_lineup, target)
        self.assertEqual(result.warnings, [])

    def test_clearing_at_rotation_point_is_reported(self) -> None:
        target = LineupState({"gk": "g", "a": "p4", "b": "p5"})

        with self.assertLogs("rotation_planner.services.rebaser", level="WARNING"):
            result = recalculate_downstream(self.timeline, 2, edited_lineup=target)

        self.assertEqual(len(result.warnings), 1)
        self.assertIn("c", result.warnings[0])
        self.assertEqual(result.edited_lineup.get("c"), "p3")
        self.assertEqual(result.updates, [])

    def test_last_point_has_no_downstream(self) -> None:
        result = recalculate_downstream(self.timeline, 4, edited_substitutions=[])

        self.assertEqual(result.updates, [])
        self.assertEqual(result.overrides, {})

    def test_missing_edit_raises(self) -> None:
        with self.assertRaises(ValueError):
            recalculate_downstream(self.timeline, 0)
        with self.assertRaises(ValueError):
            recalculate_downstream(self.timeline, 2)

    def test_out_of_range_ordinal_raises(self) -> None:
        with self.assertRaises(IndexError):
            recalculate_downstream(self.timeline, 5, edited_substitutions=[])

    def test_timeline_is_not_modified(self) -> None:
        recalculate_downstream(self.timeline, 2, edited_substitutions=[Substitution("b", "p2", "p6")])

        self.assertEqual(self.timeline.lineups(), self.before)


class TestIntentSnapshot(unittest.TestCase):
    """The snapshot pass must be complete and immutable."""

    def setUp(self) -> None:
        start = LineupState({"a": "p1", "b": "p2"})
        self.timeline = _timeline(start, {
            1: [Substitution("a", "p1", "p3")],
            2: [Substitution("b", "p2", "p1")],
        })

    def test_snapshot_captures_downstream_lineups(self) -> None:
        snapshot = snapshot_intents(self.timeline, 1)

        self.assertEqual(snapshot.downstream_ordinals, [2])
        self.assertEqual(snapshot.intents[2], self.timeline.lineup_at(2))
        self.assertEqual(snapshot.predecessor, self.timeline.lineup_at(0))

    def test_snapshot_is_read_only(self) -> None:
        snapshot = snapshot_intents(self.timeline, 0)

        with self.assertRaises(TypeError):
            snapshot.intents[1] = LineupState()
        with self.assertRaises(TypeError):
            snapshot.intents[1].assign("a", "p9")

    def test_rebase_from_snapshot(self) -> None:
        snapshot = snapshot_intents(self.timeline, 1)
        edited = LineupState({"a": "p4", "b": "p2"})

        result = rebase_downstream(snapshot, edited, [Substitution("a", "p1", "p4")])

        self.assertEqual(result.changed_ordinals, [2])
        self.assertEqual(
            list(result.updates[0].substitutions),
            [Substitution("a", "p4", "p3"), Substitution("b", "p2", "p1")],
        )
        self.assertEqual(result.updates[0].payload, encode_substitutions(result.updates[0].substitutions))


if __name__ == "__main__":
    unittest.main()
