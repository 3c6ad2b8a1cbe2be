"""Tests for applying and diffing substitution lists."""

from rotation_planner.models import LineupState, Substitution
from rotation_planner.services import apply_substitutions, cleared_positions, diff_lineups


def test_apply_substitutions_in_order():
    base = LineupState({"a": "p1", "b": "p2"})

    result = apply_substitutions(base, [Substitution("a", "p1", "p3"), Substitution("b", "p2", "p1")])

    assert result.as_dict() == {"a": "p3", "b": "p1"}
    assert result.position_of("p2") is None


def test_apply_removes_incoming_player_from_other_position():
    base = LineupState({"a": "p1", "b": "p2"})

    result = apply_substitutions(base, [Substitution("a", "p1", "p2")])

    assert result.as_dict() == {"a": "p2"}


def test_apply_does_not_modify_base():
    base = LineupState({"a": "p1"})

    apply_substitutions(base, [Substitution("a", "p1", "p2")])

    assert base.as_dict() == {"a": "p1"}


def test_apply_empty_list_is_identity():
    base = LineupState({"a": "p1", "b": "p2"})

    assert apply_substitutions(base, []) == base


def test_diff_reports_changed_positions_in_target_order():
    before = LineupState({"lb": "p1", "st": "p2", "cm": "p3"})
    after = LineupState({"cm": "p4", "lb": "p1", "st": "p5"})

    assert diff_lineups(before, after) == [
        Substitution("cm", "p3", "p4"),
        Substitution("st", "p2", "p5"),
    ]


def test_diff_of_identical_lineups_is_empty():
    lineup = LineupState({"a": "p1", "b": "p2"})

    assert diff_lineups(lineup, lineup.copy()) == []


def test_diff_fills_new_position_without_outgoing_player():
    before = LineupState({"a": "p1"})
    after = LineupState({"a": "p1", "b": "p2"})

    assert diff_lineups(before, after) == [Substitution("b", None, "p2")]


def test_diff_never_expresses_clearing():
    before = LineupState({"a": "p1", "b": "p2"})
    after = LineupState({"a": "p1"})

    assert diff_lineups(before, after) == []
    assert cleared_positions(before, after) == ["b"]


def test_apply_diff_handles_swap():
    before = LineupState({"a": "p1", "b": "p2"})
    after = LineupState({"a": "p2", "b": "p1"})

    subs = diff_lineups(before, after)

    assert subs == [Substitution("a", "p1", "p2"), Substitution("b", "p2", "p1")]
    assert apply_substitutions(before, subs) == after


def test_apply_diff_handles_three_way_cycle():
    before = LineupState({"a": "p1", "b": "p2", "c": "p3"})
    after = LineupState({"a": "p2", "b": "p3", "c": "p1"})

    assert apply_substitutions(before, diff_lineups(before, after)) == after


def test_apply_diff_reaches_target_with_bench_players():
    before = LineupState({"gk": "g", "a": "p1", "b": "p2", "c": "p3"})
    after = LineupState({"gk": "g", "a": "p4", "b": "p1", "c": "p5"})

    assert apply_substitutions(before, diff_lineups(before, after)) == after


def test_diff_of_applied_canonical_list_returns_it():
    lineup = LineupState({"a": "p1", "b": "p2", "c": "p3"})
    subs = [Substitution("a", "p1", "p4"), Substitution("c", "p3", "p5")]

    assert diff_lineups(lineup, apply_substitutions(lineup, subs)) == subs


def test_every_applied_lineup_keeps_players_unique():
    base = LineupState({"a": "p1", "b": "p2", "c": "p3"})
    subs = [Substitution("a", "p1", "p2"), Substitution("c", "p3", "p2"), Substitution("b", None, "p1")]

    result = apply_substitutions(base, subs)

    assert len(result.players()) == len(set(result.players()))
    assert result.as_dict() == {"c": "p2", "b": "p1"}
