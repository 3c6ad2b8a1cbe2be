"""
Lineup algebra: applying substitution lists and diffing lineups.

Rotation points store substitutions relative to the previous point, so the
planner constantly converts between full lineups and compact substitution
lists. Both functions here are pure; inputs are never modified.
"""

from typing import Iterable, List

from ..models import LineupState, Substitution


def apply_substitutions(base: LineupState, substitutions: Iterable[Substitution]) -> LineupState:
    """
    Apply substitutions to a lineup, in order.

    For each substitution the incoming player is removed from any other
    position they hold, then placed at the target position. Later
    substitutions see the effect of earlier ones. ``player_out_id`` is
    informational: the target position is overwritten whoever holds it.

    Args:
        base: Lineup before the substitutions
        substitutions: Ordered substitutions

    Returns:
        New lineup; uniqueness of players always holds
    """
    lineup = base.copy()
    for sub in substitutions:
        lineup.assign(sub.position_id, sub.player_in_id)
    return lineup


def diff_lineups(before: LineupState, after: LineupState) -> List[Substitution]:
    """
    Compute the substitutions turning ``before`` into ``after``.

    One substitution per position of ``after`` whose occupant differs from
    ``before``, in ``after``'s position order. Positions cleared in ``after``
    produce nothing: clearing is not a substitution.

    Example:
        >>> before = LineupState({"lb": "p1", "st": "p2"})
        >>> after = LineupState({"lb": "p3", "st": "p2"})
        >>> diff_lineups(before, after)
        [Substitution(position_id='lb', player_out_id='p1', player_in_id='p3')]
    """
    substitutions = []
    for position_id, player_id in after.items():
        previous = before.get(position_id)
        if previous != player_id:
            substitutions.append(Substitution(position_id, previous, player_id))
    return substitutions


def cleared_positions(before: LineupState, after: LineupState) -> List[str]:
    """Positions filled in ``before`` that ``after`` leaves unfilled."""
    return [position_id for position_id in before if position_id not in after]
