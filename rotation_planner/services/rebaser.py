"""
Consistency rebaser for relative substitution chains.

Each rotation point stores substitutions relative to its predecessor, so
editing an earlier point silently changes what every later point means. The
rebaser re-expresses the later points so the lineups the coach already
approved stay exactly as they were.

It runs in two passes that must not be interleaved:

1. :func:`snapshot_intents` captures the absolute lineup of every downstream
   point from the pre-edit data and returns an immutable snapshot.
2. :func:`rebase_downstream` walks downstream points in order, diffing the
   already-rebased predecessor against each captured intent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence

from ..models import LineupState, Substitution, encode_substitutions
from .lineup_algebra import apply_substitutions, cleared_positions, diff_lineups
from .rotation_timeline import RotationTimeline

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntentSnapshot:
    """
    Pre-edit absolute lineups of every point after the edited one.

    Attributes:
        edited_ordinal: The point being edited (0 = starting lineup)
        predecessor: Pre-edit lineup just before the edited point
        intents: Read-only mapping ordinal -> frozen lineup
        stored: Read-only mapping ordinal -> substitutions stored before the edit
    """
    edited_ordinal: int
    predecessor: Optional[LineupState]
    intents: Mapping[int, LineupState]
    stored: Mapping[int, Sequence[Substitution]]

    @property
    def downstream_ordinals(self) -> List[int]:
        return sorted(self.intents)


@dataclass(frozen=True)
class RotationUpdate:
    """A staged rewrite of one rotation point."""
    ordinal: int
    substitutions: Sequence[Substitution]

    @property
    def payload(self) -> str:
        return encode_substitutions(self.substitutions)


@dataclass
class RebaseResult:
    """
    Output of a rebase.

    Attributes:
        edited_ordinal: The edited point (0 = starting lineup)
        edited_lineup: New absolute lineup at the edited point
        edited_substitutions: Substitutions to store at the edited point (None for ordinal 0)
        updates: Downstream points whose stored list must change, in ordinal order
        overrides: Substitution list used for every rebased point
        warnings: Intents that could not be fully expressed
    """
    edited_ordinal: int
    edited_lineup: LineupState
    edited_substitutions: Optional[List[Substitution]]
    updates: List[RotationUpdate] = field(default_factory=list)
    overrides: Dict[int, List[Substitution]] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    @property
    def changed_ordinals(self) -> List[int]:
        return [update.ordinal for update in self.updates]


def snapshot_intents(timeline: RotationTimeline, edited_ordinal: int) -> IntentSnapshot:
    """
    Capture the pre-edit lineup of every point after ``edited_ordinal``.

    Must run before anything in the chain is modified.
    """
    if edited_ordinal < 0 or edited_ordinal > timeline.total_rotations:
        raise IndexError(f"Rotation {edited_ordinal} is outside 0..{timeline.total_rotations}")

    intents = {}
    stored = {}
    for ordinal in range(edited_ordinal + 1, timeline.total_rotations + 1):
        intents[ordinal] = timeline.lineup_at(ordinal).frozen()
        stored[ordinal] = tuple(timeline.substitutions_at(ordinal))

    predecessor = timeline.lineup_at(edited_ordinal - 1) if edited_ordinal > 0 else None
    return IntentSnapshot(
        edited_ordinal=edited_ordinal,
        predecessor=predecessor.frozen() if predecessor is not None else None,
        intents=MappingProxyType(intents),
        stored=MappingProxyType(stored),
    )


def rebase_downstream(
    snapshot: IntentSnapshot,
    edited_lineup: LineupState,
    edited_substitutions: Optional[Sequence[Substitution]] = None,
) -> RebaseResult:
    """
    Re-express downstream points against the edited chain.

    Args:
        snapshot: Result of :func:`snapshot_intents` taken before the edit
        edited_lineup: New absolute lineup at the edited point
        edited_substitutions: Substitutions stored at the edited point

    Returns:
        RebaseResult listing only the points whose stored list changes
    """
    result = RebaseResult(
        edited_ordinal=snapshot.edited_ordinal,
        edited_lineup=edited_lineup.frozen(),
        edited_substitutions=list(edited_substitutions) if edited_substitutions is not None else None,
    )

    predecessor = result.edited_lineup
    for ordinal in snapshot.downstream_ordinals:
        intent = snapshot.intents[ordinal]
        new_subs = diff_lineups(predecessor, intent)
        result.overrides[ordinal] = new_subs

        if list(snapshot.stored[ordinal]) != new_subs:
            result.updates.append(RotationUpdate(ordinal=ordinal, substitutions=tuple(new_subs)))

        rebased = apply_substitutions(predecessor, new_subs)
        if rebased != intent:
            cleared = cleared_positions(rebased, intent)
            message = (
                f"Rotation {ordinal}: intended lineup leaves {', '.join(cleared) or 'positions'} "
                f"unfilled, which substitutions cannot express"
            )
            logger.warning(message)
            result.warnings.append(message)
        predecessor = rebased.frozen()

    return result


def recalculate_downstream(
    timeline: RotationTimeline,
    edited_ordinal: int,
    edited_substitutions: Optional[Sequence[Substitution]] = None,
    edited_lineup: Optional[LineupState] = None,
) -> RebaseResult:
    """
    Rebase every point after an edit so downstream lineups stay unchanged.

    Give either the new substitution list of the edited point, or its new
    absolute lineup (required when ``edited_ordinal`` is 0, the starting
    lineup). The timeline must still hold the pre-edit data; it is not
    modified.

    Args:
        timeline: Timeline over the pre-edit plan
        edited_ordinal: Point being edited (0 = starting lineup)
        edited_substitutions: New substitutions for the edited point
        edited_lineup: New absolute lineup at the edited point

    Returns:
        RebaseResult with the edited point's substitutions and staged updates

    Raises:
        ValueError: If neither (or, for ordinal 0, no lineup) is given
    """
    snapshot = snapshot_intents(timeline, edited_ordinal)

    if edited_ordinal == 0:
        if edited_lineup is None:
            raise ValueError("Editing the starting lineup requires edited_lineup")
        return rebase_downstream(snapshot, edited_lineup)

    if edited_substitutions is not None:
        new_subs = list(edited_substitutions)
        new_lineup = apply_substitutions(snapshot.predecessor, new_subs)
    elif edited_lineup is not None:
        new_subs = diff_lineups(snapshot.predecessor, edited_lineup)
        new_lineup = apply_substitutions(snapshot.predecessor, new_subs)
    else:
        raise ValueError("Provide edited_substitutions or edited_lineup")

    result = rebase_downstream(snapshot, new_lineup, new_subs)
    if edited_lineup is not None and new_lineup != edited_lineup:
        message = (
            f"Rotation {edited_ordinal}: positions "
            f"{', '.join(cleared_positions(new_lineup, edited_lineup))} cannot be cleared by substitution"
        )
        logger.warning(message)
        result.warnings.insert(0, message)
    logger.debug(
        "Rebased rotation %s: %d downstream update(s)", edited_ordinal, len(result.updates)
    )
    return result
