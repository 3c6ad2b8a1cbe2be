"""
Lineup models for the Rotation Planner application.

A lineup maps field positions to players. The mapping is kept bidirectional
so a player can never occupy two positions at once: assigning a player to a
position evicts them from wherever they were before.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


class LineupInvariantError(Exception):
    """Raised when a lineup would place one player in two positions."""
    pass


@dataclass(frozen=True)
class Substitution:
    """
    A single planned substitution.

    Attributes:
        position_id: Position where the change happens
        player_out_id: Player leaving the position (None if it was unfilled)
        player_in_id: Player taking the position
    """
    position_id: str
    player_out_id: Optional[str]
    player_in_id: str

    def to_dict(self) -> Dict[str, Optional[str]]:
        """Convert to the persisted record shape."""
        return {
            "positionId": self.position_id,
            "playerOutId": self.player_out_id,
            "playerInId": self.player_in_id,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> Substitution:
        """Create from a persisted record."""
        return cls(
            position_id=str(data["positionId"]),
            player_out_id=data.get("playerOutId"),
            player_in_id=str(data["playerInId"]),
        )


class LineupState:
    """
    Assignment of players to positions at one instant.

    Keeps a forward map (position -> player) and a reverse index
    (player -> position). Positions missing from the map are unfilled.
    Position order is insertion order and is significant for diffs.
    """

    __slots__ = ("_by_position", "_by_player", "_frozen")

    def __init__(self, assignments: Optional[Mapping[str, str]] = None):
        self._by_position: Dict[str, str] = {}
        self._by_player: Dict[str, str] = {}
        self._frozen = False
        if assignments:
            for position_id, player_id in assignments.items():
                self.assign(position_id, player_id)

    # ---------- Construction ---------- #

    @classmethod
    def from_pairs(
        cls,
        pairs: Iterable[Tuple[str, str]],
        strict: bool = False,
    ) -> LineupState:
        """
        Build a lineup from (position_id, player_id) pairs.

        Duplicate players are normalised last-write-wins: the later pair keeps
        the player and the earlier position becomes unfilled.

        Args:
            pairs: Ordered (position_id, player_id) pairs
            strict: Raise instead of normalising duplicates

        Raises:
            LineupInvariantError: If strict and a player appears twice
        """
        lineup = cls()
        for position_id, player_id in pairs:
            previous = lineup.position_of(player_id)
            if previous is not None and previous != position_id:
                if strict:
                    raise LineupInvariantError(
                        f"Player '{player_id}' assigned to both '{previous}' and '{position_id}'"
                    )
                logger.warning(
                    "Player %s listed at %s and %s; keeping %s",
                    player_id, previous, position_id, position_id,
                )
            lineup.assign(position_id, player_id)
        return lineup

    def copy(self) -> LineupState:
        """Return a mutable copy."""
        clone = LineupState()
        clone._by_position = dict(self._by_position)
        clone._by_player = dict(self._by_player)
        return clone

    def frozen(self) -> LineupState:
        """Return an immutable copy."""
        clone = self.copy()
        clone._frozen = True
        return clone

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    # ---------- Mutation ---------- #

    def _check_mutable(self) -> None:
        if self._frozen:
            raise TypeError("Frozen LineupState cannot be modified")

    def assign(self, position_id: str, player_id: str) -> None:
        """
        Put a player at a position.

        The player is evicted from any other position they hold, and the
        previous occupant of the target position loses it.
        """
        self._check_mutable()
        current_position = self._by_player.get(player_id)
        if current_position is not None and current_position != position_id:
            del self._by_position[current_position]

        displaced = self._by_position.get(position_id)
        if displaced is not None and displaced != player_id:
            del self._by_player[displaced]

        self._by_position[position_id] = player_id
        self._by_player[player_id] = position_id

    def remove_position(self, position_id: str) -> Optional[str]:
        """Clear a position. Returns the player that held it, if any."""
        self._check_mutable()
        player_id = self._by_position.pop(position_id, None)
        if player_id is not None:
            del self._by_player[player_id]
        return player_id

    def remove_player(self, player_id: str) -> Optional[str]:
        """Take a player off the field. Returns the position they held, if any."""
        self._check_mutable()
        position_id = self._by_player.pop(player_id, None)
        if position_id is not None:
            del self._by_position[position_id]
        return position_id

    # ---------- Queries ---------- #

    def get(self, position_id: str) -> Optional[str]:
        """Player at a position, or None if unfilled."""
        return self._by_position.get(position_id)

    def position_of(self, player_id: str) -> Optional[str]:
        """Position held by a player, or None if not on the field."""
        return self._by_player.get(player_id)

    def positions(self) -> List[str]:
        return list(self._by_position)

    def players(self) -> List[str]:
        return list(self._by_position.values())

    def items(self) -> List[Tuple[str, str]]:
        return list(self._by_position.items())

    def as_dict(self) -> Dict[str, str]:
        return dict(self._by_position)

    def __contains__(self, position_id: object) -> bool:
        return position_id in self._by_position

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._by_position))

    def __len__(self) -> int:
        return len(self._by_position)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LineupState):
            return NotImplemented
        return self._by_position == other._by_position

    def __hash__(self):
        if not self._frozen:
            raise TypeError("unhashable type: mutable LineupState")
        return hash(frozenset(self._by_position.items()))

    def __repr__(self) -> str:
        return f"LineupState({self._by_position!r})"
