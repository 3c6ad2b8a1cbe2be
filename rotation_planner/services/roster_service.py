"""
Roster collaborators for the Rotation Planner application.

The planner reads players, positions and per-game availability from outside.
This module defines those interfaces and static in-memory implementations.
"""
import logging
from typing import Dict, Iterable, List, Optional, Protocol, Tuple

from ..models import AvailabilityStatus, Player, Position
from ..utils import POS_SHORT_TO_FULL

logger = logging.getLogger(__name__)


class RosterProvider(Protocol):
    """Interface for the team roster."""

    def list_players(self) -> List[Player]:
        ...

    def list_positions(self) -> List[Position]:
        ...


class AvailabilityProvider(Protocol):
    """Interface for per-game player availability."""

    def get_availability(self, game_id: str, player_id: str) -> Optional[Player]:
        ...


class StaticRosterProvider:
    """Roster held in memory."""

    def __init__(self, players: Iterable[Player] = (), positions: Iterable[Position] = ()) -> None:
        self._players: Dict[str, Player] = {}
        for player in players:
            self.add_player(player)
        self._positions: List[Position] = list(positions)

    def add_player(self, player: Player) -> None:
        if player.player_id in self._players:
            logger.warning("Replacing roster entry for player %s", player.player_id)
        self._players[player.player_id] = player

    def list_players(self) -> List[Player]:
        return sorted(self._players.values(), key=lambda p: (p.number, p.player_id))

    def list_positions(self) -> List[Position]:
        return list(self._positions)

    def get_player(self, player_id: str) -> Optional[Player]:
        return self._players.get(player_id)

    def exempt_position_id(self) -> Optional[str]:
        """Id of the position never rotated automatically, if any."""
        for position in self._positions:
            if position.exempt:
                return position.position_id
        return None

    @classmethod
    def from_dict(cls, data: Dict) -> "StaticRosterProvider":
        """
        Build a roster from ``{"players": [...], "positions": [...]}``.

        Positions given as plain strings use the short label as id; the
        first one called "GK" is exempt.
        """
        positions = []
        for entry in data.get("positions", []):
            if isinstance(entry, str):
                positions.append(Position(entry, POS_SHORT_TO_FULL.get(entry, entry), exempt=entry == "GK"))
            else:
                positions.append(Position.from_dict(entry))
        players = [Player.from_dict(p) for p in data.get("players", [])]
        return cls(players, positions)


class StaticAvailabilityProvider:
    """
    Per-game availability held in memory.

    Players without a record for a game are taken from the roster as
    available for the whole game.
    """

    def __init__(self, roster: Optional[StaticRosterProvider] = None) -> None:
        self.roster = roster
        self._records: Dict[Tuple[str, str], Player] = {}

    def set_availability(self, game_id: str, player: Player) -> None:
        self._records[(game_id, player.player_id)] = player

    def get_availability(self, game_id: str, player_id: str) -> Optional[Player]:
        record = self._records.get((game_id, player_id))
        if record is not None:
            return record
        if self.roster is not None:
            return self.roster.get_player(player_id)
        return None

    def players_for_game(self, game_id: str) -> List[Player]:
        """Roster players merged with their availability for one game."""
        if self.roster is None:
            return [p for (g, _), p in sorted(self._records.items()) if g == game_id]
        players = []
        for player in self.roster.list_players():
            players.append(self.get_availability(game_id, player.player_id) or player)
        return players

    def copy_game(self, source_game_id: str, target_game_id: str) -> int:
        """Copy availability records between games. Returns how many were copied."""
        copied = 0
        for (game_id, player_id), player in list(self._records.items()):
            if game_id == source_game_id:
                self._records[(target_game_id, player_id)] = player
                copied += 1
        return copied


def with_availability(player: Player, status: AvailabilityStatus,
                      available_from_minute: Optional[int] = None,
                      available_until_minute: Optional[int] = None) -> Player:
    """Copy of a player with a new availability status and window."""
    return Player(
        player_id=player.player_id,
        number=player.number,
        name=player.name,
        preferred_positions=player.preferred_positions,
        status=status,
        available_from_minute=available_from_minute,
        available_until_minute=available_until_minute,
    )
