"""
Unit tests for the static roster and availability providers.
"""
import unittest

from rotation_planner.models import AvailabilityStatus, Player, Position
from rotation_planner.services import StaticAvailabilityProvider, StaticRosterProvider
from rotation_planner.services.roster_service import with_availability


class TestStaticRosterProvider(unittest.TestCase):
    """Test StaticRosterProvider."""

    def setUp(self) -> None:
        self.roster = StaticRosterProvider(
            [Player("b", number=7), Player("a", number=7), Player("c", number=2)],
            [Position("gk", "GK", exempt=True), Position("df", "DF")],
        )

    def test_players_sorted_by_number_then_id(self) -> None:
        self.assertEqual([p.player_id for p in self.roster.list_players()], ["c", "a", "b"])

    def test_exempt_position(self) -> None:
        self.assertEqual(self.roster.exempt_position_id(), "gk")

    def test_add_player_replaces_entry(self) -> None:
        with self.assertLogs("rotation_planner.services.roster_service", level="WARNING"):
            self.roster.add_player(Player("a", number=99))

        self.assertEqual(self.roster.get_player("a").number, 99)
        self.assertEqual(len(self.roster.list_players()), 3)

    def test_from_dict_with_short_position_labels(self) -> None:
        roster = StaticRosterProvider.from_dict({
            "players": [{"player_id": "p1", "number": 4, "preferred_positions": ["DF"]}],
            "positions": ["GK", "DF", {"position_id": "w", "label": "Wing"}],
        })

        positions = roster.list_positions()
        self.assertEqual([p.position_id for p in positions], ["GK", "DF", "w"])
        self.assertEqual(positions[0].label, "Goalkeeper")
        self.assertEqual(roster.exempt_position_id(), "GK")
        self.assertEqual(roster.get_player("p1").preferred_positions, ("DF",))


class TestStaticAvailabilityProvider(unittest.TestCase):
    """Test per-game availability."""

    def setUp(self) -> None:
        self.roster = StaticRosterProvider([Player("p1", number=1), Player("p2", number=2)])
        self.availability = StaticAvailabilityProvider(self.roster)

    def test_falls_back_to_roster(self) -> None:
        player = self.availability.get_availability("game-1", "p1")

        self.assertEqual(player.status, AvailabilityStatus.AVAILABLE)
        self.assertIsNone(self.availability.get_availability("game-1", "nobody"))

    def test_records_are_per_game(self) -> None:
        late = with_availability(self.roster.get_player("p2"), AvailabilityStatus.LATE_ARRIVAL, 30)
        self.availability.set_availability("game-1", late)

        players = self.availability.players_for_game("game-1")

        self.assertEqual(players[1].status, AvailabilityStatus.LATE_ARRIVAL)
        self.assertEqual(players[1].available_from_minute, 30)
        self.assertEqual(
            self.availability.get_availability("game-2", "p2").status, AvailabilityStatus.AVAILABLE
        )

    def test_copy_game(self) -> None:
        absent = with_availability(self.roster.get_player("p1"), AvailabilityStatus.ABSENT)
        self.availability.set_availability("game-1", absent)

        self.assertEqual(self.availability.copy_game("game-1", "game-2"), 1)
        self.assertEqual(
            self.availability.get_availability("game-2", "p1").status, AvailabilityStatus.ABSENT
        )

    def test_with_availability_keeps_identity(self) -> None:
        original = Player("p9", number=9, name="Nine", preferred_positions=("st",))

        injured = with_availability(original, AvailabilityStatus.INJURED, available_until_minute=35)

        self.assertEqual(injured.name, "Nine")
        self.assertEqual(injured.preferred_positions, ("st",))
        self.assertEqual(injured.available_until_minute, 35)
        self.assertEqual(original.status, AvailabilityStatus.AVAILABLE)


if __name__ == "__main__":
    unittest.main()
