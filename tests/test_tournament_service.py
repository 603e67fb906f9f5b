"""Tests for the tournament service using mockfirestore."""

from __future__ import annotations

import datetime
import gc
import random
import threading
import unittest
from unittest.mock import MagicMock, patch

from google.api_core.exceptions import GoogleAPICallError

from codeduel import create_app
from codeduel.errors import InvalidTransitionError, NotFoundError
from codeduel.tournament import services as tournament_services
from codeduel.tournament.services import TournamentService, room_lock
from codeduel.tournament.state import RoomState
from tests.conftest import MockBatch, make_db, make_player, make_room

T1 = datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)
T2 = T1 + datetime.timedelta(minutes=3)
PLAYER_IDS = ["p1", "p2", "p3", "p4", "p5"]


class TournamentServiceTestCase(unittest.TestCase):
    """Test case for TournamentService."""

    def setUp(self) -> None:
        """Create a room with five participants."""
        self.app = create_app({"TESTING": True})
        self.app_context = self.app.app_context()
        self.app_context.push()
        self.addCleanup(self.app_context.pop)

        self.db = make_db()
        for pid in PLAYER_IDS:
            make_player(self.db, pid, tests_passed=7, submission_time=T1)
        self.room_ref = make_room(self.db, "room1", PLAYER_IDS)

    def _room(self) -> dict:
        return self.room_ref.get().to_dict()

    def _player(self, pid: str) -> dict:
        return self.db.collection("users").document(pid).get().to_dict()

    def _start_round(self, seed: int = 0) -> int:
        return TournamentService.start_round("room1", self.db, rng=random.Random(seed))

    def test_start_tournament(self) -> None:
        """Players are seeded from participants."""
        message = TournamentService.start_tournament("room1", self.db)

        room = self._room()
        self.assertEqual(message, "Tournament started successfully")
        self.assertEqual(room["players"], [{"id": pid} for pid in PLAYER_IDS])
        self.assertEqual(room["state"], RoomState.STARTED.value)
        self.assertTrue(room["isStarted"])
        self.assertFalse(room["resultCalculated"])

    def test_restart_reseeds_players(self) -> None:
        """Starting again restores players who left."""
        TournamentService.start_tournament("room1", self.db)
        TournamentService.leave_tournament("room1", "p2", self.db)
        self.assertEqual(len(self._room()["players"]), 4)

        TournamentService.start_tournament("room1", self.db)

        self.assertEqual(len(self._room()["players"]), 5)

    def test_start_round(self) -> None:
        """A round shuffles, assigns problems and resets scores."""
        TournamentService.start_tournament("room1", self.db)

        round_no = self._start_round(seed=42)

        room = self._room()
        self.assertEqual(round_no, 1)
        self.assertEqual(room["roundNo"], 1)
        self.assertEqual(room["state"], RoomState.ROUND_IN_PROGRESS.value)
        self.assertTrue(room["roundStarted"])
        self.assertFalse(room["resultCalculated"])
        self.assertIsNotNone(room["roundStartTime"])
        self.assertEqual(
            sorted(p["id"] for p in room["players"]), sorted(PLAYER_IDS)
        )

        roster = [p["id"] for p in room["players"]]
        for first, second in zip(roster[0::2], roster[1::2]):
            self.assertEqual(
                self._player(first)["problemId"], self._player(second)["problemId"]
            )
        for pid in roster:
            player = self._player(pid)
            self.assertIn(player["problemId"], ("0000", "0001"))
            self.assertEqual(player["testsPassed"], 0)
            self.assertIsNone(player["submissionTime"])

    def test_start_round_commits_one_batch(self) -> None:
        """Player resets and the room update are committed together."""
        TournamentService.start_tournament("room1", self.db)
        self.db.batch.reset_mock()

        self._start_round()

        self.db.batch.assert_called_once()

    def test_start_round_writes_nothing_when_commit_fails(self) -> None:
        """A failed commit leaves every player and the room untouched."""
        TournamentService.start_tournament("room1", self.db)
        batch = MockBatch(self.db)
        batch.commit.side_effect = GoogleAPICallError("unavailable")
        self.db.batch = MagicMock(return_value=batch)

        with self.assertRaises(GoogleAPICallError):
            self._start_round()

        room = self._room()
        self.assertEqual(room["roundNo"], 0)
        self.assertEqual(room["state"], RoomState.STARTED.value)
        for pid in PLAYER_IDS:
            player = self._player(pid)
            self.assertEqual(player["testsPassed"], 7)
            self.assertIsNone(player["problemId"])
        # Five player resets plus the room update.
        self.assertEqual(len(batch.updates), 6)

    def test_concurrent_start_round_runs_once(self) -> None:
        """Simultaneous round starts on one room are serialized."""
        TournamentService.start_tournament("room1", self.db)
        started: list[int] = []
        rejected: list[str] = []
        barrier = threading.Barrier(5)

        def start() -> None:
            barrier.wait()
            try:
                started.append(TournamentService.start_round("room1", self.db))
            except InvalidTransitionError as e:
                rejected.append(e.message)

        workers = [threading.Thread(target=start) for _ in range(5)]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()

        self.assertEqual(started, [1])
        self.assertEqual(len(rejected), 4)
        self.assertEqual(self._room()["roundNo"], 1)

    def test_room_lock_entry_released(self) -> None:
        """Locks of rooms nobody is using are not kept around."""
        with room_lock("room9"):
            self.assertIn("room9", tournament_services._room_locks)
        gc.collect()
        self.assertNotIn("room9", tournament_services._room_locks)

    def test_round_number_increments(self) -> None:
        """Each new round bumps the round number by one."""
        TournamentService.start_tournament("room1", self.db)
        self.assertEqual(self._start_round(), 1)
        TournamentService.calculate_result("room1", self.db)
        self.assertEqual(self._start_round(), 2)

    def test_start_round_skips_missing_player(self) -> None:
        """A roster entry without a player record does not stop the round."""
        self.room_ref.update({"participants": [{"id": "p1"}, {"id": "ghost"}, {"id": "p3"}]})
        TournamentService.start_tournament("room1", self.db)

        self._start_round()

        self.assertEqual(self._player("p1")["testsPassed"], 0)
        self.assertEqual(self._player("p3")["testsPassed"], 0)
        self.assertFalse(self.db.collection("users").document("ghost").get().exists)

    def test_start_round_requires_started_tournament(self) -> None:
        """Rounds cannot start before the tournament does."""
        with self.assertRaises(InvalidTransitionError):
            self._start_round()

    def test_start_round_rejects_second_active_round(self) -> None:
        """Only one round can be in progress."""
        TournamentService.start_tournament("room1", self.db)
        self._start_round()
        with self.assertRaises(InvalidTransitionError):
            self._start_round()
        self.assertEqual(self._room()["roundNo"], 1)

    def test_calculate_result(self) -> None:
        """Winners replace the roster and the old roster is archived."""
        TournamentService.start_tournament("room1", self.db)
        self._start_round()
        roster = self._room()["players"]
        # First of each pair wins on score, the odd player passed nothing.
        for index, ref in enumerate(roster):
            passed = 2 if index % 2 == 0 and index < 4 else 1
            if index == 4:
                passed = 0
            self.db.collection("users").document(ref["id"]).update(
                {"testsPassed": passed, "submissionTime": T1}
            )

        outcome = TournamentService.calculate_result("room1", self.db)

        room = self._room()
        self.assertEqual(outcome["message"], "Results calculated successfully")
        self.assertEqual(outcome["winners"], [roster[0], roster[2]])
        self.assertEqual(room["players"], [roster[0], roster[2]])
        self.assertEqual(room["oldPlayers"], roster)
        self.assertEqual(room["state"], RoomState.ROUND_RESOLVED.value)
        self.assertTrue(room["resultCalculated"])
        self.assertFalse(room["roundStarted"])

    def test_calculate_result_is_idempotent(self) -> None:
        """A second calculation reports instead of recomputing."""
        TournamentService.start_tournament("room1", self.db)
        self._start_round()
        TournamentService.calculate_result("room1", self.db)
        after_first = self._room()

        outcome = TournamentService.calculate_result("room1", self.db)

        self.assertEqual(outcome, {"message": "Results already calculated"})
        after_second = self._room()
        self.assertEqual(after_second["players"], after_first["players"])
        self.assertEqual(after_second["oldPlayers"], after_first["oldPlayers"])

    def test_calculate_result_before_round(self) -> None:
        """There is nothing to calculate before a round is played."""
        TournamentService.start_tournament("room1", self.db)
        with self.assertRaises(InvalidTransitionError):
            TournamentService.calculate_result("room1", self.db)

    def test_legacy_flags_room(self) -> None:
        """Rooms stored with only boolean flags are understood."""
        self.room_ref.update(
            {
                "isStarted": True,
                "resultCalculated": True,
                "players": [{"id": "p1"}],
                "oldPlayers": [{"id": "p1"}, {"id": "p2"}],
            }
        )
        outcome = TournamentService.calculate_result("room1", self.db)
        self.assertEqual(outcome["message"], "Results already calculated")

    def test_declare_result_notifies_players(self) -> None:
        """Declaring emails every player of the round once."""
        self.db.collection("users").document("p1").update({"email": "p1@example.com"})
        self.db.collection("users").document("p2").update({"email": "p2@example.com"})
        self.room_ref.update({"participants": [{"id": "p1"}, {"id": "p2"}]})
        TournamentService.start_tournament("room1", self.db)
        self._start_round()
        TournamentService.calculate_result("room1", self.db)

        with patch("codeduel.tournament.services.send_email") as mock_send:
            message = TournamentService.declare_result("room1", self.db)
            TournamentService.declare_result("room1", self.db)

        room = self._room()
        self.assertEqual(message, "Result declared successfully")
        self.assertEqual(room["state"], RoomState.RESULT_DECLARED.value)
        self.assertTrue(room["resultDeclared"])
        self.assertFalse(room["roundStarted"])
        self.assertEqual(mock_send.call_count, 2)
        recipients = {c.kwargs["to"] for c in mock_send.call_args_list}
        self.assertEqual(recipients, {"p1@example.com", "p2@example.com"})
        advanced = {c.kwargs["to"]: c.kwargs["advanced"] for c in mock_send.call_args_list}
        self.assertEqual(sum(advanced.values()), 1)

    def test_declare_result_survives_email_failure(self) -> None:
        """Notification failures are logged, not raised."""
        self.db.collection("users").document("p1").update({"email": "p1@example.com"})
        TournamentService.start_tournament("room1", self.db)
        self._start_round()
        TournamentService.calculate_result("room1", self.db)

        with patch(
            "codeduel.tournament.services.send_email", side_effect=Exception("SMTP down")
        ):
            message = TournamentService.declare_result("room1", self.db)

        self.assertEqual(message, "Result declared successfully")

    def test_declare_result_before_calculation(self) -> None:
        """Results cannot be declared while the round is running."""
        TournamentService.start_tournament("room1", self.db)
        self._start_round()
        with self.assertRaises(InvalidTransitionError):
            TournamentService.declare_result("room1", self.db)

    def test_leave_tournament(self) -> None:
        """Leaving only touches the current roster."""
        TournamentService.start_tournament("room1", self.db)
        self._start_round()
        before = self._room()

        TournamentService.leave_tournament("room1", "p3", self.db)

        room = self._room()
        self.assertNotIn({"id": "p3"}, room["players"])
        self.assertEqual(len(room["players"]), 4)
        self.assertEqual(room["participants"], before["participants"])
        self.assertEqual(room["state"], before["state"])
        self.assertEqual(room["roundNo"], before["roundNo"])

    def test_end_tournament(self) -> None:
        """Ending resets the room completely."""
        TournamentService.start_tournament("room1", self.db)
        self._start_round()
        TournamentService.calculate_result("room1", self.db)

        TournamentService.end_tournament("room1", self.db)

        room = self._room()
        self.assertEqual(room["players"], [])
        self.assertEqual(room["oldPlayers"], [])
        self.assertEqual(room["roundNo"], 0)
        self.assertFalse(room["isStarted"])
        self.assertFalse(room["roundStarted"])
        self.assertFalse(room["resultDeclared"])
        self.assertEqual(room["state"], RoomState.CREATED.value)
        self.assertEqual(len(room["participants"]), 5)

    def test_details_and_time(self) -> None:
        """The snapshot reflects the room and the round start time."""
        self.assertIsNone(TournamentService.get_time("room1", self.db))
        TournamentService.start_tournament("room1", self.db)
        self._start_round()

        details = TournamentService.get_tournament_details("room1", self.db)
        start_time = TournamentService.get_time("room1", self.db)

        self.assertEqual(details["roomName"], "Room room1")
        self.assertEqual(details["admin"], "p1")
        self.assertEqual(details["roundNo"], 1)
        self.assertTrue(details["roundStarted"])
        self.assertTrue(details["isStarted"])
        self.assertFalse(details["resultDeclared"])
        self.assertFalse(details["resultCalculated"])
        self.assertEqual(details["state"], "ROUND_IN_PROGRESS")
        self.assertEqual(len(details["participants"]), 5)
        self.assertEqual(details["oldPlayers"], [])
        self.assertIsNotNone(datetime.datetime.fromisoformat(start_time))

    def test_missing_room(self) -> None:
        """Every operation reports a missing room."""
        operations = [
            lambda: TournamentService.start_tournament("nope", self.db),
            lambda: TournamentService.start_round("nope", self.db),
            lambda: TournamentService.calculate_result("nope", self.db),
            lambda: TournamentService.declare_result("nope", self.db),
            lambda: TournamentService.leave_tournament("nope", "p1", self.db),
            lambda: TournamentService.end_tournament("nope", self.db),
            lambda: TournamentService.get_tournament_details("nope", self.db),
            lambda: TournamentService.get_time("nope", self.db),
        ]
        for operation in operations:
            with self.assertRaises(NotFoundError):
                operation()


if __name__ == "__main__":
    unittest.main()
