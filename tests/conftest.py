"""Common utilities for tests."""

from __future__ import annotations

import datetime
import unittest.mock
from typing import Any, Optional

from mockfirestore import MockFirestore

# The firestore name in every module that calls firestore.client() itself.
FIRESTORE_TARGETS = (
    "codeduel.firestore",
    "codeduel.tournament.services.firestore",
    "codeduel.tournament.routes.firestore",
    "codeduel.match.services.firestore",
    "codeduel.match.routes.firestore",
)


class MockBatch:
    """Buffers writes until commit, which mockfirestore does not provide."""

    def __init__(self, db: Any) -> None:
        self.db = db
        self.updates: list[tuple[Any, Any]] = []
        self.commit = unittest.mock.MagicMock(side_effect=self._real_commit)

    def update(self, ref: Any, data: Any) -> None:
        self.updates.append((ref, data))

    def _real_commit(self) -> None:
        for ref, data in self.updates:
            ref.update(data)


def make_db() -> MockFirestore:
    """Return a MockFirestore whose batch() hands out a fresh MockBatch."""
    db = MockFirestore()
    db.batch = unittest.mock.MagicMock(side_effect=lambda: MockBatch(db))
    return db


def patch_firestore(test_case: Any, db: Optional[MockFirestore] = None) -> MockFirestore:
    """Route every firestore.client() call to a MockFirestore for one test."""
    db = db or make_db()
    mock_firestore_module = unittest.mock.MagicMock()
    mock_firestore_module.client.return_value = db
    for target in FIRESTORE_TARGETS:
        patcher = unittest.mock.patch(target, new=mock_firestore_module)
        patcher.start()
        test_case.addCleanup(patcher.stop)
    return db


def make_room(
    db: MockFirestore,
    room_id: str = "room1",
    participants: Optional[list[str]] = None,
    **fields: Any,
) -> Any:
    """Create a room document the way the room service would."""
    participants = participants if participants is not None else []
    data = {
        "roomId": room_id,
        "name": f"Room {room_id}",
        "admin": participants[0] if participants else "admin",
        "participants": [{"id": pid} for pid in participants],
        "players": [],
        "oldPlayers": [],
        "roundNo": 0,
        "isStarted": False,
        "roundStarted": False,
        "resultCalculated": False,
        "resultDeclared": False,
        "roundStartTime": None,
    }
    data.update(fields)
    ref = db.collection("rooms").document(room_id)
    ref.set(data)
    return ref


def make_player(
    db: MockFirestore,
    player_id: str,
    tests_passed: int = 0,
    submission_time: Optional[datetime.datetime] = None,
    **fields: Any,
) -> Any:
    """Create a player document."""
    data = {
        "username": player_id,
        "problemId": None,
        "testsPassed": tests_passed,
        "submissionTime": submission_time,
    }
    data.update(fields)
    ref = db.collection("users").document(player_id)
    ref.set(data)
    return ref


def make_response(
    status_code: int = 200, payload: Any = None, json_error: bool = False
) -> unittest.mock.MagicMock:
    """Build a stand-in for a requests.Response."""
    response = unittest.mock.MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    if json_error:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = payload
    return response
