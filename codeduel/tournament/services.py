"""Service layer for tournament rounds and room state."""

from __future__ import annotations

import datetime
import logging
import random
import threading
import weakref
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Optional, cast

from firebase_admin import firestore

from codeduel.core.constants import (
    DEFAULT_PROBLEM_POOL,
    PLAYER_PROBLEM_ID,
    PLAYER_SUBMISSION_TIME,
    PLAYER_TESTS_PASSED,
    ROOMS_COLLECTION,
    USERS_COLLECTION,
)
from codeduel.errors import NotFoundError
from codeduel.utils import send_email

from .bracket import pair_problems, resolve_bracket, shuffle_players
from .models import Player, PlayerRef, Room
from .state import Action, RoomState, transition

if TYPE_CHECKING:
    from google.cloud.firestore_v1.batch import WriteBatch
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference

logger = logging.getLogger(__name__)

# Entries disappear once no caller holds or waits on the room's lock.
_room_locks: weakref.WeakValueDictionary[str, threading.Lock] = (
    weakref.WeakValueDictionary()
)
_room_locks_guard = threading.Lock()


@contextmanager
def room_lock(room_id: str) -> Iterator[None]:
    """Serialize read-modify-write cycles on a single room."""
    with _room_locks_guard:
        lock = _room_locks.get(room_id)
        if lock is None:
            lock = _room_locks[room_id] = threading.Lock()
    with lock:
        yield


def _state_fields(state: RoomState) -> dict[str, Any]:
    return {"state": state.value, **state.flags}


def _display_name(user_data: Player, fallback: str) -> str:
    return user_data.get("username") or user_data.get("name") or fallback


class TournamentService:
    """Handles round lifecycle and data access for tournament rooms."""

    @staticmethod
    def _get_room(db: Client, room_id: str) -> tuple[DocumentReference, Room]:
        """Re-read a room, raising NotFoundError when it does not exist."""
        ref = db.collection(ROOMS_COLLECTION).document(room_id)
        doc = cast(Any, ref.get())
        data = doc.to_dict() if doc.exists else None
        if not data:
            raise NotFoundError("Room not found")
        return ref, cast(Room, data)

    @staticmethod
    def _load_players(
        db: Client, players: Sequence[PlayerRef]
    ) -> dict[str, Player]:
        """Map player id to player document for every resolvable roster entry."""
        player_ids = list(
            dict.fromkeys(p["id"] for p in players if p and p.get("id"))
        )
        if not player_ids:
            return {}

        refs = [db.collection(USERS_COLLECTION).document(pid) for pid in player_ids]
        user_docs = cast(list[Any], db.get_all(refs))
        records = {
            doc.id: cast(Player, doc.to_dict() or {})
            for doc in user_docs
            if doc.exists
        }
        for player_id in player_ids:
            if player_id not in records:
                logger.warning(f"User not found with ID {player_id}")
        return records

    @staticmethod
    def assign_problems(
        db: Client,
        batch: WriteBatch,
        players: Sequence[PlayerRef],
        problem_pool: Sequence[str] = DEFAULT_PROBLEM_POOL,
        rng: Optional[random.Random] = None,
    ) -> int:
        """Queue each pair's shared problem and score reset on ``batch``.

        Players without a backing record are skipped. Nothing is written until
        the caller commits the batch. Returns the number of players assigned.
        """
        records = TournamentService._load_players(db, players)
        assigned = 0
        for player_id, problem_id in pair_problems(players, problem_pool, rng):
            if player_id not in records:
                continue
            batch.update(
                db.collection(USERS_COLLECTION).document(player_id),
                {
                    PLAYER_PROBLEM_ID: problem_id,
                    PLAYER_TESTS_PASSED: 0,
                    PLAYER_SUBMISSION_TIME: None,
                },
            )
            assigned += 1
        return assigned

    @staticmethod
    def start_tournament(room_id: str, db: Client | None = None) -> str:
        """Seed the round roster from the room's participants."""
        if db is None:
            db = firestore.client()
        with room_lock(room_id):
            ref, room = TournamentService._get_room(db, room_id)
            state = RoomState.of(room)
            target = transition(state, Action.START_TOURNAMENT)
            if state is not RoomState.CREATED:
                logger.warning(
                    f"Room {room_id} restarted from {state.value}; "
                    "players re-seeded from participants."
                )
            ref.update(
                {"players": list(room.get("participants", [])), **_state_fields(target)}
            )
        return "Tournament started successfully"

    @staticmethod
    def start_round(
        room_id: str,
        db: Client | None = None,
        problem_pool: Sequence[str] = DEFAULT_PROBLEM_POOL,
        rng: Optional[random.Random] = None,
    ) -> int:
        """Shuffle the roster, hand out problems and open a new round.

        Returns the new round number.
        """
        if db is None:
            db = firestore.client()
        with room_lock(room_id):
            ref, room = TournamentService._get_room(db, room_id)
            target = transition(RoomState.of(room), Action.START_ROUND)

            round_no = int(room.get("roundNo") or 0) + 1
            players = shuffle_players(room.get("players", []), rng)
            batch = db.batch()
            assigned = TournamentService.assign_problems(
                db, batch, players, problem_pool, rng
            )
            batch.update(
                ref,
                {
                    "roundNo": round_no,
                    "players": players,
                    "roundStartTime": datetime.datetime.now(datetime.timezone.utc),
                    **_state_fields(target),
                },
            )
            batch.commit()
        logger.info(
            f"Room {room_id}: round {round_no} started, "
            f"{assigned}/{len(players)} players assigned"
        )
        return round_no

    @staticmethod
    def calculate_result(room_id: str, db: Client | None = None) -> dict[str, Any]:
        """Fold the round's pairwise winners into the roster.

        Calling it again before the next round reports the earlier result
        instead of recomputing it.
        """
        if db is None:
            db = firestore.client()
        with room_lock(room_id):
            ref, room = TournamentService._get_room(db, room_id)
            state = RoomState.of(room)
            target = transition(state, Action.CALCULATE_RESULT)
            if state is not RoomState.ROUND_IN_PROGRESS:
                return {"message": "Results already calculated"}

            players = list(room.get("players", []))
            records = TournamentService._load_players(db, players)
            winners = resolve_bracket(players, records)
            ref.update(
                {"oldPlayers": players, "players": winners, **_state_fields(target)}
            )
        logger.info(
            f"Room {room_id}: {len(winners)} of {len(players)} players advance"
        )
        return {"message": "Results calculated successfully", "winners": winners}

    @staticmethod
    def declare_result(room_id: str, db: Client | None = None) -> str:
        """Publish the calculated round result to the room."""
        if db is None:
            db = firestore.client()
        with room_lock(room_id):
            ref, room = TournamentService._get_room(db, room_id)
            state = RoomState.of(room)
            target = transition(state, Action.DECLARE_RESULT)
            ref.update(_state_fields(target))

        if state is RoomState.ROUND_RESOLVED:
            TournamentService._notify_players(db, room)
        return "Result declared successfully"

    @staticmethod
    def _notify_players(db: Client, room: Room) -> None:
        """Email the round outcome to every player of the round, best-effort."""
        roster = room.get("oldPlayers", [])
        winner_ids = [p["id"] for p in room.get("players", []) if p and p.get("id")]
        records = TournamentService._load_players(db, roster)
        winner_names = [_display_name(records.get(pid, {}), pid) for pid in winner_ids]

        subject = f"Round {room.get('roundNo', 0)} results: {room.get('name', '')}"
        for player_id, user_data in records.items():
            email = user_data.get("email")
            if not email:
                continue
            try:
                send_email(
                    to=email,
                    subject=subject,
                    template="email/round_results.html",
                    user=user_data,
                    room=room,
                    advanced=player_id in winner_ids,
                    winner_names=winner_names,
                )
            except Exception as e:
                logger.error(f"Round result email to {email} failed: {e}")

    @staticmethod
    def leave_tournament(
        room_id: str, player_id: str, db: Client | None = None
    ) -> str:
        """Drop a player from the current roster."""
        if db is None:
            db = firestore.client()
        with room_lock(room_id):
            ref, room = TournamentService._get_room(db, room_id)
            transition(RoomState.of(room), Action.LEAVE_TOURNAMENT)
            players = [
                p for p in room.get("players", []) if p and p.get("id") != player_id
            ]
            ref.update({"players": players})
        return "Left tournament successfully"

    @staticmethod
    def end_tournament(room_id: str, db: Client | None = None) -> str:
        """Reset the room to its pre-tournament state."""
        if db is None:
            db = firestore.client()
        with room_lock(room_id):
            ref, room = TournamentService._get_room(db, room_id)
            target = transition(RoomState.of(room), Action.END_TOURNAMENT)
            ref.update(
                {
                    "roundNo": 0,
                    "players": [],
                    "oldPlayers": [],
                    "roundStartTime": None,
                    **_state_fields(target),
                }
            )
        return "Tournament ended successfully"

    @staticmethod
    def get_tournament_details(
        room_id: str, db: Client | None = None
    ) -> dict[str, Any]:
        """Return a read-only snapshot of the room."""
        if db is None:
            db = firestore.client()
        _, room = TournamentService._get_room(db, room_id)
        state = RoomState.of(room)
        return {
            "participants": room.get("participants", []),
            "players": room.get("players", []),
            "oldPlayers": room.get("oldPlayers", []),
            "roundNo": room.get("roundNo", 0),
            "roomName": room.get("name"),
            "admin": room.get("admin"),
            "state": state.value,
            **state.flags,
        }

    @staticmethod
    def get_time(room_id: str, db: Client | None = None) -> Optional[str]:
        """Return the current round's start time as ISO-8601, if any."""
        if db is None:
            db = firestore.client()
        _, room = TournamentService._get_room(db, room_id)
        start_time = room.get("roundStartTime")
        if start_time is None:
            return None
        if hasattr(start_time, "isoformat"):
            return str(start_time.isoformat())
        return str(start_time)
