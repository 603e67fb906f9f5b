"""Data models for the tournament blueprint."""

from __future__ import annotations

from typing import Any, Optional, TypedDict

from codeduel.core.types import FirestoreDocument


class PlayerRef(TypedDict):
    """Opaque reference to a record in the player store."""

    id: str


class Player(FirestoreDocument, total=False):
    """A player document in Firestore.

    Only the round fields are written by the tournament core.
    """

    problemId: str
    testsPassed: int
    submissionTime: Optional[Any]
    username: str
    email: str


class Room(FirestoreDocument, total=False):
    """A room document in Firestore."""

    roomId: str
    name: str
    admin: str
    participants: list[PlayerRef]
    players: list[PlayerRef]
    oldPlayers: list[PlayerRef]
    roundNo: int
    state: str
    isStarted: bool
    roundStarted: bool
    resultCalculated: bool
    resultDeclared: bool
    roundStartTime: Optional[Any]
