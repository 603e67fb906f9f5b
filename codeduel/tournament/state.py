"""Explicit room lifecycle and its transition table."""

from __future__ import annotations

import enum
from typing import Any

from codeduel.errors import InvalidTransitionError


class RoomState(str, enum.Enum):
    """Lifecycle state of a tournament room."""

    CREATED = "CREATED"
    STARTED = "STARTED"
    ROUND_IN_PROGRESS = "ROUND_IN_PROGRESS"
    ROUND_RESOLVED = "ROUND_RESOLVED"
    RESULT_DECLARED = "RESULT_DECLARED"

    @property
    def flags(self) -> dict[str, bool]:
        """Boolean projection stored alongside the state for older readers."""
        return dict(_FLAGS[self])

    @classmethod
    def of(cls, room: dict[str, Any]) -> RoomState:
        """Read a room's state, deriving it from its flags when not stored."""
        stored = room.get("state")
        if stored:
            return cls(stored)
        if not room.get("isStarted"):
            return cls.CREATED
        if room.get("roundStarted"):
            return cls.ROUND_IN_PROGRESS
        if room.get("resultCalculated"):
            if room.get("resultDeclared"):
                return cls.RESULT_DECLARED
            return cls.ROUND_RESOLVED
        return cls.STARTED


_FLAGS: dict[RoomState, dict[str, bool]] = {
    RoomState.CREATED: {
        "isStarted": False,
        "roundStarted": False,
        "resultCalculated": False,
        "resultDeclared": False,
    },
    RoomState.STARTED: {
        "isStarted": True,
        "roundStarted": False,
        "resultCalculated": False,
        "resultDeclared": False,
    },
    RoomState.ROUND_IN_PROGRESS: {
        "isStarted": True,
        "roundStarted": True,
        "resultCalculated": False,
        "resultDeclared": False,
    },
    RoomState.ROUND_RESOLVED: {
        "isStarted": True,
        "roundStarted": False,
        "resultCalculated": True,
        "resultDeclared": False,
    },
    RoomState.RESULT_DECLARED: {
        "isStarted": True,
        "roundStarted": False,
        "resultCalculated": True,
        "resultDeclared": True,
    },
}


class Action(str, enum.Enum):
    """Operations that move a room through its lifecycle."""

    START_TOURNAMENT = "start_tournament"
    START_ROUND = "start_round"
    CALCULATE_RESULT = "calculate_result"
    DECLARE_RESULT = "declare_result"
    LEAVE_TOURNAMENT = "leave_tournament"
    END_TOURNAMENT = "end_tournament"


ALL_STATES = frozenset(RoomState)

# action -> {source state: target state}
TRANSITIONS: dict[Action, dict[RoomState, RoomState]] = {
    Action.START_TOURNAMENT: {state: RoomState.STARTED for state in ALL_STATES},
    Action.START_ROUND: {
        RoomState.STARTED: RoomState.ROUND_IN_PROGRESS,
        RoomState.ROUND_RESOLVED: RoomState.ROUND_IN_PROGRESS,
        RoomState.RESULT_DECLARED: RoomState.ROUND_IN_PROGRESS,
    },
    Action.CALCULATE_RESULT: {
        RoomState.ROUND_IN_PROGRESS: RoomState.ROUND_RESOLVED,
        # Already calculated; reported, not recomputed.
        RoomState.ROUND_RESOLVED: RoomState.ROUND_RESOLVED,
        RoomState.RESULT_DECLARED: RoomState.RESULT_DECLARED,
    },
    Action.DECLARE_RESULT: {
        RoomState.ROUND_RESOLVED: RoomState.RESULT_DECLARED,
        RoomState.RESULT_DECLARED: RoomState.RESULT_DECLARED,
    },
    Action.LEAVE_TOURNAMENT: {state: state for state in ALL_STATES},
    Action.END_TOURNAMENT: {state: RoomState.CREATED for state in ALL_STATES},
}

_MESSAGES = {
    Action.START_ROUND: {
        RoomState.CREATED: "Tournament has not been started.",
        RoomState.ROUND_IN_PROGRESS: "A round is already in progress.",
    },
    Action.CALCULATE_RESULT: {
        RoomState.CREATED: "Tournament has not been started.",
        RoomState.STARTED: "No round has been played yet.",
    },
    Action.DECLARE_RESULT: {
        RoomState.CREATED: "Tournament has not been started.",
        RoomState.STARTED: "No round has been played yet.",
        RoomState.ROUND_IN_PROGRESS: "Results have not been calculated yet.",
    },
}


def transition(state: RoomState, action: Action) -> RoomState:
    """Return the state reached by applying ``action`` in ``state``.

    Raises:
        InvalidTransitionError: If the action is not allowed in ``state``.
    """
    target = TRANSITIONS[action].get(state)
    if target is None:
        verb = action.value.replace("_", " ")
        fallback = f"Cannot {verb} while room is {state.value}."
        message = _MESSAGES.get(action, {}).get(state, fallback)
        raise InvalidTransitionError(message)
    return target
