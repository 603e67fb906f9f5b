"""Tests for the room lifecycle."""

from __future__ import annotations

import unittest

from codeduel.errors import InvalidTransitionError
from codeduel.tournament.state import Action, RoomState, transition


class RoomStateTestCase(unittest.TestCase):
    """Test case for RoomState and its transitions."""

    def test_state_from_flags(self) -> None:
        """Rooms written without a state field derive it from their flags."""
        cases = [
            ({}, RoomState.CREATED),
            ({"isStarted": True}, RoomState.STARTED),
            ({"isStarted": True, "roundStarted": True}, RoomState.ROUND_IN_PROGRESS),
            ({"isStarted": True, "resultCalculated": True}, RoomState.ROUND_RESOLVED),
            (
                {"isStarted": True, "resultCalculated": True, "resultDeclared": True},
                RoomState.RESULT_DECLARED,
            ),
        ]
        for room, expected in cases:
            with self.subTest(room=room):
                self.assertIs(RoomState.of(room), expected)

    def test_stored_state_wins(self) -> None:
        """An explicit state field is used as is."""
        room = {"state": "ROUND_RESOLVED", "isStarted": False}
        self.assertIs(RoomState.of(room), RoomState.ROUND_RESOLVED)

    def test_flags_round_trip(self) -> None:
        """Each state's flag projection derives back to the same state."""
        for state in RoomState:
            with self.subTest(state=state):
                self.assertIs(RoomState.of(state.flags), state)

    def test_round_cycle(self) -> None:
        """A full round walks through every state."""
        state = transition(RoomState.CREATED, Action.START_TOURNAMENT)
        self.assertIs(state, RoomState.STARTED)
        state = transition(state, Action.START_ROUND)
        self.assertIs(state, RoomState.ROUND_IN_PROGRESS)
        state = transition(state, Action.CALCULATE_RESULT)
        self.assertIs(state, RoomState.ROUND_RESOLVED)
        state = transition(state, Action.DECLARE_RESULT)
        self.assertIs(state, RoomState.RESULT_DECLARED)
        state = transition(state, Action.START_ROUND)
        self.assertIs(state, RoomState.ROUND_IN_PROGRESS)
        state = transition(state, Action.END_TOURNAMENT)
        self.assertIs(state, RoomState.CREATED)

    def test_invalid_transitions(self) -> None:
        """Out-of-order actions are rejected."""
        invalid = [
            (RoomState.CREATED, Action.START_ROUND),
            (RoomState.ROUND_IN_PROGRESS, Action.START_ROUND),
            (RoomState.CREATED, Action.CALCULATE_RESULT),
            (RoomState.STARTED, Action.CALCULATE_RESULT),
            (RoomState.STARTED, Action.DECLARE_RESULT),
            (RoomState.ROUND_IN_PROGRESS, Action.DECLARE_RESULT),
        ]
        for state, action in invalid:
            with self.subTest(state=state, action=action):
                with self.assertRaises(InvalidTransitionError) as ctx:
                    transition(state, action)
                self.assertEqual(ctx.exception.status_code, 409)

    def test_always_allowed(self) -> None:
        """Starting, leaving and ending are accepted in every state."""
        for state in RoomState:
            with self.subTest(state=state):
                self.assertIs(
                    transition(state, Action.START_TOURNAMENT), RoomState.STARTED
                )
                self.assertIs(transition(state, Action.LEAVE_TOURNAMENT), state)
                self.assertIs(transition(state, Action.END_TOURNAMENT), RoomState.CREATED)


if __name__ == "__main__":
    unittest.main()
