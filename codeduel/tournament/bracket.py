"""Pairing, problem assignment and pairwise winner resolution for a round."""

from __future__ import annotations

import logging
import random
from collections.abc import Mapping, Sequence
from typing import Any, Optional

logger = logging.getLogger(__name__)


def shuffle_players(
    players: Sequence[Any], rng: Optional[random.Random] = None
) -> list[Any]:
    """Return a uniformly random permutation of ``players``.

    Fisher-Yates over a copy: the input sequence is left untouched.
    """
    rng = rng or random.Random()
    shuffled = list(players)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def _player_id(ref: Any) -> Optional[str]:
    if isinstance(ref, Mapping):
        return ref.get("id") or None
    return None


def pair_problems(
    players: Sequence[Any],
    problem_pool: Sequence[str],
    rng: Optional[random.Random] = None,
) -> list[tuple[str, str]]:
    """Choose one problem per consecutive pair of players.

    Both members of a pair get the same problem. A trailing odd player gets
    an independent pick. Entries without an id are skipped but keep their
    slot, so the pairs never shift.
    """
    if not problem_pool:
        raise ValueError("Problem pool is empty.")
    rng = rng or random.Random()

    assignments: list[tuple[str, str]] = []
    for start in range(0, len(players), 2):
        problem_id = rng.choice(list(problem_pool))
        for index in range(start, min(start + 2, len(players))):
            player_id = _player_id(players[index])
            if not player_id:
                logger.warning(
                    f"Skipping player at index {index}: invalid player data."
                )
                continue
            assignments.append((player_id, problem_id))
    return assignments


def _beats(first: Mapping[str, Any], second: Mapping[str, Any]) -> bool:
    """Whether ``first`` wins the head-to-head against ``second``."""
    t1 = first.get("testsPassed") or 0
    t2 = second.get("testsPassed") or 0
    s1 = first.get("submissionTime")
    s2 = second.get("submissionTime")

    if s1 is None and s2 is None:
        # Nobody submitted: the first of the pair advances by default.
        return True
    if s1 is None:
        return False
    if s2 is None:
        return True
    if t1 != t2:
        return t1 > t2
    return s1 < s2


def resolve_bracket(
    players: Sequence[Any], records: Mapping[str, Mapping[str, Any]]
) -> list[Any]:
    """Decide one winner per consecutive pair of ``players``.

    ``records`` maps a player id to its player document. A player without a
    record counts as not having submitted. A trailing odd player advances
    only if it passed at least one test.
    """
    winners: list[Any] = []
    for start in range(0, len(players), 2):
        first = players[start]
        first_record = records.get(_player_id(first) or "", {})

        if start == len(players) - 1:
            if (first_record.get("testsPassed") or 0) > 0:
                winners.append(first)
            continue

        second = players[start + 1]
        second_record = records.get(_player_id(second) or "", {})
        winners.append(first if _beats(first_record, second_record) else second)
    return winners
