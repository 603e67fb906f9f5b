"""Data models for the match blueprint."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class CodeSubmission:
    """A player's solution to their assigned problem."""

    script: str
    language: str
    player_id: str
    problem_id: str
