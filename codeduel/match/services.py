"""Service layer for code submissions."""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore

from codeduel.core.constants import (
    PLAYER_PROBLEM_ID,
    PLAYER_SUBMISSION_TIME,
    PLAYER_TESTS_PASSED,
    USERS_COLLECTION,
)
from codeduel.errors import NotFoundError

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

    from codeduel.judge import JudgingPipeline, SubmissionResult

    from .models import CodeSubmission

logger = logging.getLogger(__name__)


class MatchService:
    """Service class for submission-related operations."""

    @staticmethod
    def get_problem_id(player_id: str, db: Client | None = None) -> Any:
        """Return the problem assigned to a player for the current round."""
        if db is None:
            db = firestore.client()
        doc = cast(Any, db.collection(USERS_COLLECTION).document(player_id).get())
        if not doc.exists:
            raise NotFoundError("User not found")
        return (doc.to_dict() or {}).get(PLAYER_PROBLEM_ID)

    @staticmethod
    def submit_code(
        submission: CodeSubmission,
        pipeline: JudgingPipeline,
        db: Client | None = None,
    ) -> SubmissionResult:
        """Judge a submission and record the score on the player.

        The player is looked up before judging so an unknown player does not
        spend executor credits.
        """
        if db is None:
            db = firestore.client()
        ref = db.collection(USERS_COLLECTION).document(submission.player_id)
        if not cast(Any, ref.get()).exists:
            raise NotFoundError("User not found")

        result = pipeline.judge(
            submission.script, submission.language, submission.problem_id
        )

        ref.update(
            {
                PLAYER_TESTS_PASSED: result.passed_count,
                PLAYER_SUBMISSION_TIME: datetime.datetime.now(datetime.timezone.utc),
            }
        )
        logger.info(
            f"Player {submission.player_id} passed {result.passed_count}/"
            f"{result.total_count} on problem {submission.problem_id}"
            + (" (judging aborted)" if result.aborted else "")
        )
        return result
