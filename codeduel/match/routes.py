"""Routes for the match blueprint."""

from __future__ import annotations

from typing import Any

from firebase_admin import firestore
from flask import current_app, jsonify, request

from codeduel.auth.decorators import login_required
from codeduel.errors import ValidationError
from codeduel.judge import get_execution_client, get_judging_pipeline
from codeduel.tournament.forms import RoomActionForm
from codeduel.tournament.services import TournamentService
from codeduel.utils import require_valid

from . import bp
from .forms import SubmitCodeForm
from .services import MatchService


@bp.route("/getProblemID", methods=["GET"])
def get_problem_id() -> Any:
    """Return the problem assigned to a player."""
    user_id = request.args.get("userID", "").strip()
    if not user_id:
        raise ValidationError("userID is required.")
    problem_id = MatchService.get_problem_id(user_id, firestore.client())
    return jsonify({"problemID": problem_id})


@bp.route("/submitCode", methods=["POST"])
@login_required
def submit_code() -> Any:
    """Judge a submission against the problem's hidden test cases."""
    form = require_valid(SubmitCodeForm())
    result = MatchService.submit_code(
        form.to_submission(), get_judging_pipeline(), firestore.client()
    )
    return jsonify(result.to_dict())


@bp.route("/calculateResult", methods=["POST"])
@login_required
def calculate_result() -> Any:
    """Decide the winners of the room's current round."""
    form = require_valid(RoomActionForm())
    outcome = TournamentService.calculate_result(form.roomId.data, firestore.client())
    return jsonify(outcome)


@bp.route("/executor-health", methods=["GET"])
@login_required(admin_required=True)
def executor_health() -> Any:
    """Check that the code executor accepts the configured credentials."""
    client = get_execution_client()
    report = client.check_credentials()
    current_app.logger.info(f"Executor self-test success={report['success']}")
    return jsonify({**report, "hasCredentials": client.has_credentials})
