"""Routes for the tournament blueprint."""

from __future__ import annotations

from typing import Any

from firebase_admin import firestore
from flask import current_app, g, jsonify, request

from codeduel.auth.decorators import login_required
from codeduel.errors import ValidationError
from codeduel.utils import require_valid

from . import bp
from .forms import LeaveTournamentForm, RoomActionForm
from .services import TournamentService


def _room_id_arg() -> str:
    room_id = request.args.get("roomId", "").strip()
    if not room_id:
        raise ValidationError("roomId is required.")
    return room_id


@bp.route("/startTournament", methods=["POST"])
@login_required
def start_tournament() -> Any:
    """Start the tournament with the room's participants."""
    form = require_valid(RoomActionForm())
    message = TournamentService.start_tournament(form.roomId.data, firestore.client())
    return jsonify({"message": message})


@bp.route("/startRound", methods=["POST"])
@login_required
def start_round() -> Any:
    """Pair the remaining players and start the next round."""
    form = require_valid(RoomActionForm())
    round_no = TournamentService.start_round(
        form.roomId.data,
        firestore.client(),
        problem_pool=current_app.config["PROBLEM_POOL"],
    )
    return jsonify({"message": "Round started successfully", "roundNo": round_no})


@bp.route("/leaveTournament", methods=["POST"])
@login_required
def leave_tournament() -> Any:
    """Remove a player (by default the current one) from the roster."""
    form = require_valid(LeaveTournamentForm())
    player_id = form.userID.data or (g.user or {}).get("uid")
    if not player_id:
        raise ValidationError("userID is required.")
    room_id = form.roomId.data
    message = TournamentService.leave_tournament(room_id, player_id, firestore.client())
    return jsonify({"roomId": room_id, "message": message})


@bp.route("/endTournament", methods=["POST"])
@login_required
def end_tournament() -> Any:
    """Reset the room."""
    form = require_valid(RoomActionForm())
    message = TournamentService.end_tournament(form.roomId.data, firestore.client())
    return jsonify({"message": message})


@bp.route("/declareResult", methods=["POST"])
@login_required
def declare_result() -> Any:
    """Make the calculated round result visible to the room."""
    form = require_valid(RoomActionForm())
    message = TournamentService.declare_result(form.roomId.data, firestore.client())
    return jsonify({"message": message})


@bp.route("/getTournamentDetails", methods=["GET"])
def get_tournament_details() -> Any:
    """Return a snapshot of the room's tournament state."""
    details = TournamentService.get_tournament_details(
        _room_id_arg(), firestore.client()
    )
    return jsonify(details)


@bp.route("/getTime", methods=["GET"])
def get_time() -> Any:
    """Return when the current round started."""
    start_time = TournamentService.get_time(_room_id_arg(), firestore.client())
    return jsonify({"startTime": start_time})
