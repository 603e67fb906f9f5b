"""The match blueprint: code submission and round results."""

from flask import Blueprint

bp = Blueprint("match", __name__, url_prefix="/api/tournament/match")

from . import routes  # noqa: E402

__all__ = ["routes"]
