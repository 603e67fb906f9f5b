"""Tournament blueprint."""

from flask import Blueprint

bp = Blueprint("tournament", __name__, url_prefix="/api/tournament")

from . import routes  # noqa: E402, F401
from .models import Player, PlayerRef, Room  # noqa: E402
from .services import TournamentService  # noqa: E402
from .state import RoomState  # noqa: E402

__all__ = ["Player", "PlayerRef", "Room", "RoomState", "TournamentService", "routes"]
