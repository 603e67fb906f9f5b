"""Forms for the tournament blueprint."""

from flask_wtf import FlaskForm
from wtforms import StringField
from wtforms.validators import DataRequired, Optional


class RoomActionForm(FlaskForm):
    """Form for an action addressed to a whole room."""

    roomId = StringField("Room ID", validators=[DataRequired()])


class LeaveTournamentForm(RoomActionForm):
    """Form for removing a player from a room's roster."""

    userID = StringField("Player ID", validators=[Optional()])
