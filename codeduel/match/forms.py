"""Forms for the match blueprint."""

from flask_wtf import FlaskForm
from wtforms import StringField
from wtforms.validators import DataRequired

from .models import CodeSubmission


class SubmitCodeForm(FlaskForm):
    """Form for submitting a solution."""

    script = StringField("Script", validators=[DataRequired()])
    language = StringField("Language", validators=[DataRequired()])
    userID = StringField("Player ID", validators=[DataRequired()])
    problemID = StringField("Problem ID", validators=[DataRequired()])

    def to_submission(self) -> CodeSubmission:
        """Build the submission the judging service consumes."""
        return CodeSubmission(
            script=self.script.data,
            language=self.language.data.strip(),
            player_id=self.userID.data.strip(),
            problem_id=self.problemID.data.strip(),
        )
