"""Utility functions for the application."""

import smtplib

from flask import current_app, render_template
from flask_mail import Message

from .errors import ValidationError
from .extensions import mail

SMTP_APP_PASSWORD_REQUIRED = 534


class EmailError(Exception):
    """Base class for email errors."""

    pass


def send_email(to, subject, template, **kwargs):
    """Send an email to a recipient.

    Raises:
        EmailError: If sending the email fails.
    """
    msg = Message(
        subject,
        recipients=[to],
        html=render_template(template, **kwargs),
        sender=current_app.config["MAIL_DEFAULT_SENDER"],
    )
    try:
        mail.send(msg)
    except smtplib.SMTPAuthenticationError as e:
        if e.smtp_code == SMTP_APP_PASSWORD_REQUIRED:
            raise EmailError(
                "Authentication failed. The mail provider requires an app password. "
                "Please verify your MAIL_USERNAME and MAIL_PASSWORD settings."
            ) from e
        raise EmailError(f"SMTP Authentication failed: {e}") from e
    except Exception as e:
        raise EmailError(f"Failed to send email: {e}") from e


def require_valid(form):
    """Validate a submitted form, raising ValidationError with its messages."""
    if form.validate_on_submit():
        return form
    messages = [
        f"{name}: {', '.join(errors)}" for name, errors in sorted(form.errors.items())
    ]
    raise ValidationError("; ".join(messages) or "Validation failed.")
