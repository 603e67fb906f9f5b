from flask import Blueprint, current_app, jsonify
from flask_wtf.csrf import CSRFError
from google.api_core.exceptions import GoogleAPICallError

from .errors import AppError, NotFoundError, RemoteServiceError, ValidationError
from .judge import TestCaseError

error_handlers_bp = Blueprint("error_handlers", __name__)


@error_handlers_bp.app_errorhandler(ValidationError)
def handle_validation_error(error):
    """Handles validation errors."""
    current_app.logger.warning(f"Validation Error: {error.message}")
    return jsonify({"message": error.message}), error.status_code


@error_handlers_bp.app_errorhandler(NotFoundError)
def handle_not_found_error(error):
    """Handles not found errors."""
    current_app.logger.warning(f"Not Found Error: {error.message}")
    return jsonify({"message": error.message}), error.status_code


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles generic application errors."""
    if error.status_code >= 500:
        current_app.logger.error(f"Application Error: {error.message}")
    else:
        current_app.logger.warning(f"Application Error: {error.message}")
    return jsonify({"message": error.message}), error.status_code


@error_handlers_bp.app_errorhandler(TestCaseError)
def handle_test_case_error(error):
    """Handles test case catalog failures that abort a whole submission."""
    return handle_app_error(
        RemoteServiceError(f"Test cases unavailable: {error.message}")
    )


@error_handlers_bp.app_errorhandler(GoogleAPICallError)
def handle_db_error(e):
    """Handles database errors."""
    current_app.logger.error(f"Database Error: {e}")
    # Avoid exposing raw database error details to the user
    return (
        jsonify({"message": "A database error occurred. Please try again later."}),
        500,
    )


@error_handlers_bp.app_errorhandler(CSRFError)
def handle_csrf_error(e):
    """Handles CSRF errors, which usually indicate an expired session."""
    current_app.logger.warning(f"CSRF Error: {e.description}")
    return jsonify({"message": "Your session may have expired."}), 400


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles generic 404 errors for routes that don't exist."""
    return jsonify({"message": "Route not found"}), 404


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return jsonify({"message": "Server error"}), 500
