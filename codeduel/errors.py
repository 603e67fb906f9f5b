"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class InvalidTransitionError(AppError):
    """Raised when a room action is not allowed in the room's current state."""

    def __init__(self, message="Action not allowed in the current room state."):
        """Initialize the error."""
        super().__init__(message, 409)


class RemoteServiceError(AppError):
    """Raised when a remote judging service cannot serve a whole request."""

    def __init__(self, message="A remote judging service is unavailable."):
        """Initialize the error."""
        super().__init__(message, 502)
