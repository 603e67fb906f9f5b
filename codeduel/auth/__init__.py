"""Session guards for the API blueprints."""

from .decorators import login_required

__all__ = ["login_required"]
