"""Decorators for the API blueprints."""

from functools import wraps

from flask import jsonify, session


def login_required(f=None, admin_required=False):
    """Reject the request with 401 if no player is logged in.

    Usage:
    @login_required
    def protected_view():
        ...

    @login_required(admin_required=True)
    def admin_view():
        ...
    """

    def decorator(func):
        @wraps(func)
        def decorated_function(*args, **kwargs):
            if "user_id" not in session:
                return jsonify({"message": "Authentication required"}), 401
            if admin_required and not session.get("is_admin"):
                return jsonify({"message": "You are not authorized to do this."}), 403
            return func(*args, **kwargs)

        return decorated_function

    if f:
        return decorator(f)
    return decorator
