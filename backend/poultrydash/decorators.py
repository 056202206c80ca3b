# Overview: Request decorators for API routes.

from functools import wraps
from flask import current_app, g, jsonify, request

from .services import auth_service


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip()


def require_auth(f):
    """
    Require a valid API token and establish the tenant context.

    Sets g.current_user; every service call in the route is scoped to it.
    Returns 401 when the token is missing or unknown.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        user = auth_service.find_user_by_token(token)
        if user is None:
            return jsonify({"error": "Invalid token"}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_cron_secret(f):
    """Guard for the scheduled trigger: Authorization: Bearer <CRON_SECRET>."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get("CRON_SECRET")
        if not auth_service.cron_secret_matches(_bearer_token(), expected):
            return jsonify({"error": "Unauthorized"}), 401
        return f(*args, **kwargs)

    return decorated_function
