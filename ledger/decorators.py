# Overview: Request decorators and JSON error helpers for routes.

from __future__ import annotations

from functools import wraps

from flask import current_app, g, jsonify, request, session

from .api import SessionTokenStore
from .api.client import ApiError, SessionExpiredError
from .extensions import backend
from .services.session_service import AuthSession
from .validation import ValidationError


def bind_api():
    """Per-request API client whose tokens live in the Flask session."""
    if "api" not in g:
        g.api = backend.api_for(SessionTokenStore(session), current_path=request.path)
        g.auth = AuthSession(g.api.auth)
    return g.api


def close_api(exc=None) -> None:
    api = g.pop("api", None)
    if api is not None:
        api.close()


def validation_error_response(e: ValidationError):
    return jsonify({"error": e.message, "errors": e.errors}), 400


def api_error_response(e: ApiError):
    """Backend failures surface as toasts; expired sessions tell the UI where to go."""
    if isinstance(e, SessionExpiredError):
        body = {"error": e.message, "toast": True}
        if e.redirect_to:
            body["redirect"] = e.redirect_to
        return jsonify(body), 401

    status = e.status_code if e.status_code and 400 <= e.status_code < 600 else 502
    body = {"error": e.message, "toast": True}
    if e.errors:
        body["errors"] = e.errors
    return jsonify(body), status


def require_login(f):
    """
    Require a stored access token and bind g.api / g.auth.

    Returns 401 with a redirect hint when the browser session has no token.
    Token expiry is handled later by the API client's refresh flow.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        api = bind_api()
        if not api.client.tokens.is_authenticated():
            return jsonify({"error": "Authentication required", "redirect": "/login"}), 401
        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Require login and an ADMIN role (checked against /auth/me)."""
    @wraps(f)
    @require_login
    def decorated_function(*args, **kwargs):
        try:
            user = g.auth.current_user()
        except ApiError as e:
            return api_error_response(e)
        if user is None or not g.auth.is_admin:
            current_app.logger.warning("Admin route %s denied for %s", request.path, user.username if user else None)
            return jsonify({"error": "Admin access required"}), 403
        return f(*args, **kwargs)

    return decorated_function
