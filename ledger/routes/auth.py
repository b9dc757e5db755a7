# Overview: Routes for login/logout; tokens are kept in the signed session cookie.

from flask import Blueprint, current_app, g, jsonify, request

from ..api.client import ApiError
from ..decorators import api_error_response, bind_api, require_login, validation_error_response
from ..extensions import backend
from ..validation import ValidationError


auth_bp = Blueprint("auth", __name__)


@auth_bp.post("/login")
def login_route():
    """Authenticate against the backend with username + 6-digit passcode."""
    try:
        data = request.get_json(silent=True) or {}
        bind_api()
        user = g.auth.login(data.get("username") or "", data.get("passcode") or "")
        backend.cache.invalidate(("settings",))
        return jsonify({"user": user.to_dict()})

    except ValidationError as e:
        return validation_error_response(e)
    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to log in")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    """Always clears the session tokens, even if the backend call fails."""
    bind_api()
    g.auth.logout()
    return jsonify({"message": "Logged out"})


@auth_bp.get("/me")
@require_login
def me_route():
    try:
        user = g.auth.current_user()
        return jsonify({"user": user.to_dict() if user else None})
    except ApiError as e:
        return api_error_response(e)
