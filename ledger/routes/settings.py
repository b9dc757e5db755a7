# Overview: Routes for business settings and user management (admin only).

from flask import Blueprint, current_app, g, jsonify, request

from ..api.client import ApiError
from ..decorators import api_error_response, require_admin, require_login, validation_error_response
from ..extensions import backend
from ..services.query_cache import QueryKeys
from ..validation import ValidationError, validate_settings_form, validate_user_form


settings_bp = Blueprint("settings", __name__, url_prefix="/settings")


def _settings_payload(settings) -> dict:
    state = backend.settings_state
    return {"settings": settings.to_dict(), "error": state.error, "loaded": state.loaded}


def _settings_changed(settings) -> None:
    backend.cache.set(QueryKeys.settings_all(), settings)


@settings_bp.get("")
@require_login
def get_settings_route():
    try:
        return jsonify(_settings_payload(backend.current_settings(g.api)))
    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load settings")
        return jsonify({"error": "Internal server error"}), 500


@settings_bp.put("")
@require_admin
def update_settings_route():
    try:
        values = validate_settings_form(request.get_json(silent=True) or {})
        settings = backend.settings_state.update(g.api.settings, values)
        _settings_changed(settings)
        current_app.logger.info("Settings updated: %s", ", ".join(sorted(values)))
        return jsonify(_settings_payload(settings))

    except ValidationError as e:
        return validation_error_response(e)
    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update settings")
        return jsonify({"error": "Internal server error"}), 500


@settings_bp.post("/custom-pricing")
@require_admin
def custom_pricing_route():
    try:
        enabled = (request.get_json(silent=True) or {}).get("enabled")
        if not isinstance(enabled, bool):
            raise ValidationError("enabled must be true or false", {"enabled": "enabled must be true or false"})
        settings = backend.settings_state.set_custom_pricing(g.api.settings, enabled)
        _settings_changed(settings)
        return jsonify(_settings_payload(settings))

    except ValidationError as e:
        return validation_error_response(e)
    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to toggle custom pricing")
        return jsonify({"error": "Internal server error"}), 500


@settings_bp.post("/reset")
@require_admin
def reset_settings_route():
    try:
        settings = backend.settings_state.reset_to_defaults(g.api.settings)
        _settings_changed(settings)
        return jsonify(_settings_payload(settings))

    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to reset settings")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# Users
# =============================================================================

@settings_bp.get("/users")
@require_admin
def list_users_route():
    try:
        users = backend.cache.fetch(QueryKeys.users_all(), g.api.users.list)
        return jsonify({"users": [u.to_dict() for u in users]})
    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list users")
        return jsonify({"error": "Internal server error"}), 500


@settings_bp.post("/users")
@require_admin
def create_user_route():
    try:
        existing = g.api.users.list()
        values = validate_user_form(request.get_json(silent=True) or {}, len(existing))
        if any(u.username.lower() == values["username"].lower() for u in existing):
            raise ValidationError("Username already exists", {"username": "Username already exists"})
        user = g.api.users.create(values["username"], values["passcode"], values["role"])
        backend.cache.invalidate(QueryKeys.users_all())
        current_app.logger.info("Created user %s (%s)", user.username, user.role)
        return jsonify({"user": user.to_dict()}), 201

    except ValidationError as e:
        return validation_error_response(e)
    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Internal server error"}), 500


@settings_bp.delete("/users/<user_id>")
@require_admin
def delete_user_route(user_id: str):
    try:
        current = g.auth.current_user()
        if current is not None and current.id == user_id:
            raise ValidationError("You cannot delete your own account", {"user_id": "You cannot delete your own account"})
        message = g.api.users.delete(user_id)
        backend.cache.invalidate(QueryKeys.users_all())
        return jsonify({"message": message or "User deleted"})

    except ValidationError as e:
        return validation_error_response(e)
    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete user")
        return jsonify({"error": "Internal server error"}), 500
