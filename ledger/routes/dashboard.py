# Overview: Dashboard route; KPIs with comparison period, trend series, top locations and customers.

from flask import Blueprint, current_app, g, jsonify, request

from ..api.client import ApiError
from ..decorators import api_error_response, require_login, validation_error_response
from ..extensions import backend
from ..services.dashboard_service import build_dashboard
from ..services.date_filter import DateFilter
from ..validation import ValidationError


dashboard_bp = Blueprint("dashboard", __name__)


@dashboard_bp.get("/dashboard")
@require_login
def dashboard_route():
    """
    Query args: preset=7D|30D|90D|1Y, or start/end (YYYY-MM-DD), compare=false.
    A failing section comes back as {"status": "error", "retry_url"}.
    """
    try:
        date_filter = DateFilter.from_args(request.args)
        settings = backend.current_settings(g.api)
        return jsonify(build_dashboard(
            g.api,
            backend.cache,
            settings,
            date_filter,
            retry_url=request.full_path.rstrip("?"),
        ))

    except ValidationError as e:
        return validation_error_response(e)
    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to build dashboard")
        return jsonify({"error": "Internal server error"}), 500
