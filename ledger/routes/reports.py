# Overview: Routes for the daily collections report, the aging report and their CSV exports.

from flask import Blueprint, Response, current_app, g, jsonify, request

from ..api.client import ApiError, SessionExpiredError
from ..decorators import api_error_response, require_login, validation_error_response
from ..extensions import backend
from ..services.credit_service import build_aging_summary
from ..services.query_cache import QueryKeys
from ..services.report_service import (
    CSV_CONTENT_TYPE,
    aging_csv_filename,
    aging_report_csv,
    aging_report_insights,
    daily_csv_filename,
    daily_report_csv,
    daily_report_insights,
)
from ..time_utils import parse_iso_date, today_iso
from ..validation import ValidationError


reports_bp = Blueprint("reports", __name__, url_prefix="/reports")


def _report_date() -> str:
    raw = request.args.get("date") or today_iso()
    try:
        day = parse_iso_date(raw)
    except ValueError:
        day = None
    if day is None:
        raise ValidationError("date must be a YYYY-MM-DD date", {"date": "date must be a YYYY-MM-DD date"})
    return day.isoformat()


def _daily_report(day: str):
    return backend.cache.fetch(
        QueryKeys.reports("daily", day),
        lambda: g.api.payments.daily_payments_report(day),
    )


def _aging_report():
    """Backend aging report, or one built from outstanding balances if that endpoint fails."""
    def load():
        try:
            return g.api.payments.aging_report()
        except SessionExpiredError:
            raise
        except ApiError as e:
            current_app.logger.warning("Aging report unavailable, building from balances: %s", e.message)
            return build_aging_summary(g.api.payments.outstanding_balances())

    return backend.cache.fetch(QueryKeys.reports("aging"), load)


def _csv_response(body: str, filename: str) -> Response:
    return Response(
        body,
        content_type=CSV_CONTENT_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@reports_bp.get("/daily")
@require_login
def daily_route():
    try:
        return jsonify(daily_report_insights(_daily_report(_report_date())))

    except ValidationError as e:
        return validation_error_response(e)
    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load daily report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/daily.csv")
@require_login
def daily_csv_route():
    try:
        day = _report_date()
        return _csv_response(daily_report_csv(_daily_report(day)), daily_csv_filename(day))

    except ValidationError as e:
        return validation_error_response(e)
    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to export daily report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/aging")
@require_login
def aging_route():
    try:
        return jsonify(aging_report_insights(_aging_report()))

    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load aging report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/aging.csv")
@require_login
def aging_csv_route():
    try:
        report = _aging_report()
        return _csv_response(aging_report_csv(report), aging_csv_filename(report.generated_at, today_iso()))

    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to export aging report")
        return jsonify({"error": "Internal server error"}), 500
