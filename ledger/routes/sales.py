# Overview: Routes for today's sales, previous entries, quick-add with credit check, and deletion.

from flask import Blueprint, current_app, g, jsonify, request

from ..api.client import ApiError
from ..decorators import api_error_response, require_login, validation_error_response
from ..extensions import backend
from ..services import sales_service
from ..services.analytics_service import group_sales_by_date, summarize_today
from ..services.query_cache import QueryKeys
from ..services.sales_service import SaleError
from ..time_utils import date_key, parse_iso_date, today_iso, yesterday_iso
from ..validation import ValidationError


sales_bp = Blueprint("sales", __name__, url_prefix="/sales")


def _customers():
    return backend.cache.fetch(QueryKeys.customers_list({"limit": 1000}), lambda: g.api.customers.all())


@sales_bp.get("/today")
@require_login
def today_route():
    """Today's entries plus KPIs against yesterday."""
    try:
        settings = backend.current_settings(g.api)
        today = today_iso()
        sales = backend.cache.fetch(
            QueryKeys.sales_list({"startDate": yesterday_iso(), "endDate": today}),
            lambda: g.api.sales.list(start_date=yesterday_iso(), end_date=today, limit=1000).data,
        )
        customers = _customers()
        lookup = {c.id: c for c in customers}
        entries = [
            sales_service.sale_entry(s, lookup.get(s.customer_id), settings)
            for s in sales
            if date_key(s.date) == today
        ]
        return jsonify({
            "summary": summarize_today(sales, customers, today, settings),
            "entries": entries,
        })

    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load today's sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/previous")
@require_login
def previous_route():
    """Entries for one past date (default yesterday)."""
    try:
        day = request.args.get("date") or yesterday_iso()
        try:
            day = parse_iso_date(day).isoformat()
        except ValueError:
            raise ValidationError("date must be YYYY-MM-DD", {"date": "date must be YYYY-MM-DD"})

        settings = backend.current_settings(g.api)
        sales = backend.cache.fetch(QueryKeys.sales_list({"date": day}), lambda: g.api.sales.by_date(day))
        groups = group_sales_by_date(sales, _customers(), settings)
        return jsonify({"date": day, "groups": groups})

    except ValidationError as e:
        return validation_error_response(e)
    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load previous sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/credit-check")
@require_login
def credit_check_route():
    """Effective price, amount and credit utilization for the form, nothing submitted."""
    try:
        data = request.get_json(silent=True) or {}
        settings = backend.current_settings(g.api)
        return jsonify(sales_service.preview_sale(g.api, backend.cache, settings, data))

    except ValidationError as e:
        return validation_error_response(e)
    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to run credit check")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/quick-add")
@require_login
def quick_add_route():
    try:
        data = request.get_json(silent=True) or {}
        settings = backend.current_settings(g.api)
        sale, credit = sales_service.quick_add_sale(g.api, backend.cache, settings, data)
        body = {"sale": sale.to_dict(), "credit": credit.to_dict() if credit else None}
        if credit is not None and credit.message:
            body["warning"] = credit.message
        return jsonify(body), 201

    except ValidationError as e:
        return validation_error_response(e)
    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to add sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.delete("/<sale_id>")
@require_login
def delete_route(sale_id: str):
    try:
        sales_service.delete_sale(g.api, backend.cache, sale_id)
        return jsonify({"message": "Sale deleted"})

    except SaleError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        return jsonify({"error": "Internal server error"}), 500
