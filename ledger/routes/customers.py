# Overview: Routes for customer listing, detail (pricing, stats, balance), purchase history, create and update.

from flask import Blueprint, current_app, g, jsonify, request

from ..api.adapters import total_from_pagination
from ..api.client import ApiError
from ..decorators import api_error_response, require_login, validation_error_response
from ..extensions import backend
from ..services.analytics_service import customer_history
from ..services.credit_service import calculate_utilization
from ..services.pricing_service import describe_pricing
from ..services.query_cache import QueryKeys
from ..validation import ValidationError, validate_customer_form


customers_bp = Blueprint("customers", __name__, url_prefix="/customers")


def _invalidate(customer_id=None):
    prefixes = [QueryKeys.customers_all()]
    if customer_id:
        prefixes.append(QueryKeys.customer_outstanding(customer_id))
    backend.cache.invalidate(*prefixes)


@customers_bp.get("")
@require_login
def list_route():
    try:
        filters = {
            "location": request.args.get("location"),
            "search": request.args.get("search"),
            "page": request.args.get("page", type=int),
            "limit": request.args.get("limit", type=int),
        }
        result = backend.cache.fetch(
            QueryKeys.customers_list(filters),
            lambda: g.api.customers.list(**filters),
        )
        return jsonify({
            "customers": [c.to_dict() for c in result.data],
            "pagination": result.pagination,
            "total": total_from_pagination(result.pagination),
        })

    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list customers")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/<customer_id>")
@require_login
def detail_route(customer_id: str):
    try:
        settings = backend.current_settings(g.api)
        customer = backend.cache.fetch(
            QueryKeys.customer_detail(customer_id), lambda: g.api.customers.get(customer_id)
        )
        outstanding = backend.cache.fetch(
            QueryKeys.customer_outstanding(customer_id),
            lambda: g.api.payments.customer_outstanding(customer_id),
        )
        stats = g.api.customers.stats(customer_id)
        return jsonify({
            "customer": customer.to_dict(),
            "pricing": describe_pricing(customer, settings),
            "outstanding": outstanding.to_dict(),
            "credit_utilization": calculate_utilization(outstanding.total_owed, customer.credit_limit),
            "stats": stats,
        })

    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/<customer_id>/sales")
@require_login
def history_route(customer_id: str):
    """Purchase history grouped by date, most recent first."""
    try:
        settings = backend.current_settings(g.api)
        customer = backend.cache.fetch(
            QueryKeys.customer_detail(customer_id), lambda: g.api.customers.get(customer_id)
        )
        if customer is None:
            return jsonify({"error": "Customer not found", "details": {"customer_id": customer_id}}), 404
        sales = backend.cache.fetch(
            QueryKeys.sales_list({"customerId": customer_id}),
            lambda: g.api.sales.list(customer_id=customer_id, limit=1000).data,
        )
        return jsonify({
            "customer": customer.to_dict(),
            **customer_history(sales, customer, settings),
        })

    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load customer history")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.post("")
@require_login
def create_route():
    try:
        data = request.get_json(silent=True) or {}
        values = validate_customer_form(data)
        if values.get("credit_limit") is None:
            values["credit_limit"] = backend.current_settings(g.api).default_credit_limit
        customer = g.api.customers.create(values)
        _invalidate()
        return jsonify({"customer": customer.to_dict()}), 201

    except ValidationError as e:
        return validation_error_response(e)
    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.put("/<customer_id>")
@require_login
def update_route(customer_id: str):
    try:
        data = request.get_json(silent=True) or {}
        values = validate_customer_form(data, partial=True)
        customer = g.api.customers.update(customer_id, values)
        _invalidate(customer_id)
        return jsonify({"customer": customer.to_dict()})

    except ValidationError as e:
        return validation_error_response(e)
    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500
