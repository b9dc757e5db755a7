# Overview: Routes for outstanding balances, payment recording, debt-tab operations and reminder notes.

from flask import Blueprint, current_app, g, jsonify, request

from ..api.client import ApiError
from ..colors import get_utilization_tone
from ..decorators import api_error_response, require_login, validation_error_response
from ..extensions import backend
from ..services import payment_service
from ..services.credit_service import balance_preview, calculate_utilization
from ..services.payment_service import PaymentError
from ..services.query_cache import QueryKeys
from ..time_utils import days_since, format_relative_date, to_utc_z, utcnow
from ..validation import (
    ValidationError,
    validate_debt_adjustment,
    validate_debt_charge,
    validate_debt_payment,
    validate_payment_amount,
)


debts_bp = Blueprint("debts", __name__, url_prefix="/debts")


def _invalidate_debts(customer_id: str) -> None:
    backend.cache.invalidate(
        QueryKeys.debts_all(),
        QueryKeys.outstanding_balances(),
        QueryKeys.customer_outstanding(customer_id),
        QueryKeys.customer_detail(customer_id),
        ("reports",),
    )


def _outstanding_row(balance) -> dict:
    utilization = calculate_utilization(balance.total_owed, balance.credit_limit)
    return {**balance.to_dict(), "credit_utilization": utilization, "tone": get_utilization_tone(utilization)}


def _current_balance(customer_id: str) -> float:
    """Open debt-tab balance, re-read before any money moves."""
    debt = backend.cache.fetch(
        QueryKeys.debts_customer(customer_id),
        lambda: g.api.debts.customer_debt(customer_id),
        stale_seconds=0,
    )
    tab = debt.get("tab") or {}
    return float(tab.get("totalBalance") or 0)


@debts_bp.get("/outstanding")
@require_login
def outstanding_route():
    try:
        balances = backend.cache.fetch(QueryKeys.outstanding_balances(), g.api.payments.outstanding_balances)
        rows = sorted(balances, key=lambda b: b.total_owed, reverse=True)
        return jsonify({
            "customers": [
                _outstanding_row(b)
                for b in rows
            ],
            "total_customers": len(rows),
            "total_outstanding": round(sum(b.total_owed for b in rows), 2),
        })

    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load outstanding balances")
        return jsonify({"error": "Internal server error"}), 500


@debts_bp.get("/summary")
@require_login
def summary_route():
    """Debt-tab summary per customer plus aggregate metrics."""
    try:
        summary = backend.cache.fetch(QueryKeys.debts_summary(), g.api.debts.summary)
        metrics = backend.cache.fetch(QueryKeys.debts_metrics(), g.api.debts.metrics)
        return jsonify({
            "customers": [s.to_dict() for s in sorted(summary, key=lambda s: s.current_balance, reverse=True)],
            "metrics": metrics,
        })

    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load debt summary")
        return jsonify({"error": "Internal server error"}), 500


@debts_bp.get("/customers/<customer_id>")
@require_login
def customer_debt_route(customer_id: str):
    """Balance, unpaid payments, debt tab and reminder notes for one customer."""
    try:
        outstanding = backend.cache.fetch(
            QueryKeys.customer_outstanding(customer_id),
            lambda: g.api.payments.customer_outstanding(customer_id),
        )
        payments = g.api.payments.customer_payments(customer_id)
        tab = backend.cache.fetch(
            QueryKeys.debts_customer(customer_id), lambda: g.api.debts.customer_debt(customer_id)
        )
        reminders = g.api.reminder_notes.customer_reminders(customer_id)
        last_reminder = reminders[0].created_at if reminders else None
        return jsonify({
            "outstanding": outstanding.to_dict(),
            "payments": [p.to_dict() for p in payments],
            "tab": tab.get("tab"),
            "transactions": [t.to_dict() for t in tab.get("transactions", [])],
            "reminders": [r.to_dict() for r in reminders],
            "days_since_last_reminder": days_since(last_reminder),
            "last_reminder_label": format_relative_date(last_reminder) if last_reminder else None,
        })

    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load customer debt")
        return jsonify({"error": "Internal server error"}), 500


@debts_bp.post("/payments/<payment_id>/record")
@require_login
def record_payment_route(payment_id: str):
    """Partial or full payment against one credit-sale payment record."""
    try:
        data = request.get_json(silent=True) or {}
        payment, updated = payment_service.record_payment(
            g.api,
            backend.cache,
            payment_id,
            data.get("amount"),
            data.get("payment_method"),
            data.get("notes"),
        )
        return jsonify({
            "payment": updated.to_dict(),
            "preview": balance_preview(payment.remaining, updated.remaining),
        })

    except PaymentError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    except ValidationError as e:
        return validation_error_response(e)
    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record payment")
        return jsonify({"error": "Internal server error"}), 500


@debts_bp.post("/charge")
@require_login
def charge_route():
    try:
        values = validate_debt_charge(request.get_json(silent=True) or {})
        result = g.api.debts.charge(
            values["customer_id"], values["containers"], to_utc_z(utcnow()), values["notes"]
        )
        _invalidate_debts(values["customer_id"])
        return jsonify({"result": result}), 201

    except ValidationError as e:
        return validation_error_response(e)
    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create debt charge")
        return jsonify({"error": "Internal server error"}), 500


@debts_bp.post("/payment")
@require_login
def payment_route():
    try:
        data = request.get_json(silent=True) or {}
        customer_id = data.get("customer_id") or data.get("customerId")
        current = _current_balance(customer_id) if customer_id else 0.0
        values = validate_debt_payment(data, current)
        result = g.api.debts.payment(values["customer_id"], values["amount"], to_utc_z(utcnow()), values["notes"])
        _invalidate_debts(values["customer_id"])
        return jsonify({
            "result": result,
            "preview": balance_preview(current, round(current - values["amount"], 2)),
        }), 201

    except ValidationError as e:
        return validation_error_response(e)
    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record debt payment")
        return jsonify({"error": "Internal server error"}), 500


@debts_bp.post("/adjustment")
@require_login
def adjustment_route():
    try:
        data = request.get_json(silent=True) or {}
        customer_id = data.get("customer_id") or data.get("customerId")
        current = _current_balance(customer_id) if customer_id else 0.0
        values = validate_debt_adjustment(data, current)
        result = g.api.debts.adjustment(
            values["customer_id"], values["amount"], values["reason"], to_utc_z(utcnow()), values["notes"]
        )
        _invalidate_debts(values["customer_id"])
        return jsonify({
            "result": result,
            "preview": balance_preview(current, round(current + values["amount"], 2)),
        }), 201

    except ValidationError as e:
        return validation_error_response(e)
    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create debt adjustment")
        return jsonify({"error": "Internal server error"}), 500


@debts_bp.post("/mark-paid")
@require_login
def mark_paid_route():
    try:
        data = request.get_json(silent=True) or {}
        customer_id = data.get("customer_id") or data.get("customerId")
        if not customer_id:
            raise ValidationError("Select a customer", {"customer_id": "Select a customer"})
        final_payment = data.get("final_payment")
        if final_payment is not None:
            final_payment = validate_payment_amount(final_payment, _current_balance(customer_id), "final_payment")
        result = g.api.debts.mark_paid(customer_id, to_utc_z(utcnow()), final_payment)
        _invalidate_debts(customer_id)
        return jsonify({"result": result})

    except ValidationError as e:
        return validation_error_response(e)
    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to mark debt paid")
        return jsonify({"error": "Internal server error"}), 500


@debts_bp.get("/customers/<customer_id>/reminders")
@require_login
def list_reminders_route(customer_id: str):
    try:
        reminders = g.api.reminder_notes.customer_reminders(customer_id)
        return jsonify({"reminders": [r.to_dict() for r in reminders]})
    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load reminder notes")
        return jsonify({"error": "Internal server error"}), 500


@debts_bp.post("/customers/<customer_id>/reminders")
@require_login
def create_reminder_route(customer_id: str):
    try:
        note = ((request.get_json(silent=True) or {}).get("note") or "").strip()
        if not note:
            raise ValidationError("Note is required", {"note": "Note is required"})
        reminder = g.api.reminder_notes.create(customer_id, note)
        return jsonify({"reminder": reminder.to_dict()}), 201

    except ValidationError as e:
        return validation_error_response(e)
    except ApiError as e:
        return api_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create reminder note")
        return jsonify({"error": "Internal server error"}), 500
