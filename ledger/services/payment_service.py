# Overview: Service-layer payment recording against credit-sale payment records.

"""
Payment Recording Service

Partial payments: a payment record may be settled over several visits;
each amount must be positive and never more than what is still owed.
The debt views are invalidated after every attempt, successful or not,
since the backend may have applied the money before failing to answer.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Optional

from ..api import LedgerApi
from ..models import Payment
from ..validation import validate_payment_amount, validate_payment_method
from .credit_service import derive_payment_status
from .query_cache import QueryCache, QueryKeys


logger = logging.getLogger(__name__)


class PaymentError(Exception):
    """Raised for payment operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def invalidate_after_payment(cache: QueryCache, customer_id: Optional[str] = None) -> None:
    prefixes = [
        QueryKeys.debts_all(),
        QueryKeys.outstanding_balances(),
        ("reports",),
    ]
    if customer_id:
        prefixes.append(QueryKeys.customer_outstanding(customer_id))
        prefixes.append(QueryKeys.customer_detail(customer_id))
    cache.invalidate(*prefixes)


def record_payment(
    api: LedgerApi,
    cache: QueryCache,
    payment_id: str,
    amount: Any,
    payment_method: Any = None,
    notes: Optional[str] = None,
) -> tuple[Payment, Payment]:
    """
    Apply an amount to one payment record.

    Returns the record before and after. When the backend confirms the
    payment without echoing the record, the after state is derived from
    the amount applied.
    """
    payment = api.payments.get(payment_id)
    if payment is None:
        raise PaymentError("Payment not found", {"payment_id": payment_id})

    value = validate_payment_amount(amount, payment.remaining)
    method = validate_payment_method(payment_method)
    try:
        updated = api.payments.record_payment(payment_id, value, method, notes)
    finally:
        invalidate_after_payment(cache, payment.customer_id)

    if updated is None:
        logger.warning("Backend accepted payment %s without returning it", payment_id)
        paid = round((payment.paid_amount or 0) + value, 2)
        updated = replace(
            payment,
            paid_amount=paid,
            payment_method=method,
            status=derive_payment_status(payment.amount, paid, payment.due_date),
        )
    else:
        logger.info("Recorded payment of %.2f against %s", value, payment_id)
    return payment, updated
