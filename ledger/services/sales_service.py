"""
Sales workflow: price a new sale, run the credit check, submit it, and
keep the query cache coherent afterwards.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..api import LedgerApi
from ..constants import PAYMENT_TYPE_CREDIT
from ..formatting import calculate_total
from ..models import Customer, Sale, Settings
from ..time_utils import is_within_edit_window, today_iso
from ..validation import ValidationError, validate_sale_form
from .credit_service import CreditCheck, check_credit
from .pricing_service import describe_pricing, get_effective_price
from .query_cache import QueryCache, QueryKeys


logger = logging.getLogger(__name__)


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _customer(api: LedgerApi, cache: QueryCache, customer_id: str) -> Customer:
    return cache.fetch(QueryKeys.customer_detail(customer_id), lambda: api.customers.get(customer_id))


def _outstanding(api: LedgerApi, cache: QueryCache, customer_id: str, *, fresh: bool = False) -> float:
    balance = cache.fetch(
        QueryKeys.customer_outstanding(customer_id),
        lambda: api.payments.customer_outstanding(customer_id),
        stale_seconds=0 if fresh else None,
    )
    return balance.total_owed


def _credit_check(
    api: LedgerApi,
    cache: QueryCache,
    settings: Settings,
    customer: Customer,
    amount: float,
    payment_type: str,
    *,
    fresh: bool,
) -> Optional[CreditCheck]:
    if payment_type != PAYMENT_TYPE_CREDIT or not settings.enable_credit_feature:
        return None
    current = _outstanding(api, cache, customer.id, fresh=fresh)
    return check_credit(current, amount, customer.credit_limit or 0, payment_type)


def preview_sale(api: LedgerApi, cache: QueryCache, settings: Settings, data: dict) -> dict:
    """Pricing and credit status for the quick-add form, without submitting."""
    values = validate_sale_form(data)
    customer = _customer(api, cache, values["customer_id"])
    price = get_effective_price(customer, settings)
    amount = calculate_total(values["quantity"], price)
    credit = _credit_check(api, cache, settings, customer, amount, values["payment_type"], fresh=False)
    return {
        "customer": customer.to_dict(),
        "pricing": describe_pricing(customer, settings),
        "quantity": values["quantity"],
        "amount": amount,
        "credit": credit.to_dict() if credit else None,
    }


def quick_add_sale(api: LedgerApi, cache: QueryCache, settings: Settings, data: dict) -> tuple[Sale, Optional[CreditCheck]]:
    """
    Validate, re-check credit against a freshly fetched balance, then
    create the sale. A blocked credit check raises ValidationError on the
    "credit" field and nothing is submitted.
    """
    values = validate_sale_form(data)
    customer = _customer(api, cache, values["customer_id"])
    price = get_effective_price(customer, settings)
    amount = calculate_total(values["quantity"], price)

    credit = _credit_check(api, cache, settings, customer, amount, values["payment_type"], fresh=True)
    if credit is not None and not credit.allowed:
        raise ValidationError(credit.message, {"credit": credit.message})

    sale_date = data.get("date") or today_iso()
    try:
        sale = api.sales.create(
            customer.id,
            values["quantity"],
            values["payment_type"],
            unit_price=price,
            date=sale_date,
            notes=values["notes"],
        )
    finally:
        invalidate_after_sale_change(cache, customer.id)

    if sale is None:
        logger.warning("Backend accepted sale for customer %s without returning it", customer.id)
        sale = Sale(
            id="",
            customer_id=customer.id,
            date=sale_date,
            quantity=values["quantity"],
            unit_price=price,
            total=amount,
            payment_type=values["payment_type"],
            notes=values["notes"],
        )
    else:
        logger.info("Recorded sale %s for customer %s (%s x %.2f)", sale.id, customer.id, values["quantity"], price)
    return sale, credit


def delete_sale(api: LedgerApi, cache: QueryCache, sale_id: str) -> None:
    sale = api.sales.get(sale_id)
    if sale is None:
        raise SaleError("Sale not found", {"sale_id": sale_id})
    if not is_within_edit_window(sale.created_at):
        raise SaleError("Sales can only be deleted within 24 hours of entry", {"sale_id": sale_id})
    api.sales.delete(sale_id)
    invalidate_after_sale_change(cache, sale.customer_id)


def invalidate_after_sale_change(cache: QueryCache, customer_id: Optional[str] = None) -> None:
    prefixes = [
        QueryKeys.sales_all(),
        QueryKeys.outstanding_balances(),
        QueryKeys.debts_all(),
        ("reports",),
    ]
    if customer_id:
        prefixes.append(QueryKeys.customer_outstanding(customer_id))
        prefixes.append(QueryKeys.customer_detail(customer_id))
    cache.invalidate(*prefixes)


def sale_entry(sale: Sale, customer: Optional[Customer], settings: Settings) -> dict:
    """Row for today's entries list."""
    return {
        **sale.to_dict(),
        "customer_name": customer.name if customer else "Unknown",
        "location": customer.location if customer else None,
        "amount": calculate_total(sale.quantity, get_effective_price(customer, settings)),
        "is_editable": is_within_edit_window(sale.created_at),
    }
