# Overview: Service-layer credit arithmetic; credit-limit checks, balance previews, payment status and aging.

from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date
from typing import Iterable, Optional

from ..colors import get_utilization_tone
from ..constants import (
    CREDIT_BLOCK_UTILIZATION,
    CREDIT_WARNING_UTILIZATION,
    PAYMENT_STATUS_OVERDUE,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PARTIAL,
    PAYMENT_STATUS_UNPAID,
    PAYMENT_TYPE_CREDIT,
)
from ..formatting import format_currency, round_money
from ..models import AgingCustomer, AgingReport, OutstandingBalance
from ..time_utils import parse_iso_date, to_utc_z, today as business_today, utcnow


CREDIT_OK = "ok"
CREDIT_WARNING = "warning"
CREDIT_BLOCKED = "blocked"


@dataclass
class CreditCheck:
    current_balance: float
    sale_amount: float
    new_balance: float
    credit_limit: float
    utilization: float
    status: str
    message: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.status != CREDIT_BLOCKED

    def to_dict(self) -> dict:
        data = asdict(self)
        data["allowed"] = self.allowed
        data["tone"] = get_utilization_tone(self.utilization)
        return data


def calculate_utilization(balance: float, credit_limit: Optional[float]) -> float:
    """Percent of the credit limit used; a missing or zero limit means no utilization."""
    if not credit_limit or credit_limit <= 0:
        return 0.0
    return balance / credit_limit * 100.0


def check_credit(
    current_balance: float,
    sale_amount: float,
    credit_limit: Optional[float],
    payment_type: str = PAYMENT_TYPE_CREDIT,
) -> CreditCheck:
    """
    Advisory credit-limit check for a new sale.

    Over 100% utilization blocks the submission, 80% and above warns.
    Cash sales never touch the balance. The backend remains the final
    authority on whether the sale is accepted.
    """
    current_balance = float(current_balance or 0)
    limit = float(credit_limit or 0)

    if payment_type != PAYMENT_TYPE_CREDIT:
        return CreditCheck(
            current_balance=current_balance,
            sale_amount=sale_amount,
            new_balance=current_balance,
            credit_limit=limit,
            utilization=calculate_utilization(current_balance, limit),
            status=CREDIT_OK,
        )

    new_balance = round_money(current_balance + sale_amount)
    utilization = calculate_utilization(new_balance, limit)

    if utilization > CREDIT_BLOCK_UTILIZATION:
        status = CREDIT_BLOCKED
        message = (
            f"Credit limit exceeded: new balance would be {format_currency(new_balance)} "
            f"(limit: {format_currency(limit)})"
        )
    elif utilization >= CREDIT_WARNING_UTILIZATION:
        status = CREDIT_WARNING
        message = (
            f"Approaching credit limit: {utilization:.0f}% used "
            f"({format_currency(new_balance)} / {format_currency(limit)})"
        )
    else:
        status = CREDIT_OK
        message = None

    return CreditCheck(
        current_balance=current_balance,
        sale_amount=round_money(sale_amount),
        new_balance=new_balance,
        credit_limit=limit,
        utilization=round(utilization, 2),
        status=status,
        message=message,
    )


def balance_preview(current: float, after: float) -> dict:
    """
    Before/after view of a debt operation. change_pct is the size of the
    change relative to the current balance, clamped to 0..100.
    """
    delta = round_money(after - current)
    if current > 0:
        change_pct = min(100, max(0, round(abs(delta) / current * 100)))
    else:
        change_pct = 100 if after > 0 else 0

    if delta < 0:
        direction = "decrease"
    elif delta > 0:
        direction = "increase"
    else:
        direction = "none"

    return {
        "current": round_money(current),
        "after": round_money(after),
        "delta": delta,
        "direction": direction,
        "settled": after == 0,
        "change_pct": change_pct,
    }


def derive_payment_status(
    amount: float,
    paid_amount: float,
    due_date: Optional[str] = None,
    today: Optional[date] = None,
) -> str:
    """Status implied by the amounts; the backend may escalate further to COLLECTION."""
    paid = paid_amount or 0
    if paid >= amount:
        return PAYMENT_STATUS_PAID
    due = parse_iso_date(due_date) if due_date else None
    if due is not None and (today or business_today()) > due:
        return PAYMENT_STATUS_OVERDUE
    if paid > 0:
        return PAYMENT_STATUS_PARTIAL
    return PAYMENT_STATUS_UNPAID


def aging_bucket(days_past_due: int) -> str:
    if days_past_due <= 30:
        return "current"
    if days_past_due <= 60:
        return "days_31_to_60"
    if days_past_due <= 90:
        return "days_61_to_90"
    return "over_90_days"


def build_aging_summary(balances: Iterable[OutstandingBalance]) -> AgingReport:
    """
    Aging report assembled from outstanding balances when the report
    endpoint is unavailable. Each customer's whole balance lands in the
    bucket of its days past due.
    """
    report = AgingReport(generated_at=to_utc_z(utcnow()))
    for balance in balances:
        if balance.total_owed <= 0:
            continue
        row = AgingCustomer(
            customer_id=balance.customer_id,
            customer_name=balance.customer_name or "Unknown",
            location=balance.location,
            total_owed=round_money(balance.total_owed),
            collection_status=balance.collection_status,
            last_payment_date=balance.last_payment_date,
        )
        bucket = aging_bucket(balance.days_past_due)
        setattr(row, bucket, row.total_owed)
        setattr(report, bucket, round_money(getattr(report, bucket) + row.total_owed))
        report.customers.append(row)

    report.total_customers = len(report.customers)
    report.total_outstanding = round_money(sum(c.total_owed for c in report.customers))
    return report
