# Overview: Service-layer reporting; daily collection insights, aging insights, and CSV exports.

from __future__ import annotations

import csv
import io
from typing import Any, Iterable, Optional

from ..colors import get_collection_tone, get_status_tone
from ..constants import (
    COLLECTION_STATUS_LABELS,
    PAYMENT_STATUS_LABELS,
    LOCATION_URBAN,
    MAX_TOP_CUSTOMERS,
    PAYMENT_METHOD_CASH,
    PENDING_PAYMENT_STATUSES,
)
from ..formatting import calculate_average, calculate_percentage, format_location, round_money
from ..models import AgingReport, DailyPaymentsReport, Payment
from ..time_utils import date_key, format_date, parse_iso_datetime


TOP_RISK_LIMIT = 3
CSV_CONTENT_TYPE = "text/csv; charset=utf-8"

DAILY_CSV_HEADERS = [
    "Date",
    "Customer",
    "Location",
    "Amount Paid",
    "Payment Method",
    "Status",
    "Notes",
]

AGING_CSV_HEADERS = [
    "Customer",
    "Location",
    "0-30 days",
    "31-60 days",
    "61-90 days",
    "90+ days",
    "Total Owed",
    "Collection Status",
]


# =============================================================================
# CSV
# =============================================================================

def to_csv(headers: list[str], rows: Iterable[Iterable[Any]]) -> str:
    """Every field quoted; None becomes an empty field."""
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return output.getvalue()


def _money(value: float) -> str:
    return f"{value:.2f}"


def daily_csv_filename(date: str) -> str:
    return f"daily-payments-{date}.csv"


def aging_csv_filename(generated_at: Optional[str], fallback_date: str) -> str:
    return f"aging-report-{date_key(generated_at) or fallback_date}.csv"


def daily_report_csv(report: DailyPaymentsReport) -> str:
    rows = [
        [
            format_date(p.paid_at or p.created_at),
            p.customer.name if p.customer else "Unknown",
            p.customer.location if p.customer else "",
            _money(p.collected),
            p.payment_method or PAYMENT_METHOD_CASH,
            PAYMENT_STATUS_LABELS.get(p.status, p.status),
            p.notes or "",
        ]
        for p in report.payments
    ]
    rows.append(["TOTAL", "", "", _money(report.total_amount), "", "", ""])
    return to_csv(DAILY_CSV_HEADERS, rows)


def aging_report_csv(report: AgingReport) -> str:
    rows = [
        [
            c.customer_name,
            format_location(c.location),
            _money(c.current),
            _money(c.days_31_to_60),
            _money(c.days_61_to_90),
            _money(c.over_90_days),
            _money(c.total_owed),
            COLLECTION_STATUS_LABELS.get(c.collection_status, c.collection_status),
        ]
        for c in report.customers
    ]
    rows.append([
        "TOTAL",
        "",
        _money(report.current),
        _money(report.days_31_to_60),
        _money(report.days_61_to_90),
        _money(report.over_90_days),
        _money(report.total_outstanding),
        "",
    ])
    return to_csv(AGING_CSV_HEADERS, rows)


# =============================================================================
# INSIGHTS
# =============================================================================

def _timestamp(value: Optional[str]) -> float:
    try:
        parsed = parse_iso_datetime(value)
    except ValueError:
        return 0.0
    return parsed.timestamp() if parsed else 0.0


def daily_report_insights(report: DailyPaymentsReport) -> dict:
    """Breakdowns shown above the daily collections table."""
    payments = sorted(report.payments, key=lambda p: _timestamp(p.latest_activity_at), reverse=True)

    statuses: dict[str, dict] = {}
    customers: dict[str, dict] = {}
    for p in payments:
        entry = statuses.setdefault(
            p.status, {"status": p.status, "count": 0, "amount": 0.0, "tone": get_status_tone(p.status)}
        )
        entry["count"] += 1
        entry["amount"] += p.collected

        key = p.customer_id or p.id
        activity = p.latest_activity_at
        customer = customers.setdefault(key, {
            "customer_id": key,
            "name": p.customer.name if p.customer else "Unknown customer",
            "location": p.customer.location if p.customer else LOCATION_URBAN,
            "total": 0.0,
            "last_payment_at": activity,
        })
        customer["total"] += p.collected
        if activity and _timestamp(activity) > _timestamp(customer["last_payment_at"]):
            customer["last_payment_at"] = activity

    methods = sorted(
        (
            {
                "method": method,
                "amount": amount,
                "percentage": calculate_percentage(amount, report.total_amount),
            }
            for method, amount in report.payment_methods.items()
        ),
        key=lambda m: m["amount"],
        reverse=True,
    )

    pending = [p for p in payments if p.status in PENDING_PAYMENT_STATUSES]

    return {
        "date": report.date,
        "total_amount": round_money(report.total_amount),
        "total_payments": report.total_payments,
        "average_payment": calculate_average(report.total_amount, report.total_payments),
        "status_breakdown": sorted(statuses.values(), key=lambda s: s["amount"], reverse=True),
        "method_breakdown": methods,
        "top_customers": sorted(customers.values(), key=lambda c: c["total"], reverse=True)[:MAX_TOP_CUSTOMERS],
        "pending_count": len(pending),
        "pending_amount": round_money(sum(p.remaining for p in pending)),
        "first_payment_at": (payments[-1].paid_at or payments[-1].created_at) if payments else None,
        "last_payment_at": (payments[0].paid_at or payments[0].created_at) if payments else None,
        "payments": [p.to_dict() for p in payments],
    }


def aging_report_insights(report: AgingReport) -> dict:
    statuses: dict[str, dict] = {}
    locations: dict[str, dict] = {}
    for c in report.customers:
        status = statuses.setdefault(c.collection_status, {
            "status": c.collection_status,
            "count": 0,
            "amount": 0.0,
            "tone": get_collection_tone(c.collection_status),
        })
        status["count"] += 1
        status["amount"] += c.total_owed

        location = locations.setdefault(c.location, {"location": c.location, "count": 0, "amount": 0.0})
        location["count"] += 1
        location["amount"] += c.total_owed

    return {
        "summary": {
            "total_customers": report.total_customers,
            "total_outstanding": report.total_outstanding,
            "average_debt": calculate_average(report.total_outstanding, report.total_customers),
            "generated_at": report.generated_at,
        },
        "buckets": [
            {"label": "0-30 days", "amount": report.current, "tone": "success"},
            {"label": "31-60 days", "amount": report.days_31_to_60, "tone": "warning"},
            {"label": "61-90 days", "amount": report.days_61_to_90, "tone": "warning"},
            {"label": "90+ days", "amount": report.over_90_days, "tone": "error"},
        ],
        "status_breakdown": sorted(statuses.values(), key=lambda s: s["amount"], reverse=True),
        "location_breakdown": sorted(locations.values(), key=lambda l: l["amount"], reverse=True)[:TOP_RISK_LIMIT],
        "top_risk_customers": [
            c.to_dict()
            for c in sorted(report.customers, key=lambda c: c.total_owed, reverse=True)[:min(MAX_TOP_CUSTOMERS, TOP_RISK_LIMIT)]
        ],
        "severely_overdue": sum(1 for c in report.customers if c.over_90_days > 0),
        "customers": [c.to_dict() for c in report.customers],
    }


def payments_to_rows(payments: Iterable[Payment]) -> list[dict]:
    """Flat rows for CLI tables."""
    return [
        {
            "date": format_date(p.paid_at or p.created_at),
            "customer": p.customer.name if p.customer else "Unknown",
            "amount": _money(p.collected),
            "status": p.status,
        }
        for p in payments
    ]
