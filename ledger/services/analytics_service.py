# Overview: Service-layer sales aggregation; period KPIs, daily series, location and customer rankings.

from __future__ import annotations

from typing import Iterable, Optional

from ..colors import get_location_hex
from ..formatting import (
    calculate_average,
    calculate_growth_percentage,
    calculate_percentage,
    get_trend_direction,
    round_money,
)
from ..models import Customer, Sale, Settings
from ..time_utils import DateLike, date_key, is_within_period, iter_date_keys, shift_days
from .pricing_service import get_effective_price


def _lookup(customers: Iterable[Customer]) -> dict[str, Customer]:
    return {c.id: c for c in customers}


def sale_revenue(sale: Sale, customer: Optional[Customer], settings: Optional[Settings]) -> float:
    """
    Revenue of one sale.

    With settings the quantity is re-priced through the custom-pricing
    rule; without them the stored total is trusted.
    """
    if settings is None:
        return sale.total
    return sale.quantity * get_effective_price(customer, settings)


def calculate_period_metrics(
    sales: Iterable[Sale],
    customers: Iterable[Customer],
    start: DateLike,
    end: DateLike,
    settings: Optional[Settings] = None,
) -> dict:
    lookup = _lookup(customers)
    period_sales = [s for s in sales if is_within_period(s.date, start, end)]

    revenue = sum(sale_revenue(s, lookup.get(s.customer_id), settings) for s in period_sales)
    quantity = sum(s.quantity for s in period_sales)
    transaction_count = len(period_sales)

    return {
        "revenue": round_money(revenue),
        "quantity": quantity,
        "average_sale": calculate_average(revenue, transaction_count),
        "active_customers": len({s.customer_id for s in period_sales}),
        "transaction_count": transaction_count,
    }


def compare_periods(current: dict, previous: dict) -> dict:
    """Growth % and trend direction for every KPI of two period-metric dicts."""
    comparison = {}
    for key, value in current.items():
        growth = calculate_growth_percentage(value, previous.get(key, 0))
        comparison[key] = {
            "current": value,
            "previous": previous.get(key, 0),
            "growth": round(growth, 1),
            "trend": get_trend_direction(growth),
        }
    return comparison


def daily_series(
    sales: Iterable[Sale],
    customers: Iterable[Customer],
    end: DateLike,
    days: int,
    settings: Optional[Settings] = None,
) -> list[dict]:
    """One entry per day for the `days` days ending at `end`; days without sales are zero."""
    start = shift_days(end, -(days - 1))
    series = {
        key: {"date": key, "revenue": 0.0, "quantity": 0, "transaction_count": 0}
        for key in iter_date_keys(start, end)
    }
    lookup = _lookup(customers)

    for sale in sales:
        entry = series.get(date_key(sale.date))
        if entry is None:
            continue
        entry["revenue"] += sale_revenue(sale, lookup.get(sale.customer_id), settings)
        entry["quantity"] += sale.quantity
        entry["transaction_count"] += 1

    for entry in series.values():
        entry["revenue"] = round_money(entry["revenue"])
    return sorted(series.values(), key=lambda e: e["date"])


def aggregate_sales_by_location(
    sales: Iterable[Sale],
    customers: Iterable[Customer],
    settings: Optional[Settings] = None,
) -> list[dict]:
    """Per-location totals with share of revenue, highest revenue first."""
    lookup = _lookup(customers)
    by_location: dict[str, dict] = {}

    for sale in sales:
        customer = lookup.get(sale.customer_id)
        if customer is None:
            continue
        entry = by_location.setdefault(customer.location, {
            "location": customer.location,
            "revenue": 0.0,
            "quantity": 0,
            "transaction_count": 0,
            "color": get_location_hex(customer.location),
        })
        entry["revenue"] += sale_revenue(sale, customer, settings)
        entry["quantity"] += sale.quantity
        entry["transaction_count"] += 1

    total_revenue = sum(e["revenue"] for e in by_location.values())
    for entry in by_location.values():
        entry["percentage"] = calculate_percentage(entry["revenue"], total_revenue)
        entry["revenue"] = round_money(entry["revenue"])

    return sorted(by_location.values(), key=lambda e: e["revenue"], reverse=True)


def rank_customers_by_revenue(
    sales: Iterable[Sale],
    customers: Iterable[Customer],
    limit: int = 10,
    settings: Optional[Settings] = None,
) -> list[dict]:
    lookup = _lookup(customers)
    by_customer: dict[str, dict] = {}

    for sale in sales:
        customer = lookup.get(sale.customer_id)
        if customer is None:
            continue
        entry = by_customer.setdefault(customer.id, {
            "customer_id": customer.id,
            "customer_name": customer.name,
            "location": customer.location,
            "revenue": 0.0,
            "quantity": 0,
            "transaction_count": 0,
        })
        entry["revenue"] += sale_revenue(sale, customer, settings)
        entry["quantity"] += sale.quantity
        entry["transaction_count"] += 1

    ranked = sorted(by_customer.values(), key=lambda e: e["revenue"], reverse=True)[:limit]
    for entry in ranked:
        entry["revenue"] = round_money(entry["revenue"])
    return ranked


def summarize_today(
    sales: Iterable[Sale],
    customers: Iterable[Customer],
    today: str,
    settings: Optional[Settings] = None,
) -> dict:
    """Today's KPIs against yesterday's."""
    sales = list(sales)
    customers = list(customers)
    yesterday = shift_days(today, -1)
    current = calculate_period_metrics(sales, customers, today, today, settings)
    previous = calculate_period_metrics(sales, customers, yesterday, yesterday, settings)
    return {
        "date": today,
        "metrics": current,
        "comparison": compare_periods(current, previous),
        "by_location": aggregate_sales_by_location(
            [s for s in sales if date_key(s.date) == today], customers, settings
        ),
    }


def group_sales_by_date(
    sales: Iterable[Sale],
    customers: Iterable[Customer],
    settings: Optional[Settings] = None,
) -> list[dict]:
    """Previous-entries view: one summary per date, newest first."""
    lookup = _lookup(customers)
    groups: dict[str, dict] = {}

    for sale in sales:
        key = date_key(sale.date)
        group = groups.setdefault(key, {
            "date": key,
            "sales": [],
            "total_quantity": 0,
            "total_revenue": 0.0,
            "customer_count": 0,
        })
        customer = lookup.get(sale.customer_id)
        group["sales"].append({
            **sale.to_dict(),
            "customer_name": customer.name if customer else "Unknown",
            "location": customer.location if customer else None,
        })
        group["total_quantity"] += sale.quantity
        group["total_revenue"] += sale_revenue(sale, customer, settings)

    for group in groups.values():
        group["total_revenue"] = round_money(group["total_revenue"])
        group["customer_count"] = len({s["customer_id"] for s in group["sales"]})

    return sorted(groups.values(), key=lambda g: g["date"], reverse=True)


def customer_history(sales: Iterable[Sale], customer: Customer, settings: Optional[Settings] = None) -> dict:
    """Purchase timeline for one customer, newest date first, with lifetime totals."""
    own = [s for s in sales if s.customer_id == customer.id]
    revenue = round_money(sum(sale_revenue(s, customer, settings) for s in own))
    return {
        "summary": {
            "total_sales": revenue,
            "total_containers": sum(s.quantity for s in own),
            "total_entries": len(own),
            "average_per_entry": calculate_average(revenue, len(own)),
        },
        "timeline": group_sales_by_date(own, [customer], settings),
    }
