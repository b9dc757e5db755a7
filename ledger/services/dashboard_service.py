# Overview: Service-layer dashboard assembly; each section fails on its own without sinking the page.

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Callable, Optional

from ..api import LedgerApi
from ..api.client import ApiError, SessionExpiredError
from ..models import Settings
from ..time_utils import is_within_period
from .analytics_service import (
    aggregate_sales_by_location,
    calculate_period_metrics,
    compare_periods,
    daily_series,
    rank_customers_by_revenue,
)
from .date_filter import DateFilter
from .query_cache import QueryCache, QueryKeys


logger = logging.getLogger(__name__)

SECTION_OK = "ok"
SECTION_ERROR = "error"
TOP_LOCATIONS = 5
TOP_CUSTOMERS = 5


def run_section(name: str, build: Callable[[], Any], retry_url: Optional[str] = None) -> dict:
    """
    Render one dashboard section. Backend and data errors become an error
    section with a retry link; session expiry still propagates.
    """
    try:
        return {"status": SECTION_OK, "data": build()}
    except SessionExpiredError:
        raise
    except (ApiError, ValueError, KeyError, TypeError) as e:
        logger.exception("Dashboard section %s failed", name)
        message = e.message if isinstance(e, ApiError) else "Unable to load this section"
        return {"status": SECTION_ERROR, "message": message, "retry_url": retry_url}


def build_dashboard(
    api: LedgerApi,
    cache: QueryCache,
    settings: Settings,
    date_filter: DateFilter,
    today: Optional[date] = None,
    retry_url: Optional[str] = None,
) -> dict:
    start, end = date_filter.range(today)
    fetch_start = start
    if date_filter.comparison_enabled:
        fetch_start = date_filter.comparison_range(today)[0]

    filters = {"startDate": fetch_start.isoformat(), "endDate": end.isoformat(), "limit": 10000}
    sales = cache.fetch(
        QueryKeys.sales_list(filters),
        lambda: api.sales.list(start_date=filters["startDate"], end_date=filters["endDate"], limit=10000).data,
    )
    customers = cache.fetch(QueryKeys.customers_list({"limit": 1000}), lambda: api.customers.all())
    period_sales = [s for s in sales if is_within_period(s.date, start, end)]

    def kpis() -> dict:
        current = calculate_period_metrics(sales, customers, start, end, settings)
        result = {"current": current}
        if date_filter.comparison_enabled:
            c_start, c_end = date_filter.comparison_range(today)
            previous = calculate_period_metrics(sales, customers, c_start, c_end, settings)
            result["previous"] = previous
            result["comparison"] = compare_periods(current, previous)
        return result

    days = (end - start).days + 1
    return {
        "filter": date_filter.to_dict(today),
        "sections": {
            "kpis": run_section("kpis", kpis, retry_url),
            "trend": run_section("trend", lambda: daily_series(sales, customers, end, days, settings), retry_url),
            "locations": run_section(
                "locations",
                lambda: aggregate_sales_by_location(period_sales, customers, settings)[:TOP_LOCATIONS],
                retry_url,
            ),
            "top_customers": run_section(
                "top_customers",
                lambda: rank_customers_by_revenue(period_sales, customers, TOP_CUSTOMERS, settings),
                retry_url,
            ),
            "debts": run_section("debts", lambda: cache.fetch(QueryKeys.debts_metrics(), api.debts.metrics), retry_url),
        },
    }
