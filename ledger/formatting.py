# Overview: Currency, percentage, and number formatting helpers for views and reports.

from __future__ import annotations

from typing import Optional, Union

from .constants import CURRENCY_SYMBOL


Number = Union[int, float]


def round_money(value: Number) -> float:
    return round(float(value), 2)


def format_currency(amount: Optional[Number]) -> str:
    """'₱12,345.67'; None renders as zero."""
    value = float(amount or 0)
    return f"{CURRENCY_SYMBOL}{value:,.2f}"


def format_number(value: Number) -> str:
    if isinstance(value, float) and not value.is_integer():
        return f"{value:,.2f}"
    return f"{int(value):,}"


def calculate_total(quantity: Number, unit_price: Number) -> float:
    """Line total rounded to centavos."""
    return round_money(quantity * unit_price)


def calculate_average(total: Number, count: int) -> float:
    if count == 0:
        return 0.0
    return round_money(total / count)


def calculate_percentage(part: Number, whole: Number) -> float:
    if not whole:
        return 0.0
    return float(part) / float(whole) * 100.0


def format_percentage(value: Optional[Number], decimals: int = 0) -> str:
    return f"{float(value or 0):.{decimals}f}%"


def calculate_growth_percentage(current: Number, previous: Number) -> float:
    """Period-over-period growth; a zero baseline is 100% if anything happened."""
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100.0


def get_trend_direction(growth_percentage: Number) -> str:
    if growth_percentage > 0:
        return "up"
    if growth_percentage < 0:
        return "down"
    return "neutral"


def format_location(location: Optional[str]) -> str:
    """UPPER_LOOB -> 'Upper Loob'"""
    if not location:
        return ""
    return location.replace("_", " ").title()


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return f"{text[:max_length - 3]}..."


def format_kpi_value(value: Union[str, Number], variant: Optional[str] = None) -> str:
    """KPI card value: money for revenue/average, grouped digits otherwise."""
    if isinstance(value, str):
        return value
    if variant in ("revenue", "average"):
        return format_currency(value)
    return format_number(value)
