# Overview: Service-layer pricing resolution; per-customer custom price vs the global unit price.

from __future__ import annotations

from typing import Optional

from ..formatting import calculate_total
from ..models import Customer, Settings


PRICE_SOURCE_CUSTOM = "custom"
PRICE_SOURCE_GLOBAL = "global"


def has_custom_price(customer: Optional[Customer]) -> bool:
    return customer is not None and customer.custom_unit_price is not None and customer.custom_unit_price > 0


def get_effective_price_from_data(
    customer: Optional[Customer],
    global_unit_price: float,
    custom_pricing_enabled: bool = True,
) -> float:
    """
    Unit price for a new sale.

    With custom pricing switched off a stored custom price stays dormant
    and the global price applies. A missing customer (walk-in not chosen
    yet) resolves to the global price.
    """
    if custom_pricing_enabled and has_custom_price(customer):
        return float(customer.custom_unit_price)
    return float(global_unit_price)


def get_effective_price(customer: Optional[Customer], settings: Settings) -> float:
    return get_effective_price_from_data(customer, settings.unit_price, settings.enable_custom_pricing)


def is_custom_price_active(customer: Optional[Customer], settings: Settings) -> bool:
    return settings.enable_custom_pricing and has_custom_price(customer)


def calculate_sale_total(quantity: float, customer: Optional[Customer], settings: Settings) -> float:
    return calculate_total(quantity, get_effective_price(customer, settings))


def describe_pricing(customer: Optional[Customer], settings: Settings) -> dict:
    """Pricing badge data: effective price, its source, and whether a custom price is dormant."""
    active = is_custom_price_active(customer, settings)
    return {
        "effective_price": get_effective_price(customer, settings),
        "global_price": settings.unit_price,
        "custom_price": customer.custom_unit_price if has_custom_price(customer) else None,
        "source": PRICE_SOURCE_CUSTOM if active else PRICE_SOURCE_GLOBAL,
        "dormant": has_custom_price(customer) and not settings.enable_custom_pricing,
    }
