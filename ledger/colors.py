# Overview: Location chart colors and semantic tones for statuses and credit utilization.

from __future__ import annotations

from .constants import (
    COLLECTION_STATUS_OVERDUE,
    COLLECTION_STATUS_SUSPENDED,
    PAYMENT_STATUS_COLLECTION,
    PAYMENT_STATUS_OVERDUE,
    PAYMENT_STATUS_PAID,
)


LOCATION_HEX = {
    "BANAI": "#60a5fa",
    "DOUBE_L": "#34d399",
    "JOVIL_3": "#a78bfa",
    "LOWER_LOOB": "#fbbf24",
    "PINATUBO": "#fb7185",
    "PLASTIKAN": "#22d3ee",
    "SAN_ISIDRO": "#a3e635",
    "UPPER_LOOB": "#fb923c",
    "URBAN": "#818cf8",
    "ZUNIGA": "#f472b6",
    "WALK_IN": "#94a3b8",
}

FALLBACK_HEX = "#94a3b8"


def get_location_hex(location: str | None) -> str:
    return LOCATION_HEX.get(location or "", FALLBACK_HEX)


def get_status_tone(status: str) -> str:
    if status == PAYMENT_STATUS_PAID:
        return "success"
    if status in (PAYMENT_STATUS_OVERDUE, PAYMENT_STATUS_COLLECTION):
        return "warning"
    return "info"


def get_collection_tone(status: str) -> str:
    if status == COLLECTION_STATUS_SUSPENDED:
        return "error"
    if status == COLLECTION_STATUS_OVERDUE:
        return "warning"
    return "info"


def get_utilization_tone(utilization: float) -> str:
    """Credit utilization bar color: >100 error, >=80 warning."""
    if utilization > 100:
        return "error"
    if utilization >= 80:
        return "warning"
    return "success"
