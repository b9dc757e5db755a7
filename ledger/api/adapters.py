# Overview: Normalize the backend's per-family response envelopes into three uniform shapes.

"""
Response adapters.

The backend wraps payloads differently per endpoint family:

- sales lists:     {success, data: {data: [...], pagination: {...}}}
- customer lists:  {success, data: [...], pagination: {...}}
- settings/users:  {success, data: [...]}
- items/mutations: {success, data: {...} | null, message?}
- auth:            {success, data: {user, accessToken, refreshToken}}

Each adapter returns ListResponse, ItemResponse or MutationResponse. They
are total: a malformed envelope yields empty data and a None pagination,
never an exception. An optional `parse` callable turns raw dicts into
model instances; entries that are not dicts are dropped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Optional, TypeVar

from ..constants import COLLECTION_STATUS_ACTIVE, LOCATION_URBAN


T = TypeVar("T")


@dataclass
class ListResponse(Generic[T]):
    data: list = field(default_factory=list)
    pagination: Optional[dict] = None


@dataclass
class ItemResponse(Generic[T]):
    data: Any = None


@dataclass
class MutationResponse(Generic[T]):
    data: Any = None
    message: Optional[str] = None


@dataclass
class AuthResponse:
    user: Optional[dict] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None


def _envelope(response: Any) -> dict:
    return response if isinstance(response, dict) else {}


def _items(value: Any, parse: Optional[Callable] = None) -> list:
    if not isinstance(value, list):
        return []
    if parse is None:
        return list(value)
    return [parse(item) for item in value if isinstance(item, dict)]


def _item(value: Any, parse: Optional[Callable] = None) -> Any:
    if parse is None or not isinstance(value, dict):
        return value
    return parse(value)


def _pagination(value: Any) -> Optional[dict]:
    return value if isinstance(value, dict) else None


def adapt_sales_list_response(response: Any, parse: Optional[Callable] = None) -> ListResponse:
    inner = _envelope(_envelope(response).get("data"))
    return ListResponse(
        data=_items(inner.get("data"), parse),
        pagination=_pagination(inner.get("pagination")),
    )


def adapt_customers_list_response(response: Any, parse: Optional[Callable] = None) -> ListResponse:
    envelope = _envelope(response)
    return ListResponse(
        data=_items(envelope.get("data"), parse),
        pagination=_pagination(envelope.get("pagination")),
    )


def adapt_simple_list_response(response: Any, parse: Optional[Callable] = None) -> ListResponse:
    return ListResponse(data=_items(_envelope(response).get("data"), parse), pagination=None)


def adapt_item_response(response: Any, parse: Optional[Callable] = None) -> ItemResponse:
    return ItemResponse(data=_item(_envelope(response).get("data"), parse))


def adapt_mutation_response(response: Any, parse: Optional[Callable] = None) -> MutationResponse:
    envelope = _envelope(response)
    return MutationResponse(
        data=_item(envelope.get("data"), parse),
        message=envelope.get("message"),
    )


def adapt_auth_response(response: Any) -> AuthResponse:
    data = _envelope(_envelope(response).get("data"))
    user = data.get("user")
    return AuthResponse(
        user=user if isinstance(user, dict) else None,
        access_token=data.get("accessToken"),
        refresh_token=data.get("refreshToken"),
    )


def adapt_nested_list(response: Any, key: str, parse: Optional[Callable] = None) -> ListResponse:
    """
    Bespoke envelopes that tuck the list under a named key:
    {data: {payments: [...]}}, {data: {customers: [...]}},
    {data: {reminders: [...], pagination: {...}}}.
    """
    inner = _envelope(_envelope(response).get("data"))
    return ListResponse(
        data=_items(inner.get(key), parse),
        pagination=_pagination(inner.get("pagination")),
    )


def adapt_customer_outstanding_response(response: Any) -> dict:
    """
    Single-customer outstanding endpoint returns only
    {customerId, outstandingBalance}; remaining OutstandingBalance fields
    default to zero/empty.
    """
    data = _envelope(_envelope(response).get("data"))
    return {
        "customerId": data.get("customerId"),
        "customerName": data.get("customerName", ""),
        "location": data.get("location", LOCATION_URBAN),
        "totalOwed": data.get("outstandingBalance", data.get("totalOwed", 0)) or 0,
        "oldestDebtDate": data.get("oldestDebtDate"),
        "daysPastDue": data.get("daysPastDue", 0) or 0,
        "creditLimit": data.get("creditLimit", 0) or 0,
        "collectionStatus": data.get("collectionStatus", COLLECTION_STATUS_ACTIVE),
        "lastPaymentDate": data.get("lastPaymentDate"),
    }


def total_from_pagination(pagination: Optional[dict]) -> int:
    if not pagination:
        return 0
    try:
        return int(pagination.get("total") or 0)
    except (TypeError, ValueError):
        return 0
