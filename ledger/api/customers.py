from __future__ import annotations

from typing import Optional

from ..models import Customer
from .adapters import (
    ListResponse,
    adapt_customers_list_response,
    adapt_item_response,
)
from .client import ApiClient


def customer_payload(values: dict) -> dict:
    """snake_case form values -> backend camelCase body."""
    mapping = {
        "name": "name",
        "location": "location",
        "phone": "phone",
        "custom_unit_price": "customUnitPrice",
        "credit_limit": "creditLimit",
        "notes": "notes",
        "collection_status": "collectionStatus",
    }
    return {mapping[k]: v for k, v in values.items() if k in mapping}


class CustomersApi:
    def __init__(self, client: ApiClient):
        self.client = client

    def list(
        self,
        *,
        location: Optional[str] = None,
        search: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        include_inactive: Optional[bool] = None,
    ) -> ListResponse:
        params = {
            "location": location,
            "search": search,
            "page": page,
            "limit": limit,
            "includeInactive": include_inactive,
        }
        return adapt_customers_list_response(self.client.get("/customers", params), Customer.from_dict)

    def all(self, location: Optional[str] = None) -> list[Customer]:
        return self.list(location=location, limit=1000).data

    def get(self, customer_id: str) -> Customer:
        return adapt_item_response(self.client.get(f"/customers/{customer_id}"), Customer.from_dict).data

    def create(self, values: dict) -> Customer:
        return adapt_item_response(
            self.client.post("/customers", customer_payload(values)), Customer.from_dict
        ).data

    def update(self, customer_id: str, values: dict) -> Customer:
        return adapt_item_response(
            self.client.put(f"/customers/{customer_id}", customer_payload(values)), Customer.from_dict
        ).data

    def stats(self, customer_id: str) -> dict:
        return adapt_item_response(self.client.get(f"/customers/{customer_id}/stats")).data or {}
