from __future__ import annotations

from typing import Optional

from ..models import Sale
from .adapters import (
    ListResponse,
    adapt_item_response,
    adapt_mutation_response,
    adapt_sales_list_response,
)
from .client import ApiClient


class SalesApi:
    def __init__(self, client: ApiClient):
        self.client = client

    def list(
        self,
        *,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        customer_id: Optional[str] = None,
        location: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> ListResponse:
        params = {
            "startDate": start_date,
            "endDate": end_date,
            "customerId": customer_id,
            "location": location,
            "page": page,
            "limit": limit,
        }
        return adapt_sales_list_response(self.client.get("/sales", params), Sale.from_dict)

    def get(self, sale_id: str) -> Optional[Sale]:
        return adapt_item_response(self.client.get(f"/sales/{sale_id}"), Sale.from_dict).data

    def create(
        self,
        customer_id: str,
        quantity: int,
        payment_type: str,
        *,
        unit_price: Optional[float] = None,
        date: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Optional[Sale]:
        payload = {
            "customerId": customer_id,
            "quantity": quantity,
            "paymentType": payment_type,
        }
        if unit_price is not None:
            payload["unitPrice"] = unit_price
        if date:
            payload["date"] = date
        if notes:
            payload["notes"] = notes
        return adapt_item_response(self.client.post("/sales", payload), Sale.from_dict).data

    def delete(self, sale_id: str) -> Optional[str]:
        return adapt_mutation_response(self.client.delete(f"/sales/{sale_id}")).message

    def by_date(self, date: str) -> list[Sale]:
        return adapt_sales_list_response(self.client.get(f"/sales/date/{date}"), Sale.from_dict).data
