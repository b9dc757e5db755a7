from __future__ import annotations

from typing import Optional

from ..models import DebtSummaryItem, DebtTransaction
from .adapters import (
    adapt_item_response,
    adapt_mutation_response,
    adapt_simple_list_response,
)
from .client import ApiClient


def _with_notes(payload: dict, notes: Optional[str]) -> dict:
    if notes:
        payload["notes"] = notes
    return payload


class DebtsApi:
    """Container-debt tabs: charges, payments, adjustments per customer."""

    def __init__(self, client: ApiClient):
        self.client = client

    def summary(self) -> list[DebtSummaryItem]:
        return adapt_simple_list_response(self.client.get("/debts/summary"), DebtSummaryItem.from_dict).data

    def customer_debt(self, customer_id: str) -> dict:
        """{customer, tab, transactions} with transactions parsed."""
        data = adapt_item_response(self.client.get(f"/debts/customer/{customer_id}")).data or {}
        return {
            "customer": data.get("customer"),
            "tab": data.get("tab"),
            "transactions": [
                DebtTransaction.from_dict(t) for t in data.get("transactions") or [] if isinstance(t, dict)
            ],
        }

    def charge(self, customer_id: str, containers: int, transaction_date: str, notes: Optional[str] = None) -> dict:
        payload = {"customerId": customer_id, "containers": containers, "transactionDate": transaction_date}
        return adapt_mutation_response(self.client.post("/debts/charge", _with_notes(payload, notes))).data or {}

    def payment(self, customer_id: str, amount: float, transaction_date: str, notes: Optional[str] = None) -> dict:
        payload = {"customerId": customer_id, "amount": amount, "transactionDate": transaction_date}
        return adapt_mutation_response(self.client.post("/debts/payment", _with_notes(payload, notes))).data or {}

    def adjustment(
        self,
        customer_id: str,
        amount: float,
        reason: str,
        transaction_date: str,
        notes: Optional[str] = None,
    ) -> dict:
        payload = {
            "customerId": customer_id,
            "amount": amount,
            "reason": reason,
            "transactionDate": transaction_date,
        }
        return adapt_mutation_response(
            self.client.post("/debts/adjustment", _with_notes(payload, notes))
        ).data or {}

    def mark_paid(self, customer_id: str, transaction_date: str, final_payment: Optional[float] = None) -> dict:
        payload = {"customerId": customer_id, "transactionDate": transaction_date}
        if final_payment is not None:
            payload["finalPayment"] = final_payment
        return adapt_mutation_response(self.client.post("/debts/mark-paid", payload)).data or {}

    def metrics(self) -> dict:
        return adapt_item_response(self.client.get("/debts/metrics")).data or {}
