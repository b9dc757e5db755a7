from __future__ import annotations

from typing import Optional

from ..constants import PAYMENT_METHOD_CASH
from ..models import AgingReport, DailyPaymentsReport, OutstandingBalance, Payment, ReminderNote
from .adapters import (
    adapt_customer_outstanding_response,
    adapt_item_response,
    adapt_nested_list,
    adapt_simple_list_response,
)
from .client import ApiClient


class PaymentsApi:
    def __init__(self, client: ApiClient):
        self.client = client

    def get(self, payment_id: str) -> Optional[Payment]:
        return adapt_item_response(self.client.get(f"/payments/{payment_id}"), Payment.from_dict).data

    def record_payment(
        self,
        payment_id: str,
        amount: float,
        payment_method: str = PAYMENT_METHOD_CASH,
        notes: Optional[str] = None,
    ) -> Optional[Payment]:
        """Apply a (possibly partial) payment against an existing payment record."""
        payload = {"amount": amount, "paymentMethod": payment_method}
        if notes:
            payload["notes"] = notes
        return adapt_item_response(
            self.client.post(f"/payments/{payment_id}/record", payload), Payment.from_dict
        ).data

    def customer_payments(self, customer_id: str) -> list[Payment]:
        return adapt_nested_list(
            self.client.get(f"/payments/customers/{customer_id}/payments"), "payments", Payment.from_dict
        ).data

    def customer_outstanding(self, customer_id: str) -> OutstandingBalance:
        return OutstandingBalance.from_dict(
            adapt_customer_outstanding_response(
                self.client.get(f"/payments/customers/{customer_id}/outstanding")
            )
        )

    def outstanding_balances(self) -> list[OutstandingBalance]:
        return adapt_nested_list(
            self.client.get("/payments/outstanding"), "customers", OutstandingBalance.from_dict
        ).data

    def aging_report(self) -> AgingReport:
        return adapt_item_response(self.client.get("/reports/aging"), AgingReport.from_dict).data or AgingReport()

    def daily_payments_report(self, date: str) -> DailyPaymentsReport:
        report = adapt_item_response(
            self.client.get("/reports/payments/daily", {"date": date}),
            lambda data: DailyPaymentsReport.from_dict(data, date=date),
        ).data
        return report or DailyPaymentsReport(date=date)


class ReminderNotesApi:
    """Reminder notes attached to customers with outstanding debt."""

    def __init__(self, client: ApiClient):
        self.client = client

    def create(self, customer_id: str, note: str) -> ReminderNote:
        return adapt_item_response(
            self.client.post("/reminders/notes", {"customerId": customer_id, "note": note}),
            ReminderNote.from_dict,
        ).data

    def customer_reminders(self, customer_id: str) -> list[ReminderNote]:
        return adapt_simple_list_response(
            self.client.get(f"/customers/{customer_id}/reminders"), ReminderNote.from_dict
        ).data
