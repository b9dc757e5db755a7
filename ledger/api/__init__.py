# Overview: One object bundling the REST wrappers around a shared ApiClient.

from __future__ import annotations

from .auth import AuthApi
from .client import ApiClient, ApiError, RefreshCoordinator, SessionExpiredError, handle_api_error
from .customers import CustomersApi
from .debts import DebtsApi
from .payments import PaymentsApi, ReminderNotesApi
from .sales import SalesApi
from .settings import SettingsApi
from .tokens import FileTokenStore, MemoryTokenStore, SessionTokenStore, TokenStore
from .users import UsersApi


class LedgerApi:
    def __init__(self, client: ApiClient):
        self.client = client
        self.auth = AuthApi(client)
        self.customers = CustomersApi(client)
        self.sales = SalesApi(client)
        self.payments = PaymentsApi(client)
        self.reminder_notes = ReminderNotesApi(client)
        self.settings = SettingsApi(client)
        self.users = UsersApi(client)
        self.debts = DebtsApi(client)

    def close(self) -> None:
        self.client.close()


__all__ = [
    "ApiClient",
    "ApiError",
    "FileTokenStore",
    "LedgerApi",
    "MemoryTokenStore",
    "RefreshCoordinator",
    "SessionExpiredError",
    "SessionTokenStore",
    "TokenStore",
    "handle_api_error",
]
