from __future__ import annotations

from typing import Optional

from ..models import User
from .adapters import adapt_item_response, adapt_mutation_response, adapt_simple_list_response
from .client import ApiClient


class UsersApi:
    def __init__(self, client: ApiClient):
        self.client = client

    def list(self) -> list[User]:
        return adapt_simple_list_response(self.client.get("/users"), User.from_dict).data

    def create(self, username: str, passcode: str, role: Optional[str] = None) -> User:
        payload = {"username": username, "passcode": passcode}
        if role:
            payload["role"] = role
        return adapt_item_response(self.client.post("/users", payload), User.from_dict).data

    def delete(self, user_id: str) -> Optional[str]:
        return adapt_mutation_response(self.client.delete(f"/users/{user_id}")).message
