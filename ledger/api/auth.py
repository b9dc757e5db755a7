from __future__ import annotations

import logging

from ..models import User
from .adapters import adapt_auth_response, adapt_item_response
from .client import ApiClient, ApiError


logger = logging.getLogger(__name__)


class AuthApi:
    def __init__(self, client: ApiClient):
        self.client = client

    def _store(self, response) -> User:
        auth = adapt_auth_response(response)
        if not auth.access_token:
            raise ApiError("Login response did not include an access token")
        self.client.tokens.set_tokens(auth.access_token, auth.refresh_token)
        return User.from_dict(auth.user or {})

    def login(self, username: str, passcode: str) -> User:
        """Authenticate and persist the token pair in the client's token store."""
        user = self._store(self.client.post("/auth/login", {"username": username, "passcode": passcode}))
        logger.info("Logged in as %s", user.username)
        return user

    def logout(self) -> None:
        """Tell the backend, but always forget the local tokens."""
        try:
            self.client.post("/auth/logout")
        except ApiError as e:
            logger.warning("Logout request failed: %s", e.message)
        finally:
            self.client.tokens.clear()

    def me(self) -> User:
        return adapt_item_response(self.client.get("/auth/me"), User.from_dict).data or User(id="", username="")

    def is_authenticated(self) -> bool:
        return self.client.tokens.is_authenticated()
