# Overview: Service-layer auth session; login/logout over the API and the current user.

from __future__ import annotations

import logging
from typing import Optional

from ..api.auth import AuthApi
from ..api.client import ApiError
from ..constants import ROLE_ADMIN
from ..models import User
from ..validation import ValidationError, validate_passcode


logger = logging.getLogger(__name__)


class AuthSession:
    """Explicit auth state for one token store (a browser session or the CLI)."""

    def __init__(self, api: AuthApi):
        self.api = api
        self.user: Optional[User] = None

    @property
    def is_authenticated(self) -> bool:
        return self.api.is_authenticated()

    @property
    def is_admin(self) -> bool:
        return self.user is not None and self.user.role == ROLE_ADMIN

    def login(self, username: str, passcode: str) -> User:
        errors = {}
        if not (username or "").strip():
            errors["username"] = "Username is required"
        try:
            passcode = validate_passcode(passcode)
        except ValidationError as e:
            errors.update(e.errors)
        if errors:
            raise ValidationError(next(iter(errors.values())), errors)

        self.user = self.api.login(username.strip(), passcode)
        return self.user

    def logout(self) -> None:
        self.api.logout()
        self.user = None

    def current_user(self) -> Optional[User]:
        """Fetch /auth/me once per session object; None when not logged in."""
        if not self.is_authenticated:
            return None
        if self.user is None:
            try:
                self.user = self.api.me()
            except ApiError as e:
                logger.info("Could not load current user: %s", e.message)
                raise
        return self.user
