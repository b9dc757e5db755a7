# Overview: httpx client for the remote ledger backend with bearer auth and 401 token refresh.

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Any, Callable, Optional

import httpx

from .tokens import MemoryTokenStore, TokenStore


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
LOGIN_PATH = "/auth/login"
REFRESH_PATH = "/auth/refresh"
LOGIN_PAGE = "/login"


class ApiError(Exception):
    """Normalized backend/network failure: {message, status_code, errors}."""

    def __init__(self, message: str, status_code: Optional[int] = None, errors: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors = errors

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "statusCode": self.status_code,
            "errors": self.errors,
        }


class SessionExpiredError(ApiError):
    """
    401 that could not be recovered by a token refresh.

    The token store is already cleared when this is raised. `redirect_to`
    is None when the caller is the login page/login request itself.
    """

    def __init__(self, message: str = "Session expired. Please log in again.", redirect_to: Optional[str] = LOGIN_PAGE):
        super().__init__(message, status_code=401)
        self.redirect_to = redirect_to


def handle_api_error(exc: BaseException) -> ApiError:
    """
    Map any exception raised around a backend call to an ApiError.

    Message preference: body error.message, body message, exception text,
    then a generic fallback.
    """
    if isinstance(exc, ApiError):
        return exc

    status_code = None
    errors = None
    message = None

    if isinstance(exc, httpx.HTTPStatusError):
        status_code = exc.response.status_code
        try:
            body = exc.response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict):
                message = error.get("message")
                errors = error.get("errors") or error.get("details")
            elif isinstance(error, str):
                message = error
            message = message or body.get("message")
            errors = errors or body.get("errors")

    if not message:
        message = str(exc) or "An error occurred"
    return ApiError(message, status_code=status_code, errors=errors)


class ApiClient:
    """
    Thin wrapper over httpx.Client for the ledger REST API.

    Every request carries the current access token. On a 401 the refresh
    goes through a RefreshCoordinator, so a refresh token is exchanged at
    most once; callers that hit a 401 meanwhile wait for that exchange and
    replay their request with the new token, or all fail together.
    """

    def __init__(
        self,
        base_url: str,
        token_store: Optional[TokenStore] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
        current_path: Optional[str] = None,
        refresher: Optional["RefreshCoordinator"] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.tokens = token_store if token_store is not None else MemoryTokenStore()
        self.current_path = current_path
        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

        self.refresher = refresher if refresher is not None else RefreshCoordinator()

    # -------------------------------------------------------------------------
    # Verbs
    # -------------------------------------------------------------------------

    def get(self, path: str, params: Optional[dict] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Any = None, params: Optional[dict] = None) -> Any:
        return self.request("POST", path, json=json, params=params)

    def put(self, path: str, json: Any = None) -> Any:
        return self.request("PUT", path, json=json)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict] = None,
        json: Any = None,
        _retried: bool = False,
    ) -> Any:
        """Send a request and return the decoded JSON body (None when empty)."""
        sent_token = self.tokens.access_token
        headers = {"Authorization": f"Bearer {sent_token}"} if sent_token else {}
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        try:
            response = self.client.request(method, path, params=params, json=json, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise handle_api_error(exc) from exc

        if response.status_code == 401 and not _retried and not self._is_auth_call(path):
            self._recover_from_401(path, sent_token)
            return self.request(method, path, params=params, json=json, _retried=True)

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise handle_api_error(exc) from exc

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError("Invalid JSON in backend response", status_code=response.status_code) from exc

    def ping(self) -> bool:
        """True when the backend answers at all (any HTTP status)."""
        try:
            self.client.get("/")
        except httpx.HTTPError:
            return False
        return True

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Token refresh
    # -------------------------------------------------------------------------

    @staticmethod
    def _is_auth_call(path: str) -> bool:
        return LOGIN_PATH in path or REFRESH_PATH in path

    def _redirect_target(self, path: str) -> Optional[str]:
        if LOGIN_PATH in path or self.current_path == LOGIN_PAGE:
            return None
        return LOGIN_PAGE

    def _recover_from_401(self, path: str, sent_token: Optional[str]) -> None:
        """Return once a usable access token is stored, else raise SessionExpiredError."""
        # Refresh token first: a concurrent set_tokens is then seen through the access token.
        refresh_token = self.tokens.refresh_token
        current = self.tokens.access_token
        if current and current != sent_token:
            # Another caller already refreshed after this request went out.
            return
        if not refresh_token:
            self.tokens.clear()
            raise SessionExpiredError(redirect_to=self._redirect_target(path))

        try:
            access_token, new_refresh_token = self.refresher.refresh(refresh_token, self._exchange_refresh_token)
        except SessionExpiredError as exc:
            self.tokens.clear()
            raise SessionExpiredError(exc.message, redirect_to=self._redirect_target(path)) from exc

        self.tokens.set_tokens(access_token, new_refresh_token)

    def _exchange_refresh_token(self, refresh_token: str) -> tuple[str, Optional[str]]:
        try:
            response = self.client.post(REFRESH_PATH, json={"refreshToken": refresh_token})
            response.raise_for_status()
            data = response.json()["data"]
            access_token = data["accessToken"]
            new_refresh_token = data.get("refreshToken")
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Token refresh failed: %s", exc)
            raise SessionExpiredError() from exc

        logger.info("Access token refreshed")
        return access_token, new_refresh_token


class RefreshCoordinator:
    """
    Single in-flight token refresh shared by every ApiClient of one app.

    Refreshes are keyed by the refresh token being spent. A caller holding
    a token that is being (or was recently) spent waits for that exchange
    and adopts its outcome instead of spending the token a second time.
    Web requests each hold their own copy of the session cookie, so one
    coordinator lives on the app rather than on a client.
    """

    def __init__(self, remember: int = 256):
        self.remember = remember
        self._cond = threading.Condition()
        self._in_flight: set[str] = set()
        # refresh token -> (access, refresh) pair, or None when the exchange failed
        self._outcomes: OrderedDict[str, Optional[tuple[str, Optional[str]]]] = OrderedDict()

    def refresh(
        self,
        refresh_token: str,
        exchange: Callable[[str], tuple[str, Optional[str]]],
    ) -> tuple[str, Optional[str]]:
        with self._cond:
            while refresh_token in self._in_flight:
                self._cond.wait()
            if refresh_token in self._outcomes:
                outcome = self._outcomes[refresh_token]
                if outcome is None:
                    raise SessionExpiredError()
                return outcome
            self._in_flight.add(refresh_token)

        outcome = None
        try:
            outcome = exchange(refresh_token)
            return outcome
        finally:
            with self._cond:
                self._in_flight.discard(refresh_token)
                self._outcomes[refresh_token] = outcome
                while len(self._outcomes) > self.remember:
                    self._outcomes.popitem(last=False)
                self._cond.notify_all()
