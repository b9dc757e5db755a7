# Overview: Where the access/refresh token pair lives between requests.

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import MutableMapping, Optional

from ..constants import ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY


logger = logging.getLogger(__name__)


class TokenStore:
    """
    Two string values under ACCESS_TOKEN_KEY / REFRESH_TOKEN_KEY.

    Subclasses only implement _read/_write; the key names stay the same
    for every backing store.
    """

    def _read(self) -> dict:
        raise NotImplementedError

    def _write(self, values: dict) -> None:
        raise NotImplementedError

    @property
    def access_token(self) -> Optional[str]:
        return self._read().get(ACCESS_TOKEN_KEY)

    @property
    def refresh_token(self) -> Optional[str]:
        return self._read().get(REFRESH_TOKEN_KEY)

    def set_tokens(self, access_token: Optional[str], refresh_token: Optional[str] = None) -> None:
        values = self._read()
        if access_token:
            values[ACCESS_TOKEN_KEY] = access_token
        if refresh_token:
            values[REFRESH_TOKEN_KEY] = refresh_token
        self._write(values)

    def clear(self) -> None:
        self._write({})

    def is_authenticated(self) -> bool:
        return bool(self.access_token)


class MemoryTokenStore(TokenStore):
    def __init__(self, access_token: Optional[str] = None, refresh_token: Optional[str] = None):
        self._values: dict = {}
        self._lock = threading.Lock()
        self.set_tokens(access_token, refresh_token)

    def _read(self) -> dict:
        with self._lock:
            return dict(self._values)

    def _write(self, values: dict) -> None:
        with self._lock:
            self._values = dict(values)


class FileTokenStore(TokenStore):
    """JSON file used by the CLI so a login survives between invocations."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable token file %s", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, values: dict) -> None:
        if not values:
            if self.path.exists():
                self.path.unlink()
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(values), encoding="utf-8")
        self.path.chmod(0o600)


class SessionTokenStore(TokenStore):
    """Tokens kept in the signed Flask session cookie of the current browser."""

    def __init__(self, session: MutableMapping):
        self.session = session

    def _read(self) -> dict:
        return {
            key: self.session[key]
            for key in (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY)
            if self.session.get(key)
        }

    def _write(self, values: dict) -> None:
        for key in (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY):
            if values.get(key):
                self.session[key] = values[key]
            else:
                self.session.pop(key, None)
