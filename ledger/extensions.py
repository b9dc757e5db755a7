# Overview: Flask extension wiring the backend API client, query cache and settings state.

from __future__ import annotations

from typing import Optional

from flask import Flask

from .api import ApiClient, LedgerApi, RefreshCoordinator, TokenStore
from .services.query_cache import QueryCache, QueryKeys
from .services.settings_service import SettingsState


class LedgerBackend:
    """
    Per-app handles: one query cache, settings state and token refresh
    coordinator shared by all requests, and a factory for per-caller API
    clients (each caller has its own token store).
    """

    def __init__(self, app: Optional[Flask] = None):
        self.cache: Optional[QueryCache] = None
        self.settings_state: Optional[SettingsState] = None
        self.base_url: Optional[str] = None
        self.timeout: float = 10.0
        self.transport = None
        self.refresher: Optional[RefreshCoordinator] = None
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        self.base_url = app.config["LEDGER_API_URL"]
        self.timeout = float(app.config["LEDGER_API_TIMEOUT"])
        # Tests inject an httpx.MockTransport here
        self.transport = app.config.get("LEDGER_API_TRANSPORT")
        self.cache = QueryCache(
            stale_seconds=float(app.config["LEDGER_QUERY_STALE_SECONDS"]),
            gc_seconds=float(app.config["LEDGER_QUERY_GC_SECONDS"]),
        )
        self.settings_state = SettingsState()
        self.refresher = RefreshCoordinator()
        app.extensions["ledger"] = self

    def api_for(self, token_store: TokenStore, current_path: Optional[str] = None) -> LedgerApi:
        client = ApiClient(
            self.base_url,
            token_store=token_store,
            timeout=self.timeout,
            transport=self.transport,
            current_path=current_path,
            refresher=self.refresher,
        )
        return LedgerApi(client)

    def current_settings(self, api: LedgerApi):
        """Settings from cache, (re)loaded from the backend once stale."""
        return self.cache.fetch(QueryKeys.settings_all(), lambda: self.settings_state.load(api.settings))


backend = LedgerBackend()
