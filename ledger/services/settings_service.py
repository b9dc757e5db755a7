# Overview: Service-layer settings state; loads backend settings over defaults and writes updates back.

from __future__ import annotations

import logging
import threading
from typing import Optional

from ..api.client import ApiError, SessionExpiredError
from ..api.settings import SettingsApi
from ..constants import DEFAULT_SETTINGS
from ..models import Settings


logger = logging.getLogger(__name__)


class SettingsState:
    """
    Current business settings, passed explicitly to whoever prices or
    checks credit. A failed load keeps the defaults and records the error.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings()
        self.error: Optional[str] = None
        self.loaded = False
        self._lock = threading.Lock()

    def load(self, api: SettingsApi) -> Settings:
        try:
            settings = api.load()
        except SessionExpiredError:
            raise
        except ApiError as e:
            logger.warning("Failed to fetch settings, using defaults: %s", e.message)
            with self._lock:
                self.settings = Settings()
                self.error = e.message
                self.loaded = False
            return self.settings

        with self._lock:
            self.settings = settings
            self.error = None
            self.loaded = True
        return settings

    def update(self, api: SettingsApi, values: dict) -> Settings:
        """
        Upsert each changed key (snake_case attribute names), then reload.
        Raises ApiError; the previous state is kept on failure.
        """
        key_for_attr = {attr: key for key, attr in Settings.KEY_MAP.items()}
        for attr, value in values.items():
            if value is None and attr != "business_name":
                continue
            key = key_for_attr.get(attr)
            if key is None:
                continue
            api.upsert(key, value if value is not None else "")
        return self.load(api)

    def set_custom_pricing(self, api: SettingsApi, enabled: bool) -> Settings:
        api.upsert("enableCustomPricing", bool(enabled))
        with self._lock:
            self.settings.enable_custom_pricing = bool(enabled)
        return self.settings

    def reset_to_defaults(self, api: SettingsApi) -> Settings:
        """Everything back to defaults except the custom-pricing toggle."""
        defaults = Settings.from_values(DEFAULT_SETTINGS)
        values = defaults.to_dict()
        values.pop("enable_custom_pricing", None)
        return self.update(api, values)
