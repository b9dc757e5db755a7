from __future__ import annotations

import json
from typing import Any

from ..models import Settings
from .adapters import adapt_item_response, adapt_simple_list_response
from .client import ApiClient


def setting_type(value: Any) -> str:
    """Backend type tag for a Python value."""
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, (dict, list)):
        return "json"
    return "string"


def serialize_setting(value: Any) -> str:
    """Settings are stored as strings; booleans as true/false, json as JSON text."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    if value is None:
        return ""
    return str(value)


class SettingsApi:
    def __init__(self, client: ApiClient):
        self.client = client

    def list(self) -> list[dict]:
        return adapt_simple_list_response(self.client.get("/settings")).data

    def upsert(self, key: str, value: Any) -> dict:
        """PUT creates the key when missing."""
        payload = {"value": serialize_setting(value), "type": setting_type(value)}
        return adapt_item_response(self.client.put(f"/settings/{key}", payload)).data or {}

    def get_as_object(self) -> dict:
        """key -> value, preferring the backend-parsed value over the raw string."""
        values = {}
        for setting in self.list():
            if not isinstance(setting, dict) or "key" not in setting:
                continue
            parsed = setting.get("parsedValue")
            values[setting["key"]] = parsed if parsed is not None else setting.get("value")
        return values

    def load(self) -> Settings:
        return Settings.from_values(self.get_as_object())
