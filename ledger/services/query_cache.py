# Overview: In-process query cache with hierarchical keys, staleness, prefix invalidation and idle eviction.

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..api.client import ApiError, SessionExpiredError


logger = logging.getLogger(__name__)

DEFAULT_STALE_SECONDS = 30.0
DEFAULT_GC_SECONDS = 300.0
DEFAULT_RETRIES = 1


def _freeze(value: Any) -> Any:
    if isinstance(value, dict):
        return tuple(sorted((k, _freeze(v)) for k, v in value.items() if v is not None))
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


class QueryKeys:
    """Hierarchical keys; invalidating a prefix drops everything beneath it."""

    @staticmethod
    def sales_all() -> tuple:
        return ("sales",)

    @staticmethod
    def sales_list(filters: Optional[dict] = None) -> tuple:
        return ("sales", "list", _freeze(filters or {}))

    @staticmethod
    def customers_all() -> tuple:
        return ("customers",)

    @staticmethod
    def customers_list(filters: Optional[dict] = None) -> tuple:
        return ("customers", "list", _freeze(filters or {}))

    @staticmethod
    def customer_detail(customer_id: str) -> tuple:
        return ("customers", "detail", customer_id)

    @staticmethod
    def customer_outstanding(customer_id: str) -> tuple:
        return ("customer-outstanding", customer_id)

    @staticmethod
    def users_all() -> tuple:
        return ("users",)

    @staticmethod
    def settings_all() -> tuple:
        return ("settings",)

    @staticmethod
    def outstanding_balances() -> tuple:
        return ("outstanding-balances",)

    @staticmethod
    def reports(kind: str, *parts: str) -> tuple:
        return ("reports", kind, *parts)

    @staticmethod
    def debts_all() -> tuple:
        return ("debts",)

    @staticmethod
    def debts_summary() -> tuple:
        return ("debts", "summary")

    @staticmethod
    def debts_customer(customer_id: str) -> tuple:
        return ("debts", "customer", customer_id)

    @staticmethod
    def debts_metrics() -> tuple:
        return ("debts", "metrics")


@dataclass
class _Entry:
    value: Any
    fetched_at: float
    last_access: float


def _retryable(exc: ApiError) -> bool:
    if isinstance(exc, SessionExpiredError):
        return False
    return exc.status_code is None or exc.status_code >= 500


class QueryCache:
    """
    Fresh entries (younger than stale_seconds) are served without calling
    the loader. Entries not read for gc_seconds are evicted by collect().
    Loader failures are retried `retries` times for network/5xx errors.
    """

    def __init__(
        self,
        stale_seconds: float = DEFAULT_STALE_SECONDS,
        gc_seconds: float = DEFAULT_GC_SECONDS,
        retries: int = DEFAULT_RETRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.stale_seconds = stale_seconds
        self.gc_seconds = gc_seconds
        self.retries = retries
        self.clock = clock
        self._entries: dict[tuple, _Entry] = {}
        self._lock = threading.Lock()

    def fetch(self, key: tuple, loader: Callable[[], Any], *, stale_seconds: Optional[float] = None) -> Any:
        stale = self.stale_seconds if stale_seconds is None else stale_seconds
        now = self.clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and now - entry.fetched_at < stale:
                entry.last_access = now
                return entry.value

        value = self._load(key, loader)
        now = self.clock()
        with self._lock:
            self._entries[key] = _Entry(value=value, fetched_at=now, last_access=now)
        self.collect()
        return value

    def _load(self, key: tuple, loader: Callable[[], Any]) -> Any:
        attempt = 0
        while True:
            try:
                return loader()
            except ApiError as exc:
                if attempt >= self.retries or not _retryable(exc):
                    raise
                attempt += 1
                logger.info("Retrying query %s after error: %s", key, exc.message)

    def get(self, key: tuple) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            return entry.value if entry else None

    def set(self, key: tuple, value: Any) -> None:
        now = self.clock()
        with self._lock:
            self._entries[key] = _Entry(value=value, fetched_at=now, last_access=now)

    def invalidate(self, *prefixes: tuple) -> int:
        """Drop every entry whose key starts with one of the prefixes; returns how many."""
        with self._lock:
            doomed = [
                key for key in self._entries
                if any(key[:len(prefix)] == prefix for prefix in prefixes)
            ]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def collect(self) -> int:
        """Evict entries idle for longer than gc_seconds."""
        cutoff = self.clock() - self.gc_seconds
        with self._lock:
            idle = [key for key, entry in self._entries.items() if entry.last_access < cutoff]
            for key in idle:
                del self._entries[key]
        return len(idle)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: tuple) -> bool:
        with self._lock:
            return key in self._entries
