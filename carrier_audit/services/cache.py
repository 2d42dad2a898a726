"""
In-process TTL cache.

`get` returns None for a miss, so None itself is not a cacheable value.
Expired entries are dropped lazily on read and by `cleanup()`, which the
optional sweeper thread runs on an interval.
"""

import functools
import json
import logging
import re
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from carrier_audit import config

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    data: Any
    expiry: float


class TTLCache:
    def __init__(self, default_ttl: float = config.CACHE_DEFAULT_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self.clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._sweeper: Optional[threading.Thread] = None
        self._stop = threading.Event()

    def get(self, key: str) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self.clock() > entry.expiry:
                del self._entries[key]
                return None
            return entry.data

    def set(self, key: str, data: Any, ttl: Optional[float] = None) -> None:
        # a ttl of 0 or None falls back to the default
        expiry = self.clock() + (ttl or self.default_ttl)
        with self._lock:
            self._entries[key] = CacheEntry(data=data, expiry=expiry)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def cleanup(self) -> int:
        now = self.clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now > e.expiry]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.info("[Cache] Cleaned up %d expired entries", len(expired))
        return len(expired)

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            return {"size": len(self._entries), "keys": list(self._entries)}

    def get_or_set(self, key: str, fetcher: Callable[[], Any], ttl: Optional[float] = None) -> Any:
        cached = self.get(key)
        if cached is not None:
            return cached
        data = fetcher()
        self.set(key, data, ttl)
        return data

    def invalidate_pattern(self, pattern: str) -> int:
        regex = re.compile(pattern)
        with self._lock:
            matched = [k for k in self._entries if regex.search(k)]
            for key in matched:
                del self._entries[key]
        if matched:
            logger.info("[Cache] Invalidated %d entries matching pattern: %s", len(matched), pattern)
        return len(matched)

    # ── Background sweep ─────────────────────────────────────────────────────

    def start_sweeper(self, interval: float = config.CACHE_SWEEP_INTERVAL_SECONDS) -> None:
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop.clear()

        def _sweep():
            while not self._stop.wait(interval):
                self.cleanup()

        self._sweeper = threading.Thread(target=_sweep, name="cache-sweeper", daemon=True)
        self._sweeper.start()

    def stop_sweeper(self) -> None:
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=1)
            self._sweeper = None


def _iso_or_all(value: Optional[datetime]) -> str:
    return value.isoformat() if value else "all"


class cache_keys:
    """Key builders, grouped by the area of the app that owns them."""

    class cases:
        @staticmethod
        def list() -> str:
            return "cases:list"

        @staticmethod
        def detail(case_id: int) -> str:
            return f"cases:detail:{case_id}"

        @staticmethod
        def by_carrier(carrier: str) -> str:
            return f"cases:carrier:{carrier}"

        @staticmethod
        def by_status(status: str) -> str:
            return f"cases:status:{status}"

    class dashboard:
        @staticmethod
        def metrics() -> str:
            return "dashboard:metrics"

        @staticmethod
        def recent_activity() -> str:
            return "dashboard:activity"

    class reports:
        @staticmethod
        def summary(start_date: Optional[datetime] = None, end_date: Optional[datetime] = None) -> str:
            return f"reports:summary:{_iso_or_all(start_date)}:{_iso_or_all(end_date)}"

        @staticmethod
        def carrier(carrier: str) -> str:
            return f"reports:carrier:{carrier}"


class CacheInvalidator:
    def __init__(self, cache: TTLCache):
        self.cache = cache

    def cases(self) -> None:
        self.cache.invalidate_pattern("^cases:")
        self.dashboard()

    def case(self, case_id: int) -> None:
        self.cache.delete(cache_keys.cases.detail(case_id))
        self.cache.delete(cache_keys.cases.list())
        self.cache.delete(cache_keys.dashboard.metrics())

    def dashboard(self) -> None:
        self.cache.delete(cache_keys.dashboard.metrics())
        self.cache.delete(cache_keys.dashboard.recent_activity())

    def reports(self) -> None:
        self.cache.invalidate_pattern("^reports:")

    def all(self) -> None:
        self.cache.clear()


def cacheable(cache: TTLCache, key: str, ttl: Optional[float] = None):
    """Memoise a function in `cache` under `key` plus its JSON-encoded arguments."""

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            cache_key = f"{key}:{json.dumps([args, kwargs], sort_keys=True, default=str)}"
            return cache.get_or_set(cache_key, lambda: func(*args, **kwargs), ttl)
        return wrapper

    return decorator
