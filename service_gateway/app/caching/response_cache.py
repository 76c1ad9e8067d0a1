"""
Bounded in-process response cache for the Widget Gateway.
"""

import base64
import json
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
import sys
import os

# Add shared directory to path
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..', '..'))

from shared.logging import get_logger


DEFAULT_MAX_ENTRIES = 200


class _Miss:
    """Sentinel returned by ResponseCache.get when nothing usable is cached."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISS"


MISS = _Miss()


def monotonic_millis() -> float:
    return time.monotonic() * 1000


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    stored_at_millis: float


class ResponseCache:
    """Key/value store of recent widget responses.

    Entries expire lazily on read against the TTL supplied by the caller.
    When full, the oldest-inserted entry is evicted first, regardless of how
    recently it was read.

    Values are stored by reference, not copied: every hit returns the same
    object that was put, so callers must treat cached payloads as read-only.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Optional[Callable[[], float]] = None,
    ):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self.logger = get_logger("gateway.cache")
        self._clock = clock or monotonic_millis
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self.evictions = 0
        self.expirations = 0

    @staticmethod
    def make_key(widget_id: str, endpoint: str, query: Optional[Dict[str, Any]] = None) -> str:
        """Build the cache key for a logical request.

        The query mapping is serialized in its own iteration order, so
        {"a": 1, "b": 2} and {"b": 2, "a": 1} produce different keys.
        """
        query_string = json.dumps(query, separators=(",", ":"), default=str) if query else ""
        encoded = base64.b64encode(query_string.encode("utf-8")).decode("ascii")
        return f"{widget_id}:{endpoint}:{encoded}"

    def get(self, key: str, ttl_seconds: float) -> Any:
        """Return the cached value, or MISS if absent or older than the TTL."""
        entry = self._entries.get(key)
        if entry is None:
            return MISS

        age = self._clock() - entry.stored_at_millis
        if age > ttl_seconds * 1000:
            del self._entries[key]
            self.expirations += 1
            self.logger.debug("Cache entry expired", key=key, age_ms=round(age, 2))
            return MISS

        return entry.value

    def put(self, key: str, value: Any) -> None:
        """Insert or overwrite a value, evicting the oldest entry when full."""
        # Overwrites move the key to the newest position
        self._entries.pop(key, None)

        if len(self._entries) >= self.max_entries:
            evicted_key, _ = self._entries.popitem(last=False)
            self.evictions += 1
            self.logger.debug("Cache entry evicted", key=evicted_key, size=len(self._entries))

        self._entries[key] = CacheEntry(key=key, value=value, stored_at_millis=self._clock())

    def size(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def stats(self) -> Dict[str, Any]:
        return {
            "size": len(self._entries),
            "max_entries": self.max_entries,
            "evictions": self.evictions,
            "expirations": self.expirations,
        }
