"""
Gateway caching package.

Provides the bounded, TTL-checked response cache used by the Widget Gateway.
Entries expire lazily on read; eviction is oldest-inserted first.
"""

from .response_cache import MISS, CacheEntry, ResponseCache

__all__ = [
    "MISS",
    "CacheEntry",
    "ResponseCache",
]
