"""
In-memory caching for Jamf API data held by a connection.

Collection lists, singleton objects and Classic API object lists are kept
here so repeated lookups don't hit the server until refreshed.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Hashable, List, Optional, Tuple


class MemoryCache:
    """
    Simple keyed cache with optional TTL.

    Each entry records when it was stored; an entry older than its TTL reads as
    absent and is dropped. A TTL of None means the entry lives until it is
    deleted or the cache is cleared.
    """

    def __init__(
        self,
        name: str = "cache",
        default_ttl: Optional[float] = None,
        enabled: bool = True,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the cache.

        Args:
            name: Label used in log messages
            default_ttl: Default time-to-live in seconds (None = no expiry)
            enabled: Whether caching is enabled (default: True)
            logger: Optional logger instance

        Examples:
            >>> cache = MemoryCache()
            >>> cache.set("buildings", [{"id": "1"}])
            >>> cache.get("buildings")
            [{'id': '1'}]
        """
        self.name = name
        self.default_ttl = default_ttl
        self.enabled = enabled
        self.logger = logger or logging.getLogger(__name__)
        self._entries: Dict[Hashable, Tuple[float, Optional[float], Any]] = {}

    def _expired(self, cached_at: float, ttl: Optional[float]) -> bool:
        return ttl is not None and (time.time() - cached_at) > ttl

    def get(self, key: Hashable, default: Any = None) -> Any:
        """
        Retrieve a value if it exists and is not expired.

        Args:
            key: Cache key
            default: Returned on a miss

        Returns:
            Cached value, or default
        """
        if not self.enabled:
            return default

        entry = self._entries.get(key)
        if entry is None:
            return default

        cached_at, ttl, value = entry
        if self._expired(cached_at, ttl):
            self.logger.debug("%s expired: %s", self.name, key)
            del self._entries[key]
            return default
        return value

    def __contains__(self, key: Hashable) -> bool:
        marker = object()
        return self.get(key, marker) is not marker

    def set(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> Any:
        """
        Store a value with optional TTL and return it.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time-to-live in seconds (default: use default_ttl)
        """
        if not self.enabled:
            return value
        self._entries[key] = (time.time(), ttl if ttl is not None else self.default_ttl, value)
        self.logger.debug("%s stored: %s", self.name, key)
        return value

    def delete(self, key: Hashable) -> bool:
        """Delete one entry. Returns True if it existed."""
        return self._entries.pop(key, None) is not None

    def delete_matching(self, predicate) -> int:
        """Delete every entry whose key satisfies predicate. Returns the count."""
        victims = [key for key in self._entries if predicate(key)]
        for key in victims:
            del self._entries[key]
        return len(victims)

    def keys(self) -> List[Hashable]:
        return [key for key in list(self._entries) if key in self]

    def clear(self) -> int:
        """Clear all entries, returning how many were removed."""
        count = len(self._entries)
        self._entries = {}
        return count

    def stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Examples:
            >>> cache = MemoryCache(default_ttl=60)
            >>> cache.set("test", "value")
            'value'
            >>> cache.stats()["valid_entries"]
            1
        """
        valid = 0
        expired = 0
        for cached_at, ttl, _value in self._entries.values():
            if self._expired(cached_at, ttl):
                expired += 1
            else:
                valid += 1
        return {
            "name": self.name,
            "enabled": self.enabled,
            "default_ttl": self.default_ttl,
            "total_entries": len(self._entries),
            "valid_entries": valid,
            "expired_entries": expired,
        }
