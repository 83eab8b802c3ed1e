"""
Simple in-memory TTL cache used for upstream menu pages.
Entries vanish with the process; there is no shared backend.
"""
import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class SimpleCache:
    """In-memory cache with TTL support and size limit."""

    MAX_ENTRIES = 1000

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._cache: dict = {}
        self._expiry: dict = {}
        self._lock = threading.Lock()
        self._clock = clock or datetime.now

    def _evict_expired(self):
        now = self._clock()
        expired = [k for k, exp in self._expiry.items() if exp <= now]
        for k in expired:
            self._cache.pop(k, None)
            self._expiry.pop(k, None)

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache if not expired."""
        with self._lock:
            if key not in self._cache:
                return None
            if self._clock() < self._expiry.get(key, datetime.min):
                return self._cache[key]
            del self._cache[key]
            del self._expiry[key]
            return None

    def set(self, key: str, value: Any, ttl_seconds: int = 300):
        """Set value in cache with TTL."""
        with self._lock:
            if len(self._cache) >= self.MAX_ENTRIES:
                self._evict_expired()
            if len(self._cache) >= self.MAX_ENTRIES:
                oldest = min(self._expiry, key=self._expiry.get)
                self._cache.pop(oldest, None)
                self._expiry.pop(oldest, None)
            self._cache[key] = value
            self._expiry[key] = self._clock() + timedelta(seconds=ttl_seconds)

    def stats(self) -> dict:
        """Get cache statistics."""
        with self._lock:
            now = self._clock()
            valid = sum(1 for exp in self._expiry.values() if exp > now)
            return {
                "total_keys": len(self._cache),
                "valid_keys": valid,
                "expired_keys": len(self._cache) - valid,
            }
