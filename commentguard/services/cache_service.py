"""
Small in-memory expiring cache.
Backs the settings cache and the "processed by AI" comment markers.
"""

import hashlib
import logging
import threading
from typing import Any, Dict, Optional
from datetime import datetime, timedelta

from commentguard.config import settings

logger = logging.getLogger(__name__)


class ExpiringCache:
    """
    Key/value cache with a per-entry TTL and a size cap.
    The oldest entry is evicted when the cache is full. Public methods hold
    a lock; the underscore helpers assume the caller holds it.
    """

    def __init__(self, max_size: int = 1000, ttl_seconds: int = 3600):
        self._lock = threading.Lock()
        self._cache: Dict[str, Any] = {}
        self._timestamps: Dict[str, datetime] = {}
        self._expiry: Dict[str, timedelta] = {}
        self._max_size = max_size
        self._ttl = timedelta(seconds=ttl_seconds)

    def _evict_expired(self):
        """Remove expired entries."""
        now = datetime.now()
        expired = [k for k, ts in self._timestamps.items() if now - ts > self._expiry.get(k, self._ttl)]
        for k in expired:
            self._drop(k)

    def _evict_oldest(self):
        """Remove oldest entry if cache is full."""
        if self._timestamps and len(self._cache) >= self._max_size:
            oldest_key = min(self._timestamps, key=self._timestamps.get)
            self._drop(oldest_key)

    def _drop(self, key: str):
        self._cache.pop(key, None)
        self._timestamps.pop(key, None)
        self._expiry.pop(key, None)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            self._evict_expired()
            return self._cache.get(key, default)

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None):
        with self._lock:
            self._evict_expired()
            if key not in self._cache:
                self._evict_oldest()
            self._cache[key] = value
            self._timestamps[key] = datetime.now()
            if ttl_seconds is not None:
                self._expiry[key] = timedelta(seconds=ttl_seconds)
            else:
                self._expiry.pop(key, None)

    def delete(self, key: str):
        with self._lock:
            self._drop(key)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            self._evict_expired()
            return key in self._cache

    def clear(self):
        """Clear all cached entries."""
        with self._lock:
            self._cache.clear()
            self._timestamps.clear()
            self._expiry.clear()
        logger.debug("Cache cleared")

    @property
    def size(self) -> int:
        """Current number of cached entries."""
        return len(self._cache)


def processed_marker_key(content: str, author: str, email: str = "") -> str:
    """Identity of a comment for notification suppression."""
    return "ai_processed_" + hashlib.md5(f"{content}{author}{email or ''}".encode()).hexdigest()


class ProcessedComments:
    """
    Remembers which comments were just moderated by the AI, so the blog can
    skip the "new comment" e-mail for them.
    """

    def __init__(self, max_size: int = 1000, ttl_seconds: int = 300):
        self._cache = ExpiringCache(max_size=max_size, ttl_seconds=ttl_seconds)

    def mark(self, content: str, author: str, email: str = ""):
        self._cache.set(processed_marker_key(content, author, email), True)

    def was_processed(self, content: str, author: str, email: str = "") -> bool:
        return processed_marker_key(content, author, email) in self._cache

    def clear(self):
        self._cache.clear()


# Global marker store (uses config values)
processed_comments = ProcessedComments(
    max_size=settings.processed_marker_capacity,
    ttl_seconds=settings.processed_marker_ttl,
)
