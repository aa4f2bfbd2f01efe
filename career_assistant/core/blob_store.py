"""
Key/value blob store for cached answer payloads.

Redis when REDIS_URL is configured; otherwise an in-process store keyed the same
way, so the semantic cache works (per process) without Redis.
"""

import logging
import threading
import time
from typing import Any

import redis

logger = logging.getLogger(__name__)


class RedisBlobStore:
    """Blob store backed by Redis (string values, optional TTL)."""

    def __init__(self, url: str) -> None:
        self._client = redis.Redis.from_url(url, decode_responses=True)
        logger.info("Redis blob store configured")

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        if ttl_seconds:
            self._client.set(key, value, ex=ttl_seconds)
        else:
            self._client.set(key, value)

    def get(self, key: str) -> str | None:
        value: Any = self._client.get(key)
        return value if value is None else str(value)

    def delete(self, key: str) -> None:
        self._client.delete(key)


class InMemoryBlobStore:
    """In-process blob store. Values live until deleted, expired, or the process exits."""

    def __init__(self) -> None:
        # key -> (value, expires_at or None)
        self._items: dict[str, tuple[str, float | None]] = {}
        self._lock = threading.Lock()

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        now = time.monotonic()
        expires_at = now + ttl_seconds if ttl_seconds else None
        with self._lock:
            self._purge_expired(now)
            self._items[key] = (value, expires_at)
        logger.debug("[blob_store:set] key=%s value_len=%d ttl=%s", key, len(value), ttl_seconds)

    def get(self, key: str) -> str | None:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            value, expires_at = item
            if expires_at is not None and expires_at <= time.monotonic():
                del self._items[key]
                return None
        return value

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def _purge_expired(self, now: float) -> None:
        # caller holds the lock
        expired = [k for k, (_, expires_at) in self._items.items() if expires_at is not None and expires_at <= now]
        for k in expired:
            del self._items[k]
