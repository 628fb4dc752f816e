"""Image-derivative cache keyed by absolute source path."""

import logging
from typing import Protocol

import redis

logger = logging.getLogger(__name__)


class ImageCache(Protocol):
    """Cache of rendered derivatives of one source image."""

    def get(self, source: str, variant: str) -> bytes | None:
        """Get a rendered derivative (None on miss)."""
        ...

    def put(self, source: str, variant: str, data: bytes) -> None:
        """Store a rendered derivative."""
        ...

    def clear(self, source: str) -> None:
        """Drop every derivative of a source image."""
        ...


class InMemoryImageCache:
    """In-memory implementation of ImageCache."""

    def __init__(self) -> None:
        self._entries: dict[str, dict[str, bytes]] = {}

    def get(self, source: str, variant: str) -> bytes | None:
        return self._entries.get(source, {}).get(variant)

    def put(self, source: str, variant: str, data: bytes) -> None:
        self._entries.setdefault(source, {})[variant] = data

    def clear(self, source: str) -> None:
        self._entries.pop(source, None)

    def __contains__(self, source: object) -> bool:
        return source in self._entries


class RedisImageCache:
    """Redis-based image cache.

    Each derivative is stored under its own key with a TTL; a set per source
    tracks its derivative keys so ``clear`` can drop them together.
    """

    def __init__(self, redis_client: redis.Redis, ttl_seconds: int) -> None:
        """Initialize cache.

        Args:
            redis_client: Redis client (binary responses)
            ttl_seconds: Lifetime of cached derivatives
        """
        self._redis = redis_client
        self._ttl_seconds = ttl_seconds

    @staticmethod
    def _index_key(source: str) -> str:
        return f"image:{source}"

    @staticmethod
    def _entry_key(source: str, variant: str) -> str:
        return f"image:{source}:{variant}"

    def get(self, source: str, variant: str) -> bytes | None:
        data = self._redis.get(self._entry_key(source, variant))
        return data if data is None else bytes(data)  # type: ignore[arg-type]

    def put(self, source: str, variant: str, data: bytes) -> None:
        entry_key = self._entry_key(source, variant)
        index_key = self._index_key(source)

        pipe = self._redis.pipeline()
        pipe.set(entry_key, data, ex=self._ttl_seconds)
        pipe.sadd(index_key, entry_key)
        pipe.expire(index_key, self._ttl_seconds)
        pipe.execute()

    def clear(self, source: str) -> None:
        index_key = self._index_key(source)
        entry_keys = self._redis.smembers(index_key)  # type: ignore[union-attr]
        if entry_keys:
            self._redis.delete(*entry_keys)  # type: ignore[misc]
        self._redis.delete(index_key)
        logger.debug("Cleared image cache", extra={"structured": {"source": source}})
