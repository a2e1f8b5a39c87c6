"""Persisted key-value stores backing the audit cache. Protocol + in-memory and Redis implementations."""

from typing import Optional, Protocol

import redis

from audit_pipeline.config.settings import settings


class CacheStore(Protocol):
    """Narrow string store. Reads and writes are synchronous, one value per key."""

    def get(self, key: str) -> Optional[str]:
        """Return the stored value or None if the key is absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Replace the value for key wholesale."""
        ...


class InMemoryCacheStore:
    """Dict-backed store. For tests or single-process use."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._store.get(key)

    def set(self, key: str, value: str) -> None:
        self._store[key] = value

    def keys(self) -> list[str]:
        return sorted(self._store)


class RedisCacheStore:
    """
    Redis-backed store. Entries carry no Redis TTL: staleness is decided by the
    cache layer from the entry's own timestamp, and stale entries are still served.
    """

    def __init__(self, client: Optional[redis.Redis] = None, key_prefix: str = "") -> None:
        self.client = client or redis.Redis.from_url(
            settings.redis_url,
            decode_responses=True,
        )
        self._prefix = key_prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get(self, key: str) -> Optional[str]:
        value = self.client.get(self._key(key))
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set(self, key: str, value: str) -> None:
        self.client.set(self._key(key), value)
