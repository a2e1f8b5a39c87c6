"""
Audit cache entries: JSON `{"data": ..., "timestamp": <epoch ms>}` under `audit_{orgId}_{rangeDays}`.
Store and decoding failures are logged and treated as a miss (read) or a no-op (write).
"""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from audit_pipeline.infrastructure.cache.stores import CacheStore

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "audit_"
DEFAULT_TTL_MINUTES = 30


def cache_key(org_id: str, range_days: int) -> str:
    return f"{CACHE_KEY_PREFIX}{org_id}_{range_days}"


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class CachedAudit:
    data: Dict[str, Any]
    timestamp_ms: int
    age_ms: int
    is_stale: bool


class AuditCache:
    """
    Reads never delete: a stale entry is returned with is_stale=True and the caller decides
    what to do. Writes replace the whole entry; there is no partial merge.
    """

    def __init__(
        self,
        store: CacheStore,
        ttl_minutes: int = DEFAULT_TTL_MINUTES,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._store = store
        self._ttl_ms = ttl_minutes * 60 * 1000
        self._clock = clock

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    def get(self, key: str) -> Optional[CachedAudit]:
        try:
            raw = self._store.get(key)
            if not raw:
                return None
            entry = json.loads(raw)
            data = entry["data"]
            timestamp_ms = int(entry["timestamp"])
            if not isinstance(data, dict):
                raise ValueError("cache entry data must be an object")
        except Exception as e:
            logger.warning("cache_read_failed", extra={"cache_key": key, "error": str(e)})
            return None

        age_ms = self._clock() - timestamp_ms
        is_stale = age_ms >= self._ttl_ms
        logger.info(
            "cache_hit_stale" if is_stale else "cache_hit_fresh",
            extra={"cache_key": key, "age_seconds": round(age_ms / 1000), "ttl_ms": self._ttl_ms},
        )
        return CachedAudit(data=data, timestamp_ms=timestamp_ms, age_ms=age_ms, is_stale=is_stale)

    def set(self, key: str, data: Dict[str, Any]) -> bool:
        """Persist data stamped with the current time. Returns False if the write failed."""
        try:
            payload = json.dumps({"data": data, "timestamp": self._clock()})
            self._store.set(key, payload)
        except Exception as e:
            logger.warning("cache_write_failed", extra={"cache_key": key, "error": str(e)})
            return False
        logger.info("cache_saved", extra={"cache_key": key, "events": len(data.get("events") or [])})
        return True
