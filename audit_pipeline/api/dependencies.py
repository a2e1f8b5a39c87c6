"""FastAPI dependency injection: cache store, event source, metrics, cache manager, org context."""

from typing import Annotated, Optional

from fastapi import Depends, Query

from audit_pipeline.application.cache_manager import AuditCacheManager
from audit_pipeline.config.settings import get_settings
from audit_pipeline.core.context import org_id_ctx
from audit_pipeline.infrastructure.cache.audit_cache import AuditCache
from audit_pipeline.infrastructure.cache.stores import CacheStore, InMemoryCacheStore, RedisCacheStore
from audit_pipeline.infrastructure.http.event_source_client import HttpEventSource
from audit_pipeline.observability.metrics import MetricsCollector

_cache_store: CacheStore | None = None
_event_source: HttpEventSource | None = None
_metrics: MetricsCollector | None = None
_cache_manager: AuditCacheManager | None = None


def get_cache_store() -> CacheStore:
    """Return singleton store for the configured cache backend."""
    global _cache_store
    if _cache_store is None:
        if get_settings().cache_backend == "redis":
            _cache_store = RedisCacheStore()
        else:
            _cache_store = InMemoryCacheStore()
    return _cache_store


def get_event_source() -> HttpEventSource:
    """Return singleton HTTP event source."""
    global _event_source
    if _event_source is None:
        _event_source = HttpEventSource()
    return _event_source


def get_metrics() -> MetricsCollector:
    """Return singleton metrics collector."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_cache_manager(
    store: Annotated[CacheStore, Depends(get_cache_store)],
    source: Annotated[HttpEventSource, Depends(get_event_source)],
    metrics: Annotated[MetricsCollector, Depends(get_metrics)],
) -> AuditCacheManager:
    """Return singleton cache manager; it owns the views and background refreshes across requests."""
    global _cache_manager
    if _cache_manager is None:
        settings = get_settings()
        _cache_manager = AuditCacheManager(
            source=source,
            cache=AuditCache(store, ttl_minutes=settings.cache_ttl_minutes),
            page_size=settings.page_size,
            max_pages=settings.max_pages,
            refresh_delay_seconds=settings.background_refresh_delay_seconds,
            discard_superseded_responses=settings.discard_superseded_responses,
            metrics=metrics if settings.enable_metrics else None,
        )
    return _cache_manager


async def bind_org_id(org_id: str) -> str:
    """
    Path org id, bound into the logging context for the rest of the request.
    Async so it runs on the request task; a sync dependency would set the var
    inside a worker thread's copied context and the endpoint would never see it.
    """
    org_id_ctx.set(org_id)
    return org_id


def get_range_days(days: Annotated[Optional[int], Query(ge=1, le=365)] = None) -> int:
    """Day-range window from ?days=, defaulting to the configured range."""
    return days if days is not None else get_settings().default_range_days


async def shutdown() -> None:
    """Cancel background refreshes and close the HTTP client."""
    global _cache_manager, _event_source
    if _cache_manager is not None:
        await _cache_manager.aclose()
        _cache_manager = None
    if _event_source is not None:
        await _event_source.aclose()
        _event_source = None
