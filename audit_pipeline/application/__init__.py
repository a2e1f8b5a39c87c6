# Application layer: services that orchestrate domain and infrastructure.

from audit_pipeline.application.cache_manager import AuditCacheManager, AuditView
from audit_pipeline.application.event_source import EventSource
from audit_pipeline.application.exceptions import (
    ApplicationError,
    EventSourceError,
    PaginationAbortedError,
)
from audit_pipeline.application.pagination import FetchResult, fetch_all_events

__all__ = [
    "AuditCacheManager",
    "AuditView",
    "ApplicationError",
    "EventSource",
    "EventSourceError",
    "FetchResult",
    "PaginationAbortedError",
    "fetch_all_events",
]
