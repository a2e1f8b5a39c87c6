"""Domain schemas. Event source payload and API responses."""

from audit_pipeline.domain.schemas.audit import (
    AnalyticsResponse,
    AuditEventSchema,
    AuditPagePayload,
    AuditViewResponse,
    EventListResponse,
    EventTypeOption,
    SeriesSetSchema,
    SessionsResponse,
)

__all__ = [
    "AnalyticsResponse",
    "AuditEventSchema",
    "AuditPagePayload",
    "AuditViewResponse",
    "EventListResponse",
    "EventTypeOption",
    "SeriesSetSchema",
    "SessionsResponse",
]
