"""Domain models. Pure business entities."""

from audit_pipeline.domain.models.event import (
    DEFAULT_ACTOR,
    AuditEvent,
    normalize_iso,
    parse_events,
    parse_timestamp,
)
from audit_pipeline.domain.models.series import Series, SeriesSet
from audit_pipeline.domain.models.session import Session
from audit_pipeline.domain.models.view import ViewState, validate_transition

__all__ = [
    "DEFAULT_ACTOR",
    "AuditEvent",
    "Series",
    "SeriesSet",
    "Session",
    "ViewState",
    "normalize_iso",
    "parse_events",
    "parse_timestamp",
    "validate_transition",
]
