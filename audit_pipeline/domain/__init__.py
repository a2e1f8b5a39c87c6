"""Domain layer: event model, classification, filtering, sessions, aggregation. Pure logic only."""

from audit_pipeline.domain.analytics import AuditAnalytics, compute_analytics
from audit_pipeline.domain.exceptions import (
    DomainError,
    DomainValidationError,
    InvalidFilterError,
    InvalidRangeError,
    InvalidStateTransitionError,
)
from audit_pipeline.domain.filters import AuditFilters, apply_filters
from audit_pipeline.domain.models import AuditEvent, Series, SeriesSet, Session, ViewState, parse_events
from audit_pipeline.domain.sessions import compute_user_sessions

__all__ = [
    "AuditAnalytics",
    "AuditEvent",
    "AuditFilters",
    "DomainError",
    "DomainValidationError",
    "InvalidFilterError",
    "InvalidRangeError",
    "InvalidStateTransitionError",
    "Series",
    "SeriesSet",
    "Session",
    "ViewState",
    "apply_filters",
    "compute_analytics",
    "compute_user_sessions",
    "parse_events",
]
