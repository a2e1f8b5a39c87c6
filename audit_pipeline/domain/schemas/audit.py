"""Pydantic schemas for the event source payload and API responses. No infrastructure."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from audit_pipeline.domain.analytics import AuditAnalytics
from audit_pipeline.domain.classifier import color_for, icon_for, type_key, type_label
from audit_pipeline.domain.models.event import AuditEvent
from audit_pipeline.domain.models.series import SeriesSet
from audit_pipeline.domain.models.session import Session


# ---------------------------------------------------------------------------
# Event source payload
# ---------------------------------------------------------------------------

class AuditPagePayload(BaseModel):
    """One page from GET /orgs/{orgId}/audit. Events stay raw; ingestion happens downstream."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    events: List[Dict[str, Any]] = Field(default_factory=list)
    continuation_token: Optional[str] = Field(None, alias="continuationToken")
    ux_summary: Optional[Dict[str, Any]] = Field(None, alias="uxSummary")

    @field_validator("events", mode="before")
    @classmethod
    def events_default_to_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("continuation_token", mode="before")
    @classmethod
    def blank_token_means_done(cls, v: Any) -> Any:
        return v or None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class AuditEventSchema(BaseModel):
    event_type: Optional[str]
    sub_type: Optional[str] = None
    type_key: str
    type_label: str
    icon: str
    color: str
    timestamp: datetime
    performed_by: str
    performed_by_display: Optional[str] = None
    org_id: Optional[str] = None
    target_id: Optional[str] = None
    target_type: Optional[str] = None
    description: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class SeriesSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    key: str
    label: str
    data: List[int]
    color_index: int
    color: str


class SeriesSetSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    dates: List[str]
    series: List[SeriesSchema]
    types: List[str]


class SessionSchema(BaseModel):
    actor: str
    start_time: datetime
    end_time: datetime
    event_count: int
    duration_seconds: float
    events: List[AuditEventSchema]


class ActorActivitySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    actor: str
    session_count: int
    event_count: int
    active_seconds: float


class EventTypeOption(BaseModel):
    value: str
    label: str


class AuditViewResponse(BaseModel):
    """Snapshot of a cached audit view after the immediate (cache or blocking) phase."""

    org_id: str
    range_days: int
    state: str
    loading: bool
    is_refreshing: bool
    served_from_cache: bool
    is_stale: bool
    has_more: bool
    error: Optional[str] = None
    event_count: int
    ux_summary: Optional[Dict[str, Any]] = None
    events: List[AuditEventSchema]


class EventListResponse(BaseModel):
    total: int
    page: int
    page_size: int
    total_pages: int
    is_refreshing: bool
    events: List[AuditEventSchema]


class SessionsResponse(BaseModel):
    sessions: Dict[str, List[SessionSchema]]
    summary: List[ActorActivitySchema]


class AnalyticsResponse(BaseModel):
    range_days: int
    is_refreshing: bool
    event_frequency: SeriesSetSchema
    email_notifications: SeriesSetSchema
    login_timeline: SeriesSetSchema
    lifecycle_events: SeriesSetSchema
    lifecycle_categories: SeriesSetSchema
    session_summary: List[ActorActivitySchema]
    credit_consumption: List[Dict[str, Any]]
    credit_job_heartbeat: Dict[str, Any]
    events_by_type: List[Dict[str, Any]]
    top_actors: List[Dict[str, Any]]
    hourly_distribution: List[Dict[str, int]]
    summary: Dict[str, Any]


# ---------------------------------------------------------------------------
# Converters
# ---------------------------------------------------------------------------

def event_to_schema(event: AuditEvent) -> AuditEventSchema:
    return AuditEventSchema(
        event_type=event.event_type,
        sub_type=event.sub_type,
        type_key=type_key(event),
        type_label=type_label(event),
        icon=icon_for(event),
        color=color_for(event),
        timestamp=event.timestamp,
        performed_by=event.performed_by,
        performed_by_display=event.performed_by_display,
        org_id=event.org_id,
        target_id=event.target_id,
        target_type=event.target_type,
        description=event.description,
        metadata=dict(event.metadata),
    )


def series_set_to_schema(series_set: SeriesSet) -> SeriesSetSchema:
    return SeriesSetSchema.model_validate(series_set, from_attributes=True)


def session_to_schema(session: Session) -> SessionSchema:
    return SessionSchema(
        actor=session.actor,
        start_time=session.start_time,
        end_time=session.end_time,
        event_count=session.event_count,
        duration_seconds=session.duration_seconds,
        events=[event_to_schema(e) for e in session.events],
    )


def analytics_to_response(analytics: AuditAnalytics, range_days: int, is_refreshing: bool) -> AnalyticsResponse:
    return AnalyticsResponse(
        range_days=range_days,
        is_refreshing=is_refreshing,
        event_frequency=series_set_to_schema(analytics.event_frequency),
        email_notifications=series_set_to_schema(analytics.email_notifications),
        login_timeline=series_set_to_schema(analytics.login_timeline),
        lifecycle_events=series_set_to_schema(analytics.lifecycle_events),
        lifecycle_categories=series_set_to_schema(analytics.lifecycle_categories),
        session_summary=[
            ActorActivitySchema.model_validate(a, from_attributes=True)
            for a in analytics.session_summary
        ],
        credit_consumption=analytics.credit_consumption,
        credit_job_heartbeat=analytics.credit_job_heartbeat,
        events_by_type=analytics.events_by_type,
        top_actors=analytics.top_actors,
        hourly_distribution=analytics.hourly_distribution,
        summary=analytics.summary,
    )
