"""Analytics bundle for the audit dashboard: every chart's data computed from one event list."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from audit_pipeline.domain.aggregation import (
    calculate_events_by_type,
    calculate_hourly_distribution,
    calculate_summary_stats,
    calculate_top_actors,
    credit_consumption_points,
    credit_job_heartbeat,
    email_events,
    email_notification_key,
    group_by_day_custom,
    group_by_day_dense,
    group_lifecycle_events,
    group_login_events,
    login_events,
)
from audit_pipeline.domain.classifier import classify_lifecycle_category
from audit_pipeline.domain.models.event import AuditEvent
from audit_pipeline.domain.models.series import SeriesSet
from audit_pipeline.domain.models.session import Session
from audit_pipeline.domain.sessions import (
    SESSION_GAP,
    ActorActivity,
    compute_user_sessions,
    summarize_sessions,
)


@dataclass(frozen=True)
class AuditAnalytics:
    event_frequency: SeriesSet
    email_notifications: SeriesSet
    login_timeline: SeriesSet
    lifecycle_events: SeriesSet
    lifecycle_categories: SeriesSet
    user_sessions: Dict[str, List[Session]]
    session_summary: List[ActorActivity]
    credit_consumption: List[Dict[str, Any]]
    credit_job_heartbeat: Dict[str, Any]
    events_by_type: List[Dict[str, Any]]
    top_actors: List[Dict[str, Any]]
    hourly_distribution: List[Dict[str, int]]
    summary: Dict[str, Any]


def compute_analytics(
    events: Sequence[AuditEvent],
    range_days: int,
    now: Optional[datetime] = None,
    session_gap: timedelta = SESSION_GAP,
    frequency_events: Optional[Sequence[AuditEvent]] = None,
) -> AuditAnalytics:
    """
    Every chart over `events`. The event-frequency chart follows the dashboard's
    active filters, so callers may pass the filtered subset as `frequency_events`.
    """
    if frequency_events is None:
        frequency_events = events
    lifecycle_scoped = [e for e in events if classify_lifecycle_category(e)]
    sessions = compute_user_sessions(events, gap=session_gap)
    return AuditAnalytics(
        event_frequency=group_by_day_dense(frequency_events, range_days, now=now),
        email_notifications=group_by_day_custom(email_events(events), email_notification_key),
        login_timeline=group_login_events(login_events(events)),
        lifecycle_events=group_lifecycle_events(lifecycle_scoped),
        lifecycle_categories=group_lifecycle_events(lifecycle_scoped, include_sub_type=False),
        user_sessions=sessions,
        session_summary=summarize_sessions(sessions),
        credit_consumption=credit_consumption_points(events),
        credit_job_heartbeat=credit_job_heartbeat(events, now=now),
        events_by_type=calculate_events_by_type(events),
        top_actors=calculate_top_actors(events),
        hourly_distribution=calculate_hourly_distribution(events),
        summary=calculate_summary_stats(events),
    )
