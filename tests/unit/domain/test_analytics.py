"""Analytics bundle, including the two-event device scenario end to end."""

from datetime import datetime, timezone

from audit_pipeline.domain.analytics import compute_analytics
from audit_pipeline.domain.filters import AuditFilters, apply_filters
from audit_pipeline.domain.models.event import parse_events

NOW = datetime(2025, 1, 3, 9, 0, tzinfo=timezone.utc)

RAW = [
    {"eventType": "DeviceRegistered", "performedBy": "alice", "timestamp": "2025-01-01T10:00:00Z"},
    {"eventType": "DeviceBlocked", "performedBy": "alice", "timestamp": "2025-01-01T10:03:00Z"},
]


def test_device_scenario():
    analytics = compute_analytics(parse_events(RAW), 7, now=NOW)

    alice = analytics.user_sessions["alice"]
    assert len(alice) == 1
    assert alice[0].event_count == 2

    categories = analytics.lifecycle_categories
    assert categories.dates == ("2025-01-01",)
    assert categories.types == ("Device",)
    assert categories.series[0].label == "Device"
    assert categories.series[0].data == (2,)

    assert analytics.lifecycle_events.types == ("Device:Blocked", "Device:Registered")


def test_event_frequency_is_dense_over_range():
    analytics = compute_analytics(parse_events(RAW), 7, now=NOW)
    frequency = analytics.event_frequency
    assert len(frequency.dates) == 7
    assert frequency.dates[-1] == "2025-01-03"
    assert frequency.by_key("DeviceRegistered").total == 1


def test_summary_and_notifications():
    raw = RAW + [
        {"eventType": "EmailSent", "timestamp": "2025-01-02T08:00:00Z", "metadata": {"emailType": "Welcome"}},
        {"eventType": "Login", "performedBy": "bob", "timestamp": "2025-01-02T08:00:00Z"},
    ]
    analytics = compute_analytics(parse_events(raw), 7, now=NOW)
    assert analytics.summary["total_events"] == 4
    assert analytics.email_notifications.types == ("Welcome",)
    assert analytics.login_timeline.types == ("Login:Success",)
    assert analytics.session_summary[0].actor == "alice"
    assert analytics.top_actors[0] == {"actor": "alice", "count": 2}


def test_empty_events():
    analytics = compute_analytics([], 7, now=NOW)
    assert analytics.user_sessions == {}
    assert analytics.lifecycle_events.series == ()
    assert len(analytics.event_frequency.dates) == 7
    assert analytics.summary["total_events"] == 0


def test_frequency_chart_follows_filtered_subset_only():
    events = parse_events(RAW)
    filtered = apply_filters(events, AuditFilters(event_type="DeviceBlocked"))
    analytics = compute_analytics(events, 7, now=NOW, frequency_events=filtered)
    assert analytics.event_frequency.types == ("DeviceBlocked",)
    assert len(analytics.event_frequency.dates) == 7
    assert analytics.summary["total_events"] == 2
    assert analytics.lifecycle_events.types == ("Device:Blocked", "Device:Registered")


def test_credit_job_heartbeat_is_part_of_the_bundle():
    raw = RAW + [
        {"eventType": "CreditConsumptionJobStarted", "orgId": "SYSTEM", "timestamp": "2025-01-03T02:00:00Z"},
        {"eventType": "CreditConsumptionJobCompleted", "orgId": "SYSTEM", "timestamp": "2025-01-03T02:05:00Z"},
    ]
    heartbeat = compute_analytics(parse_events(raw), 7, now=NOW).credit_job_heartbeat
    assert heartbeat["started"] == 1
    assert heartbeat["completed"] == 1
    assert heartbeat["last_run_type"] == "CreditConsumptionJobCompleted"
    assert heartbeat["overdue"] is False
