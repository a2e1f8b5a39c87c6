"""Series aggregation: sparse vs dense bucketing, lifecycle/login grouping, summary helpers."""

from datetime import datetime, timezone

import pytest

from audit_pipeline.domain.aggregation import (
    calculate_events_by_type,
    calculate_hourly_distribution,
    calculate_summary_stats,
    calculate_top_actors,
    credit_consumption_points,
    credit_job_events,
    credit_job_heartbeat,
    day_key,
    dense_day_axis,
    email_notification_key,
    group_by_day_and_type,
    group_by_day_custom,
    group_by_day_dense,
    group_lifecycle_events,
    group_login_events,
    to_number,
)
from audit_pipeline.domain.classifier import CHART_COLORS, PALETTE
from audit_pipeline.domain.exceptions import InvalidRangeError
from audit_pipeline.domain.models.event import AuditEvent

NOW = datetime(2024, 3, 7, 12, 0, tzinfo=timezone.utc)


def _event(event_type, ts, sub_type=None, performed_by="System", metadata=None, target_id=None) -> AuditEvent:
    return AuditEvent(
        event_type=event_type,
        sub_type=sub_type,
        timestamp=datetime.fromisoformat(ts.replace("Z", "+00:00")),
        performed_by=performed_by,
        metadata=metadata or {},
        target_id=target_id,
    )


def test_day_key_uses_utc_calendar_day():
    ts = datetime.fromisoformat("2024-03-02T23:30:00-05:00")
    assert day_key(ts) == "2024-03-03"


def test_sparse_grouping_only_has_event_days():
    events = [
        _event("Login", "2024-03-03T10:00:00Z"),
        _event("Heartbeat", "2024-03-01T10:00:00Z"),
        _event("Login", "2024-03-03T11:00:00Z"),
    ]
    result = group_by_day_and_type(events)
    assert result.dates == ("2024-03-01", "2024-03-03")
    assert result.types == ("Heartbeat", "Login")
    assert result.by_key("Login").data == (0, 2)
    assert result.by_key("Heartbeat").data == (1, 0)
    assert [s.color for s in result.series] == [PALETTE[0], PALETTE[1]]


def test_sparse_labels_use_bullet_separator():
    result = group_by_day_and_type([_event("Login", "2024-03-03T10:00:00Z", sub_type="Failure")])
    assert result.series[0].key == "Login:Failure"
    assert result.series[0].label == "Login • Failure"


def test_dense_vs_sparse_for_single_active_day():
    events = [_event("CRONRUN", "2024-03-03T02:00:00Z"), _event("CRONRUN", "2024-03-03T03:00:00Z")]
    sparse = group_by_day_and_type(events)
    dense = group_by_day_dense(events, 7, now=NOW)
    assert len(sparse.dates) == 1
    assert len(dense.dates) == 7
    assert dense.dates[0] == "2024-03-01"
    assert dense.dates[-1] == "2024-03-07"
    cron = dense.by_key("CRONRUN")
    assert cron.data == (0, 0, 2, 0, 0, 0, 0)
    assert cron.data.count(0) == 6
    assert cron.color == CHART_COLORS["CRONRUN"]


def test_dense_excludes_events_outside_window():
    events = [_event("Login", "2024-02-20T10:00:00Z"), _event("Login", "2024-03-07T10:00:00Z")]
    dense = group_by_day_dense(events, 7, now=NOW)
    assert dense.by_key("Login").total == 1


def test_empty_input():
    sparse = group_by_day_and_type([])
    dense = group_by_day_dense([], 7, now=NOW)
    assert sparse.dates == () and sparse.series == ()
    assert len(dense.dates) == 7 and dense.series == ()


def test_dense_axis_rejects_non_positive_range():
    with pytest.raises(InvalidRangeError):
        dense_day_axis(0, now=NOW)


def test_palette_cycles_after_eight_series():
    events = [_event(f"Type{i}", "2024-03-03T10:00:00Z") for i in range(9)]
    result = group_by_day_and_type(events)
    assert len(result.series) == 9
    assert result.series[8].color == result.series[0].color
    assert result.series[8].color_index == 8


def test_custom_key_function_excludes_falsy_keys():
    events = [_event("Login", "2024-03-03T10:00:00Z"), _event("Heartbeat", "2024-03-03T10:00:00Z")]
    result = group_by_day_custom(events, lambda e: "auth" if e.event_type == "Login" else None)
    assert result.types == ("auth",)
    assert result.series[0].total == 1


def test_lifecycle_grouping_with_and_without_sub_type():
    events = [
        _event("DeviceRegistered", "2024-03-03T10:00:00Z"),
        _event("DeviceBlocked", "2024-03-03T11:00:00Z"),
        _event("OrgCreated", "2024-03-04T10:00:00Z"),
        _event("LicenseExpired", "2024-03-04T10:00:00Z"),
        _event("Login", "2024-03-04T10:00:00Z"),
    ]
    detailed = group_lifecycle_events(events)
    assert detailed.types == ("Device:Blocked", "Device:Registered", "Org:Created")
    assert detailed.by_key("Device:Blocked").label == "Device • Blocked"

    categories = group_lifecycle_events(events, include_sub_type=False)
    assert categories.types == ("Device", "Org")
    assert categories.by_key("Device").total == 2
    assert categories.by_key("Org").total == 1


def test_login_grouping_by_outcome():
    events = [
        _event("Login", "2024-03-03T10:00:00Z"),
        _event("LoginFailed", "2024-03-03T10:05:00Z"),
        _event("Login", "2024-03-03T10:06:00Z", sub_type="Failure"),
    ]
    result = group_login_events(events)
    assert result.types == ("Login:Failure", "Login:Success")
    assert result.by_key("Login:Failure").total == 2
    assert result.by_key("Login:Success").label == "Login • Success"


def test_events_by_type_and_top_actors():
    events = [
        _event("Login:Success", "2024-03-03T10:00:00Z", performed_by="alice"),
        _event("Login", "2024-03-03T10:00:00Z", performed_by="alice"),
        _event("Heartbeat", "2024-03-03T10:00:00Z", performed_by="bob"),
    ]
    assert calculate_events_by_type(events) == [
        {"type": "Login", "count": 2},
        {"type": "Heartbeat", "count": 1},
    ]
    assert calculate_top_actors(events, limit=1) == [{"actor": "alice", "count": 2}]


def test_hourly_distribution_covers_all_hours():
    events = [_event("Login", "2024-03-03T10:15:00Z"), _event("Login", "2024-03-03T10:45:00Z")]
    hours = calculate_hourly_distribution(events)
    assert len(hours) == 24
    assert hours[10] == {"hour": 10, "count": 2}
    assert sum(h["count"] for h in hours) == 2


def test_summary_stats():
    assert calculate_summary_stats([])["date_range"] is None
    events = [
        _event("Login", "2024-03-03T10:00:00Z", performed_by="alice", target_id="dev-1"),
        _event("Login", "2024-03-01T10:00:00Z", performed_by="bob"),
    ]
    stats = calculate_summary_stats(events)
    assert stats["total_events"] == 2
    assert stats["unique_types"] == 1
    assert stats["unique_actors"] == 2
    assert stats["unique_targets"] == 1
    assert stats["date_range"]["from"].startswith("2024-03-01")


@pytest.mark.parametrize(
    "value,expected",
    [("12.5", 12.5), ({"value": 3}, 3.0), (None, 0.0), ("abc", 0.0), (float("nan"), 0.0), (True, 0.0), (7, 7.0)],
)
def test_to_number(value, expected):
    assert to_number(value) == expected


def test_credit_consumption_points():
    events = [
        _event(
            "LicenseAdjustment",
            "2024-03-03T10:00:00Z",
            metadata={"creditsDiff": 10, "newRemainingCredits": 105, "reason": "Top up"},
        ),
        _event("CreditConsumption", "2024-03-02T10:00:00Z", metadata={"creditsConsumed": 5, "remainingCredits": 95}),
        _event("Login", "2024-03-02T10:00:00Z"),
    ]
    points = credit_consumption_points(events)
    assert [p["is_adjustment"] for p in points] == [False, True]
    assert points[0]["consumed"] == -5.0
    assert points[0]["remaining"] == 95.0
    assert points[1]["added"] == 10.0
    assert points[1]["remaining"] == 105.0
    assert points[1]["reason"] == "Top up"


def test_email_notification_key_prefers_metadata_type():
    assert email_notification_key(_event("EmailSent", "2024-03-03T10:00:00Z", metadata={"emailType": "Welcome"})) == "Welcome"
    assert email_notification_key(_event("EmailSent", "2024-03-03T10:00:00Z")) == "EmailSent"


def _job(event_type, ts, org_id="SYSTEM") -> AuditEvent:
    return AuditEvent(
        event_type=event_type,
        timestamp=datetime.fromisoformat(ts.replace("Z", "+00:00")),
        org_id=org_id,
    )


def test_credit_job_events_are_system_scoped_and_sorted():
    events = [
        _job("CreditConsumptionJobCompleted", "2024-03-06T02:05:00Z"),
        _job("CreditConsumptionJobStarted", "2024-03-06T02:00:00Z"),
        _job("CreditConsumptionJobStarted", "2024-03-06T03:00:00Z", org_id="org-1"),
        _job("Heartbeat", "2024-03-06T01:00:00Z"),
    ]
    assert [e.event_type for e in credit_job_events(events)] == [
        "CreditConsumptionJobStarted",
        "CreditConsumptionJobCompleted",
    ]


def test_credit_job_heartbeat_counts_and_status_lanes():
    events = [
        _job("CreditConsumptionJobStarted", "2024-03-05T02:00:00Z"),
        _job("CreditConsumptionJobFailed", "2024-03-05T02:10:00Z"),
        _job("CreditConsumptionJobStarted", "2024-03-06T02:00:00Z"),
        _job("CreditConsumptionJobCompleted", "2024-03-06T02:30:00Z"),
        _job("CreditConsumption", "2024-03-06T02:20:00Z"),
    ]
    heartbeat = credit_job_heartbeat(events, now=NOW)
    assert (heartbeat["started"], heartbeat["completed"], heartbeat["failed"]) == (2, 1, 1)
    assert [(r["status"], r["value"]) for r in heartbeat["runs"]] == [
        ("started", 1),
        ("failed", 0),
        ("started", 1),
        ("other", 1),
        ("completed", 2),
    ]
    assert heartbeat["runs"][1]["color"] == "rgba(220, 53, 69, 0.8)"
    assert heartbeat["runs"][4]["color"] == "rgba(40, 167, 69, 0.8)"
    assert heartbeat["last_run"] == "2024-03-06T02:30:00+00:00"
    assert heartbeat["last_run_type"] == "CreditConsumptionJobCompleted"
    assert heartbeat["longest_gap_hours"] == 23.83
    assert heartbeat["hours_since_last_run"] == 33.5
    assert heartbeat["overdue"] is True


def test_credit_job_heartbeat_recent_run_is_not_overdue():
    heartbeat = credit_job_heartbeat([_job("CreditConsumptionJobCompleted", "2024-03-07T02:00:00Z")], now=NOW)
    assert heartbeat["hours_since_last_run"] == 10.0
    assert heartbeat["longest_gap_hours"] is None
    assert heartbeat["overdue"] is False


def test_credit_job_heartbeat_without_runs():
    heartbeat = credit_job_heartbeat([], now=NOW)
    assert heartbeat["runs"] == []
    assert heartbeat["last_run"] is None
    assert heartbeat["hours_since_last_run"] is None
    assert heartbeat["overdue"] is False
