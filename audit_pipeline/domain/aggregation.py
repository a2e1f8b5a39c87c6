"""
Series aggregation for charts. Two bucketing strategies over UTC calendar days:

- sparse (`group_by_day_custom`, `group_by_day_and_type`): only days that have events;
- dense (`group_by_day_dense`): every day of a fixed window, zero-filled, so quiet days
  (a job that did not run) stay visible.

All functions are pure; dates and series are rebuilt on every call.
"""

import math
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Set

from audit_pipeline.domain.classifier import (
    base_type,
    chart_color_for,
    classify_lifecycle_category,
    derive_lifecycle_sub_type,
    key_to_label,
    palette_color,
    sub_type_of,
    type_key,
    type_label,
)
from audit_pipeline.domain.exceptions import InvalidRangeError
from audit_pipeline.domain.models.event import DEFAULT_ACTOR, AuditEvent
from audit_pipeline.domain.models.series import Series, SeriesSet

KeyFn = Callable[[AuditEvent], Optional[str]]
LabelFn = Callable[[AuditEvent], Optional[str]]


def day_key(ts: datetime) -> str:
    """UTC calendar day, YYYY-MM-DD."""
    return ts.astimezone(timezone.utc).date().isoformat()


def _count_by_day_and_key(events: Sequence[AuditEvent], key_fn: KeyFn) -> Dict[str, Counter]:
    buckets: Dict[str, Counter] = {}
    for event in events:
        key = key_fn(event)
        if not key:
            continue
        buckets.setdefault(day_key(event.timestamp), Counter())[key] += 1
    return buckets


def group_by_day_custom(
    events: Sequence[AuditEvent],
    key_fn: KeyFn = type_key,
    label_fn: Optional[LabelFn] = None,
) -> SeriesSet:
    """
    Sparse day x key grouping. Keys are sorted alphabetically and coloured from the palette
    by index. A falsy key excludes the event; the last label seen for a key wins.
    """
    buckets: Dict[str, Counter] = {}
    labels: Dict[str, str] = {}
    for event in events:
        key = key_fn(event)
        if not key:
            continue
        labels[key] = (label_fn(event) if label_fn else None) or key
        buckets.setdefault(day_key(event.timestamp), Counter())[key] += 1

    dates = tuple(sorted(buckets))
    keys = sorted(labels)
    series = tuple(
        Series(
            key=key,
            label=key_to_label(labels[key]),
            data=tuple(buckets[d].get(key, 0) for d in dates),
            color_index=idx,
            color=palette_color(idx),
        )
        for idx, key in enumerate(keys)
    )
    return SeriesSet(dates=dates, series=series)


def group_by_day_and_type(events: Sequence[AuditEvent]) -> SeriesSet:
    return group_by_day_custom(events, type_key, type_label)


def dense_day_axis(range_days: int, now: Optional[datetime] = None) -> List[str]:
    """The `range_days` consecutive UTC days ending on now's day, ascending."""
    if range_days < 1:
        raise InvalidRangeError(f"range_days must be >= 1, got {range_days}")
    today = (now or datetime.now(timezone.utc)).astimezone(timezone.utc).date()
    first = today - timedelta(days=range_days - 1)
    return [(first + timedelta(days=i)).isoformat() for i in range(range_days)]


def group_by_day_dense(
    events: Sequence[AuditEvent],
    range_days: int,
    now: Optional[datetime] = None,
    key_fn: KeyFn = type_key,
) -> SeriesSet:
    """
    Dense calendar-filled grouping for the event-frequency timeline. Every day in the window
    is present; days without activity are explicit zeros. Events outside the window are not counted.
    """
    dates = dense_day_axis(range_days, now)
    window = set(dates)
    buckets = {
        day: counts
        for day, counts in _count_by_day_and_key(events, key_fn).items()
        if day in window
    }
    keys: Set[str] = set()
    for counts in buckets.values():
        keys.update(counts)

    series = tuple(
        Series(
            key=key,
            label=key,
            data=tuple(buckets.get(d, Counter()).get(key, 0) for d in dates),
            color_index=idx,
            color=chart_color_for(key, idx),
        )
        for idx, key in enumerate(sorted(keys))
    )
    return SeriesSet(dates=tuple(dates), series=series)


def _lifecycle_key_and_label(event: AuditEvent) -> tuple:
    category = classify_lifecycle_category(event)
    if not category:
        return None, None
    sub = derive_lifecycle_sub_type(event, category)
    if not sub:
        return category, category
    return f"{category}:{sub}", f"{category} • {sub}"


def group_lifecycle_events(events: Sequence[AuditEvent], include_sub_type: bool = True) -> SeriesSet:
    """
    Device/Org lifecycle chart; events the classifier excludes are skipped.
    With include_sub_type=False series are keyed by category alone ("Device", "Org").
    """
    if not include_sub_type:
        return group_by_day_custom(events, classify_lifecycle_category)
    return group_by_day_custom(
        events,
        lambda e: _lifecycle_key_and_label(e)[0],
        lambda e: _lifecycle_key_and_label(e)[1],
    )


def login_outcome(event: AuditEvent) -> str:
    raw_type = (event.event_type or "").lower()
    raw_sub = (sub_type_of(event) or "").lower()
    return "Failure" if "fail" in raw_type or "fail" in raw_sub else "Success"


def group_login_events(events: Sequence[AuditEvent]) -> SeriesSet:
    return group_by_day_custom(
        events,
        lambda e: f"Login:{login_outcome(e)}",
        lambda e: f"Login • {login_outcome(e)}",
    )


# ---------------------------------------------------------------------------
# Summary analytics
# ---------------------------------------------------------------------------


def calculate_events_by_type(events: Sequence[AuditEvent]) -> List[Dict[str, Any]]:
    """Counts per base type, most frequent first (ties by name)."""
    counts = Counter(base_type(e) for e in events)
    return [
        {"type": t, "count": c}
        for t, c in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    ]


def calculate_top_actors(events: Sequence[AuditEvent], limit: int = 10) -> List[Dict[str, Any]]:
    counts = Counter(e.performed_by or DEFAULT_ACTOR for e in events)
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [{"actor": a, "count": c} for a, c in ranked[:limit]]


def calculate_hourly_distribution(events: Sequence[AuditEvent]) -> List[Dict[str, int]]:
    """Event count for each UTC hour of day, 0..23."""
    hours = [0] * 24
    for event in events:
        hours[event.timestamp.astimezone(timezone.utc).hour] += 1
    return [{"hour": h, "count": c} for h, c in enumerate(hours)]


def calculate_summary_stats(events: Sequence[AuditEvent]) -> Dict[str, Any]:
    if not events:
        return {
            "total_events": 0,
            "unique_types": 0,
            "unique_actors": 0,
            "unique_targets": 0,
            "date_range": None,
        }
    timestamps = [e.timestamp for e in events]
    return {
        "total_events": len(events),
        "unique_types": len({type_key(e) for e in events}),
        "unique_actors": len({e.performed_by for e in events}),
        "unique_targets": len({e.target_id for e in events if e.target_id}),
        "date_range": {
            "from": min(timestamps).isoformat(),
            "to": max(timestamps).isoformat(),
        },
    }


def to_number(value: Any) -> float:
    """Lenient numeric coercion for metadata values ("12.5", {"value": 3}, None -> 0)."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    if isinstance(value, str):
        try:
            return to_number(float(value))
        except ValueError:
            return 0.0
    if isinstance(value, dict):
        for key in ("value", "Value"):
            if key in value:
                return to_number(value[key])
    return 0.0


_CREDIT_MARKERS = (
    "credit",
    "licenseadjustment",
    "licensecreated",
    "licensecreditsadded",
    "creditconsumptioncalculated",
    "licenseexpired",
    "licensecreditslow",
    "licenseexpiringsoon",
)


def includes_any(event: AuditEvent, markers: Sequence[str]) -> bool:
    combo = f"{event.event_type or ''} {event.sub_type or ''}".lower()
    return any(m.lower() in combo for m in markers)


def credit_consumption_points(events: Sequence[AuditEvent]) -> List[Dict[str, Any]]:
    """Credit balance timeline: adjustments add credits, consumption is recorded as negative."""
    points: List[Dict[str, Any]] = []
    credit_events = sorted(
        (e for e in events if includes_any(e, _CREDIT_MARKERS)),
        key=lambda e: e.timestamp,
    )
    for event in credit_events:
        meta = event.metadata or {}
        if (event.event_type or "").lower() == "licenseadjustment":
            credits_diff = to_number(meta.get("creditsDiff"))
            consumed = meta.get("creditsDiff", meta.get("creditsConsumed"))
            remaining = meta.get("newRemainingCredits")
            points.append({
                "timestamp": event.timestamp.isoformat(),
                "event_type": type_label(event),
                "reason": meta.get("reason") or "License adjustment",
                "remaining": to_number(remaining if remaining is not None else meta.get("remainingCredits")),
                "consumed": to_number(consumed),
                "added": credits_diff if credits_diff > 0 else 0.0,
                "seats": to_number(meta.get("newSeats", meta.get("seats", 1))),
                "is_adjustment": True,
            })
            continue
        points.append({
            "timestamp": event.timestamp.isoformat(),
            "event_type": type_label(event),
            "reason": None,
            "remaining": to_number(meta.get("remainingCredits")),
            "consumed": -to_number(meta.get("creditsConsumed", 0)),
            "added": 0.0,
            "seats": to_number(meta.get("seats", 1)),
            "is_adjustment": False,
        })
    return points


def email_notification_key(event: AuditEvent) -> str:
    """Notification series key: the metadata email type when the source provides one."""
    meta = event.metadata or {}
    for key in ("eventType", "EventType", "emailType", "EmailType", "type", "Type"):
        if meta.get(key):
            return str(meta[key])
    return type_key(event)


def login_events(events: Sequence[AuditEvent]) -> List[AuditEvent]:
    return [e for e in events if includes_any(e, ("login", "session"))]


def email_events(events: Sequence[AuditEvent]) -> List[AuditEvent]:
    return [e for e in events if includes_any(e, ("email", "notification"))]


SYSTEM_ORG_ID = "SYSTEM"
EXPECTED_JOB_INTERVAL_HOURS = 24
JOB_ALERT_GAP_HOURS = 25

# Status lane per job event on the heartbeat chart: failed low, completed high.
_JOB_STATUS = {
    "CreditConsumptionJobStarted": ("started", 1, "rgba(23, 162, 184, 0.8)"),
    "CreditConsumptionJobCompleted": ("completed", 2, "rgba(40, 167, 69, 0.8)"),
    "CreditConsumptionJobFailed": ("failed", 0, "rgba(220, 53, 69, 0.8)"),
}
_OTHER_JOB_STATUS = ("other", 1, "rgba(23, 162, 184, 0.8)")


def credit_job_events(events: Sequence[AuditEvent]) -> List[AuditEvent]:
    """Daily credit-consumption job records: SYSTEM-org CreditConsumption* events, oldest first."""
    return sorted(
        (
            e for e in events
            if e.org_id == SYSTEM_ORG_ID and (e.event_type or "").startswith("CreditConsumption")
        ),
        key=lambda e: e.timestamp,
    )


def _hours(delta: timedelta) -> float:
    return round(delta.total_seconds() / 3600, 2)


def credit_job_heartbeat(events: Sequence[AuditEvent], now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Health of the daily credit-consumption job. The job should run once per
    EXPECTED_JOB_INTERVAL_HOURS; `overdue` is set when the last run is older than
    JOB_ALERT_GAP_HOURS, and `longest_gap_hours` spans consecutive job records.
    """
    job_events = credit_job_events(events)
    counts = Counter(e.event_type for e in job_events)
    runs = []
    for event in job_events:
        status, value, color = _JOB_STATUS.get(event.event_type or "", _OTHER_JOB_STATUS)
        runs.append({
            "timestamp": event.timestamp.isoformat(),
            "event_type": event.event_type,
            "status": status,
            "value": value,
            "color": color,
        })

    last_run = job_events[-1].timestamp if job_events else None
    hours_since_last_run = None
    if last_run is not None:
        hours_since_last_run = _hours((now or datetime.now(timezone.utc)) - last_run)
    gaps = [_hours(b.timestamp - a.timestamp) for a, b in zip(job_events, job_events[1:])]
    return {
        "started": counts["CreditConsumptionJobStarted"],
        "completed": counts["CreditConsumptionJobCompleted"],
        "failed": counts["CreditConsumptionJobFailed"],
        "last_run": last_run.isoformat() if last_run is not None else None,
        "last_run_type": job_events[-1].event_type if job_events else None,
        "hours_since_last_run": hours_since_last_run,
        "longest_gap_hours": max(gaps) if gaps else None,
        "expected_interval_hours": EXPECTED_JOB_INTERVAL_HOURS,
        "alert_gap_hours": JOB_ALERT_GAP_HOURS,
        "overdue": hours_since_last_run is not None and hours_since_last_run > JOB_ALERT_GAP_HOURS,
        "runs": runs,
    }
