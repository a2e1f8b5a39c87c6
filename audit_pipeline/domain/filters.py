"""
Event filtering: type, free-text search and inclusive date range, composed by AND.
Filters never re-sort; input order is preserved and the input list is not mutated.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Sequence

from audit_pipeline.domain.classifier import base_type, type_key
from audit_pipeline.domain.exceptions import InvalidFilterError
from audit_pipeline.domain.models.event import AuditEvent, normalize_iso

ALL_TYPES = "all"
DEFAULT_PAGE_SIZE = 50


@dataclass(frozen=True)
class AuditFilters:
    """Empty strings mean "no filter", matching the dashboard's form defaults."""

    event_type: str = ALL_TYPES
    search: str = ""
    date_from: str = ""
    date_to: str = ""


def _parse_bound(value: str, *, end_of_day: bool) -> datetime:
    text = value.strip()
    try:
        if len(text) == 10:
            day = date.fromisoformat(text)
            moment = datetime.combine(day, time.min, tzinfo=timezone.utc)
        else:
            moment = datetime.fromisoformat(normalize_iso(text))
            if moment.tzinfo is None:
                moment = moment.replace(tzinfo=timezone.utc)
    except ValueError as e:
        raise InvalidFilterError(f"Invalid filter date: {value!r}") from e
    if end_of_day:
        # Whole day inclusive: 23:59:59.999 of the bound's calendar day
        day_start = datetime.combine(moment.date(), time.min, tzinfo=moment.tzinfo)
        return day_start + timedelta(days=1) - timedelta(milliseconds=1)
    return moment


def filter_by_type(events: Sequence[AuditEvent], event_type: Optional[str]) -> List[AuditEvent]:
    """Keep events whose TypeKey or base type equals event_type; "all" is identity."""
    if not event_type or event_type == ALL_TYPES:
        return list(events)
    return [e for e in events if type_key(e) == event_type or base_type(e) == event_type]


def _search_haystack(event: AuditEvent) -> tuple:
    return (
        event.description or "",
        event.performed_by or "",
        event.performed_by_display or "",
        event.target_id or "",
        event.event_type or "",
        event.sub_type or "",
    )


def filter_by_search(events: Sequence[AuditEvent], search: Optional[str]) -> List[AuditEvent]:
    if not search or not search.strip():
        return list(events)
    needle = search.strip().lower()
    return [
        e for e in events
        if any(needle in field.lower() for field in _search_haystack(e))
    ]


def filter_by_date_range(
    events: Sequence[AuditEvent],
    date_from: Optional[str],
    date_to: Optional[str],
) -> List[AuditEvent]:
    """Inclusive range; date_to is normalised to the end of its day."""
    lower = _parse_bound(date_from, end_of_day=False) if date_from else None
    upper = _parse_bound(date_to, end_of_day=True) if date_to else None
    if lower is None and upper is None:
        return list(events)
    return [
        e for e in events
        if (lower is None or e.timestamp >= lower) and (upper is None or e.timestamp <= upper)
    ]


def apply_filters(events: Sequence[AuditEvent], filters: Optional[AuditFilters] = None) -> List[AuditEvent]:
    """Intersection of all active filters; with no active filter, the same events in the same order."""
    if filters is None:
        return list(events)
    filtered = filter_by_type(events, filters.event_type)
    filtered = filter_by_search(filtered, filters.search)
    return filter_by_date_range(filtered, filters.date_from, filters.date_to)


def paginate(events: Sequence[AuditEvent], page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> List[AuditEvent]:
    """1-based page slice for the timeline list."""
    if page < 1 or page_size < 1:
        raise InvalidFilterError("page and page_size must be >= 1")
    start = (page - 1) * page_size
    return list(events[start:start + page_size])


def total_pages(count: int, page_size: int = DEFAULT_PAGE_SIZE) -> int:
    return -(-count // page_size) if page_size > 0 else 0
