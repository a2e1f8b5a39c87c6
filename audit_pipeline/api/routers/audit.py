"""Audit API router: view snapshot, filtered events, event types, sessions, analytics for one org."""

from datetime import timedelta
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from audit_pipeline.api.dependencies import bind_org_id, get_cache_manager, get_range_days
from audit_pipeline.application.cache_manager import AuditCacheManager, AuditView
from audit_pipeline.config.settings import get_settings
from audit_pipeline.domain.analytics import compute_analytics
from audit_pipeline.domain.classifier import unique_event_types
from audit_pipeline.domain.filters import DEFAULT_PAGE_SIZE, AuditFilters, apply_filters, paginate, total_pages
from audit_pipeline.domain.models.view import ViewState
from audit_pipeline.domain.schemas.audit import (
    ActorActivitySchema,
    AnalyticsResponse,
    AuditViewResponse,
    EventListResponse,
    EventTypeOption,
    SessionsResponse,
    analytics_to_response,
    event_to_schema,
    session_to_schema,
)
from audit_pipeline.domain.sessions import compute_user_sessions, summarize_sessions

router = APIRouter()

OrgId = Annotated[str, Depends(bind_org_id)]
RangeDays = Annotated[int, Depends(get_range_days)]
Manager = Annotated[AuditCacheManager, Depends(get_cache_manager)]


def _view_to_response(view: AuditView) -> AuditViewResponse:
    return AuditViewResponse(
        org_id=view.org_id,
        range_days=view.range_days,
        state=view.state.value,
        loading=view.loading,
        is_refreshing=view.is_refreshing,
        served_from_cache=view.served_from_cache,
        is_stale=view.is_stale,
        has_more=view.has_more,
        error=view.error,
        event_count=len(view.events),
        ux_summary=view.ux_summary,
        events=[event_to_schema(e) for e in view.events],
    )


def _load_error(view: AuditView) -> Optional[JSONResponse]:
    if view.state is ViewState.ERROR:
        return JSONResponse(status_code=502, content={"detail": view.error})
    return None


@router.get("/{org_id}/audit", response_model=AuditViewResponse)
async def load_audit_view(
    org_id: OrgId,
    days: RangeDays,
    manager: Manager,
    force_refresh: bool = False,
):
    """Cached events immediately (refresh continues in the background) or a blocking fetch on a miss."""
    view = await manager.load(org_id, days, force_refresh=force_refresh)
    body = _view_to_response(view)
    if view.state is ViewState.ERROR:
        return JSONResponse(status_code=502, content=body.model_dump(mode="json"))
    return body


@router.get("/{org_id}/audit/events", response_model=EventListResponse)
async def list_audit_events(
    org_id: OrgId,
    days: RangeDays,
    manager: Manager,
    event_type: str = "all",
    search: str = "",
    date_from: str = "",
    date_to: str = "",
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=500)] = DEFAULT_PAGE_SIZE,
):
    """Filtered timeline, newest first, one page at a time."""
    view = await manager.get_or_load(org_id, days)
    error = _load_error(view)
    if error is not None:
        return error
    filters = AuditFilters(event_type=event_type, search=search, date_from=date_from, date_to=date_to)
    filtered = apply_filters(view.events, filters)
    ordered = sorted(filtered, key=lambda e: e.timestamp, reverse=True)
    return EventListResponse(
        total=len(ordered),
        page=page,
        page_size=page_size,
        total_pages=total_pages(len(ordered), page_size),
        is_refreshing=view.is_refreshing,
        events=[event_to_schema(e) for e in paginate(ordered, page, page_size)],
    )


@router.get("/{org_id}/audit/event-types", response_model=List[EventTypeOption])
async def list_event_types(org_id: OrgId, days: RangeDays, manager: Manager):
    """Options for the event-type filter."""
    view = await manager.get_or_load(org_id, days)
    error = _load_error(view)
    if error is not None:
        return error
    return [EventTypeOption(**option) for option in unique_event_types(view.events)]


@router.get("/{org_id}/audit/sessions", response_model=SessionsResponse)
async def list_sessions(org_id: OrgId, days: RangeDays, manager: Manager):
    """Per-actor activity sessions."""
    view = await manager.get_or_load(org_id, days)
    error = _load_error(view)
    if error is not None:
        return error
    gap = timedelta(minutes=get_settings().session_gap_minutes)
    sessions = compute_user_sessions(view.events, gap=gap)
    return SessionsResponse(
        sessions={actor: [session_to_schema(s) for s in items] for actor, items in sessions.items()},
        summary=[
            ActorActivitySchema.model_validate(a, from_attributes=True)
            for a in summarize_sessions(sessions)
        ],
    )


@router.get("/{org_id}/audit/analytics", response_model=AnalyticsResponse)
async def get_analytics(
    org_id: OrgId,
    days: RangeDays,
    manager: Manager,
    event_type: str = "all",
    search: str = "",
    date_from: str = "",
    date_to: str = "",
):
    """Chart series and summaries for the analytics tab; the frequency chart honours the filters."""
    view = await manager.get_or_load(org_id, days)
    error = _load_error(view)
    if error is not None:
        return error
    gap = timedelta(minutes=get_settings().session_gap_minutes)
    filters = AuditFilters(event_type=event_type, search=search, date_from=date_from, date_to=date_to)
    filtered = apply_filters(view.events, filters)
    analytics = compute_analytics(view.events, days, session_gap=gap, frequency_events=filtered)
    return analytics_to_response(analytics, days, view.is_refreshing)
