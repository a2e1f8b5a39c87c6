"""
Stale-while-revalidate loading of audit views, one view per (org, range) cache key.

Cache hit (fresh or stale): cached events are delivered immediately and a background refresh
is always scheduled; its result silently replaces the view, its failure is logged and the
cached data stays. Cache miss: a blocking paginated fetch; its failure becomes the view's
user-facing error. Nothing raised by the event source escapes `load`.
"""

import asyncio
import copy
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Set

from audit_pipeline.application.event_source import EventSource
from audit_pipeline.application.exceptions import PaginationAbortedError
from audit_pipeline.application.pagination import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGES,
    FetchResult,
    fetch_all_events,
)
from audit_pipeline.domain.exceptions import DomainValidationError, InvalidRangeError
from audit_pipeline.domain.models.event import AuditEvent, parse_events
from audit_pipeline.domain.models.view import ViewState, validate_transition
from audit_pipeline.infrastructure.cache.audit_cache import AuditCache, CachedAudit, cache_key

BACKGROUND_REFRESH_DELAY_SECONDS = 0.5
GENERIC_LOAD_ERROR = "Failed to load audit events"
_LOADED_STATES = (ViewState.SERVING_CACHE, ViewState.BACKGROUND_REFRESHING, ViewState.SETTLED)


@dataclass
class AuditView:
    """What the dashboard currently shows for one (org, range). Mutated only by the manager."""

    org_id: str
    range_days: int
    state: ViewState = ViewState.IDLE
    events: List[AuditEvent] = field(default_factory=list)
    ux_summary: Optional[Dict[str, Any]] = None
    has_more: bool = False
    loading: bool = False
    is_refreshing: bool = False
    served_from_cache: bool = False
    is_stale: bool = False
    error: Optional[str] = None

    @property
    def key(self) -> str:
        return cache_key(self.org_id, self.range_days)

    def transition_to(self, new_state: ViewState) -> None:
        """Move to new_state if allowed. Raises InvalidStateTransitionError otherwise."""
        validate_transition(self.state, new_state)
        self.state = new_state

    def snapshot(self) -> "AuditView":
        # Listeners and API callers get their own copies of everything mutable.
        return replace(self, events=list(self.events), ux_summary=copy.deepcopy(self.ux_summary))


ViewListener = Callable[[AuditView], None]


class AuditCacheManager:
    """
    Orchestrates cache reads, background refreshes and blocking fetches.
    Each load takes a new generation token per key; with discard_superseded_responses a
    response whose token is no longer the latest is dropped instead of overwriting newer data.
    """

    def __init__(
        self,
        source: EventSource,
        cache: AuditCache,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_pages: int = MAX_PAGES,
        refresh_delay_seconds: float = BACKGROUND_REFRESH_DELAY_SECONDS,
        discard_superseded_responses: bool = True,
        metrics: Any = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._source = source
        self._cache = cache
        self._page_size = page_size
        self._max_pages = max_pages
        self._refresh_delay = refresh_delay_seconds
        self._discard_superseded = discard_superseded_responses
        self._metrics = metrics
        self._logger = logger or logging.getLogger(__name__)
        self._views: Dict[str, AuditView] = {}
        self._generations: Dict[str, int] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._listeners: List[ViewListener] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def subscribe(self, listener: ViewListener) -> Callable[[], None]:
        """Register a callback receiving a view snapshot on every change. Returns an unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def current_view(self, org_id: str, range_days: int) -> Optional[AuditView]:
        view = self._views.get(cache_key(org_id, range_days))
        return view.snapshot() if view is not None else None

    async def get_or_load(self, org_id: str, range_days: int) -> AuditView:
        """
        The current view when it already holds loaded events, otherwise a full `load`.
        Read-only consumers use this so they do not start a cache read and refresh of their own.
        """
        view = self._views.get(cache_key(org_id, range_days))
        if view is not None and view.state in _LOADED_STATES:
            return view.snapshot()
        return await self.load(org_id, range_days)

    @property
    def pending_refreshes(self) -> int:
        return len(self._tasks)

    async def load(self, org_id: str, range_days: int, *, force_refresh: bool = False) -> AuditView:
        """
        Serve (org_id, range_days). Returns the view snapshot after the immediate phase:
        cached data with a refresh in flight, or the result of the blocking fetch.
        """
        if not org_id or not org_id.strip():
            raise DomainValidationError("org_id must not be empty")
        if range_days < 1:
            raise InvalidRangeError(f"range_days must be >= 1, got {range_days}")

        key = cache_key(org_id, range_days)
        view = self._views.setdefault(key, AuditView(org_id=org_id, range_days=range_days))
        generation = self._next_generation(key)

        if not force_refresh:
            cached = self._cache.get(key)
            if cached is not None:
                self._serve_cached(view, cached)
                self._schedule_refresh(view, generation)
                return view.snapshot()

        self._increment("audit_cache_miss", category="forced" if force_refresh else "empty")
        self._logger.info(
            "cache_miss",
            extra={"org_id": org_id, "cache_key": key, "force_refresh": force_refresh},
        )
        await self._fetch_blocking(view, generation)
        return view.snapshot()

    async def wait_for_background(self) -> None:
        """Wait until every scheduled background refresh has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel in-flight background refreshes."""
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Cache path
    # ------------------------------------------------------------------

    def _serve_cached(self, view: AuditView, cached: CachedAudit) -> None:
        view.transition_to(ViewState.SERVING_CACHE)
        view.events = parse_events(cached.data.get("events") or [])
        view.ux_summary = cached.data.get("uxSummary")
        view.has_more = bool(cached.data.get("hasMore", False))
        view.served_from_cache = True
        view.is_stale = cached.is_stale
        view.loading = False
        view.error = None
        view.is_refreshing = True
        self._increment("audit_cache_hit", category="stale" if cached.is_stale else "fresh")
        self._notify(view)

    def _schedule_refresh(self, view: AuditView, generation: int) -> None:
        view.transition_to(ViewState.BACKGROUND_REFRESHING)
        task = asyncio.create_task(self._refresh_in_background(view, generation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _refresh_in_background(self, view: AuditView, generation: int) -> None:
        extra = {"org_id": view.org_id, "cache_key": view.key, "generation": generation}
        self._logger.info("background_refresh_started", extra=extra)
        # Let the cache-served render settle first
        await asyncio.sleep(self._refresh_delay)
        if self._is_superseded(view.key, generation):
            # A newer load owns the view and has its own refresh scheduled.
            self._discard(view, generation, "background")
            return
        try:
            result = await self._fetch(view)
        except PaginationAbortedError as e:
            self._background_failed(view, generation, e.message)
            return
        except Exception as e:
            self._logger.exception("background_refresh_error", extra={**extra, "error": str(e)})
            self._background_failed(view, generation, str(e))
            return

        if self._is_superseded(view.key, generation):
            self._discard(view, generation, "background")
            return
        self._cache.set(view.key, result.to_cache_data())
        self._apply(view, result)
        view.is_refreshing = False
        self._settle(view)
        self._increment("audit_background_refresh", category="success")
        self._logger.info("background_refresh_completed", extra={**extra, "events": len(view.events)})
        self._notify(view)

    def _background_failed(self, view: AuditView, generation: int, message: str) -> None:
        self._increment("audit_background_refresh", category="failure")
        self._logger.warning(
            "background_refresh_failed",
            extra={"org_id": view.org_id, "cache_key": view.key, "generation": generation, "error": message},
        )
        if self._is_superseded(view.key, generation):
            return
        # Stale data stays on screen; the failure is not a user-facing error.
        view.is_refreshing = False
        self._settle(view)
        self._notify(view)

    # ------------------------------------------------------------------
    # Blocking path
    # ------------------------------------------------------------------

    async def _fetch_blocking(self, view: AuditView, generation: int) -> None:
        view.transition_to(ViewState.FETCHING_FRESH)
        view.loading = True
        view.is_refreshing = False
        view.served_from_cache = False
        view.is_stale = False
        view.error = None
        self._notify(view)

        try:
            result = await self._fetch(view)
        except PaginationAbortedError as e:
            self._blocking_failed(view, generation, e.message, e.partial)
            return
        except Exception as e:
            self._logger.exception("fresh_fetch_error", extra={"org_id": view.org_id, "error": str(e)})
            self._blocking_failed(view, generation, GENERIC_LOAD_ERROR, None)
            return

        if self._is_superseded(view.key, generation):
            self._discard(view, generation, "blocking")
            return
        self._cache.set(view.key, result.to_cache_data())
        self._apply(view, result)
        view.loading = False
        self._settle(view)
        self._increment("audit_fresh_fetch", category="success")
        self._notify(view)

    def _blocking_failed(
        self,
        view: AuditView,
        generation: int,
        message: str,
        partial: Optional[FetchResult],
    ) -> None:
        self._increment("audit_fresh_fetch", category="failure")
        self._logger.error(
            "fresh_fetch_failed",
            extra={"org_id": view.org_id, "cache_key": view.key, "generation": generation, "error": message},
        )
        if self._is_superseded(view.key, generation):
            return
        # Pages read before the failure are shown but never persisted as a complete entry.
        if partial is not None:
            self._apply(view, partial)
        view.loading = False
        view.error = message
        if view.state is ViewState.FETCHING_FRESH:
            view.transition_to(ViewState.ERROR)
        self._notify(view)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _fetch(self, view: AuditView) -> FetchResult:
        return await fetch_all_events(
            self._source,
            view.org_id,
            view.range_days,
            page_size=self._page_size,
            max_pages=self._max_pages,
            metrics=self._metrics,
        )

    def _apply(self, view: AuditView, result: FetchResult) -> None:
        view.events = parse_events(result.events)
        view.has_more = result.has_more
        if result.ux_summary is not None:
            view.ux_summary = result.ux_summary
        view.served_from_cache = False
        view.is_stale = False

    def _settle(self, view: AuditView) -> None:
        # A newer load may already have moved the view on (last-response-wins mode).
        if view.state in (ViewState.BACKGROUND_REFRESHING, ViewState.FETCHING_FRESH):
            view.transition_to(ViewState.SETTLED)

    def _next_generation(self, key: str) -> int:
        generation = self._generations.get(key, 0) + 1
        self._generations[key] = generation
        return generation

    def _is_superseded(self, key: str, generation: int) -> bool:
        return self._discard_superseded and self._generations.get(key) != generation

    def _discard(self, view: AuditView, generation: int, path: str) -> None:
        self._increment("audit_stale_response_discarded", category=path)
        self._logger.info(
            "stale_response_discarded",
            extra={
                "org_id": view.org_id,
                "cache_key": view.key,
                "generation": generation,
                "latest_generation": self._generations.get(view.key),
                "path": path,
            },
        )

    def _increment(self, name: str, *, category: str) -> None:
        if self._metrics is not None and hasattr(self._metrics, "increment"):
            self._metrics.increment(name, 1, category=category)

    def _notify(self, view: AuditView) -> None:
        snapshot = view.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                self._logger.exception("view_listener_failed", extra={"cache_key": view.key})
