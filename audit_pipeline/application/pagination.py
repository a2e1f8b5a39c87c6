"""Sequential page walker over the event source, bounded by a safety cap."""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from audit_pipeline.application.event_source import EventSource
from audit_pipeline.application.exceptions import EventSourceError, PaginationAbortedError

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 500
MAX_PAGES = 50


@dataclass
class FetchResult:
    """All pages of one fetch, accumulated in order. Events are raw source records."""

    events: List[Dict[str, Any]] = field(default_factory=list)
    has_more: bool = False
    ux_summary: Optional[Dict[str, Any]] = None
    pages_fetched: int = 0

    def to_cache_data(self) -> Dict[str, Any]:
        return {
            "events": self.events,
            "hasMore": self.has_more,
            "uxSummary": self.ux_summary,
        }


async def fetch_all_events(
    source: EventSource,
    org_id: str,
    range_days: int,
    page_size: int = DEFAULT_PAGE_SIZE,
    max_pages: int = MAX_PAGES,
    metrics: Any = None,
) -> FetchResult:
    """
    Follow continuation tokens until the source returns none or max_pages pages were read.
    Each page is awaited before the next request is issued. A failing page aborts the loop
    with PaginationAbortedError carrying what was accumulated so far.
    """
    result = FetchResult()
    token: Optional[str] = None
    while True:
        started = time.monotonic()
        try:
            page = await source.fetch_page(org_id, range_days, page_size, page_token=token)
        except EventSourceError as e:
            logger.error(
                "page_fetch_failed",
                extra={"org_id": org_id, "page": result.pages_fetched + 1, "error": e.message},
            )
            result.has_more = token is not None
            raise PaginationAbortedError(f"Failed to load audit events: {e.message}", result) from e

        result.events.extend(page.events)
        if page.ux_summary is not None:
            result.ux_summary = page.ux_summary
        result.pages_fetched += 1
        token = page.continuation_token
        if metrics is not None:
            metrics.increment("audit_pages_fetched", 1, org_id=org_id)
            metrics.observe_latency("audit_page_fetch_ms", (time.monotonic() - started) * 1000)
        logger.debug(
            "page_fetched",
            extra={
                "org_id": org_id,
                "page": result.pages_fetched,
                "page_events": len(page.events),
                "has_token": token is not None,
            },
        )

        if token is None or result.pages_fetched >= max_pages:
            break

    result.has_more = token is not None
    if result.has_more:
        logger.warning(
            "page_cap_reached",
            extra={"org_id": org_id, "max_pages": max_pages, "events": len(result.events)},
        )
    return result
