"""Event source protocol. Application layer depends on this; infrastructure implements it."""

from typing import Optional, Protocol

from audit_pipeline.domain.schemas.audit import AuditPagePayload


class EventSource(Protocol):
    """Paginated audit events for one organization over a day-range."""

    async def fetch_page(
        self,
        org_id: str,
        range_days: int,
        page_size: int,
        page_token: Optional[str] = None,
    ) -> AuditPagePayload:
        """Return one page. Raises EventSourceError on any non-success outcome."""
        ...
