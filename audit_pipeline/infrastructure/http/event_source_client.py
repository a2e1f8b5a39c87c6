"""HTTP event source: GET {base_url}/orgs/{orgId}/audit, one page per call."""

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from audit_pipeline.application.exceptions import EventSourceError
from audit_pipeline.config.settings import settings
from audit_pipeline.core.context import correlation_id_ctx
from audit_pipeline.domain.schemas.audit import AuditPagePayload

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


def _unwrap(body: Any) -> Dict[str, Any]:
    """Accept a bare page or the `{success, data, message}` envelope the portal API uses."""
    if not isinstance(body, dict):
        raise EventSourceError("Audit response is not a JSON object")
    if "success" in body:
        if not body.get("success") or not isinstance(body.get("data"), dict):
            raise EventSourceError(body.get("message") or "Failed to load audit events")
        return body["data"]
    return body


class HttpEventSource:
    """Implements the EventSource protocol over httpx. Owns its client unless one is injected."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        auth_token = token if token is not None else settings.event_source_token
        if auth_token:
            headers["Authorization"] = f"Bearer {auth_token}"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.event_source_base_url,
            headers=headers,
            timeout=timeout_seconds or settings.event_source_timeout_seconds,
        )

    async def fetch_page(
        self,
        org_id: str,
        range_days: int,
        page_size: int,
        page_token: Optional[str] = None,
    ) -> AuditPagePayload:
        params: Dict[str, str] = {
            "pageSize": str(page_size),
            "days": str(range_days),
            "includeUxSummary": "true",
            "normalize": "true",
        }
        if page_token:
            params["pageToken"] = page_token
        headers = {}
        correlation_id = correlation_id_ctx.get()
        if correlation_id:
            headers[CORRELATION_HEADER] = correlation_id

        try:
            response = await self._client.get(f"/orgs/{org_id}/audit", params=params, headers=headers)
        except httpx.HTTPError as e:
            raise EventSourceError(f"Audit request failed: {e}") from e

        if response.status_code >= 400:
            raise EventSourceError(
                f"Audit source returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        try:
            body = response.json()
        except ValueError as e:
            raise EventSourceError("Audit response is not valid JSON", status_code=response.status_code) from e

        try:
            return AuditPagePayload.model_validate(_unwrap(body))
        except ValidationError as e:
            raise EventSourceError(f"Audit response has an unexpected shape: {e.error_count()} errors") from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
