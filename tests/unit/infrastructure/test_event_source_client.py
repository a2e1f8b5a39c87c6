"""HttpEventSource against httpx.MockTransport: query params, envelope unwrapping, failures."""

import httpx
import pytest

from audit_pipeline.application.exceptions import EventSourceError
from audit_pipeline.core.context import correlation_id_ctx
from audit_pipeline.infrastructure.http.event_source_client import HttpEventSource

BASE_URL = "http://portal.test/api/v1"


def _source(handler) -> HttpEventSource:
    client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return HttpEventSource(client=client)


async def test_fetch_page_sends_paging_params():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"events": [{"eventType": "Login"}], "continuationToken": "t2"})

    page = await _source(handler).fetch_page("org-1", 7, 500, page_token="t1")
    assert seen["path"] == "/api/v1/orgs/org-1/audit"
    assert seen["params"] == {
        "pageSize": "500",
        "days": "7",
        "includeUxSummary": "true",
        "normalize": "true",
        "pageToken": "t1",
    }
    assert page.events == [{"eventType": "Login"}]
    assert page.continuation_token == "t2"


async def test_first_page_has_no_token_param():
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"events": []})

    page = await _source(handler).fetch_page("org-1", 7, 500)
    assert "pageToken" not in seen["params"]
    assert page.continuation_token is None


async def test_envelope_is_unwrapped():
    def handler(request):
        return httpx.Response(200, json={
            "success": True,
            "data": {"events": [], "continuationToken": "", "uxSummary": {"total": 0}},
            "message": None,
        })

    page = await _source(handler).fetch_page("org-1", 7, 500)
    assert page.continuation_token is None
    assert page.ux_summary == {"total": 0}


async def test_unsuccessful_envelope_raises_with_message():
    def handler(request):
        return httpx.Response(200, json={"success": False, "data": None, "message": "Org not found"})

    with pytest.raises(EventSourceError) as exc_info:
        await _source(handler).fetch_page("org-1", 7, 500)
    assert exc_info.value.message == "Org not found"


async def test_http_error_status_raises():
    def handler(request):
        return httpx.Response(503, text="unavailable")

    with pytest.raises(EventSourceError) as exc_info:
        await _source(handler).fetch_page("org-1", 7, 500)
    assert exc_info.value.status_code == 503


async def test_invalid_json_raises():
    def handler(request):
        return httpx.Response(200, text="<html>")

    with pytest.raises(EventSourceError):
        await _source(handler).fetch_page("org-1", 7, 500)


async def test_transport_error_raises():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(EventSourceError):
        await _source(handler).fetch_page("org-1", 7, 500)


async def test_correlation_id_is_forwarded():
    seen = {}

    def handler(request):
        seen["correlation"] = request.headers.get("X-Correlation-ID")
        return httpx.Response(200, json={"events": []})

    token = correlation_id_ctx.set("corr-123")
    try:
        await _source(handler).fetch_page("org-1", 7, 500)
    finally:
        correlation_id_ctx.reset(token)
    assert seen["correlation"] == "corr-123"


async def test_injected_client_is_not_closed():
    client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    source = HttpEventSource(client=client)
    await source.aclose()
    assert client.is_closed is False
    await client.aclose()
