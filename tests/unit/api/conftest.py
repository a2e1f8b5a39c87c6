"""Fixtures for API unit tests: fake event source, in-memory cache manager, AsyncClient."""

import pytest
from httpx import ASGITransport, AsyncClient

from audit_pipeline.main import app
from audit_pipeline.application.cache_manager import AuditCacheManager
from audit_pipeline.application.exceptions import EventSourceError
from audit_pipeline.domain.schemas.audit import AuditPagePayload
from audit_pipeline.infrastructure.cache.audit_cache import AuditCache
from audit_pipeline.infrastructure.cache.stores import InMemoryCacheStore

RAW_EVENTS = [
    {"eventType": "DeviceRegistered", "performedBy": "alice", "timestamp": "2025-01-01T10:00:00Z"},
    {"eventType": "DeviceBlocked", "performedBy": "alice", "timestamp": "2025-01-01T10:03:00Z"},
    {
        "eventType": "Login",
        "subType": "Failure",
        "performedBy": "bob",
        "timestamp": "2025-01-02T08:00:00Z",
        "description": "Bad password",
    },
    {"eventType": "Login", "subType": "Success", "performedBy": "bob", "timestamp": "2025-01-02T08:01:00Z"},
]


class FakeEventSource:
    """Single-page event source for unit tests."""

    def __init__(self, events=None):
        self.events = list(RAW_EVENTS if events is None else events)
        self.error = None
        self.calls = []

    async def fetch_page(self, org_id, range_days, page_size, page_token=None):
        self.calls.append((org_id, range_days, page_token))
        if self.error:
            raise EventSourceError(self.error, status_code=500)
        return AuditPagePayload(events=list(self.events))


@pytest.fixture
def fake_source():
    return FakeEventSource()


@pytest.fixture
async def cache_manager(fake_source):
    manager = AuditCacheManager(fake_source, AuditCache(InMemoryCacheStore()), refresh_delay_seconds=0)
    yield manager
    await manager.aclose()


@pytest.fixture
def app_with_overrides(cache_manager):
    """App with the cache manager overridden for testing."""
    from audit_pipeline.api import dependencies

    app.dependency_overrides[dependencies.get_cache_manager] = lambda: cache_manager
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client(app_with_overrides):
    """Async HTTP client for testing; uses overridden app."""
    transport = ASGITransport(app=app_with_overrides)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
