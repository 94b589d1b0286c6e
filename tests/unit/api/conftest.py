"""Fixtures for API unit tests: in-memory store, cursor codec, AsyncClient."""

import pytest
from httpx import ASGITransport, AsyncClient

from app.main import app
from app.observability.metrics import MetricsCollector


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.fixture
def app_with_overrides(fake_store, cursor_codec, metrics):
    """App with store, codec, metrics and cache overridden. ASGITransport does not run the lifespan."""
    from app.api import dependencies

    app.dependency_overrides[dependencies.get_event_store] = lambda: fake_store
    app.dependency_overrides[dependencies.get_cursor_codec] = lambda: cursor_codec
    app.dependency_overrides[dependencies.get_metrics] = lambda: metrics
    app.dependency_overrides[dependencies.get_idempotency_cache] = lambda: None
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client(app_with_overrides):
    """Async HTTP client for testing; uses overridden app."""
    transport = ASGITransport(app=app_with_overrides)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def tenant_headers():
    return {"X-Tenant-ID": "test-tenant-1"}


@pytest.fixture
def employee_headers(tenant_headers):
    return {**tenant_headers, "X-User-ID": "emp-1", "X-User-Role": "employee"}


@pytest.fixture
def manager_headers(tenant_headers):
    return {**tenant_headers, "X-User-ID": "mgr-1", "X-User-Role": "manager"}
