"""Pytest configuration and shared fixtures.

Time-dependent behavior is driven by a FakeClock injected into the
sandbox store, so no test sleeps or depends on wall-clock time.
"""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from menutrail.api import create_app
from menutrail.core.config import SandboxSettings
from menutrail.services.sandbox import SandboxDeliveryStore

T0 = datetime(2026, 10, 19, 12, 0, 0, tzinfo=UTC)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime = T0) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        """Move the clock forward by a timedelta given as keyword arguments."""
        self.current += timedelta(**kwargs)
        return self.current


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def clock() -> FakeClock:
    """A clock frozen at T0 until advanced."""
    return FakeClock()


@pytest.fixture
def sandbox_settings() -> SandboxSettings:
    """Default simulator constants."""
    return SandboxSettings()


@pytest.fixture
def store(sandbox_settings: SandboxSettings, clock: FakeClock) -> SandboxDeliveryStore:
    """A fresh, isolated sandbox store driven by the fake clock."""
    return SandboxDeliveryStore(sandbox_settings, clock=clock)


# ---------------------------------------------------------------------------
# API client fixture (in-process testing via ASGI transport)
# ---------------------------------------------------------------------------
@pytest.fixture
def test_app(store: SandboxDeliveryStore):
    """Create a test FastAPI application serving the fixture store."""
    return create_app(store=store)


@pytest.fixture
async def api_client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing the API.

    Uses httpx with ASGI transport for in-process testing.
    """
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# ---------------------------------------------------------------------------
# Request payload builders
# ---------------------------------------------------------------------------
@pytest.fixture
def structured_pickup() -> dict:
    """Restaurant address as sent by the checkout flow."""
    return {
        "street": "123 Main St",
        "city": "Springfield",
        "state": "IL",
        "zip": "62701",
        "businessName": "Trail Diner",
        "phoneNumber": "+1 (217) 555-0100",
    }


@pytest.fixture
def create_payload(structured_pickup: dict) -> dict:
    """A valid create-delivery request body."""
    return {
        "orderId": "o1",
        "pickupAddress": structured_pickup,
        "dropoffAddress": "456 Oak Ave, Springfield, IL 62704",
        "orderValue": 42.5,
        "items": [{"name": "Burger", "quantity": 2}],
    }
