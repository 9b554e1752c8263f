"""
Pytest fixtures for EasyBuy API tests.

Requests run against the real application with the database dependency
bound to the in-memory test engine. Every request gets its own session,
like in production, so data written by a fixture is only visible once it
is committed.
"""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from easybuy.db.session import get_db
from easybuy.main import create_application


@pytest.fixture
def app(session_factory, upload_dir) -> FastAPI:
    """Create the FastAPI application bound to the test database."""
    test_app = create_application()

    async def override_get_db():
        async with session_factory() as session:
            yield session
            await session.commit()

    test_app.dependency_overrides[get_db] = override_get_db
    yield test_app
    test_app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for testing."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


@pytest.fixture
def action_url() -> str:
    return "/api/v1/action"


@pytest.fixture
def controller_url() -> str:
    return "/api/v1/controller"


@pytest.fixture
def order_form() -> dict:
    """Checkout form fields of a full-payment order, minus the vehicle."""
    return {
        "placeOrder": "1",
        "buyer_email": "jane@example.com",
        "payment_type": "full",
        "country": "United States",
        "state": "Texas",
        "city": "Austin",
        "address": "1 Main St",
        "zip_code": "73301",
    }
