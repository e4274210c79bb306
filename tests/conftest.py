"""
Pytest configuration and fixtures for the protection layer tests.
"""
import logging

import pytest
import pytest_asyncio
from fastapi import Request
from httpx import ASGITransport, AsyncClient

from request_shield.core.clock import ManualClock
from request_shield.core.config import ProtectionSettings
from request_shield.security.state import ProtectionState


@pytest.fixture
def clock():
    """Virtual clock doubling as the scheduler."""
    return ManualClock()


@pytest.fixture
def test_logger():
    """Propagating logger so caplog sees protection events."""
    logger = logging.getLogger("tests.protection")
    logger.setLevel(logging.DEBUG)
    return logger


@pytest.fixture
def settings():
    return ProtectionSettings()


@pytest.fixture
def state(settings, clock, test_logger):
    """Isolated protection state per test."""
    return ProtectionState(settings=settings, clock=clock, scheduler=clock, logger=test_logger)


@pytest.fixture
def app(state):
    """FastAPI application bound to the isolated state."""
    from main import create_app

    application = create_app(state)

    @application.post("/login")
    async def login():
        return {"success": False, "error": "invalid credentials"}

    @application.get("/auth/session")
    async def session(request: Request):
        return {"rate_limit_info": getattr(request.state, "rate_limit_info", None)}

    @application.get("/api/users/{user_id}")
    async def get_user(user_id: int):
        return {"id": user_id}

    @application.get("/search")
    async def search(q: str = ""):
        return {"q": q}

    @application.post("/upload")
    async def upload():
        return {"success": True}

    return application


DEFAULT_PEER = "203.0.113.5"


@pytest_asyncio.fixture
async def async_client(app):
    """Create async HTTP client for testing, connected from DEFAULT_PEER."""
    async with AsyncClient(
        transport=ASGITransport(app=app, client=(DEFAULT_PEER, 50000)), base_url="http://test"
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def client_for(app):
    """Factory for clients connecting from a given peer address."""
    clients = []

    def make(ip: str) -> AsyncClient:
        client = AsyncClient(
            transport=ASGITransport(app=app, client=(ip, 50000)), base_url="http://test"
        )
        clients.append(client)
        return client

    yield make

    for client in clients:
        await client.aclose()
