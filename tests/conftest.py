from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from faultroute.config import Settings
from faultroute.registry import ErrorRegistry
from faultroute.tree import ErrorTree
from tests.factories import make_app


@pytest.fixture
def tree() -> ErrorTree:
    return ErrorTree()


@pytest.fixture
def registry() -> ErrorRegistry:
    """Registry with default settings, isolated per test."""
    return ErrorRegistry(settings=Settings())


@pytest.fixture
def app(registry: ErrorRegistry) -> FastAPI:
    return make_app(registry)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """HTTP client talking to the test app in-process."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
