"""Shared fixtures: mocked provider transports, SQLite report store, ASGI client."""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cma_builder.core.cache import counters
from cma_builder.core.config import settings
from cma_builder.data.design_api import DesignApi
from cma_builder.data.listings_client import ListingsAggregationClient
from cma_builder.database import get_db
from cma_builder.models.base import Base
from cma_builder.models.report import CmaReport

CANVA_BASE = "https://api.canva.test/rest/v1"
LISTINGS_BASE = "https://api.listings.test"
IMAGE_CDN = "https://cdn.listings.test/"
STATE_SECRET = "test-state-secret"


class Upstream:
    """Records outbound requests and answers them from a handler."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    @property
    def calls(self) -> int:
        return len(self.requests)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Any:
        return json.loads(self.last.content)


def reply(status: int = 200, body: Any = None) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json=body if body is not None else {})
    return handler


def unreachable(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


@pytest.fixture
def design_api_for():
    def build(upstream: Upstream) -> DesignApi:
        return DesignApi(CANVA_BASE, timeout=5, transport=upstream.transport)
    return build


@pytest.fixture
def listings_for():
    def build(upstream: Upstream) -> ListingsAggregationClient:
        return ListingsAggregationClient(LISTINGS_BASE, "listings-key", image_cdn=IMAGE_CDN,
                                         timeout=5, transport=upstream.transport)
    return build


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def db(engine):
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def report(db: AsyncSession) -> CmaReport:
    row = CmaReport(title="123 Main St CMA")
    db.add(row)
    await db.commit()
    await db.refresh(row)
    return row


@pytest.fixture
def app(monkeypatch):
    from cma_builder.main import app

    monkeypatch.setattr(settings, "API_KEY", None)
    monkeypatch.setattr(settings, "APP_BASE_URL", "https://cma.test")
    counters.reset()
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app, engine):
    """HTTPX async test client against the API app."""
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="https://cma.test") as c:
        yield c
