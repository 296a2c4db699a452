"""
Shared test fixtures.

HTTP is faked with ``httpx.MockTransport``: a FakeWeb maps exact URLs to
responses, answers 404 for everything else and records every request.
"""

from __future__ import annotations

from typing import Callable, Optional, Union

import httpx
import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from blogmap.config import BlogmapConfig, reset_config
from blogmap.discovery.firecrawl import circuit_breaker, credit_tracker, rate_limiter
from blogmap.duplicates import SqlAssetStore, init_db

Route = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FakeWeb:
    """URL -> response table served through httpx.MockTransport.

    Handlers may be sync or async. ``default`` answers unrouted URLs.
    """

    def __init__(self):
        self.routes: dict[str, Route] = {}
        self.requests: list[httpx.Request] = []
        self.default: Optional[Route] = None

    def add(self, url: str, body: Union[str, bytes] = "", status_code: int = 200, **kwargs) -> None:
        content = body.encode() if isinstance(body, str) else body
        self.routes[url] = httpx.Response(status_code, content=content, **kwargs)

    def add_handler(self, url: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[url] = handler

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url), self.default)
        if route is None:
            return httpx.Response(404)
        if callable(route):
            return route(request)
        return httpx.Response(route.status_code, content=route.content, headers=route.headers)

    @property
    def requested_urls(self) -> list[str]:
        return [str(r.url) for r in self.requests]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handle))


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep real provider keys and project config out of tests."""
    for var in ("FIRECRAWL_API_KEY", "JINA_API_KEY", "DATABASE_URL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("BLOGMAP_PROJECT_ROOT", str(tmp_path))
    reset_config()
    credit_tracker.reset()
    circuit_breaker.reset()
    rate_limiter.reset()
    yield
    reset_config()
    credit_tracker.reset()
    circuit_breaker.reset()
    rate_limiter.reset()


@pytest.fixture
def config() -> BlogmapConfig:
    return BlogmapConfig()


@pytest.fixture
def web() -> FakeWeb:
    return FakeWeb()


@pytest.fixture
def asset_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def asset_store(asset_engine) -> SqlAssetStore:
    return SqlAssetStore(asset_engine)

