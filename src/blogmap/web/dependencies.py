"""Request-scoped dependencies; override them in tests via ``app.dependency_overrides``."""

from __future__ import annotations

import httpx
from fastapi import Request

from blogmap.config import BlogmapConfig, get_config
from blogmap.duplicates import DuplicateChecker


def get_settings() -> BlogmapConfig:
    return get_config()


def get_asset_store(request: Request) -> DuplicateChecker:
    return request.app.state.asset_store


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client
