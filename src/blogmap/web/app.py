"""FastAPI application.

Run with ``blogmap serve`` or ``uvicorn blogmap.web.app:app``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from blogmap.config import get_config
from blogmap.duplicates import SqlAssetStore, create_asset_engine, init_db
from blogmap.errors import BlogmapError, ErrorType
from blogmap.web.routes import router

logger = logging.getLogger(__name__)

# Client errors; anything else is a 500
_CLIENT_ERROR_TYPES = {ErrorType.VALIDATION_ERROR, ErrorType.NOT_FOUND}


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = get_config()
    engine = create_asset_engine(config.database_url)
    init_db(engine)
    app.state.asset_store = SqlAssetStore(engine)
    async with httpx.AsyncClient(headers={"User-Agent": config.user_agent}) as client:
        app.state.http_client = client
        logger.info("blogmap API started")
        yield
    engine.dispose()


async def blogmap_error_handler(request: Request, exc: BlogmapError) -> JSONResponse:
    status_code = 400 if exc.error_type in _CLIENT_ERROR_TYPES else 500
    if status_code == 500:
        logger.error(f"{request.url.path}: {exc!r}")
    return JSONResponse({"error": exc.message}, status_code=status_code)


def create_app() -> FastAPI:
    app = FastAPI(title="blogmap", lifespan=lifespan)
    app.add_exception_handler(BlogmapError, blogmap_error_handler)
    app.include_router(router)
    return app


app = create_app()
