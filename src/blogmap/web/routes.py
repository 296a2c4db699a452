"""Preview, language and health routes."""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse

from blogmap.config import BlogmapConfig
from blogmap.duplicates import DuplicateChecker
from blogmap.errors import BlogmapError
from blogmap.language import get_language_options
from blogmap.preview import PreviewRequest, preview_blog_import
from blogmap.web.dependencies import get_asset_store, get_http_client, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.post("/assets/bulk-import-blog/preview")
async def preview(
    payload: PreviewRequest,
    x_account_id: Optional[str] = Header(default=None),
    config: BlogmapConfig = Depends(get_settings),
    checker: DuplicateChecker = Depends(get_asset_store),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    """Preview blog posts for import without importing them."""
    if not x_account_id or not x_account_id.strip():
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    try:
        response = await preview_blog_import(
            payload,
            account_id=x_account_id.strip(),
            checker=checker,
            client=client,
            config=config,
        )
    except BlogmapError:
        raise
    except Exception as e:
        logger.exception(f"Error previewing blog posts for {payload.blog_url}")
        return JSONResponse({"error": str(e) or "Failed to preview blog posts"}, status_code=500)

    return response.to_json_dict()


@router.get("/languages")
async def languages():
    return {"languages": get_language_options()}


@router.get("/health")
async def health(config: BlogmapConfig = Depends(get_settings)):
    return {
        "status": "ok",
        "firecrawlConfigured": config.firecrawl_configured,
        "jinaConfigured": bool(config.jina_api_key),
    }
