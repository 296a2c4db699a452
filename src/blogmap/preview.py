"""
Blog import preview pipeline.

normalize -> discovery (single post, sitemap, RSS, Firecrawl map) ->
listing-page fallback -> duplicate check -> language filter -> enrichment
-> date and duplicate filters -> ranking.

Nothing is persisted; the result is what the import dialog shows before
the user confirms.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from pydantic import Field

from blogmap.config import BlogmapConfig, get_config
from blogmap.discovery import discover_blog_urls, get_credit_info
from blogmap.duplicates import DuplicateChecker
from blogmap.enrichment import enrich_posts
from blogmap.errors import DiscoveryError, ExtractionError, InvalidDateError, NoPostsFoundError
from blogmap.extraction import extract_blog_post_urls
from blogmap.filters import (
    compute_date_stats,
    filter_by_date_range,
    filter_duplicates,
    parse_date_bound,
    rank_posts,
)
from blogmap.language import detect_language_from_url, filter_by_language
from blogmap.models import CamelModel, DiscoveryMethod, EnrichedPost
from blogmap.urls import normalize_blog_url

logger = logging.getLogger(__name__)


class PreviewRequest(CamelModel):
    """Body of the preview endpoint."""

    blog_url: str = ""
    date_range_start: Optional[str] = None
    date_range_end: Optional[str] = None
    max_posts: Optional[int] = Field(default=None, ge=1, le=5000)
    languages: list[str] = Field(default_factory=list)
    include_undetected_language: bool = True
    exclude_duplicates: bool = False


class DateStats(CamelModel):
    with_date: int = 0
    without_date: int = 0
    oldest: Optional[str] = None
    newest: Optional[str] = None


class DiscoveryInfo(CamelModel):
    method: DiscoveryMethod
    credits_used: int = 0


class CreditInfo(CamelModel):
    credits_used: int = 0
    firecrawl_configured: bool = False
    estimated_credits_remaining: int = 0


class PreviewResponse(CamelModel):
    success: bool = True
    posts: list[EnrichedPost] = Field(default_factory=list)
    total: int = 0
    duplicates: int = 0
    new: int = 0
    detected_languages: list[str] = Field(default_factory=list)
    date_stats: DateStats = Field(default_factory=DateStats)
    discovery: DiscoveryInfo
    credit_info: CreditInfo = Field(default_factory=CreditInfo)


def _parse_bound(value: Optional[str], end_of_day: bool = False):
    try:
        return parse_date_bound(value, end_of_day=end_of_day)
    except ValueError as e:
        raise InvalidDateError(str(value)) from e


async def preview_blog_import(
    request: PreviewRequest,
    *,
    account_id: str,
    checker: DuplicateChecker,
    client: httpx.AsyncClient,
    config: Optional[BlogmapConfig] = None,
) -> PreviewResponse:
    """
    Build the import preview for a blog URL.

    Args:
        request: Preview options from the caller
        account_id: Tenant whose assets are checked for duplicates
        checker: Duplicate checker for the account's assets
        client: Shared async HTTP client
        config: Settings (defaults to the process config)

    Returns:
        PreviewResponse with ranked posts and summary counts

    Raises:
        InvalidUrlError: The blog URL cannot be normalized
        InvalidDateError: A date-range bound is malformed
        DiscoveryError: Every strategy, listing-page fallback included, failed
        NoPostsFoundError: Discovery succeeded but found nothing
    """
    config = config or get_config()
    blog_url = normalize_blog_url(request.blog_url)
    start = _parse_bound(request.date_range_start)
    end = _parse_bound(request.date_range_end, end_of_day=True)
    max_posts = request.max_posts or config.max_urls

    logger.info(f"Previewing blog import for {blog_url} (account {account_id})")
    result = await discover_blog_urls(blog_url, client=client, config=config, max_urls=max_posts)
    posts = result.urls
    method = result.discovery_method
    credits_used = result.credits_used

    if result.fallback_required:
        logger.info(f"Falling back to listing-page extraction for {blog_url}")
        try:
            posts = await extract_blog_post_urls(blog_url, max_posts, client=client, config=config)
        except ExtractionError as e:
            raise DiscoveryError(f"Failed to discover blog posts: {e.message}", e) from e
        method = DiscoveryMethod.JINA_FALLBACK
        credits_used = 0

    if not posts:
        raise NoPostsFoundError(blog_url)

    checked = await checker.check_for_duplicates(posts, account_id)
    detected_languages = sorted(
        {code for code in (detect_language_from_url(p.url) for p in checked.all) if code}
    )

    candidates = filter_by_language(
        checked.all,
        request.languages,
        include_undetected=request.include_undetected_language,
    )
    enriched = await enrich_posts(candidates, client=client, blog_url=blog_url, config=config)
    date_stats = compute_date_stats(enriched)

    final = filter_by_date_range(enriched, start, end)
    final = filter_duplicates(final, request.exclude_duplicates)
    final = rank_posts(final)

    duplicate_count = sum(1 for p in final if p.is_duplicate)
    logger.info(
        f"Preview for {blog_url}: {len(final)} posts ({duplicate_count} duplicates) "
        f"via {method.value}"
    )
    return PreviewResponse(
        posts=final,
        total=len(final),
        duplicates=duplicate_count,
        new=len(final) - duplicate_count,
        detected_languages=detected_languages,
        date_stats=DateStats.model_validate(date_stats),
        discovery=DiscoveryInfo(method=method, credits_used=credits_used),
        credit_info=CreditInfo.model_validate(get_credit_info(config)),
    )
