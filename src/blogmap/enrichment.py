"""Bounded-concurrency HTML enrichment of discovered posts.

Posts are processed in fixed-size batches. Fetches inside a batch run
concurrently, and the next batch starts only once the current one has
resolved, so output order always equals input order.

HTML fetching is best effort. Each fetch races a short timeout, and an
``HtmlFetchBreaker`` stops all further fetches for the run once
``threshold`` attempts have been made without a single success. A host
that blocks the first few requests is not hammered with the rest.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import httpx

from blogmap.asset_types import detect_asset_type_from_url, inspect_html
from blogmap.config import BlogmapConfig, get_config
from blogmap.language import detect_language_from_url
from blogmap.models import CheckedUrl, EnrichedPost
from blogmap.urls import derive_title_from_slug, is_pdf_url, same_site

logger = logging.getLogger(__name__)


@dataclass
class HtmlFetchBreaker:
    """Run-wide HTML fetch counters.

    Mutated only from the event loop thread, so no lock is needed.
    """

    threshold: int = 3
    attempted: int = 0
    succeeded: int = 0

    @property
    def threshold_exceeded(self) -> bool:
        return self.attempted >= self.threshold and self.succeeded == 0

    def should_attempt(self) -> bool:
        return not self.threshold_exceeded

    def record_attempt(self) -> None:
        self.attempted += 1

    def record_success(self) -> None:
        self.succeeded += 1


async def fetch_html(
    client: httpx.AsyncClient,
    url: str,
    timeout: float,
    headers: Optional[dict[str, str]] = None,
) -> Optional[str]:
    """
    Fetch a page's HTML, giving up after ``timeout`` seconds.

    Returns:
        The body on HTTP 200, otherwise None. Never raises for timeouts,
        HTTP errors or network failures.
    """
    try:
        response = await asyncio.wait_for(
            client.get(url, headers=headers, follow_redirects=True),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        logger.debug(f"HTML fetch timed out after {timeout}s: {url}")
        return None
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        logger.debug(f"HTML fetch failed for {url}: {type(e).__name__}: {e}")
        return None

    if response.status_code != 200:
        logger.debug(f"HTML fetch for {url} returned HTTP {response.status_code}")
        return None
    return response.text


async def enrich_post(
    post: CheckedUrl,
    *,
    client: httpx.AsyncClient,
    blog_url: str,
    config: BlogmapConfig,
    breaker: HtmlFetchBreaker,
) -> EnrichedPost:
    """Build the EnrichedPost for one checked URL."""
    title = post.title
    published = post.published_date
    asset_type = detect_asset_type_from_url(post.url)
    pdf = is_pdf_url(post.url)

    needs_html = (asset_type is None or published is None) and not pdf
    # The breaker is consulted before the first await so that fetches in
    # one batch are counted in dispatch order.
    if needs_html and breaker.should_attempt():
        breaker.record_attempt()
        html = await fetch_html(
            client,
            post.url,
            config.html_timeout,
            headers={"User-Agent": config.user_agent},
        )
        if html is not None:
            breaker.record_success()
            insights = await asyncio.to_thread(inspect_html, post.url, html)
            published = published or insights.published_date
            asset_type = asset_type or insights.asset_type
            if insights.title and title == derive_title_from_slug(post.url):
                title = insights.title

    if (
        asset_type is None
        and config.default_asset_type
        and not pdf
        and same_site(post.url, blog_url)
    ):
        asset_type = config.default_asset_type

    return EnrichedPost(
        url=post.url,
        title=title,
        published_date=published,
        is_duplicate=post.is_duplicate,
        existing_asset_id=post.existing_asset_id,
        detected_asset_type=asset_type,
        language=detect_language_from_url(post.url),
    )


async def enrich_posts(
    checked: Sequence[CheckedUrl],
    *,
    client: httpx.AsyncClient,
    blog_url: str,
    config: Optional[BlogmapConfig] = None,
    breaker: Optional[HtmlFetchBreaker] = None,
) -> list[EnrichedPost]:
    """
    Enrich posts in sequential batches of ``config.enrich_batch_size``.

    Args:
        checked: Posts after the duplicate check, in display order
        client: Shared async HTTP client
        blog_url: Normalized blog URL (same-site check for the default type)
        config: Settings (defaults to the process config)
        breaker: Run-wide fetch breaker; a fresh one is created if omitted

    Returns:
        One EnrichedPost per input, in input order
    """
    config = config or get_config()
    breaker = breaker or HtmlFetchBreaker(threshold=config.breaker_threshold)
    batch_size = config.enrich_batch_size

    enriched: list[EnrichedPost] = []
    tripped = breaker.threshold_exceeded
    for start in range(0, len(checked), batch_size):
        batch = checked[start : start + batch_size]
        results = await asyncio.gather(
            *(
                enrich_post(post, client=client, blog_url=blog_url, config=config, breaker=breaker)
                for post in batch
            )
        )
        enriched.extend(results)

        if breaker.threshold_exceeded and not tripped:
            tripped = True
            logger.warning(
                f"HTML fetching disabled after {breaker.attempted} failed attempts; "
                f"using URL patterns for the remaining {len(checked) - len(enriched)} posts"
            )

    logger.info(
        f"Enriched {len(enriched)} posts "
        f"(HTML fetches: {breaker.attempted} attempted, {breaker.succeeded} succeeded)"
    )
    return enriched
