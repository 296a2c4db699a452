"""Cost-ordered discovery: free strategies first, paid ones last."""

from __future__ import annotations

import logging
from typing import Dict, Optional, Sequence, Type

import httpx

from blogmap.config import BlogmapConfig, get_config
from blogmap.discovery.base import BaseDiscoverer
from blogmap.discovery.firecrawl import FirecrawlMapDiscoverer
from blogmap.discovery.rss import RssDiscoverer
from blogmap.discovery.sitemap import SitemapDiscoverer
from blogmap.models import DiscoveredUrl, DiscoveryMethod, DiscoveryResult
from blogmap.urls import (
    derive_title_from_slug,
    extract_date_from_url,
    is_single_post_url,
    normalize_blog_url,
)

logger = logging.getLogger(__name__)

DEFAULT_STRATEGIES: tuple[Type[BaseDiscoverer], ...] = (
    SitemapDiscoverer,
    RssDiscoverer,
    FirecrawlMapDiscoverer,
)


class DiscovererRegistry:
    """Registry of discovery strategies by name."""

    _discoverers: Dict[str, Type[BaseDiscoverer]] = {}

    @classmethod
    def register(cls, name: str, discoverer_class: Type[BaseDiscoverer]) -> None:
        cls._discoverers[name] = discoverer_class

    @classmethod
    def get(cls, name: str) -> Type[BaseDiscoverer]:
        """Get a strategy by name.

        Raises:
            KeyError: If the strategy is not registered
        """
        if name not in cls._discoverers:
            raise KeyError(f"Unknown discovery strategy: {name}")
        return cls._discoverers[name]

    @classmethod
    def list_discoverers(cls) -> list[str]:
        return list(cls._discoverers.keys())

    @classmethod
    def resolve(cls, names: Sequence[str]) -> list[Type[BaseDiscoverer]]:
        return [cls.get(name) for name in names]


for _cls in DEFAULT_STRATEGIES:
    DiscovererRegistry.register(_cls.name, _cls)


def single_post_result(url: str) -> DiscoveryResult:
    return DiscoveryResult(
        urls=[
            DiscoveredUrl(
                url=url,
                title=derive_title_from_slug(url),
                published_date=extract_date_from_url(url),
            )
        ],
        discovery_method=DiscoveryMethod.SINGLE_POST,
        credits_used=0,
    )


def fallback_result() -> DiscoveryResult:
    return DiscoveryResult(
        urls=[],
        discovery_method=DiscoveryMethod.FIRECRAWL_CRAWL,
        credits_used=0,
        fallback_required=True,
    )


async def run_discovery_chain(
    url: str,
    *,
    client: httpx.AsyncClient,
    config: Optional[BlogmapConfig] = None,
    max_urls: Optional[int] = None,
    strategies: Optional[Sequence[Type[BaseDiscoverer]]] = None,
) -> DiscoveryResult:
    """
    Try each strategy in order and return the first non-empty result.

    Args:
        url: Normalized blog URL
        client: Shared async HTTP client
        config: Settings (defaults to the process config)
        max_urls: Cap on returned URLs (defaults to ``config.max_urls``)
        strategies: Discoverer classes in the order to try them (defaults to
            ``config.discovery_strategies`` resolved through the registry)

    Returns:
        The winning strategy's result capped at ``max_urls``, or a
        ``fallback_required`` result when every strategy came back empty

    Raises:
        KeyError: If ``config.discovery_strategies`` names an unregistered strategy
    """
    config = config or get_config()
    max_urls = max_urls or config.max_urls

    if strategies is None:
        strategies = DiscovererRegistry.resolve(config.discovery_strategies)

    for strategy_cls in strategies:
        strategy = strategy_cls(config)
        try:
            result = await strategy.discover(url, client, max_urls)
        except Exception as e:
            logger.warning(f"[{strategy.name}] Discovery failed for {url}: {type(e).__name__}: {e}")
            continue

        if result is None or not result.urls:
            logger.info(f"[{strategy.name}] No posts found for {url}")
            continue

        if len(result.urls) > max_urls:
            result = result.model_copy(update={"urls": result.urls[:max_urls]})
        logger.info(
            f"Discovered {result.count} posts for {url} via {result.discovery_method.value} "
            f"({result.credits_used} credits)"
        )
        return result

    logger.info(f"All discovery strategies failed for {url}; fallback required")
    return fallback_result()


async def discover_blog_urls(
    url: str,
    *,
    client: httpx.AsyncClient,
    config: Optional[BlogmapConfig] = None,
    max_urls: Optional[int] = None,
    strategies: Optional[Sequence[Type[BaseDiscoverer]]] = None,
) -> DiscoveryResult:
    """
    Discover blog post URLs for user input.

    A URL that already points at a single article short-circuits to a
    ``single-post`` result without touching the network.

    Raises:
        InvalidUrlError: If ``url`` cannot be normalized
    """
    normalized = normalize_blog_url(url)
    if is_single_post_url(normalized):
        logger.info(f"{normalized} looks like a single post")
        return single_post_result(normalized)

    return await run_discovery_chain(
        normalized,
        client=client,
        config=config,
        max_urls=max_urls,
        strategies=strategies,
    )
