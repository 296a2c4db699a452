"""Discovery strategies - finding post URLs for a blog.

Each strategy implements the BaseDiscoverer interface:

- SitemapDiscoverer: sitemap.xml and sitemap indexes (free)
- RssDiscoverer: RSS/Atom feeds (free)
- FirecrawlMapDiscoverer: Firecrawl map API (1 credit)

Strategies are registered by name in DiscovererRegistry; the chain runs
them in the order given by ``BlogmapConfig.discovery_strategies``.

Usage:
    from blogmap.discovery import discover_blog_urls

    async with httpx.AsyncClient() as client:
        result = await discover_blog_urls("example.com/blog", client=client)
        if result.fallback_required:
            ...
"""

from blogmap.discovery.base import BaseDiscoverer
from blogmap.discovery.firecrawl import (
    CreditTracker,
    FirecrawlMapDiscoverer,
    credit_tracker,
    get_credit_info,
    is_firecrawl_configured,
    map_with_firecrawl,
)
from blogmap.discovery.orchestrator import (
    DEFAULT_STRATEGIES,
    DiscovererRegistry,
    discover_blog_urls,
    run_discovery_chain,
)
from blogmap.discovery.rss import RssDiscoverer
from blogmap.discovery.sitemap import SitemapDiscoverer

__all__ = [
    "BaseDiscoverer",
    "CreditTracker",
    "DEFAULT_STRATEGIES",
    "DiscovererRegistry",
    "FirecrawlMapDiscoverer",
    "RssDiscoverer",
    "SitemapDiscoverer",
    "credit_tracker",
    "discover_blog_urls",
    "get_credit_info",
    "is_firecrawl_configured",
    "map_with_firecrawl",
    "run_discovery_chain",
]
