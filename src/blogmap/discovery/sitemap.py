"""Sitemap-based post discovery (free)."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Optional
from urllib.parse import urlparse

import httpx

from blogmap.discovery.base import (
    BaseDiscoverer,
    child_text,
    dedupe,
    first_path_segment,
    iter_local,
    local_name,
    parse_xml,
)
from blogmap.models import DiscoveredUrl, DiscoveryMethod, DiscoveryResult
from blogmap.urls import (
    canonical_url,
    derive_title_from_slug,
    extract_date_from_url,
    site_root,
    to_iso_date,
)

logger = logging.getLogger(__name__)

BLOG_PATH_MARKERS = ("/blog/", "/post/", "/article/", "/news/", "/resources/")

COMMON_SITEMAP_PATHS = [
    "/sitemap.xml",
    "/sitemap_index.xml",
    "/sitemap-index.xml",
    "/wp-sitemap.xml",
    "/wp-sitemap-posts-post-1.xml",
    "/post-sitemap.xml",
    "/sitemap-blog.xml",
    "/sitemap-posts.xml",
    "/news-sitemap.xml",
]


def sitemap_candidates(blog_url: str) -> list[str]:
    """Candidate sitemap URLs, section-specific ones first."""
    base = site_root(blog_url)
    paths: list[str] = []
    section = first_path_segment(blog_url)
    if section:
        section = section.lower()
        paths += [
            f"/sitemap-{section}.xml",
            f"/{section}/sitemap.xml",
            f"/sitemap_{section}.xml",
        ]
    paths += COMMON_SITEMAP_PATHS
    return [f"{base}{p}" for p in dedupe(paths)]


def is_blog_path(url: str) -> bool:
    path = urlparse(url).path.lower()
    return any(marker in path for marker in BLOG_PATH_MARKERS)


def entry_from_sitemap_url(element: ET.Element) -> Optional[DiscoveredUrl]:
    """Build a DiscoveredUrl from a ``<url>`` element, or None if filtered."""
    loc = child_text(element, "loc")
    if not loc or not loc.startswith(("http://", "https://")):
        return None
    if not is_blog_path(loc):
        return None
    published = to_iso_date(child_text(element, "lastmod")) or extract_date_from_url(loc)
    return DiscoveredUrl(url=loc, title=derive_title_from_slug(loc), published_date=published)


class SitemapDiscoverer(BaseDiscoverer):
    """Discovers blog posts from XML sitemaps and sitemap indexes.

    Candidates are tried in order; the first one that yields at least one
    blog-like entry wins. Child sitemaps of an index are followed up to
    ``max_child_sitemaps``.
    """

    name = "sitemap"

    async def discover(
        self,
        url: str,
        client: httpx.AsyncClient,
        max_urls: int,
    ) -> Optional[DiscoveryResult]:
        processed: set[str] = set()

        for candidate in sitemap_candidates(url):
            if candidate in processed:
                continue
            processed.add(candidate)

            found = await self._read_sitemap(client, candidate, processed, max_urls)
            if found:
                logger.info(f"[sitemap] Found {len(found)} posts in {candidate}")
                return DiscoveryResult(
                    urls=found[:max_urls],
                    discovery_method=DiscoveryMethod.SITEMAP,
                    credits_used=0,
                )

        return None

    async def _read_sitemap(
        self,
        client: httpx.AsyncClient,
        sitemap_url: str,
        processed: set[str],
        max_urls: int,
    ) -> list[DiscoveredUrl]:
        content = await self.fetch_candidate(client, sitemap_url)
        if content is None:
            return []
        try:
            root = parse_xml(content)
        except ET.ParseError as e:
            logger.debug(f"[sitemap] Failed to parse {sitemap_url}: {e}")
            return []

        if local_name(root.tag) != "sitemapindex":
            return self._collect(root, [], set(), max_urls)

        refs = []
        for sitemap in iter_local(root, "sitemap"):
            loc = child_text(sitemap, "loc")
            if loc and loc not in processed:
                refs.append(loc)
        logger.debug(f"[sitemap] Index {sitemap_url} references {len(refs)} sitemaps")

        found: list[DiscoveredUrl] = []
        seen: set[str] = set()
        for ref in refs[: self.config.max_child_sitemaps]:
            if len(found) >= max_urls:
                break
            processed.add(ref)
            child_content = await self.fetch_candidate(client, ref)
            if child_content is None:
                continue
            try:
                child_root = parse_xml(child_content)
            except ET.ParseError as e:
                logger.debug(f"[sitemap] Failed to parse child sitemap {ref}: {e}")
                continue
            self._collect(child_root, found, seen, max_urls)
        return found

    def _collect(
        self,
        root: ET.Element,
        found: list[DiscoveredUrl],
        seen: set[str],
        max_urls: int,
    ) -> list[DiscoveredUrl]:
        for element in iter_local(root, "url"):
            if len(found) >= max_urls:
                break
            entry = entry_from_sitemap_url(element)
            if entry is None:
                continue
            key = canonical_url(entry.url)
            if key in seen:
                continue
            seen.add(key)
            found.append(entry)
        return found
