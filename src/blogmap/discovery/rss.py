"""RSS/Atom feed-based post discovery (free)."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Optional

import httpx

from blogmap.discovery.base import (
    BaseDiscoverer,
    child_text,
    dedupe,
    first_path_segment,
    local_name,
    parse_xml,
)
from blogmap.models import DiscoveredUrl, DiscoveryMethod, DiscoveryResult
from blogmap.urls import (
    canonical_url,
    derive_title_from_slug,
    extract_date_from_url,
    is_listing_segment,
    path_segments,
    site_root,
    to_iso_date,
)

logger = logging.getLogger(__name__)

FEED_ACCEPT = "application/rss+xml, application/atom+xml, application/xml, text/xml"

COMMON_FEED_PATHS = [
    "/feed",
    "/rss",
    "/rss.xml",
    "/feed.xml",
    "/atom.xml",
    "/index.xml",
    "/blog/feed",
    "/blog/rss",
    "/blog/feed.xml",
    "/news/feed",
]

DATE_TAGS = ("pubdate", "published", "updated", "date")


def feed_candidates(blog_url: str) -> list[str]:
    """Candidate feed URLs, section-specific ones first."""
    base = site_root(blog_url)
    paths: list[str] = []
    section = first_path_segment(blog_url)
    if section:
        paths += [
            f"/{section}/feed",
            f"/{section}/rss",
            f"/{section}/feed.xml",
            f"/{section}/rss.xml",
        ]
    paths += COMMON_FEED_PATHS
    return [f"{base}{p}" for p in dedupe(paths)]


def entry_link(entry: ET.Element) -> str:
    """Link of an RSS item or Atom entry.

    ``<link>`` text first (RSS), then ``href`` (Atom, preferring
    rel="alternate"), then ``<id>`` when it is an http URL.
    """
    links = [child for child in entry if local_name(child.tag) == "link"]
    for link in links:
        if link.text and link.text.strip():
            return link.text.strip()

    alternates = [link for link in links if link.get("rel") in (None, "alternate")]
    for link in alternates + links:
        href = link.get("href")
        if href and href.strip():
            return href.strip()

    entry_id = child_text(entry, "id", "guid")
    if entry_id.startswith(("http://", "https://")):
        return entry_id
    return ""


def entry_from_feed_item(entry: ET.Element) -> Optional[DiscoveredUrl]:
    link = entry_link(entry)
    if not link.startswith(("http://", "https://")):
        return None
    segments = path_segments(link)
    if segments and is_listing_segment(segments[-1]):
        return None

    title = child_text(entry, "title") or derive_title_from_slug(link)
    published = to_iso_date(child_text(entry, *DATE_TAGS)) or extract_date_from_url(link)
    return DiscoveredUrl(url=link, title=title, published_date=published)


class RssDiscoverer(BaseDiscoverer):
    """Discovers blog posts from RSS 2.0 and Atom feeds at well-known paths."""

    name = "rss"

    async def discover(
        self,
        url: str,
        client: httpx.AsyncClient,
        max_urls: int,
    ) -> Optional[DiscoveryResult]:
        for candidate in feed_candidates(url):
            content = await self.fetch_candidate(client, candidate, accept=FEED_ACCEPT)
            if content is None:
                continue
            try:
                root = parse_xml(content)
            except ET.ParseError as e:
                logger.debug(f"[rss] Failed to parse {candidate}: {e}")
                continue

            found = self._collect(root, max_urls)
            if found:
                logger.info(f"[rss] Found {len(found)} posts in {candidate}")
                return DiscoveryResult(
                    urls=found,
                    discovery_method=DiscoveryMethod.RSS,
                    credits_used=0,
                )

        return None

    def _collect(self, root: ET.Element, max_urls: int) -> list[DiscoveredUrl]:
        found: list[DiscoveredUrl] = []
        seen: set[str] = set()
        for element in root.iter():
            if len(found) >= max_urls:
                break
            if local_name(element.tag) not in ("item", "entry"):
                continue
            entry = entry_from_feed_item(element)
            if entry is None:
                continue
            key = canonical_url(entry.url)
            if key in seen:
                continue
            seen.add(key)
            found.append(entry)
        return found
