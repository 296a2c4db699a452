"""Asset-type detection from URLs and HTML.

URL detection is a pure pattern table. HTML detection reads page metadata
with trafilatura (title, publish date) and structured data with lxml
(JSON-LD ``@type``, ``og:type``).
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

import trafilatura
from lxml import etree
from lxml import html as lxml_html

from blogmap.urls import to_iso_date

logger = logging.getLogger(__name__)

BLOG_POST = "Blog Post"

# Order matters: more specific first
URL_TYPE_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"case-stud(y|ies)|customer-stor(y|ies)|success-stor(y|ies)", re.I), "Case Study"),
    (re.compile(r"testimonial", re.I), "Customer Testimonial"),
    (re.compile(r"use-case", re.I), "Use Case"),
    (re.compile(r"whitepaper|white-paper", re.I), "Whitepaper"),
    (re.compile(r"ebook|e-book", re.I), "eBook"),
    (re.compile(r"research-report", re.I), "Research Report"),
    (re.compile(r"user-guide|getting-started", re.I), "User Guide"),
    (re.compile(r"guide|how-to", re.I), "Guide"),
    (re.compile(r"webinar", re.I), "Webinar Recording"),
    (re.compile(r"product-demo|demo", re.I), "Product Demo"),
    (re.compile(r"video|explainer", re.I), "Explainer Video"),
    (re.compile(r"podcast", re.I), "Podcast Episode"),
    (re.compile(r"sales-deck|pitch-deck", re.I), "Sales Deck"),
    (re.compile(r"one-pager", re.I), "One-Pager"),
    (re.compile(r"solution-brief|solution-overview", re.I), "Solution Brief"),
    (re.compile(r"battlecard", re.I), "Battlecard"),
    (re.compile(r"release-notes|changelog", re.I), "Release Notes"),
    (re.compile(r"data-sheet|datasheet", re.I), "Data Sheet"),
    (re.compile(r"infographic", re.I), "Infographic"),
    (re.compile(r"newsletter", re.I), "Newsletter"),
    (re.compile(r"press-release|announcement|/news/|/newsroom/|/press/", re.I), "Press Release"),
    (re.compile(r"documentation|/docs/|api-reference", re.I), "Technical Documentation"),
    (re.compile(r"/blogs?/|/posts?/|/articles?/|/insights/", re.I), BLOG_POST),
]

# schema.org @type -> asset type
SCHEMA_TYPES: dict[str, str] = {
    "blogposting": BLOG_POST,
    "socialmediaposting": BLOG_POST,
    "article": "Article",
    "newsarticle": "Press Release",
    "reportagenewsarticle": "Press Release",
    "techarticle": "Technical Documentation",
    "howto": "Guide",
    "videoobject": "Explainer Video",
    "podcastepisode": "Podcast Episode",
    "event": "Event Recording",
    "report": "Research Report",
}


@dataclass(frozen=True)
class HtmlInsights:
    """What a page's HTML says about itself."""

    title: Optional[str] = None
    published_date: Optional[str] = None
    asset_type: Optional[str] = None


def detect_asset_type_from_url(url: str) -> Optional[str]:
    """Detect the asset type from URL path patterns; None when unknown."""
    try:
        path = urlparse(url).path.lower()
    except ValueError:
        return None
    if not path.endswith("/"):
        path += "/"
    for pattern, asset_type in URL_TYPE_PATTERNS:
        if pattern.search(path):
            return asset_type
    return None


def _jsonld_types(doc) -> list[str]:
    types: list[str] = []
    for script in doc.xpath('//script[@type="application/ld+json"]'):
        try:
            data = json.loads(script.text_content() or "null")
        except json.JSONDecodeError:
            continue
        stack = [data]
        while stack:
            item = stack.pop(0)
            if isinstance(item, list):
                stack.extend(item)
            elif isinstance(item, dict):
                value = item.get("@type")
                if isinstance(value, str):
                    types.append(value)
                elif isinstance(value, list):
                    types.extend(v for v in value if isinstance(v, str))
                if "@graph" in item:
                    stack.append(item["@graph"])
    return types


def _type_from_structured_data(doc) -> Optional[str]:
    for schema_type in _jsonld_types(doc):
        asset_type = SCHEMA_TYPES.get(schema_type.lower())
        if asset_type:
            return asset_type

    og_type = doc.xpath('string(//meta[@property="og:type"]/@content)').strip().lower()
    if og_type == "article":
        return "Article"
    if og_type.startswith("video"):
        return "Explainer Video"
    return None


def _type_from_title(title: Optional[str]) -> Optional[str]:
    if not title:
        return None
    slugged = "/" + re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-") + "/"
    for pattern, asset_type in URL_TYPE_PATTERNS:
        if asset_type == BLOG_POST:
            continue
        if pattern.search(slugged):
            return asset_type
    return None


def inspect_html(url: str, html: str) -> HtmlInsights:
    """
    Read title, publish date and asset type from a page.

    Args:
        url: Page URL (used by trafilatura for metadata resolution)
        html: Raw HTML

    Returns:
        HtmlInsights; fields are None when the page does not say
    """
    if not html or not html.strip():
        return HtmlInsights()

    title: Optional[str] = None
    published: Optional[str] = None
    metadata = trafilatura.extract_metadata(html, default_url=url)
    if metadata is not None:
        title = (metadata.title or "").strip() or None
        published = to_iso_date(metadata.date)

    asset_type: Optional[str] = None
    try:
        doc = lxml_html.fromstring(html)
    except (ValueError, etree.ParserError) as e:
        logger.debug(f"Could not parse HTML for {url}: {e}")
    else:
        asset_type = _type_from_structured_data(doc)

    if asset_type is None:
        asset_type = _type_from_title(title)

    return HtmlInsights(title=title, published_date=published, asset_type=asset_type)


async def detect_asset_type_from_html(url: str, html: str) -> Optional[str]:
    """Async wrapper: HTML parsing runs in a worker thread."""
    insights = await asyncio.to_thread(inspect_html, url, html)
    return insights.asset_type
