"""Legacy listing-page extraction.

Last-resort fallback for sites with neither a usable sitemap, a feed nor
a Firecrawl key: fetch the blog's listing page and pull post links out of
its markup. When a Jina API key is configured the page is fetched through
the Jina Reader proxy, which renders JavaScript-heavy listings.
"""

from __future__ import annotations

import logging
import re
from typing import Optional
from urllib.parse import parse_qsl, urljoin, urlparse

import httpx
from lxml import etree
from lxml import html as lxml_html

from blogmap.config import BlogmapConfig, get_config
from blogmap.errors import ExtractionError
from blogmap.models import DiscoveredUrl
from blogmap.urls import extract_date_from_url, normalize_blog_url, path_segments, same_site

logger = logging.getLogger(__name__)

JINA_READER_URL = "https://r.jina.ai"

MIN_TITLE_LENGTH = 10


def _has_class(name: str) -> str:
    return f'contains(concat(" ", normalize-space(@class), " "), " {name} ")'


# Blog-card link locations, most specific first
LINK_XPATHS = [
    "//article//a[@href]",
    f"//*[{_has_class('blog-post')}]//a[@href]",
    f"//*[{_has_class('post')}]//a[@href]",
    '//a[contains(@href, "/blog/")]',
    '//a[contains(@href, "/post/")]',
    '//a[contains(@href, "/article/")]',
    f"//*[{_has_class('entry-title')}]//a[@href]",
    "//h2//a[@href]",
    "//h3//a[@href]",
    f"//*[{_has_class('card')}]//a[@href]",
    '//*[contains(@class, "blog")]//a[@href]',
    '//*[contains(@class, "post")]//a[@href]',
]

CARD_ANCESTOR_XPATH = (
    f"ancestor::*[self::article or {_has_class('post')} or {_has_class('blog-post')} "
    f"or {_has_class('card')}][1]"
)
CARD_TITLE_XPATH = (
    f".//*[self::h1 or self::h2 or self::h3 or {_has_class('title')} or {_has_class('entry-title')}]"
)

MEDIA_EXTENSIONS = (
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".ico", ".bmp", ".tiff", ".pdf",
    ".mp4", ".mp3", ".avi", ".mov", ".wmv", ".zip", ".rar", ".exe", ".dmg",
)

LISTING_QUERY_PARAMS = frozenset(
    {"category", "tag", "author", "page", "paged", "search", "s", "filter", "sort", "orderby", "order"}
)

UTILITY_PATH_PARTS = (
    "/category/", "/tag/", "/tags/", "/author/", "/authors/", "/page/", "/pages/",
    "/archive/", "/archives/", "/search", "/sitemap", "/feed", "/rss", "/atom",
    "/contact", "/about", "/privacy", "/terms", "/legal", "/subscribe", "/newsletter",
    "/login", "/register", "/signup", "/sign-in", "/wp-admin", "/wp-content",
    "/wp-includes", "/.well-known", "/solutions/", "/products/", "/product/",
    "/services/", "/service/", "/industries/", "/industry/", "/company/", "/team/",
    "/careers/", "/career/", "/jobs/", "/job/", "/pricing/", "/prices/", "/demo/",
    "/demos/", "/download/", "/downloads/", "/resources/", "/resource/", "/library",
    "/whitepaper/", "/whitepapers/", "/webinar/", "/webinars/", "/video/", "/videos/",
    "/news/", "/publication/", "/publications/", "/customer-story/",
    "/customer-stories/", "/case-study/", "/case-studies/", "/brochure/", "/brochures/",
)

_DATE_ARCHIVE = re.compile(r"^/\d{4}/(\d{2})?/?$")

_CDN_HOST_PARTS = ("cdn.", "static.", "assets.")


def should_exclude_link(url: str, blog_url: str) -> bool:
    """True for links that are clearly not individual posts."""
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        return True
    if parsed.fragment or "#" in url:
        return True

    blog = urlparse(blog_url)
    if url.rstrip("/") in (blog_url.rstrip("/"), f"{blog.scheme}://{blog.netloc}"):
        return True
    if not same_site(url, blog_url):
        return True

    host = (parsed.hostname or "").lower()
    if any(part in host for part in _CDN_HOST_PARTS):
        return True

    path = parsed.path.lower()
    if path.endswith(MEDIA_EXTENSIONS):
        return True
    if any(key.lower() in LISTING_QUERY_PARAMS for key, _ in parse_qsl(parsed.query, keep_blank_values=True)):
        return True
    if any(part in path for part in UTILITY_PATH_PARTS):
        return True
    if _DATE_ARCHIVE.match(path):
        return True
    if path.endswith(("/robots.txt", "/sitemap.xml")):
        return True

    segments = path_segments(url)
    return not segments or (len(segments) == 1 and len(segments[0]) < 5)


def _link_title(link) -> str:
    title = " ".join(link.text_content().split())
    if len(title) >= MIN_TITLE_LENGTH:
        return title

    cards = link.xpath(CARD_ANCESTOR_XPATH)
    if cards:
        headings = cards[0].xpath(CARD_TITLE_XPATH)
        if headings:
            heading = " ".join(headings[0].text_content().split())
            if heading:
                return heading
    return title


def parse_listing_page(html: str, blog_url: str, max_posts: int) -> list[DiscoveredUrl]:
    """Extract post links from listing-page HTML, in document order per selector."""
    try:
        doc = lxml_html.fromstring(html)
    except (ValueError, etree.ParserError) as e:
        raise ExtractionError(f"Failed to extract blog posts: unparseable HTML ({e})", e) from e

    posts: list[DiscoveredUrl] = []
    seen: set[str] = set()
    for xpath in LINK_XPATHS:
        for link in doc.xpath(xpath):
            if len(posts) >= max_posts:
                return posts
            href = (link.get("href") or "").strip()
            if not href:
                continue
            absolute = urljoin(blog_url, href)
            if absolute in seen or should_exclude_link(absolute, blog_url):
                continue
            title = _link_title(link)
            if len(title) < MIN_TITLE_LENGTH:
                continue
            seen.add(absolute)
            posts.append(
                DiscoveredUrl(url=absolute, title=title, published_date=extract_date_from_url(absolute))
            )
    return posts


async def _fetch_listing(client: httpx.AsyncClient, url: str, config: BlogmapConfig) -> str:
    if config.jina_api_key:
        target = f"{JINA_READER_URL}/{url}"
        headers = {
            "Authorization": f"Bearer {config.jina_api_key}",
            "X-Return-Format": "html",
        }
    else:
        target = url
        headers = {"User-Agent": config.user_agent}

    try:
        response = await client.get(
            target,
            headers=headers,
            timeout=config.extraction_timeout,
            follow_redirects=True,
        )
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise ExtractionError(f"Failed to fetch HTML: {type(e).__name__}: {e}", e) from e
    if response.status_code != 200:
        raise ExtractionError(f"Failed to fetch HTML: HTTP {response.status_code}")
    return response.text


async def extract_blog_post_urls(
    url: str,
    max_posts: int,
    *,
    client: httpx.AsyncClient,
    config: Optional[BlogmapConfig] = None,
) -> list[DiscoveredUrl]:
    """
    Pull post links from a blog's listing page.

    Args:
        url: Blog listing URL
        max_posts: Cap on returned posts
        client: Shared async HTTP client
        config: Settings (defaults to the process config)

    Returns:
        Posts found on the page (possibly empty)

    Raises:
        ExtractionError: If the page cannot be fetched or parsed
    """
    config = config or get_config()
    blog_url = normalize_blog_url(url)
    html = await _fetch_listing(client, blog_url, config)
    posts = parse_listing_page(html, blog_url, max_posts)
    logger.info(f"Extracted {len(posts)} posts from listing page {blog_url}")
    return posts
