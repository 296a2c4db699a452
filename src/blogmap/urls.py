"""URL normalization, classification and date helpers."""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional
from urllib.parse import urlparse, urlunparse

from blogmap.errors import InvalidUrlError

LISTING_SEGMENTS = frozenset(
    {
        "category",
        "categories",
        "tag",
        "tags",
        "author",
        "authors",
        "archive",
        "archives",
        "search",
    }
)

_PAGE_SEGMENT = re.compile(r"^page[-_]?\d+$", re.IGNORECASE)

_URL_DATE_PATTERNS = [
    re.compile(r"/(\d{4})/(\d{1,2})/(\d{1,2})/"),
    re.compile(r"/(\d{4})-(\d{1,2})-(\d{1,2})/"),
    re.compile(r"/(\d{4})(\d{2})(\d{2})/"),
]


def normalize_blog_url(raw: str) -> str:
    """Turn user input into a canonical absolute http(s) URL.

    Input without a scheme is retried with ``https://`` prepended.

    Args:
        raw: Arbitrary user-supplied string

    Returns:
        Absolute URL with a lower-cased host and no fragment

    Raises:
        InvalidUrlError: If no host can be recovered or the scheme is not http(s)
    """
    if raw is None or not str(raw).strip():
        raise InvalidUrlError(str(raw or ""), "The URL is empty.")

    candidate = str(raw).strip()
    parsed = urlparse(candidate)
    if not parsed.scheme or not parsed.netloc:
        if parsed.scheme in ("http", "https"):
            raise InvalidUrlError(raw, "The URL has no host.")
        parsed = urlparse(f"https://{candidate}")

    if parsed.scheme not in ("http", "https"):
        raise InvalidUrlError(raw, f"Unsupported scheme {parsed.scheme!r}.")

    host = parsed.hostname or ""
    if not host or " " in parsed.netloc or ("." not in host and host != "localhost"):
        raise InvalidUrlError(raw, "The URL has no valid host.")

    netloc = parsed.netloc.lower()
    return urlunparse((parsed.scheme, netloc, parsed.path, parsed.params, parsed.query, ""))


def path_segments(url: str) -> list[str]:
    return [s for s in urlparse(url).path.split("/") if s]


def is_listing_segment(segment: str) -> bool:
    """True for path segments that name an index page rather than a post."""
    segment = segment.lower()
    return segment.isdigit() or segment in LISTING_SEGMENTS or bool(_PAGE_SEGMENT.match(segment))


def is_post_slug(segment: str) -> bool:
    return "-" in segment and len(segment) > 15 and segment.count("-") >= 2


def is_single_post_url(url: str) -> bool:
    """Heuristic: does this URL point directly at one article?

    The last segment must not be a listing segment, and some segment must
    look like a post slug (hyphenated, longer than 15 chars, >= 2 hyphens).
    """
    segments = path_segments(url)
    if not segments or is_listing_segment(segments[-1]):
        return False
    return any(is_post_slug(s) for s in segments)


def derive_title_from_slug(url: str) -> str:
    """Derive a readable title from the last path segment."""
    segments = path_segments(url)
    slug = segments[-1] if segments else ""
    slug = re.sub(r"\.(html?|php|aspx?)$", "", slug, flags=re.IGNORECASE)
    words = [w for w in re.split(r"[-_]+", slug) if w]
    title = " ".join(w[:1].upper() + w[1:] for w in words)
    return title or "Blog Post"


def extract_date_from_url(url: str) -> Optional[str]:
    """Extract a publish date embedded in the URL path (e.g. /2024/01/15/slug)."""
    for pattern in _URL_DATE_PATTERNS:
        match = pattern.search(url)
        if not match:
            continue
        year, month, day = (int(g) for g in match.groups())
        try:
            return date(year, month, day).isoformat()
        except ValueError:
            continue
    return None


def to_iso_date(value: Optional[str]) -> Optional[str]:
    """Convert an ISO-8601 or RFC-822 date string to ``YYYY-MM-DD``.

    Aware datetimes are converted to UTC first.
    """
    if not value:
        return None
    text = value.strip()
    if not text:
        return None

    parsed: Optional[datetime] = None
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        try:
            parsed = parsedate_to_datetime(text)
        except (TypeError, ValueError, IndexError):
            parsed = None

    if parsed is None:
        # e.g. "2024-03-01 garbage" from sloppy feeds
        match = re.match(r"^(\d{4})-(\d{2})-(\d{2})", text)
        if match:
            try:
                return date(*(int(g) for g in match.groups())).isoformat()
            except ValueError:
                return None
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date().isoformat()


def canonical_url(url: str) -> str:
    """Comparison key: lower-cased scheme/host, no trailing slash, no fragment."""
    if not url:
        return ""
    parsed = urlparse(url.strip())
    path = parsed.path.rstrip("/") if parsed.path != "/" else ""
    key = f"{parsed.scheme.lower()}://{parsed.netloc.lower()}{path}"
    if parsed.query:
        key += f"?{parsed.query}"
    return key


def site_root(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def _bare_host(url: str) -> str:
    host = (urlparse(url).hostname or "").lower()
    return host[4:] if host.startswith("www.") else host


def same_site(a: str, b: str) -> bool:
    """Host equality, ignoring a leading ``www.``."""
    return _bare_host(a) == _bare_host(b) != ""


def is_pdf_url(url: str) -> bool:
    return urlparse(url).path.lower().endswith(".pdf")
