"""Firecrawl map-based post discovery (paid, 1 credit per map call).

Firecrawl's free tier is small, so usage is tracked per process with an
estimated credit counter. The counter is an estimate: it only sees calls
made by this process.

Every map call goes through three process-wide safeguards: a circuit
breaker that stops calling after repeated failures, a rate limiter that
queues SDK calls (2 concurrent, 1 s apart by default), and a retry with
exponential backoff for retryable errors.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from contextlib import contextmanager
from typing import Any, Awaitable, Callable, Iterator, Optional, TypeVar
from urllib.parse import urlparse

import httpx
from firecrawl import FirecrawlApp

from blogmap.config import BlogmapConfig
from blogmap.discovery.base import BaseDiscoverer
from blogmap.errors import FirecrawlError
from blogmap.models import DiscoveredUrl, DiscoveryMethod, DiscoveryResult
from blogmap.urls import (
    canonical_url,
    derive_title_from_slug,
    extract_date_from_url,
    is_listing_segment,
    path_segments,
)

logger = logging.getLogger(__name__)

MAP_CREDIT_COST = 1

T = TypeVar("T")


class CreditTracker:
    """Estimated Firecrawl credit usage for this process."""

    def __init__(self, limit: int = 500, warning_threshold: int = 400):
        self.limit = limit
        self.warning_threshold = warning_threshold
        self._used = 0
        self._lock = threading.Lock()

    @property
    def used(self) -> int:
        return self._used

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self._used)

    @property
    def exhausted(self) -> bool:
        return self._used >= self.limit

    def configure(self, limit: int, warning_threshold: int) -> None:
        with self._lock:
            self.limit = limit
            self.warning_threshold = warning_threshold

    def track(self, credits: int = 1) -> None:
        with self._lock:
            self._used += credits
            used = self._used
        if used >= self.limit:
            logger.error(f"[firecrawl] Credit limit reached ({used}/{self.limit})")
        elif used >= self.warning_threshold:
            logger.warning(f"[firecrawl] Approaching credit limit ({used}/{self.limit})")

    def reset(self) -> None:
        with self._lock:
            self._used = 0


credit_tracker = CreditTracker()


class FirecrawlCircuitBreaker:
    """Stops calling Firecrawl after repeated failures.

    Opens once ``threshold`` consecutive map calls have failed and stays
    open for ``reset_seconds``; the first check after that closes it again
    and clears the failure count. Any success closes it immediately.
    """

    def __init__(
        self,
        threshold: int = 3,
        reset_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.threshold = threshold
        self.reset_seconds = reset_seconds
        self._clock = clock
        self._failures = 0
        self._opened_at: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def failures(self) -> int:
        return self._failures

    def configure(self, threshold: int, reset_seconds: float) -> None:
        with self._lock:
            self.threshold = threshold
            self.reset_seconds = reset_seconds

    def is_open(self) -> bool:
        with self._lock:
            if self._failures < self.threshold:
                return False
            if self._opened_at is None:
                self._opened_at = self._clock()
            elapsed = self._clock() - self._opened_at
            if elapsed >= self.reset_seconds:
                self._failures = 0
                self._opened_at = None
                logger.info(f"[firecrawl] Circuit breaker reset after {elapsed:.0f}s")
                return False
            return True

    def record_failure(self) -> None:
        with self._lock:
            self._failures += 1
            if self._failures >= self.threshold and self._opened_at is None:
                self._opened_at = self._clock()
                logger.warning(f"[firecrawl] Circuit breaker opened after {self._failures} failures")

    def record_success(self) -> None:
        with self._lock:
            if self._failures:
                logger.info("[firecrawl] Circuit breaker closed after a successful request")
            self._failures = 0
            self._opened_at = None

    def reset(self) -> None:
        self.record_success()


class FirecrawlRateLimiter:
    """Process-wide request queue for the Firecrawl SDK.

    At most ``concurrency`` calls run at once and consecutive calls start at
    least ``min_interval`` seconds apart. SDK calls run in worker threads,
    so this gates threads rather than coroutines.
    """

    def __init__(
        self,
        concurrency: int = 2,
        min_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.concurrency = concurrency
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._active = 0
        self._last_start: Optional[float] = None
        self._cond = threading.Condition()

    @property
    def active(self) -> int:
        return self._active

    def configure(self, concurrency: int, min_interval: float) -> None:
        with self._cond:
            self.concurrency = concurrency
            self.min_interval = min_interval
            self._cond.notify_all()

    @contextmanager
    def slot(self) -> Iterator[None]:
        with self._cond:
            while self._active >= self.concurrency:
                self._cond.wait()
            if self._last_start is not None:
                wait = self.min_interval - (self._clock() - self._last_start)
                if wait > 0:
                    # Holding the lock keeps later callers queued behind this one
                    self._sleep(wait)
            self._last_start = self._clock()
            self._active += 1
        try:
            yield
        finally:
            with self._cond:
                self._active -= 1
                self._cond.notify()

    def reset(self) -> None:
        with self._cond:
            self._last_start = None


circuit_breaker = FirecrawlCircuitBreaker()
rate_limiter = FirecrawlRateLimiter()


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_retries: int = 2,
    delay: float = 1.0,
) -> T:
    """
    Run ``operation``, retrying retryable FirecrawlErrors with backoff.

    Attempt ``n`` (0-indexed) that fails waits ``delay * 2**n`` seconds
    before the next one. Non-retryable errors are raised immediately.

    Raises:
        FirecrawlError: The last error once retries are exhausted
    """
    for attempt in range(max_retries + 1):
        try:
            return await operation()
        except FirecrawlError as e:
            if not e.retryable or attempt >= max_retries:
                raise
            backoff = delay * (2**attempt)
            logger.warning(
                f"[firecrawl] Attempt {attempt + 1} failed ({e.code}), retrying in {backoff:.1f}s"
            )
            await asyncio.sleep(backoff)
    raise RuntimeError("Unexpected state in with_retry")


def is_firecrawl_configured(config: BlogmapConfig) -> bool:
    return config.firecrawl_configured


def get_credit_info(config: BlogmapConfig) -> dict[str, Any]:
    """Credit summary for API responses."""
    credit_tracker.configure(config.firecrawl_credit_limit, config.firecrawl_credit_warning)
    return {
        "creditsUsed": credit_tracker.used,
        "firecrawlConfigured": config.firecrawl_configured,
        "estimatedCreditsRemaining": credit_tracker.remaining,
    }


def _link_url(link: Any) -> Optional[str]:
    # SDK versions return plain strings, dicts or objects with ``.url``
    if isinstance(link, str):
        return link
    if isinstance(link, dict):
        return link.get("url")
    return getattr(link, "url", None)


def _map_sync(api_key: str, url: str, limit: int) -> list[str]:
    app = FirecrawlApp(api_key=api_key)
    if hasattr(app, "map"):
        result = app.map(url, limit=limit)
    else:
        result = app.map_url(url, limit=limit)

    if isinstance(result, dict):
        links = result.get("links") or []
    elif isinstance(result, list):
        links = result
    else:
        links = getattr(result, "links", None) or []

    urls = []
    for link in links:
        link_url = _link_url(link)
        if link_url:
            urls.append(link_url)
    return urls


def _queued_map_sync(api_key: str, url: str, limit: int) -> list[str]:
    with rate_limiter.slot():
        return _map_sync(api_key, url, limit)


async def map_with_firecrawl(url: str, *, limit: int, config: BlogmapConfig) -> list[str]:
    """
    Map a site's URLs with Firecrawl (1 credit).

    Args:
        url: Site or section URL
        limit: Maximum links requested from the API
        config: Provides the API key, credit limits and safeguard settings

    Returns:
        Links reported by Firecrawl (possibly empty)

    Raises:
        FirecrawlError: ``ERR::CONFIG::MISSING_KEY``, ``ERR::CIRCUIT_BREAKER::OPEN``,
            ``ERR::CREDITS::LIMIT_REACHED`` or, after retries, ``ERR::MAP::FAILED``
    """
    if not config.firecrawl_api_key:
        raise FirecrawlError(
            "FIRECRAWL_API_KEY is not configured",
            code="ERR::CONFIG::MISSING_KEY",
            status_code=401,
            retryable=False,
        )

    circuit_breaker.configure(config.firecrawl_breaker_threshold, config.firecrawl_breaker_reset)
    if circuit_breaker.is_open():
        raise FirecrawlError(
            "Firecrawl circuit breaker is open due to repeated failures",
            code="ERR::CIRCUIT_BREAKER::OPEN",
            status_code=503,
        )

    credit_tracker.configure(config.firecrawl_credit_limit, config.firecrawl_credit_warning)
    if credit_tracker.exhausted:
        raise FirecrawlError(
            f"Credit limit reached ({credit_tracker.limit} credits)",
            code="ERR::CREDITS::LIMIT_REACHED",
            status_code=402,
            retryable=False,
        )

    rate_limiter.configure(config.firecrawl_concurrency, config.firecrawl_min_interval)

    async def attempt() -> list[str]:
        try:
            return await asyncio.to_thread(_queued_map_sync, config.firecrawl_api_key, url, limit)
        except Exception as e:
            raise FirecrawlError(
                f"Firecrawl map failed: {type(e).__name__}: {e}",
                code="ERR::MAP::FAILED",
                original_error=e,
            ) from e

    logger.info(f"[firecrawl] Mapping {url} (limit={limit})")
    try:
        links = await with_retry(
            attempt,
            max_retries=config.firecrawl_max_retries,
            delay=config.firecrawl_retry_delay,
        )
    except FirecrawlError:
        circuit_breaker.record_failure()
        raise

    circuit_breaker.record_success()
    if links:
        credit_tracker.track(MAP_CREDIT_COST)
    return links


def looks_like_content(url: str) -> bool:
    """True for URLs that plausibly point at a single piece of content."""
    if not url.startswith(("http://", "https://")):
        return False
    segments = path_segments(url)
    if not segments:
        return False
    last = segments[-1]
    if is_listing_segment(last):
        return False
    if "-" in last and len(last) > 10:
        return True
    return len(segments) >= 2 and len(last) > 5


class FirecrawlMapDiscoverer(BaseDiscoverer):
    """Discovers posts through Firecrawl's map endpoint.

    Unavailable (returns None) when no API key is configured. Requests
    ``2 * max_urls`` links so that filtering still leaves enough posts.
    """

    name = "firecrawl-map"

    async def discover(
        self,
        url: str,
        client: httpx.AsyncClient,
        max_urls: int,
    ) -> Optional[DiscoveryResult]:
        if not is_firecrawl_configured(self.config):
            logger.debug("[firecrawl] No API key configured, skipping")
            return None

        links = await map_with_firecrawl(url, limit=max_urls * 2, config=self.config)

        found: list[DiscoveredUrl] = []
        seen: set[str] = set()
        for link in links:
            if len(found) >= max_urls:
                break
            if not looks_like_content(link):
                continue
            key = canonical_url(link)
            if key in seen or key == canonical_url(url):
                continue
            seen.add(key)
            found.append(
                DiscoveredUrl(
                    url=link,
                    title=derive_title_from_slug(link),
                    published_date=extract_date_from_url(link),
                )
            )

        if not found:
            logger.info(f"[firecrawl] Map of {urlparse(url).netloc} returned no content URLs")
            return None

        logger.info(f"[firecrawl] Found {len(found)} posts")
        return DiscoveryResult(
            urls=found,
            discovery_method=DiscoveryMethod.FIRECRAWL_MAP,
            credits_used=MAP_CREDIT_COST,
        )
