"""Base classes shared by discovery strategies."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from typing import Iterator, Optional
from urllib.parse import urlparse

import httpx

from blogmap.config import BlogmapConfig
from blogmap.models import DiscoveryResult

logger = logging.getLogger(__name__)


class BaseDiscoverer(ABC):
    """A single discovery strategy.

    Strategies share one signature so the orchestrator can walk them in
    cost order: ``discover`` returns a non-empty result on success and None
    (or an empty result) when the strategy found nothing.
    """

    name: str = ""

    def __init__(self, config: Optional[BlogmapConfig] = None):
        self.config = config or BlogmapConfig()

    @abstractmethod
    async def discover(
        self,
        url: str,
        client: httpx.AsyncClient,
        max_urls: int,
    ) -> Optional[DiscoveryResult]:
        """Discover post URLs for a normalized blog URL.

        Args:
            url: Normalized blog or site URL
            client: Shared async HTTP client
            max_urls: Cap on returned URLs

        Returns:
            DiscoveryResult, or None if nothing was found
        """

    @property
    def headers(self) -> dict[str, str]:
        return {"User-Agent": self.config.user_agent}

    async def fetch_candidate(
        self,
        client: httpx.AsyncClient,
        url: str,
        accept: Optional[str] = None,
    ) -> Optional[bytes]:
        """GET a well-known candidate location.

        Returns the body on HTTP 200; None for any other status, timeout,
        network error or unusable URL.
        """
        headers = self.headers
        if accept:
            headers = {**headers, "Accept": accept}
        try:
            response = await client.get(
                url,
                headers=headers,
                timeout=self.config.discovery_timeout,
                follow_redirects=True,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug(f"[{self.name}] {url}: {type(e).__name__}: {e}")
            return None
        if response.status_code != 200:
            logger.debug(f"[{self.name}] {url}: HTTP {response.status_code}")
            return None
        return response.content


def local_name(tag) -> str:
    """Strip an XML namespace: ``{http://...}loc`` -> ``loc``."""
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1].split(":")[-1].lower()


def parse_xml(content: bytes) -> ET.Element:
    """Parse an XML document; raises ET.ParseError on malformed input."""
    return ET.fromstring(content.strip())


def iter_local(element: ET.Element, name: str) -> Iterator[ET.Element]:
    """Iterate descendants with the given local name, namespace-agnostic."""
    for child in element.iter():
        if child is not element and local_name(child.tag) == name:
            yield child


def child_text(element: ET.Element, *names: str) -> str:
    """Text of the first direct child whose local name is in ``names``."""
    for name in names:
        for child in element:
            if local_name(child.tag) == name and child.text and child.text.strip():
                return child.text.strip()
    return ""


def first_path_segment(url: str) -> Optional[str]:
    segments = [s for s in urlparse(url).path.split("/") if s]
    return segments[0] if segments else None


def dedupe(paths: list[str]) -> list[str]:
    """Remove duplicates while preserving order."""
    return list(dict.fromkeys(paths))
