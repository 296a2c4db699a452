"""Pydantic models for discovered, checked and enriched blog posts."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys for the web UI."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class DiscoveryMethod(str, Enum):
    """Which strategy produced a discovery result."""

    SITEMAP = "sitemap"
    RSS = "rss"
    FIRECRAWL_MAP = "firecrawl-map"
    FIRECRAWL_CRAWL = "firecrawl-crawl"
    JINA_FALLBACK = "jina-fallback"
    SINGLE_POST = "single-post"


FREE_METHODS = frozenset({DiscoveryMethod.SITEMAP, DiscoveryMethod.RSS, DiscoveryMethod.SINGLE_POST})


class DiscoveredUrl(CamelModel):
    """A candidate post URL with best-known title and publish date."""

    url: str = Field(..., description="Absolute, canonical URL")
    title: str = Field(..., description="Title from feed/sitemap metadata or derived from the slug")
    published_date: Optional[str] = Field(None, description="ISO date (YYYY-MM-DD)")


class DiscoveryResult(CamelModel):
    """Outcome of the discovery orchestrator."""

    urls: list[DiscoveredUrl] = Field(default_factory=list)
    discovery_method: DiscoveryMethod
    credits_used: int = Field(0, ge=0)
    fallback_required: bool = False

    @model_validator(mode="after")
    def check_credits(self) -> "DiscoveryResult":
        if self.discovery_method in FREE_METHODS and self.credits_used != 0:
            raise ValueError(f"{self.discovery_method.value} discovery is free; got credits")
        if self.discovery_method == DiscoveryMethod.FIRECRAWL_MAP and self.credits_used <= 0:
            raise ValueError("firecrawl-map discovery must record the credit it spent")
        if self.fallback_required and self.urls:
            raise ValueError("fallback_required results carry no URLs")
        return self

    @property
    def count(self) -> int:
        return len(self.urls)


class CheckedUrl(DiscoveredUrl):
    """A discovered URL cross-referenced against the account's assets."""

    is_duplicate: bool = False
    existing_asset_id: Optional[str] = None


class DuplicateStats(CamelModel):
    total: int = 0
    new: int = 0
    duplicate: int = 0


class DuplicateCheckResult(CamelModel):
    """Result of a duplicate check, in input order."""

    all: list[CheckedUrl] = Field(default_factory=list)
    stats: DuplicateStats = Field(default_factory=DuplicateStats)

    @property
    def new(self) -> list[CheckedUrl]:
        return [u for u in self.all if not u.is_duplicate]

    @property
    def duplicates(self) -> list[CheckedUrl]:
        return [u for u in self.all if u.is_duplicate]

    @classmethod
    def from_checked(cls, checked: list[CheckedUrl]) -> "DuplicateCheckResult":
        duplicate = sum(1 for u in checked if u.is_duplicate)
        return cls(
            all=checked,
            stats=DuplicateStats(total=len(checked), new=len(checked) - duplicate, duplicate=duplicate),
        )


class EnrichedPost(CheckedUrl):
    """A post ready for the preview list; immutable once built."""

    model_config = ConfigDict(frozen=True)

    detected_asset_type: Optional[str] = None
    language: Optional[str] = None

    @computed_field(alias="isUnknownType")
    @property
    def is_unknown_type(self) -> bool:
        return self.detected_asset_type is None
