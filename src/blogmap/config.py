"""
blogmap configuration management.

Settings are merged from several sources, highest priority first:

    1. Explicit overrides (CLI flags, test fixtures)
    2. Environment variables (``BLOGMAP_<FIELD>``, plus the provider keys
       ``FIRECRAWL_API_KEY``, ``JINA_API_KEY`` and ``DATABASE_URL``)
    3. Project file ``blogmap.toml``, ``[blogmap]`` table
    4. Field defaults

Example ``blogmap.toml``::

    [blogmap]
    max_urls = 200
    enrich_batch_size = 3
    default_asset_type = "Blog Post"
"""

from __future__ import annotations

import logging
import os
import threading
import tomllib
from pathlib import Path
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "blogmap.toml"
ENV_PREFIX = "BLOGMAP_"

# Provider keys keep their conventional names
_PROVIDER_ENV_VARS = {
    "firecrawl_api_key": "FIRECRAWL_API_KEY",
    "jina_api_key": "JINA_API_KEY",
    "database_url": "DATABASE_URL",
}


class BlogmapConfig(BaseModel):
    """Discovery, enrichment and provider settings."""

    DEFAULT_USER_AGENT: ClassVar[str] = "Mozilla/5.0 (compatible; ContentDiscoveryBot/1.0)"
    DEFAULT_DATABASE_URL: ClassVar[str] = "sqlite:///.blogmap/assets.db"
    DEFAULT_ASSET_TYPE: ClassVar[str] = "Blog Post"

    # Discovery
    max_urls: int = Field(default=100, ge=1, le=5000, description="Maximum URLs returned by discovery")
    discovery_timeout: float = Field(
        default=10.0, gt=0, description="Per-candidate timeout for sitemap and RSS fetches (seconds)"
    )
    max_child_sitemaps: int = Field(
        default=15, ge=0, le=100, description="Child sitemaps followed from a sitemap index"
    )
    discovery_strategies: list[str] = Field(
        default_factory=lambda: ["sitemap", "rss", "firecrawl-map"],
        min_length=1,
        description="Registered discovery strategies, tried in this order",
    )
    user_agent: str = Field(default=DEFAULT_USER_AGENT)

    # Enrichment
    enrich_batch_size: int = Field(
        default=3, ge=1, le=20, description="Concurrent HTML fetches per enrichment batch"
    )
    html_timeout: float = Field(default=5.0, gt=0, description="Per-page HTML fetch timeout (seconds)")
    breaker_threshold: int = Field(
        default=3, ge=1, description="Failed HTML fetches (with zero successes) before giving up"
    )
    default_asset_type: Optional[str] = Field(
        default=DEFAULT_ASSET_TYPE,
        description="Type assigned to same-site HTML pages nothing else classified; empty disables",
    )

    # Legacy extraction
    extraction_timeout: float = Field(default=30.0, gt=0)

    # Providers
    firecrawl_api_key: Optional[str] = Field(default=None, repr=False)
    firecrawl_credit_limit: int = Field(default=500, ge=0)
    firecrawl_credit_warning: int = Field(default=400, ge=0)
    firecrawl_max_retries: int = Field(default=2, ge=0, description="Retries for retryable map failures")
    firecrawl_retry_delay: float = Field(
        default=1.0, ge=0, description="Base retry delay, doubled after each failed attempt (seconds)"
    )
    firecrawl_concurrency: int = Field(default=2, ge=1, description="Concurrent Firecrawl requests")
    firecrawl_min_interval: float = Field(
        default=1.0, ge=0, description="Minimum spacing between Firecrawl request starts (seconds)"
    )
    firecrawl_breaker_threshold: int = Field(
        default=3, ge=1, description="Consecutive Firecrawl failures before the circuit opens"
    )
    firecrawl_breaker_reset: float = Field(
        default=60.0, ge=0, description="Seconds before an open Firecrawl circuit closes again"
    )
    jina_api_key: Optional[str] = Field(default=None, repr=False)

    # Storage
    database_url: str = Field(default=DEFAULT_DATABASE_URL)

    @field_validator("default_asset_type", "firecrawl_api_key", "jina_api_key", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("discovery_strategies", mode="before")
    @classmethod
    def split_strategy_names(cls, v: Any) -> Any:
        # BLOGMAP_DISCOVERY_STRATEGIES="sitemap,rss"
        if isinstance(v, str):
            return [name.strip() for name in v.split(",") if name.strip()]
        return v

    @property
    def firecrawl_configured(self) -> bool:
        return bool(self.firecrawl_api_key)


def get_config_file_path(project_root: Optional[Path] = None) -> Path:
    """Return the path of the project config file (it may not exist)."""
    root = project_root or Path(os.environ.get("BLOGMAP_PROJECT_ROOT", Path.cwd()))
    return Path(root) / CONFIG_FILE_NAME


def _load_toml_section(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, "rb") as f:
        data = tomllib.load(f)
    section = data.get("blogmap", {})
    if not isinstance(section, dict):
        raise ValueError(f"[blogmap] in {path} must be a table")
    return section


def _load_env() -> dict[str, Any]:
    values: dict[str, Any] = {}
    for field_name in BlogmapConfig.model_fields:
        env_value = os.environ.get(f"{ENV_PREFIX}{field_name.upper()}")
        if env_value is None and field_name in _PROVIDER_ENV_VARS:
            env_value = os.environ.get(_PROVIDER_ENV_VARS[field_name])
        if env_value is not None:
            values[field_name] = env_value
    return values


def load_config(
    project_root: Optional[Path] = None,
    **overrides: Any,
) -> BlogmapConfig:
    """
    Load configuration from blogmap.toml, the environment and overrides.

    Args:
        project_root: Directory containing blogmap.toml (defaults to CWD)
        **overrides: Field values that win over every other source;
            ``None`` values are ignored

    Returns:
        Validated BlogmapConfig

    Raises:
        pydantic.ValidationError: If a merged value is invalid
    """
    config_path = get_config_file_path(project_root)
    merged: dict[str, Any] = {}
    merged.update(_load_toml_section(config_path))
    merged.update(_load_env())
    merged.update({k: v for k, v in overrides.items() if v is not None})
    logger.debug(f"Loaded config from {config_path} ({len(merged)} explicit values)")
    return BlogmapConfig.model_validate(merged)


_config: Optional[BlogmapConfig] = None
_config_lock = threading.Lock()


def get_config() -> BlogmapConfig:
    """Return the process-wide config, loading it on first use."""
    global _config
    with _config_lock:
        if _config is None:
            _config = load_config()
        return _config


def reset_config() -> None:
    """Forget the cached config (tests, or after editing blogmap.toml)."""
    global _config
    with _config_lock:
        _config = None
