"""
Duplicate check against the account's existing assets.

The pipeline only depends on the DuplicateChecker protocol. SqlAssetStore
is the bundled implementation over a SQLModel ``assets`` table; URLs are
matched on their canonical form so ``https://Example.com/blog/x/`` and
``https://example.com/blog/x`` are the same asset.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional, Protocol, runtime_checkable

from sqlalchemy import Index
from sqlalchemy.engine import Engine
from sqlmodel import Field, Session, SQLModel, create_engine, select

from blogmap.models import CheckedUrl, DiscoveredUrl, DuplicateCheckResult
from blogmap.urls import canonical_url

logger = logging.getLogger(__name__)


@runtime_checkable
class DuplicateChecker(Protocol):
    async def check_for_duplicates(
        self, urls: list[DiscoveredUrl], account_id: str
    ) -> DuplicateCheckResult: ...


class Asset(SQLModel, table=True):
    """An imported asset, keyed by account and canonical source URL."""

    __tablename__ = "assets"
    __table_args__ = (Index("idx_assets_account_url", "account_id", "canonical_source_url"),)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True, max_length=36)
    account_id: str = Field(max_length=64, index=True)
    title: str = Field(default="", max_length=500)
    source_url: Optional[str] = Field(default=None, max_length=2048)
    canonical_source_url: Optional[str] = Field(default=None, max_length=2048)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def create_asset_engine(database_url: str) -> Engine:
    """Create an engine; SQLite directories are created on demand."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        db_path = database_url.split(":///", 1)[-1]
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(database_url, echo=False, connect_args=connect_args)


def init_db(engine: Engine) -> None:
    """Create the assets table if it does not exist."""
    SQLModel.metadata.create_all(engine)
    logger.info("Asset database initialized")


def add_asset(
    engine: Engine,
    account_id: str,
    source_url: str,
    title: str = "",
) -> Asset:
    """Record an imported asset."""
    asset = Asset(
        account_id=account_id,
        title=title,
        source_url=source_url,
        canonical_source_url=canonical_url(source_url),
    )
    with Session(engine) as session:
        session.add(asset)
        session.commit()
        session.refresh(asset)
    return asset


class SqlAssetStore:
    """DuplicateChecker backed by the assets table."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def find_existing(self, account_id: str, urls: Iterable[str]) -> dict[str, str]:
        """Map canonical URL -> asset id for URLs the account already has."""
        keys = {canonical_url(u) for u in urls if u}
        if not keys:
            return {}
        with Session(self.engine) as session:
            statement = select(Asset).where(
                Asset.account_id == account_id,
                Asset.canonical_source_url.in_(keys),  # type: ignore[union-attr]
            )
            return {a.canonical_source_url: a.id for a in session.exec(statement)}

    async def check_for_duplicates(
        self, urls: list[DiscoveredUrl], account_id: str
    ) -> DuplicateCheckResult:
        """
        Mark each URL as new or duplicate for the account.

        Args:
            urls: Discovered URLs, in discovery order
            account_id: Tenant whose assets are searched

        Returns:
            DuplicateCheckResult preserving input order
        """
        if not urls:
            return DuplicateCheckResult()

        logger.info(f"Checking {len(urls)} URLs for duplicates")
        existing = await asyncio.to_thread(self.find_existing, account_id, [u.url for u in urls])

        checked: list[CheckedUrl] = []
        for item in urls:
            asset_id: Optional[str] = existing.get(canonical_url(item.url))
            checked.append(
                CheckedUrl(
                    **item.model_dump(),
                    is_duplicate=asset_id is not None,
                    existing_asset_id=asset_id,
                )
            )

        result = DuplicateCheckResult.from_checked(checked)
        logger.info(f"Duplicate check: {result.stats.new} new, {result.stats.duplicate} duplicates")
        return result
