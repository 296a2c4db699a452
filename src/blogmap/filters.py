"""Post-enrichment filters, ranking and date statistics."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from typing import Iterable, Optional, Sequence

from blogmap.models import EnrichedPost

logger = logging.getLogger(__name__)

END_OF_DAY = time(23, 59, 59, 999000)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_date_bound(value: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse a ``YYYY-MM-DD`` or ISO datetime range bound.

    An end bound is always moved to 23:59:59.999 of its day so posts
    published on the end date are kept.

    Raises:
        ValueError: If the value is not a valid date
    """
    if value is None or not str(value).strip():
        return None
    text = str(value).strip()
    if len(text) == 10:
        parsed = datetime.combine(date.fromisoformat(text), time.min)
    else:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    parsed = _as_utc(parsed)
    if end_of_day:
        parsed = parsed.replace(hour=23, minute=59, second=59, microsecond=END_OF_DAY.microsecond)
    return parsed


def _post_datetime(post: EnrichedPost) -> Optional[datetime]:
    if not post.published_date:
        return None
    try:
        return parse_date_bound(post.published_date)
    except ValueError:
        return None


def filter_by_date_range(
    posts: Iterable[EnrichedPost],
    start: Optional[datetime],
    end: Optional[datetime],
) -> list[EnrichedPost]:
    """Keep posts inside ``[start, end]``.

    With no bounds this is a no-op. With any bound, posts without a
    resolvable publish date are excluded.
    """
    posts = list(posts)
    if start is None and end is None:
        return posts

    kept = []
    for post in posts:
        published = _post_datetime(post)
        if published is None:
            continue
        if start is not None and published < start:
            continue
        if end is not None and published > end:
            continue
        kept.append(post)
    logger.debug(f"Date filter kept {len(kept)} of {len(posts)} posts")
    return kept


def filter_duplicates(posts: Iterable[EnrichedPost], exclude_duplicates: bool) -> list[EnrichedPost]:
    posts = list(posts)
    if not exclude_duplicates:
        return posts
    return [p for p in posts if not p.is_duplicate]


def rank_posts(posts: Sequence[EnrichedPost]) -> list[EnrichedPost]:
    """Newest first; undated posts last in their original order."""
    dated = [p for p in posts if p.published_date]
    undated = [p for p in posts if not p.published_date]
    dated.sort(key=lambda p: p.published_date, reverse=True)
    return dated + undated


def compute_date_stats(posts: Sequence[EnrichedPost]) -> dict:
    dates = sorted(p.published_date for p in posts if p.published_date)
    return {
        "withDate": len(dates),
        "withoutDate": len(posts) - len(dates),
        "oldest": dates[0] if dates else None,
        "newest": dates[-1] if dates else None,
    }
