"""Tests for date-range and duplicate filters."""

from datetime import datetime, timezone

import pytest

from blogmap.filters import (
    compute_date_stats,
    filter_by_date_range,
    filter_duplicates,
    parse_date_bound,
    rank_posts,
)
from blogmap.models import EnrichedPost


def post(name, published=None, duplicate=False):
    return EnrichedPost(
        url=f"https://example.com/blog/{name}",
        title=name,
        published_date=published,
        is_duplicate=duplicate,
    )


class TestParseDateBound:
    def test_start_of_day(self):
        assert parse_date_bound("2024-03-01") == datetime(2024, 3, 1, tzinfo=timezone.utc)

    def test_end_of_day(self):
        assert parse_date_bound("2024-03-01", end_of_day=True) == datetime(
            2024, 3, 1, 23, 59, 59, 999000, tzinfo=timezone.utc
        )

    def test_iso_datetime(self):
        assert parse_date_bound("2024-03-01T12:00:00Z") == datetime(2024, 3, 1, 12, tzinfo=timezone.utc)

    def test_none(self):
        assert parse_date_bound(None) is None
        assert parse_date_bound("") is None

    @pytest.mark.parametrize("value", ["yesterday", "2024-13-01"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_date_bound(value)


class TestFilterByDateRange:
    def test_no_bounds_is_a_no_op(self):
        posts = [post("a", "2024-01-01"), post("b")]
        assert filter_by_date_range(posts, None, None) == posts

    def test_end_date_includes_the_whole_day(self):
        posts = [post("a", "2024-03-01"), post("b", "2024-03-02"), post("c", "2024-02-29")]
        kept = filter_by_date_range(
            posts, parse_date_bound("2024-03-01"), parse_date_bound("2024-03-01", end_of_day=True)
        )
        assert [p.title for p in kept] == ["a"]

    @pytest.mark.parametrize(
        "start,end", [("2000-01-01", None), (None, "2100-01-01"), ("2000-01-01", "2100-01-01")]
    )
    def test_undated_posts_excluded_when_any_bound_given(self, start, end):
        posts = [post("dated", "2024-01-01"), post("undated")]
        kept = filter_by_date_range(
            posts, parse_date_bound(start), parse_date_bound(end, end_of_day=True)
        )
        assert [p.title for p in kept] == ["dated"]


def test_filter_duplicates():
    posts = [post("a"), post("b", duplicate=True)]
    assert [p.title for p in filter_duplicates(posts, True)] == ["a"]
    assert filter_duplicates(posts, False) == posts


def test_rank_posts_newest_first_undated_last():
    posts = [
        post("a"),
        post("b", "2024-01-01"),
        post("c", "2024-03-01"),
        post("d"),
        post("e", "2024-03-01"),
    ]
    assert [p.title for p in rank_posts(posts)] == ["c", "e", "b", "a", "d"]


def test_compute_date_stats():
    posts = [post("a", "2024-03-01"), post("b"), post("c", "2023-11-05")]
    assert compute_date_stats(posts) == {
        "withDate": 2,
        "withoutDate": 1,
        "oldest": "2023-11-05",
        "newest": "2024-03-01",
    }
    assert compute_date_stats([]) == {"withDate": 0, "withoutDate": 0, "oldest": None, "newest": None}
