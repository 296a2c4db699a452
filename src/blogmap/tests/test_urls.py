"""Tests for URL normalization, classification and date helpers."""

import pytest

from blogmap.errors import InvalidUrlError
from blogmap.urls import (
    canonical_url,
    derive_title_from_slug,
    extract_date_from_url,
    is_listing_segment,
    is_pdf_url,
    is_single_post_url,
    normalize_blog_url,
    same_site,
    to_iso_date,
)


class TestNormalizeBlogUrl:
    def test_prepends_https_when_scheme_missing(self):
        assert normalize_blog_url("example.com/blog") == "https://example.com/blog"

    def test_strips_whitespace_lowercases_host_and_drops_fragment(self):
        assert normalize_blog_url("  https://Example.COM/Blog#top ") == "https://example.com/Blog"

    def test_keeps_http_and_query(self):
        assert normalize_blog_url("http://example.com/blog?page=1") == "http://example.com/blog?page=1"

    @pytest.mark.parametrize("raw", ["", "   ", "not a url", "http://", "ftp://example.com/blog"])
    def test_rejects_unusable_input(self, raw):
        with pytest.raises(InvalidUrlError) as exc_info:
            normalize_blog_url(raw)
        assert "https://example.com/blog" in exc_info.value.message


class TestSinglePostClassifier:
    @pytest.mark.parametrize(
        "segment",
        ["page-2", "page_3", "page4", "2024", "category", "tags", "author", "archive", "search"],
    )
    def test_listing_segments(self, segment):
        assert is_listing_segment(segment)

    def test_long_hyphenated_slug_is_single_post(self):
        assert is_single_post_url("https://example.com/blog/how-to-build-a-great-product")

    def test_blog_root_is_not_single_post(self):
        assert not is_single_post_url("https://example.com/blog")
        assert not is_single_post_url("https://example.com/")

    def test_listing_last_segment_wins(self):
        assert not is_single_post_url("https://example.com/blog/how-to-build-a-great-product/page-2")

    def test_short_slug_is_not_single_post(self):
        assert not is_single_post_url("https://example.com/blog/my-post")

    def test_slug_needs_two_hyphens(self):
        assert not is_single_post_url("https://example.com/blog/announcement-everything")


class TestDeriveTitleFromSlug:
    def test_title_cases_words(self):
        assert derive_title_from_slug("https://example.com/blog/my-post") == "My Post"

    def test_handles_underscores_and_extensions(self):
        assert (
            derive_title_from_slug("https://example.com/blog/hello_world-again.html")
            == "Hello World Again"
        )

    def test_empty_slug_falls_back(self):
        assert derive_title_from_slug("https://example.com/") == "Blog Post"


class TestExtractDateFromUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "https://example.com/2024/03/15/slug",
            "https://example.com/blog/2024-03-15/slug",
            "https://example.com/news/20240315/slug",
        ],
    )
    def test_supported_patterns(self, url):
        assert extract_date_from_url(url) == "2024-03-15"

    def test_invalid_calendar_date_is_ignored(self):
        assert extract_date_from_url("https://example.com/2024/13/45/slug") is None

    def test_no_date(self):
        assert extract_date_from_url("https://example.com/blog/my-post") is None


class TestToIsoDate:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2024-03-01", "2024-03-01"),
            ("2024-03-01T10:00:00Z", "2024-03-01"),
            ("2024-03-01T23:30:00-05:00", "2024-03-02"),
            ("Fri, 01 Mar 2024 10:00:00 GMT", "2024-03-01"),
            ("2024-03-01 sometime", "2024-03-01"),
        ],
    )
    def test_parses(self, value, expected):
        assert to_iso_date(value) == expected

    @pytest.mark.parametrize("value", [None, "", "garbage"])
    def test_unparseable(self, value):
        assert to_iso_date(value) is None


class TestUrlKeys:
    def test_canonical_url(self):
        assert canonical_url("https://Example.com/blog/post/#frag") == "https://example.com/blog/post"
        assert canonical_url("https://example.com/") == "https://example.com"

    def test_same_site_ignores_www(self):
        assert same_site("https://www.example.com/a", "https://example.com/b")
        assert not same_site("https://example.com/a", "https://other.com/a")

    def test_is_pdf_url(self):
        assert is_pdf_url("https://example.com/files/Report.PDF")
        assert not is_pdf_url("https://example.com/blog/pdf-tips")
