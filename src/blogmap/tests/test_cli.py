"""Tests for the blogmap CLI."""

import json
from unittest.mock import AsyncMock, patch

from click.testing import CliRunner

from blogmap.cli import main
from blogmap.errors import InvalidUrlError, NoPostsFoundError
from blogmap.models import DiscoveredUrl, DiscoveryMethod, DiscoveryResult, EnrichedPost
from blogmap.preview import DiscoveryInfo, PreviewRequest, PreviewResponse


def sitemap_result():
    return DiscoveryResult(
        urls=[
            DiscoveredUrl(
                url="https://example.com/blog/first-post-title",
                title="First Post Title",
                published_date="2024-05-01",
            )
        ],
        discovery_method=DiscoveryMethod.SITEMAP,
    )


class TestLanguagesCommand:
    def test_json(self):
        result = CliRunner().invoke(main, ["languages", "--format", "json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert len(data) == 16
        assert data[0] == {"code": "de", "name": "German"}

    def test_text(self):
        result = CliRunner().invoke(main, ["languages"])

        assert result.exit_code == 0
        assert "German" in result.output


class TestDiscoverCommand:
    def test_json(self):
        mock = AsyncMock(return_value=sitemap_result())
        with patch("blogmap.cli.discover_blog_urls", mock):
            result = CliRunner().invoke(main, ["discover", "example.com", "--format", "json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["discoveryMethod"] == "sitemap"
        assert data["urls"][0]["publishedDate"] == "2024-05-01"
        assert mock.await_args.args == ("example.com",)

    def test_max_urls_reaches_config(self):
        mock = AsyncMock(return_value=sitemap_result())
        with patch("blogmap.cli.discover_blog_urls", mock):
            CliRunner().invoke(main, ["discover", "example.com", "--max-urls", "7"])

        assert mock.await_args.kwargs["config"].max_urls == 7

    def test_fallback_message(self):
        fallback = DiscoveryResult(
            discovery_method=DiscoveryMethod.FIRECRAWL_CRAWL, fallback_required=True
        )
        with patch("blogmap.cli.discover_blog_urls", AsyncMock(return_value=fallback)):
            result = CliRunner().invoke(main, ["discover", "example.com/blog"])

        assert result.exit_code == 0
        assert "blogmap preview" in result.output

    def test_invalid_url(self):
        with patch(
            "blogmap.cli.discover_blog_urls",
            AsyncMock(side_effect=InvalidUrlError("::", "The URL has no valid host.")),
        ):
            result = CliRunner().invoke(main, ["discover", "::"])

        assert result.exit_code == 1
        assert "Invalid URL" in result.output


class TestPreviewCommand:
    def test_passes_options(self, monkeypatch, tmp_path):
        monkeypatch.setenv("BLOGMAP_DATABASE_URL", f"sqlite:///{tmp_path / 'assets.db'}")
        response = PreviewResponse(
            posts=[
                EnrichedPost(
                    url="https://example.com/blog/first-post-title",
                    title="First Post Title",
                    published_date="2024-05-01",
                    detected_asset_type="Blog Post",
                )
            ],
            total=1,
            new=1,
            discovery=DiscoveryInfo(method=DiscoveryMethod.SITEMAP),
        )
        mock = AsyncMock(return_value=response)
        with patch("blogmap.cli.preview_blog_import", mock):
            result = CliRunner().invoke(
                main,
                [
                    "preview",
                    "example.com",
                    "--account",
                    "acct-1",
                    "--start",
                    "2024-01-01",
                    "--language",
                    "de",
                    "--language",
                    "fr",
                    "--exclude-undetected",
                    "--exclude-duplicates",
                    "--format",
                    "json",
                ],
            )

        assert result.exit_code == 0
        assert json.loads(result.output)["posts"][0]["isUnknownType"] is False

        request = mock.await_args.args[0]
        assert isinstance(request, PreviewRequest)
        assert request.blog_url == "example.com"
        assert request.date_range_start == "2024-01-01"
        assert request.languages == ["de", "fr"]
        assert request.include_undetected_language is False
        assert request.exclude_duplicates is True
        assert mock.await_args.kwargs["account_id"] == "acct-1"
        assert (tmp_path / "assets.db").exists()

    def test_requires_account(self):
        result = CliRunner().invoke(main, ["preview", "example.com"])

        assert result.exit_code == 2

    def test_no_posts(self, monkeypatch, tmp_path):
        monkeypatch.setenv("BLOGMAP_DATABASE_URL", f"sqlite:///{tmp_path / 'assets.db'}")
        mock = AsyncMock(side_effect=NoPostsFoundError("https://example.com/blog"))
        with patch("blogmap.cli.preview_blog_import", mock):
            result = CliRunner().invoke(main, ["preview", "example.com/blog", "--account", "a"])

        assert result.exit_code == 1
        assert "No blog posts found" in result.output


class TestInitDbCommand:
    def test_creates_database(self, tmp_path):
        db_path = tmp_path / "nested" / "assets.db"

        result = CliRunner().invoke(main, ["init-db", "--database-url", f"sqlite:///{db_path}"])

        assert result.exit_code == 0
        assert db_path.exists()
