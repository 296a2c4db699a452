"""Tests for listing-page extraction."""

import httpx
import pytest

from blogmap.config import BlogmapConfig
from blogmap.errors import ExtractionError
from blogmap.extraction import extract_blog_post_urls, parse_listing_page, should_exclude_link

BLOG_URL = "https://example.com/blog"

LISTING_HTML = """<html><body>
<nav>
  <a href="/about">About us and our team</a>
  <a href="/pricing/">Pricing plans for teams</a>
</nav>
<article><h2><a href="/blog/first-great-post">First great post title</a></h2></article>
<article>
  <a href="/blog/second-post"><img src="/img/cover.png"></a>
  <h3 class="title">Second post with a long title</h3>
</article>
<div class="card"><h2><a href="https://cdn.example.com/blog/file-name">CDN hosted file link</a></h2></div>
<h2><a href="https://other.com/blog/external-post">External post elsewhere</a></h2>
<h3><a href="/blog/short-one">Short</a></h3>
<a href="/blog/category/news-and-updates">Category listing link</a>
<a href="/blog/third-post-about-things#comments">Comments for the third post</a>
<a href="/blog/annual-report.pdf">Download the annual report</a>
<a href="/blog?page=2">Older posts on page two</a>
</body></html>
"""


class TestShouldExcludeLink:
    @pytest.mark.parametrize(
        "url",
        [
            "https://example.com/blog",
            "https://example.com",
            "https://example.com/blog/post#comments",
            "https://other.com/blog/some-post",
            "https://cdn.example.com/blog/some-post",
            "https://example.com/blog/cover.jpg",
            "https://example.com/blog/some-post?tag=x",
            "https://example.com/blog/tag/product",
            "https://example.com/2024/05/",
            "https://example.com/faq",
            "mailto:team@example.com",
        ],
    )
    def test_excluded(self, url):
        assert should_exclude_link(url, BLOG_URL)

    @pytest.mark.parametrize(
        "url",
        ["https://example.com/blog/some-post", "https://www.example.com/insights/some-post"],
    )
    def test_kept(self, url):
        assert not should_exclude_link(url, BLOG_URL)


class TestParseListingPage:
    def test_extracts_post_cards(self):
        posts = parse_listing_page(LISTING_HTML, BLOG_URL, 50)

        assert [(p.url, p.title) for p in posts] == [
            ("https://example.com/blog/first-great-post", "First great post title"),
            ("https://example.com/blog/second-post", "Second post with a long title"),
        ]

    def test_respects_max_posts(self):
        assert len(parse_listing_page(LISTING_HTML, BLOG_URL, 1)) == 1

    def test_date_from_url(self):
        html = '<article><a href="/blog/2024/02/03/dated-post-title">A dated post title here</a></article>'
        [post] = parse_listing_page(html, BLOG_URL, 10)
        assert post.published_date == "2024-02-03"

    def test_empty_document(self):
        with pytest.raises(ExtractionError):
            parse_listing_page("", BLOG_URL, 10)


class TestExtractBlogPostUrls:
    @pytest.mark.asyncio
    async def test_fetches_directly_without_jina_key(self, web, config):
        web.add(BLOG_URL, LISTING_HTML)

        async with web.client() as client:
            posts = await extract_blog_post_urls("example.com/blog", 50, client=client, config=config)

        assert len(posts) == 2
        assert web.requested_urls == [BLOG_URL]
        assert web.requests[0].headers["user-agent"] == config.user_agent

    @pytest.mark.asyncio
    async def test_uses_jina_reader_when_configured(self, web):
        config = BlogmapConfig(jina_api_key="jina-test")
        web.default = httpx.Response(200, text=LISTING_HTML)

        async with web.client() as client:
            posts = await extract_blog_post_urls(BLOG_URL, 50, client=client, config=config)

        request = web.requests[0]
        assert request.url.host == "r.jina.ai"
        assert request.headers["authorization"] == "Bearer jina-test"
        assert request.headers["x-return-format"] == "html"
        assert len(posts) == 2

    @pytest.mark.asyncio
    async def test_http_error_raises(self, web, config):
        web.add(BLOG_URL, "nope", status_code=503)

        async with web.client() as client:
            with pytest.raises(ExtractionError) as exc_info:
                await extract_blog_post_urls(BLOG_URL, 50, client=client, config=config)

        assert "503" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_network_error_raises(self, web, config):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        web.add_handler(BLOG_URL, refuse)

        async with web.client() as client:
            with pytest.raises(ExtractionError):
                await extract_blog_post_urls(BLOG_URL, 50, client=client, config=config)

    @pytest.mark.asyncio
    async def test_unusable_url_raises_extraction_error(self, web, config):
        async with web.client() as client:
            with pytest.raises(ExtractionError):
                await extract_blog_post_urls("https://example.com:abc/blog", 50, client=client, config=config)
        assert web.requests == []
