"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from blogmap.config import BlogmapConfig, get_config, load_config, reset_config


class TestBlogmapConfig:
    def test_defaults(self):
        config = BlogmapConfig()

        assert config.max_urls == 100
        assert config.discovery_timeout == 10.0
        assert config.enrich_batch_size == 3
        assert config.html_timeout == 5.0
        assert config.breaker_threshold == 3
        assert config.default_asset_type == "Blog Post"
        assert config.firecrawl_configured is False
        assert config.discovery_strategies == ["sitemap", "rss", "firecrawl-map"]
        assert (config.firecrawl_max_retries, config.firecrawl_breaker_threshold) == (2, 3)

    def test_blank_default_type_disables_it(self):
        assert BlogmapConfig(default_asset_type="").default_asset_type is None

    def test_rejects_invalid_values(self):
        with pytest.raises(ValidationError):
            BlogmapConfig(enrich_batch_size=0)
        with pytest.raises(ValidationError):
            BlogmapConfig(discovery_strategies=[])

    def test_api_key_hidden_from_repr(self):
        assert "fc-secret" not in repr(BlogmapConfig(firecrawl_api_key="fc-secret"))


class TestLoadConfig:
    def test_reads_toml_section(self, tmp_path):
        (tmp_path / "blogmap.toml").write_text("[blogmap]\nmax_urls = 200\nhtml_timeout = 2.5\n")

        config = load_config(project_root=tmp_path)

        assert config.max_urls == 200
        assert config.html_timeout == 2.5

    def test_env_beats_toml(self, tmp_path, monkeypatch):
        (tmp_path / "blogmap.toml").write_text("[blogmap]\nmax_urls = 200\n")
        monkeypatch.setenv("BLOGMAP_MAX_URLS", "50")

        assert load_config(project_root=tmp_path).max_urls == 50

    def test_overrides_beat_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("BLOGMAP_MAX_URLS", "50")

        assert load_config(project_root=tmp_path, max_urls=7).max_urls == 7
        assert load_config(project_root=tmp_path, max_urls=None).max_urls == 50

    def test_provider_env_vars(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FIRECRAWL_API_KEY", "fc-test")
        monkeypatch.setenv("JINA_API_KEY", "jina-test")

        config = load_config(project_root=tmp_path)

        assert config.firecrawl_configured
        assert config.jina_api_key == "jina-test"

    def test_prefixed_env_beats_provider_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FIRECRAWL_API_KEY", "fc-plain")
        monkeypatch.setenv("BLOGMAP_FIRECRAWL_API_KEY", "fc-prefixed")

        assert load_config(project_root=tmp_path).firecrawl_api_key == "fc-prefixed"

    def test_strategy_order_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("BLOGMAP_DISCOVERY_STRATEGIES", "rss, sitemap")

        assert load_config(project_root=tmp_path).discovery_strategies == ["rss", "sitemap"]

    def test_non_table_section_rejected(self, tmp_path):
        (tmp_path / "blogmap.toml").write_text('blogmap = "nope"\n')

        with pytest.raises(ValueError):
            load_config(project_root=tmp_path)


class TestGetConfig:
    def test_cached_until_reset(self):
        first = get_config()
        assert get_config() is first

        reset_config()
        assert get_config() is not first
