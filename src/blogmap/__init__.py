"""Blog post discovery and bulk-import preview.

This package provides:
- Discovery: sitemap, RSS and Firecrawl map strategies in cost order
- Preview: duplicate check, language filter, HTML enrichment, date filters
- Web: FastAPI preview endpoint
- CLI: ``blogmap`` command
"""

from blogmap.config import BlogmapConfig as BlogmapConfig
from blogmap.config import get_config as get_config
from blogmap.config import load_config as load_config
from blogmap.discovery import discover_blog_urls as discover_blog_urls
from blogmap.models import DiscoveredUrl as DiscoveredUrl
from blogmap.models import DiscoveryMethod as DiscoveryMethod
from blogmap.models import DiscoveryResult as DiscoveryResult
from blogmap.models import EnrichedPost as EnrichedPost
from blogmap.preview import PreviewRequest as PreviewRequest
from blogmap.preview import preview_blog_import as preview_blog_import
