"""HTTP surface for the blog import preview."""

from blogmap.web.app import app, create_app

__all__ = ["app", "create_app"]
