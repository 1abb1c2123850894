"""UX sitemap handlers."""

from .sitemap_structure import Level2UXSitemapStructureHandler, UXSitemapStructureHandler

__all__ = [
    "Level2UXSitemapStructureHandler",
    "UXSitemapStructureHandler",
]
