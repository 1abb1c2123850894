"""Build handlers, one per operation id."""

from .ux import Level2UXSitemapStructureHandler, UXSitemapStructureHandler

__all__ = [
    "Level2UXSitemapStructureHandler",
    "UXSitemapStructureHandler",
]
