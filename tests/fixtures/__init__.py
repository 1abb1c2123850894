"""Shared test fixtures and sample data for build-system tests.

This package provides:
- Sample sitemap and UX structure documents
- A scripted fake generation provider
"""

__all__ = [
    "sample_documents",
    "test_helpers",
]
