"""Pytest configuration and shared fixtures for build-system tests.

This module provides:
- Basic pytest configuration
- Common fixtures (fake provider, contexts, sample documents)
- Setup/teardown for test isolation
"""

import os
import sys
from pathlib import Path

import pytest

# Add project root to Python path to allow imports from buildsystem and tests
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from buildsystem.pipeline.clock import ClockedSynchronizer  # noqa: E402
from buildsystem.pipeline.context import (  # noqa: E402
    MODEL,
    PLATFORM,
    PROJECT_NAME,
    UX_SITEMAP_DOC,
    UX_SITEMAP_STRUCTURE,
    ExecutionContext,
)
from tests.fixtures.sample_documents import SITEMAP_DOC, TWO_SECTION_DOC  # noqa: E402
from tests.fixtures.test_helpers import TEST_MODEL, FakeProvider  # noqa: E402


# ==================== Pytest Configuration ====================

def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line(
        "markers",
        "unit: mark test as a unit test (fast, isolated)"
    )
    config.addinivalue_line(
        "markers",
        "integration: mark test as an integration test (slower, multiple components)"
    )
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow (may take several seconds)"
    )


# ==================== Environment Fixtures ====================

@pytest.fixture(scope="function", autouse=True)
def isolate_environment(monkeypatch):
    """Isolate each test by preventing environment variable pollution.

    This fixture automatically applies to all tests and ensures that
    environment variables don't leak between tests.
    """
    original_env = os.environ.copy()

    yield

    os.environ.clear()
    os.environ.update(original_env)


# ==================== Pipeline Fixtures ====================

@pytest.fixture
def fake_provider() -> FakeProvider:
    """Provider answering "result-<index>" immediately."""
    return FakeProvider()


@pytest.fixture
def synchronizer(fake_provider) -> ClockedSynchronizer:
    return ClockedSynchronizer(fake_provider, max_concurrency=5, timeout=5.0)


@pytest.fixture
def context() -> ExecutionContext:
    """Context with the global settings every UX handler reads."""
    return ExecutionContext(
        global_config={
            PROJECT_NAME: "Test Project",
            PLATFORM: "web",
            MODEL: TEST_MODEL,
        }
    )


@pytest.fixture
def seeded_context(context) -> ExecutionContext:
    """Context holding a sitemap document and a two-page UX structure."""
    context.set_artifact(UX_SITEMAP_DOC, SITEMAP_DOC)
    context.set_artifact(UX_SITEMAP_STRUCTURE, TWO_SECTION_DOC)
    return context
