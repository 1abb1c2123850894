"""Shared httpx connection pool for generation-service traffic.

Every provider in a process talks to the generation service through one
``httpx.AsyncClient``, so TCP and TLS setup is paid once per host rather
than once per call.

Usage:
    await init_http_client()

    client = get_http_client()
    response = await client.post(url, json=payload)

    await close_http_client()

Environment Variables:
    HTTP_MAX_CONNECTIONS: Max connections in the pool (default: 100)
    HTTP_MAX_KEEPALIVE_CONNECTIONS: Max keepalive connections (default: 20)
    HTTP_KEEPALIVE_EXPIRY: Keepalive expiry in seconds (default: 5.0)
    HTTP_CONNECT_TIMEOUT: Connection timeout in seconds (default: 10.0)
    HTTP_READ_TIMEOUT: Read timeout in seconds (default: 120.0)
    HTTP_WRITE_TIMEOUT: Write timeout in seconds (default: 30.0)
    HTTP_POOL_TIMEOUT: Pool acquire timeout in seconds (default: 10.0)
    HTTP2_ENABLED: Enable HTTP/2 support (default: false)
"""

import os
import logging
from typing import Optional
import httpx
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


class HttpClientConfig:
    """Pool limits and timeouts for the generation-service client.

    Read timeout defaults far higher than a typical API client because a
    single completion can take minutes.
    """

    def __init__(self):
        self.max_connections = int(os.getenv("HTTP_MAX_CONNECTIONS", "100"))
        self.max_keepalive_connections = int(
            os.getenv("HTTP_MAX_KEEPALIVE_CONNECTIONS", "20")
        )
        self.keepalive_expiry = float(os.getenv("HTTP_KEEPALIVE_EXPIRY", "5.0"))

        self.connect_timeout = float(os.getenv("HTTP_CONNECT_TIMEOUT", "10.0"))
        self.read_timeout = float(os.getenv("HTTP_READ_TIMEOUT", "120.0"))
        self.write_timeout = float(os.getenv("HTTP_WRITE_TIMEOUT", "30.0"))
        self.pool_timeout = float(os.getenv("HTTP_POOL_TIMEOUT", "10.0"))

        self.http2_enabled = os.getenv("HTTP2_ENABLED", "false").lower() == "true"

    def limits(self) -> httpx.Limits:
        return httpx.Limits(
            max_connections=self.max_connections,
            max_keepalive_connections=self.max_keepalive_connections,
            keepalive_expiry=self.keepalive_expiry,
        )

    def timeout(self) -> httpx.Timeout:
        return httpx.Timeout(
            connect=self.connect_timeout,
            read=self.read_timeout,
            write=self.write_timeout,
            pool=self.pool_timeout,
        )

    def __repr__(self) -> str:
        return (
            f"HttpClientConfig("
            f"max_connections={self.max_connections}, "
            f"max_keepalive={self.max_keepalive_connections}, "
            f"connect_timeout={self.connect_timeout}s, "
            f"read_timeout={self.read_timeout}s, "
            f"http2={self.http2_enabled})"
        )


_client: Optional[httpx.AsyncClient] = None
_config: Optional[HttpClientConfig] = None


async def init_http_client() -> httpx.AsyncClient:
    """
    Initialize the process-wide generation-service client.

    Safe to call more than once; later calls return the existing client.

    Returns:
        httpx.AsyncClient: The shared client
    """
    global _client, _config

    if _client is not None and not _client.is_closed:
        logger.info("HTTP client already initialized, returning existing client")
        return _client

    _config = HttpClientConfig()
    logger.info(f"Initializing HTTP client with config: {_config}")

    try:
        _client = httpx.AsyncClient(
            limits=_config.limits(),
            timeout=_config.timeout(),
            http2=_config.http2_enabled,
            follow_redirects=True,
        )
        logger.info("✓ HTTP client initialized")
        return _client

    except Exception as e:
        logger.error(f"✗ Failed to initialize HTTP client: {e}", exc_info=True)
        _client = None
        _config = None
        raise


def get_http_client() -> httpx.AsyncClient:
    """
    Get the shared generation-service client.

    Raises:
        RuntimeError: If init_http_client() has not been awaited
    """
    if _client is None:
        raise RuntimeError(
            "HTTP client not initialized. Call init_http_client() first."
        )
    return _client


async def close_http_client() -> None:
    """Close the shared client. No-op when it was never opened."""
    global _client, _config

    if _client is None:
        logger.info("HTTP client not initialized, nothing to close")
        return

    try:
        await _client.aclose()
        logger.info("✓ HTTP client closed")
    except Exception as e:
        logger.error(f"✗ Error closing HTTP client: {e}", exc_info=True)
    finally:
        _client = None
        _config = None


def get_config() -> Optional[HttpClientConfig]:
    """Get the pool configuration, or None before init_http_client()."""
    return _config


async def check_http_client_health() -> dict:
    """
    Report whether the shared client is usable.

    Returns:
        dict with "status" ("healthy" or "unavailable") and pool settings
    """
    if _client is None or _client.is_closed:
        return {"status": "unavailable", "error": "HTTP client not initialized"}

    return {
        "status": "healthy",
        "http2": _config.http2_enabled if _config else None,
        "max_connections": _config.max_connections if _config else None,
    }
