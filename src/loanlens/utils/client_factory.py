"""
HTTP client factory utilities.
Centralizes httpx.AsyncClient creation with consistent timeout configuration.
"""

from __future__ import annotations

import httpx

from loanlens.core.constants import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_POOL_TIMEOUT,
    DEFAULT_READ_TIMEOUT,
    DEFAULT_WRITE_TIMEOUT,
)
from loanlens.utils.http_logger import create_logging_client


def build_timeout(
    connect_timeout: float | None = None,
    read_timeout: float | None = None,
) -> httpx.Timeout:
    """Build the httpx timeout used for completion requests.

    The read timeout applies per chunk, so it bounds a stalled stream rather
    than a long one.
    """
    return httpx.Timeout(
        connect=connect_timeout if connect_timeout is not None else DEFAULT_CONNECT_TIMEOUT,
        read=read_timeout if read_timeout is not None else DEFAULT_READ_TIMEOUT,
        write=DEFAULT_WRITE_TIMEOUT,
        pool=DEFAULT_POOL_TIMEOUT,
    )


def create_http_client(
    enable_logging: bool = False,
    connect_timeout: float | None = None,
    read_timeout: float | None = None,
) -> httpx.AsyncClient:
    """Create HTTP client with proper timeouts for streaming.

    Args:
        enable_logging: Enable HTTP request/response logging
        connect_timeout: Connect timeout in seconds (default: 30s)
        read_timeout: Read timeout in seconds (default: 300s)

    Returns:
        Configured httpx.AsyncClient
    """
    timeout = build_timeout(connect_timeout, read_timeout)

    if enable_logging:
        return create_logging_client(enabled=True, timeout=timeout)

    return httpx.AsyncClient(timeout=timeout)
