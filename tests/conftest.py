"""Shared test fixtures for the LoanLens test suite.

This module provides common fixtures used across all test modules, including
in-memory persistence and fake HTTP transports for the completions API.
"""

from __future__ import annotations

import json
import tempfile

from collections.abc import AsyncIterator, Callable, Generator
from pathlib import Path
from typing import Any

import httpx
import pytest

from loanlens.core.constants import get_environment
from loanlens.core.session_store import SessionStore
from loanlens.models.settings_models import Settings
from loanlens.utils.persistence import InMemoryStore

# ============================================================================
# Test Isolation: Cache Management
# ============================================================================


@pytest.fixture(autouse=True)
def clear_environment_cache() -> Generator[None, None, None]:
    """Clear the cached Environment so env var patches take effect per test."""
    get_environment.cache_clear()
    yield
    get_environment.cache_clear()


# ============================================================================
# File System Fixtures
# ============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# ============================================================================
# Persistence Fixtures
# ============================================================================


@pytest.fixture
def memory_adapter() -> InMemoryStore:
    """Empty in-memory key-value store."""
    return InMemoryStore()


@pytest.fixture
def store(memory_adapter: InMemoryStore) -> SessionStore:
    """SessionStore over an empty in-memory adapter."""
    return SessionStore(memory_adapter)


@pytest.fixture
def settings() -> Settings:
    """Default settings (cloud endpoint, streaming on)."""
    return Settings()


@pytest.fixture
def local_settings() -> Settings:
    """Settings pointing at a local, non-streaming endpoint."""
    return Settings(connection_type="local", streaming=False)


# ============================================================================
# HTTP Fixtures
# ============================================================================


def sse_line(content: str | None) -> str:
    """One SSE data line carrying ``content`` as a chunk delta."""
    delta: dict[str, Any] = {} if content is None else {"content": content}
    return "data: " + json.dumps({"choices": [{"index": 0, "delta": delta}]})


def sse_body(*contents: str, done: bool = True) -> bytes:
    """Complete SSE stream body for the given delta contents."""
    lines = [sse_line(content) for content in contents]
    if done:
        lines.append("data: [DONE]")
    return ("\n\n".join(lines) + "\n\n").encode("utf-8")


def completion_body(content: str | None) -> dict[str, Any]:
    """Non-streaming response document."""
    message: dict[str, Any] = {"role": "assistant"}
    if content is not None:
        message["content"] = content
    return {"id": "cmpl-1", "choices": [{"index": 0, "message": message, "finish_reason": "stop"}]}


async def chunked(*chunks: bytes) -> AsyncIterator[bytes]:
    """Async byte stream delivering each chunk separately."""
    for chunk in chunks:
        yield chunk


@pytest.fixture
def http_client_factory() -> Callable[..., httpx.AsyncClient]:
    """Build AsyncClients backed by an httpx.MockTransport handler."""

    def build(handler: Callable[[httpx.Request], Any]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return build


@pytest.fixture
def captured_requests() -> list[httpx.Request]:
    """List that handlers append incoming requests to."""
    return []
