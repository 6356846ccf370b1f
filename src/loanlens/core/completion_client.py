"""Completion client for OpenAI-compatible chat completion endpoints.

Executes one request/response cycle per call and exposes the assistant text
as an async stream of events: zero or more cumulative TextDelta snapshots
followed by exactly one FinalText.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

import httpx

from pydantic import ValidationError as PydanticValidationError

from loanlens.core.cancellation import CancellationToken
from loanlens.core.constants import (
    CHAT_COMPLETIONS_PATH,
    MODELS_PATH,
    NO_RESPONSE_TEXT,
    SSE_DATA_PREFIX,
    SSE_DONE_SENTINEL,
)
from loanlens.models.api_models import (
    ChatCompletionChunk,
    ChatCompletionRequest,
    ChatCompletionResponse,
    CompletionEvent,
    FinalText,
    TextDelta,
)
from loanlens.models.error_models import ApiError, MalformedStreamChunk, TransportError
from loanlens.models.settings_models import Settings
from loanlens.utils.logger import logger


def build_url(endpoint: str, path: str) -> str:
    """Join a configured endpoint and an API path without doubling slashes."""
    return endpoint.rstrip("/") + path


def parse_sse_line(line: str) -> str | None:
    """Extract the delta content carried by one SSE line.

    Returns:
        The delta text (possibly empty) for a content-bearing ``data:`` line,
        or None for blank lines, non-data lines and the ``[DONE]`` sentinel

    Raises:
        MalformedStreamChunk: If the data payload is not a valid chunk
    """
    if not line.strip() or not line.startswith(SSE_DATA_PREFIX):
        return None

    payload = line[len(SSE_DATA_PREFIX) :]
    if payload == SSE_DONE_SENTINEL:
        return None

    try:
        chunk = ChatCompletionChunk.model_validate_json(payload)
    except PydanticValidationError as e:
        raise MalformedStreamChunk(payload, f"{e.error_count()} validation errors") from e
    return chunk.delta_content()


class CompletionClient:
    """Stateless request/stream processor, invoked once per turn."""

    def __init__(self, http_client: httpx.AsyncClient):
        """Initialize the client.

        Args:
            http_client: Shared httpx client (timeouts and logging hooks configured by the factory)
        """
        self.http_client = http_client

    async def complete(
        self,
        history: list[dict[str, str]],
        settings: Settings,
        cancellation_token: CancellationToken | None = None,
    ) -> AsyncGenerator[CompletionEvent, None]:
        """Run one completion request.

        Args:
            history: Conversation so far as role/content pairs, oldest first
            settings: Connection and generation settings
            cancellation_token: Checked before the request and between stream lines

        Yields:
            TextDelta snapshots (streaming only), then one FinalText

        Raises:
            ApiError: Non-2xx status or unreadable response body
            TransportError: Connection failure or timeout
            RequestCancelledError: The token was cancelled
        """
        request = ChatCompletionRequest.build(history, settings)
        url = build_url(settings.endpoint, CHAT_COMPLETIONS_PATH)
        headers = {"Content-Type": "application/json", **settings.auth_headers()}

        if cancellation_token is not None:
            cancellation_token.check()

        logger.debug(f"Requesting completion from {url} (model={request.model}, stream={request.stream})")

        try:
            async with self.http_client.stream("POST", url, json=request.to_payload(), headers=headers) as response:
                if not response.is_success:
                    raise ApiError(response.status_code)

                if request.stream:
                    async for event in self._read_stream(response, cancellation_token):
                        yield event
                else:
                    body = await response.aread()
                    yield FinalText(self._parse_body(body, response.status_code))
        except httpx.TimeoutException as e:
            raise TransportError(f"request timed out ({type(e).__name__})", timeout=True) from e
        except httpx.HTTPError as e:
            raise TransportError(str(e) or type(e).__name__) from e

    async def _read_stream(
        self,
        response: httpx.Response,
        cancellation_token: CancellationToken | None,
    ) -> AsyncGenerator[CompletionEvent, None]:
        """Accumulate SSE deltas, yielding the cumulative text after each chunk."""
        accumulated = ""
        skipped = 0

        async for line in response.aiter_lines():
            if cancellation_token is not None:
                cancellation_token.check()

            try:
                content = parse_sse_line(line)
            except MalformedStreamChunk as e:
                skipped += 1
                logger.debug(f"Skipping malformed stream chunk: {e.payload[:100]}")
                continue

            if content is None:
                continue

            accumulated += content
            yield TextDelta(accumulated)

        if skipped:
            logger.warning(f"Skipped {skipped} malformed stream chunks")
        yield FinalText(accumulated)

    def _parse_body(self, body: bytes, status: int) -> str:
        """Extract the first choice's content from a non-streaming response."""
        try:
            parsed = ChatCompletionResponse.model_validate_json(body)
        except PydanticValidationError as e:
            raise ApiError(status, "malformed response body") from e
        return parsed.first_content() or NO_RESPONSE_TEXT

    async def check_connection(self, settings: Settings) -> bool:
        """Probe ``GET {endpoint}/models``.

        Returns:
            True on a 2xx response, False on any other status or network failure
        """
        url = build_url(settings.endpoint, MODELS_PATH)
        try:
            response = await self.http_client.get(url, headers=settings.auth_headers())
        except httpx.HTTPError as e:
            logger.warning(f"Connection check failed for {url}: {e!s}")
            return False

        logger.info(f"Connection check {url}: {response.status_code}")
        return response.is_success
