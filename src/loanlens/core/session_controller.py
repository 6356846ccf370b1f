"""Turn orchestration: user message in, assistant (or error) message out.

At most one turn is in flight per controller, and the application creates a
single controller per process, so sending is blocked in every chat while any
turn runs.
"""

from __future__ import annotations

import asyncio
import inspect
import time

from collections.abc import Awaitable, Callable
from contextlib import aclosing

from loanlens.core.cancellation import CancellationToken
from loanlens.core.completion_client import CompletionClient
from loanlens.core.constants import ERROR_MESSAGE_TEMPLATE
from loanlens.core.session_store import SessionStore
from loanlens.models.api_models import FinalText, TextDelta
from loanlens.models.error_models import (
    CompletionError,
    ErrorCode,
    RequestCancelledError,
    ValidationError,
)
from loanlens.models.session_models import Message
from loanlens.utils.logger import logger

StreamDeltaCallback = Callable[[str], Awaitable[None] | None]


def format_error_message(reason: str) -> str:
    """Assistant message content for a failed turn."""
    return ERROR_MESSAGE_TEMPLATE.format(reason=reason)


class SessionController:
    """Orchestrates one user turn end-to-end."""

    def __init__(
        self,
        store: SessionStore,
        client: CompletionClient,
        on_stream_delta: StreamDeltaCallback | None = None,
        turn_timeout: float | None = None,
    ):
        """Initialize the controller.

        Args:
            store: Session store owning chats and settings
            client: Completion client used for every turn
            on_stream_delta: Called with the cumulative text after each streamed chunk
            turn_timeout: Upper bound in seconds for a whole turn (None = unbounded)
        """
        self.store = store
        self.client = client
        self.on_stream_delta = on_stream_delta
        self.turn_timeout = turn_timeout

        self._in_flight = False
        self._streaming_text = ""
        self._cancellation_token: CancellationToken | None = None

    @property
    def is_in_flight(self) -> bool:
        """True between issuing a request and committing its result."""
        return self._in_flight

    @property
    def streaming_text(self) -> str:
        """Transient cumulative text of the in-flight turn (empty otherwise)."""
        return self._streaming_text

    def _validate_input(self, text: str) -> None:
        if not text.strip():
            raise ValidationError("Empty input", ErrorCode.VALIDATION_EMPTY_INPUT)
        if self._in_flight:
            raise ValidationError("A turn is already in flight", ErrorCode.VALIDATION_TURN_IN_FLIGHT)

    async def send_message(self, text: str) -> Message | None:
        """Run one turn for ``text`` in the active chat.

        Returns:
            The committed assistant message (possibly an error message), or
            None when the input was rejected
        """
        try:
            self._validate_input(text)
        except ValidationError as e:
            logger.debug(f"Ignoring send: {e} [{e.code.value}]")
            return None

        self._in_flight = True
        self._streaming_text = ""
        self._cancellation_token = CancellationToken()
        started = time.perf_counter()

        try:
            chat = self.store.active_chat or self.store.create_chat()
            self.store.append_message(chat.id, Message.user(text))

            failed = False
            try:
                content = await self._run_completion(chat.history())
            except CompletionError as e:
                failed = True
                content = self._content_for_failure(e)
            except TimeoutError:
                failed = True
                logger.warning(f"Turn timed out after {self.turn_timeout}s in chat {chat.id}")
                content = format_error_message(f"Request timed out after {self.turn_timeout}s")

            assistant_message = Message.assistant(content)
            self.store.append_message(chat.id, assistant_message)

            logger.log_conversation_turn(
                user_input=text,
                response=content,
                chat_id=chat.id,
                duration_ms=(time.perf_counter() - started) * 1000,
                failed=failed,
            )
            return assistant_message
        finally:
            self._in_flight = False
            self._streaming_text = ""
            self._cancellation_token = None

    async def _run_completion(self, history: list[dict[str, str]]) -> str:
        if self.turn_timeout is None:
            return await self._consume(history)
        async with asyncio.timeout(self.turn_timeout):
            return await self._consume(history)

    async def _consume(self, history: list[dict[str, str]]) -> str:
        """Drive the completion stream, forwarding deltas to the callback."""
        final_text = ""
        events = self.client.complete(history, self.store.settings, self._cancellation_token)
        async with aclosing(events):
            async for event in events:
                if isinstance(event, TextDelta):
                    self._streaming_text = event.text
                    await self._emit_delta(event.text)
                elif isinstance(event, FinalText):
                    final_text = event.text
        return final_text

    async def _emit_delta(self, text: str) -> None:
        """Forward a snapshot to the presentation callback.

        A failing callback only loses that frame of output; the turn keeps
        streaming and still commits its assistant message.
        """
        if self.on_stream_delta is None:
            return
        try:
            result = self.on_stream_delta(text)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Stream delta callback failed: {e}", exc_info=True)

    def _content_for_failure(self, error: CompletionError) -> str:
        if isinstance(error, RequestCancelledError):
            logger.info(f"Turn cancelled: {error.cancel_reason or 'no reason given'}")
            return self._streaming_text or format_error_message(error.reason)

        logger.error(f"Completion failed [{error.code.value}]: {error.reason}")
        return format_error_message(error.reason)

    def cancel(self, reason: str | None = None) -> bool:
        """Cancel the in-flight turn, if any.

        Returns:
            True if a turn was in flight and has been signalled
        """
        if not self._in_flight or self._cancellation_token is None:
            return False
        self._cancellation_token.cancel(reason)
        return True
