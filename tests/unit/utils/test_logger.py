"""Tests for logging utilities."""

from __future__ import annotations

import logging

from unittest.mock import patch

import pytest

from loanlens.utils.logger import ChatLogger, ColoredConsoleFormatter, ConversationTurn, ErrorFilter, logger


def _record(level: int, message: str = "msg") -> logging.LogRecord:
    return logging.LogRecord("loanlens", level, __file__, 1, message, None, None)


class TestFilters:
    """Tests for handler filters and formatters."""

    def test_error_filter(self) -> None:
        error_filter = ErrorFilter()
        assert error_filter.filter(_record(logging.ERROR))
        assert not error_filter.filter(_record(logging.WARNING))

    def test_console_format(self) -> None:
        output = ColoredConsoleFormatter().format(_record(logging.INFO, "hello"))
        assert "[INFO]" in output
        assert output.endswith("loanlens - hello")


class TestConversationTurn:
    def test_timestamp_defaulted(self) -> None:
        assert ConversationTurn(user_input="a", response="b").timestamp


class TestChatLogger:
    """Tests for ChatLogger."""

    def test_global_logger(self) -> None:
        assert isinstance(logger, ChatLogger)
        assert len(logger.process_id) == 8

    def test_info_adds_process_id(self) -> None:
        with patch.object(logger.logger, "info") as mock_info:
            logger.info("hello", chat_id="chat_1")

            extra = mock_info.call_args.kwargs["extra"]
            assert extra["chat_id"] == "chat_1"
            assert extra["process_id"] == logger.process_id

    def test_redacts_pii(self) -> None:
        redacted = logger._redact_content("mail me at jane@example.com, card 4111 1111 1111 1111")
        assert "[EMAIL]" in redacted
        assert "[CARD]" in redacted
        assert "jane@example.com" not in redacted

    def test_preview_truncates(self) -> None:
        preview = logger._preview("a" * 80)
        assert preview == "a" * 50 + "..."

    def test_conversation_turn_hides_content_by_default(self) -> None:
        with (
            patch.object(logger, "_should_log_content", return_value=False),
            patch.object(logger.logger, "info") as mock_info,
        ):
            logger.log_conversation_turn("secret question", "secret answer", chat_id="chat_1", duration_ms=12.4)

            message = mock_info.call_args.args[0]
            extra = mock_info.call_args.kwargs["extra"]
            assert "secret" not in message
            assert "[HIDDEN]" in message
            assert extra["chars_input"] == len("secret question")
            assert extra["ms"] == 12
            assert extra["failed"] is False

    def test_conversation_turn_with_content_logging(self) -> None:
        with (
            patch.object(logger, "_should_log_content", return_value=True),
            patch.object(logger.logger, "info") as mock_info,
        ):
            logger.log_conversation_turn("email bob@example.com", "ok", failed=True)

            message = mock_info.call_args.args[0]
            assert "[EMAIL]" in message
            assert "[failed]" in message

    def test_should_log_content_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ENABLE_CONTENT_LOGGING", "true")
        assert logger._should_log_content() is True
