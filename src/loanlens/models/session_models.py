"""
Chat and message models for LoanLens.
Provides Pydantic models for the persisted conversation data with runtime validation.

Field names are snake_case in Python and camelCase on the wire, matching the
persisted key-value blob and the JSON export format.
"""

from __future__ import annotations

import uuid

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from loanlens.core.constants import CHAT_ID_LENGTH, CHAT_TITLE_ELLIPSIS, CHAT_TITLE_MAX_LENGTH, DEFAULT_CHAT_TITLE


def make_title(text: str) -> str:
    """Chat title derived from the first user message (50 chars, ``...`` if cut)."""
    if len(text) > CHAT_TITLE_MAX_LENGTH:
        return text[:CHAT_TITLE_MAX_LENGTH] + CHAT_TITLE_ELLIPSIS
    return text


def generate_id(prefix: str) -> str:
    """Generate an opaque identifier such as ``chat_1a2b3c4d5e6f``."""
    return f"{prefix}_{uuid.uuid4().hex[:CHAT_ID_LENGTH]}"


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(UTC).isoformat()


def _validate_iso_timestamp(v: str) -> str:
    try:
        datetime.fromisoformat(v)
    except ValueError as e:
        raise ValueError(f"Must be valid ISO format timestamp: {e}") from e
    return v


class MessageRole(str, Enum):
    """Author of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """A single chat message. Immutable once created."""

    id: str = Field(default_factory=lambda: generate_id("msg"), min_length=1)
    role: MessageRole
    content: str
    timestamp: str = Field(default_factory=utc_now_iso)

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v: str) -> str:
        """Validate ISO format timestamps."""
        return _validate_iso_timestamp(v)

    @classmethod
    def user(cls, content: str) -> Message:
        """Build a user message stamped with the current time."""
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        """Build an assistant message stamped with the current time."""
        return cls(role=MessageRole.ASSISTANT, content=content)

    def to_history_item(self) -> dict[str, str]:
        """Role/content pair sent to the completions API."""
        return {"role": str(self.role), "content": self.content}


class Chat(BaseModel):
    """A conversation: ordered, append-only messages plus a title."""

    id: str = Field(default_factory=lambda: generate_id("chat"), min_length=1)
    title: str = Field(default=DEFAULT_CHAT_TITLE)
    messages: list[Message] = Field(default_factory=list)
    created_at: str = Field(default_factory=utc_now_iso)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("created_at")
    @classmethod
    def validate_created_at(cls, v: str) -> str:
        """Validate ISO format timestamps."""
        return _validate_iso_timestamp(v)

    def history(self) -> list[dict[str, str]]:
        """Conversation history as role/content pairs, oldest first."""
        return [message.to_history_item() for message in self.messages]

    def to_dict(self) -> dict[str, Any]:
        """Serialize with camelCase keys (persistence and export format)."""
        data: dict[str, Any] = self.model_dump(by_alias=True, mode="json")
        return data
