"""
Provider request/response models for the OpenAI-compatible completions API.

Response shapes are modelled with every field optional so that missing or
null members resolve to deterministic defaults instead of lookup errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from loanlens.models.settings_models import Settings


class ChatCompletionRequest(BaseModel):
    """Body of ``POST {endpoint}/chat/completions``."""

    model: str
    messages: list[dict[str, str]]
    temperature: float
    top_p: float
    max_tokens: int
    stream: bool

    @classmethod
    def build(cls, history: list[dict[str, str]], settings: Settings) -> ChatCompletionRequest:
        """Prefix history with the system prompt and apply generation settings."""
        messages = [{"role": "system", "content": settings.system_prompt}]
        messages.extend({"role": item["role"], "content": item["content"]} for item in history)
        return cls(
            model=settings.active_model,
            messages=messages,
            temperature=settings.temperature,
            top_p=settings.top_p,
            max_tokens=settings.max_tokens,
            stream=settings.streaming,
        )

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready request body."""
        payload: dict[str, Any] = self.model_dump()
        return payload


class _ProviderModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class CompletionMessage(_ProviderModel):
    role: str | None = None
    content: str | None = None


class CompletionChoice(_ProviderModel):
    index: int | None = None
    message: CompletionMessage | None = None
    finish_reason: str | None = None


class ChatCompletionResponse(_ProviderModel):
    """Single JSON document returned when streaming is off."""

    id: str | None = None
    model: str | None = None
    choices: list[CompletionChoice] = Field(default_factory=list)

    def first_content(self) -> str | None:
        """``choices[0].message.content`` or None when any step is absent."""
        if not self.choices or self.choices[0].message is None:
            return None
        return self.choices[0].message.content


class ChunkDelta(_ProviderModel):
    role: str | None = None
    content: str | None = None


class ChunkChoice(_ProviderModel):
    index: int | None = None
    delta: ChunkDelta | None = None
    finish_reason: str | None = None


class ChatCompletionChunk(_ProviderModel):
    """One ``data:`` payload of a streamed completion."""

    id: str | None = None
    choices: list[ChunkChoice] = Field(default_factory=list)

    def delta_content(self) -> str:
        """``choices[0].delta.content``, defaulting to an empty string."""
        if not self.choices or self.choices[0].delta is None:
            return ""
        return self.choices[0].delta.content or ""


@dataclass(frozen=True, slots=True)
class TextDelta:
    """Cumulative assistant text received so far during streaming."""

    text: str


@dataclass(frozen=True, slots=True)
class FinalText:
    """Terminal assistant text of a completion."""

    text: str


CompletionEvent = TextDelta | FinalText
