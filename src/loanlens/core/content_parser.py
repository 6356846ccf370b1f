"""Split message text into prose and fenced code segments.

A fence opens with three backticks, an optional language tag and a newline,
and closes at the next three backticks. Parsing is pure and deterministic.
"""

from __future__ import annotations

import re

from dataclasses import dataclass
from typing import Literal

#: Language reported for fences without a tag.
DEFAULT_CODE_LANGUAGE = "code"

FENCE_PATTERN = re.compile(r"```(\w*)\n(.*?)```", re.DOTALL | re.ASCII)
HTML_FENCE_PATTERN = re.compile(r"```html\n(.*?)```", re.DOTALL)


@dataclass(frozen=True, slots=True)
class ContentSegment:
    """One ordered piece of a message: prose or a fenced code block."""

    type: Literal["text", "code"]
    content: str
    language: str | None = None

    @property
    def is_code(self) -> bool:
        return self.type == "code"

    @property
    def is_html(self) -> bool:
        """Code blocks tagged html can be opened as a standalone page."""
        return self.is_code and self.language == "html"

    def render(self) -> str:
        """Markdown form of the segment, with fences restored for code."""
        if not self.is_code:
            return self.content
        return f"```{self.language}\n{self.content}```"


def parse_content(text: str) -> list[ContentSegment]:
    """Segment ``text`` into text and code parts, preserving order.

    Text between fences becomes a text segment; empty stretches are dropped.
    Text without any fence yields exactly one text segment equal to the input.
    """
    segments: list[ContentSegment] = []
    last_index = 0

    for match in FENCE_PATTERN.finditer(text):
        if match.start() > last_index:
            segments.append(ContentSegment("text", text[last_index : match.start()]))
        segments.append(ContentSegment("code", match.group(2), match.group(1) or DEFAULT_CODE_LANGUAGE))
        last_index = match.end()

    if last_index < len(text):
        segments.append(ContentSegment("text", text[last_index:]))

    if not segments:
        segments.append(ContentSegment("text", text))

    return segments


def extract_html_blocks(text: str) -> list[str]:
    """Bodies of all ```` ```html ```` blocks in ``text``."""
    return HTML_FENCE_PATTERN.findall(text)
