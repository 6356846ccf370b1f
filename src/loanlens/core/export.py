"""Chat export as JSON or Markdown documents."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from loanlens.core.constants import EXPORT_ROLE_LABELS
from loanlens.models.session_models import Chat
from loanlens.utils.json_utils import json_pretty
from loanlens.utils.logger import logger

EXPORT_EXTENSIONS: dict[str, str] = {"json": "json", "md": "md", "markdown": "md"}


def export_chat_json(chat: Chat) -> str:
    """Serialize a chat verbatim (camelCase keys, 2-space indent)."""
    return json_pretty(chat.to_dict())


def export_chat_markdown(chat: Chat, exported_at: datetime | None = None) -> str:
    """Render a chat as a Markdown transcript.

    One top-level heading with the title and export time, then one level-2
    heading per message, separated by horizontal rules.
    """
    exported_at = exported_at or datetime.now()
    parts = [f"# {chat.title}\n\nExported: {exported_at.strftime('%Y-%m-%d %I:%M %p')}\n\n---\n\n"]
    for message in chat.messages:
        label = EXPORT_ROLE_LABELS.get(str(message.role), str(message.role))
        parts.append(f"## {label}\n\n{message.content}\n\n---\n\n")
    return "".join(parts)


def export_filename(chat: Chat, fmt: str) -> str:
    """File name used for an export, e.g. ``loanlens-chat-chat_ab12.md``.

    Raises:
        ValueError: If the format is not json or md
    """
    extension = EXPORT_EXTENSIONS.get(fmt.lower())
    if extension is None:
        raise ValueError(f"Unsupported export format '{fmt}'. Use 'json' or 'md'")
    return f"loanlens-chat-{chat.id}.{extension}"


def write_export(chat: Chat, directory: str | Path, fmt: str) -> Path:
    """Write an export file into ``directory`` and return its path."""
    filename = export_filename(chat, fmt)
    content = export_chat_json(chat) if filename.endswith(".json") else export_chat_markdown(chat)

    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / filename
    path.write_text(content, encoding="utf-8")

    logger.info(f"Exported chat {chat.id} to {path}")
    return path
