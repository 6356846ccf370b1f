"""
LoanLens - terminal client

Main entry point. Plain input lines are sent as chat turns and the answer is
streamed to stdout; lines starting with ``/`` are commands. Status and logs go
to stderr.
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
import sys

from collections.abc import Awaitable, Callable
from pathlib import Path

from loanlens.app.bootstrap import initialize_application
from loanlens.app.state import AppState
from loanlens.core.content_parser import extract_html_blocks, parse_content
from loanlens.core.export import write_export
from loanlens.core.prompts import QUICK_PROMPTS
from loanlens.models.session_models import Chat, MessageRole
from loanlens.models.settings_models import GENERATION_PRESETS
from loanlens.utils.logger import logger

HELP_TEXT = """Commands:
  /new                 start a new chat
  /list                list chats (most recent first)
  /switch <id>         make a chat active and show its messages
  /delete <id>         delete a chat
  /export json|md [dir]  export the active chat
  /html [dir]          save html code blocks of the last answer
  /preset <name>       apply a generation preset ({presets})
  /test                check the connection to the configured endpoint
  /help                show this help
  /quit                exit"""


class StreamPrinter:
    """Writes the new suffix of each cumulative snapshot to stdout."""

    def __init__(self) -> None:
        self.printed = ""

    def __call__(self, text: str) -> None:
        if text.startswith(self.printed):
            sys.stdout.write(text[len(self.printed) :])
        else:
            sys.stdout.write("\n" + text)
        sys.stdout.flush()
        self.printed = text

    def finish(self, content: str) -> None:
        """Print whatever of the committed content was not streamed."""
        if self.printed and content.startswith(self.printed):
            sys.stdout.write(content[len(self.printed) :])
        else:
            if self.printed:
                sys.stdout.write("\n")
            sys.stdout.write(render_message(content))
        sys.stdout.write("\n\n")
        sys.stdout.flush()
        self.printed = ""


def render_message(content: str) -> str:
    """Terminal rendering of a message: prose as is, code blocks framed."""
    parts = []
    for segment in parse_content(content):
        if segment.is_code:
            label = f"{segment.language} (save with /html)" if segment.is_html else segment.language
            parts.append(f"\n--- {label} ---\n{segment.content.rstrip()}\n---\n")
        else:
            parts.append(segment.content)
    return "".join(parts)


def print_chat(chat: Chat) -> None:
    print(f"== {chat.title} ({chat.id}) ==\n")
    if not chat.messages:
        print("Try one of:")
        for prompt in QUICK_PROMPTS:
            print(f"  - {prompt}")
        print()
        return
    for message in chat.messages:
        label = "You" if message.role == MessageRole.USER else "LoanLens"
        print(f"[{label}]\n{render_message(message.content)}\n")


# ============================================================================
# Command handlers
# ============================================================================


async def cmd_new(state: AppState, args: list[str]) -> None:
    chat = state.store.create_chat()
    print_chat(chat)


async def cmd_list(state: AppState, args: list[str]) -> None:
    chats = state.store.list_chats()
    if not chats:
        print("No chats yet.")
        return
    for chat in chats:
        marker = "*" if chat.id == state.store.active_chat_id else " "
        print(f"{marker} {chat.id}  {chat.title}  ({len(chat.messages)} messages)")


async def cmd_switch(state: AppState, args: list[str]) -> None:
    if not args:
        print("Usage: /switch <id>")
        return
    chat = state.store.get_chat(args[0])
    if chat is None:
        print(f"No chat with id {args[0]}")
        return
    state.store.set_active(chat.id)
    print_chat(chat)


async def cmd_delete(state: AppState, args: list[str]) -> None:
    if not args:
        print("Usage: /delete <id>")
        return
    if state.store.delete_chat(args[0]):
        print(f"Deleted {args[0]}")
    else:
        print(f"No chat with id {args[0]}")


async def cmd_export(state: AppState, args: list[str]) -> None:
    chat = state.store.active_chat
    if chat is None:
        print("No active chat to export.")
        return
    fmt = args[0] if args else "md"
    directory = Path(args[1]) if len(args) > 1 else Path.cwd()
    try:
        path = write_export(chat, directory, fmt)
    except ValueError as e:
        print(str(e))
        return
    except OSError as e:
        logger.error(f"Export failed: {e}", exc_info=True)
        print(f"Export failed: {e}")
        return
    print(f"Exported to {path}")


async def cmd_html(state: AppState, args: list[str]) -> None:
    chat = state.store.active_chat
    answers = [m for m in chat.messages if m.role == MessageRole.ASSISTANT] if chat else []
    last_answer = answers[-1] if answers else None
    blocks = extract_html_blocks(last_answer.content) if last_answer else []
    if last_answer is None or not blocks:
        print("The last answer has no html code blocks.")
        return

    directory = Path(args[0]) if args else Path.cwd()
    directory.mkdir(parents=True, exist_ok=True)
    for index, block in enumerate(blocks, start=1):
        path = directory / f"loanlens-{last_answer.id}-{index}.html"
        path.write_text(block, encoding="utf-8")
        print(f"Saved {path}")


async def cmd_preset(state: AppState, args: list[str]) -> None:
    if not args:
        print(f"Usage: /preset <{'|'.join(GENERATION_PRESETS)}>")
        return
    try:
        settings = state.store.settings.with_preset(args[0])
    except ValueError as e:
        print(str(e))
        return
    state.store.update_settings(settings)
    print(f"Preset {args[0]}: temperature={settings.temperature}, top_p={settings.top_p}")


async def cmd_test(state: AppState, args: list[str]) -> None:
    settings = state.store.settings
    print(f"Testing {settings.endpoint} ...")
    ok = await state.client.check_connection(settings)
    print("Connection successful." if ok else "Connection failed. Check your API settings.")


async def cmd_help(state: AppState, args: list[str]) -> None:
    print(HELP_TEXT.format(presets=", ".join(GENERATION_PRESETS)))


COMMANDS: dict[str, Callable[[AppState, list[str]], Awaitable[None]]] = {
    "/new": cmd_new,
    "/list": cmd_list,
    "/switch": cmd_switch,
    "/delete": cmd_delete,
    "/export": cmd_export,
    "/html": cmd_html,
    "/preset": cmd_preset,
    "/test": cmd_test,
    "/help": cmd_help,
}


# ============================================================================
# Main loop
# ============================================================================


async def send_turn(state: AppState, printer: StreamPrinter, text: str) -> None:
    message = await state.controller.send_message(text)
    if message is None:
        return
    printer.finish(message.content)


async def main() -> None:
    """Run the interactive loop until /quit or end of input."""
    printer = StreamPrinter()
    state = initialize_application(on_stream_delta=printer)
    loop = asyncio.get_running_loop()

    def interrupt() -> None:
        if state.controller.is_in_flight:
            state.controller.cancel("interrupted by user")
        else:
            sys.stderr.write("\nUse /quit to exit.\n")

    # Signal handlers are unavailable on some platforms (e.g. Windows)
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGINT, interrupt)

    sys.stderr.write(f"LoanLens ready ({state.store.settings.endpoint}). Type /help for commands.\n")
    active = state.store.active_chat
    if active is not None:
        print_chat(active)

    try:
        while True:
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line:
                logger.info("End of input stream, shutting down")
                break

            text = line.rstrip("\n")
            if not text.strip():
                continue

            if text.startswith("/"):
                name, *args = text.split()
                if name == "/quit":
                    break
                handler = COMMANDS.get(name)
                if handler is None:
                    print(f"Unknown command {name}. Type /help for commands.")
                    continue
                await handler(state, args)
                continue

            await send_turn(state, printer, text)
    finally:
        await state.aclose()
        logger.info("LoanLens shutdown complete")


def run() -> None:
    """Console script entry point."""
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(main())


if __name__ == "__main__":
    run()
