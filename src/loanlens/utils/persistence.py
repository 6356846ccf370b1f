"""Key-value persistence for chats, settings and the active chat pointer.

The session engine reads the store once at startup and writes a full snapshot
on every mutation. Values are JSON text keyed by the names in
:mod:`loanlens.core.constants`.
"""

from __future__ import annotations

import json
import os
import tempfile

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from loanlens.core.constants import DEFAULT_CHAT_TITLE, SCHEMA_VERSION
from loanlens.models.error_models import PersistenceError
from loanlens.models.session_models import generate_id, make_title, utc_now_iso
from loanlens.utils.json_utils import json_pretty
from loanlens.utils.logger import logger


@runtime_checkable
class PersistenceAdapter(Protocol):
    """Protocol for string key-value stores backing the SessionStore."""

    def get(self, key: str) -> str | None:
        """Return the stored value or None when the key is absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store a value. Raises PersistenceError when the write fails."""
        ...

    def delete(self, key: str) -> None:
        """Remove a key; missing keys are ignored."""
        ...

    def set_many(self, values: Mapping[str, str | None]) -> None:
        """Apply several writes at once; a None value deletes its key.

        Either every change becomes durable or none does. Raises
        PersistenceError when the write fails.
        """
        ...


class InMemoryStore:
    """Process-local store, used in tests and for throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)

    def set_many(self, values: Mapping[str, str | None]) -> None:
        for key, value in values.items():
            if value is None:
                self.data.pop(key, None)
            else:
                self.data[key] = value


class JsonFileStore:
    """Store every key in a single JSON document on disk.

    The document is read once when the store is created. Each write rewrites
    the whole file through a temporary file and ``os.replace`` so a crash
    never leaves a half-written document behind.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._data: dict[str, str] = self._read()

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            logger.info(f"No existing store at {self.path}")
            return {}

        try:
            with open(self.path, encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read store {self.path}: {e}", exc_info=True)
            return {}

        if not isinstance(raw, dict):
            logger.error(f"Ignoring store {self.path}: top level is not an object")
            return {}

        data = {str(key): value for key, value in raw.items() if isinstance(value, str)}
        logger.info(f"Loaded {len(data)} keys from {self.path}")
        return data

    def _write(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(json_pretty(self._data))
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceError(f"Failed to write store {self.path}: {e}") from e

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._write()

    def delete(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._write()

    def set_many(self, values: Mapping[str, str | None]) -> None:
        previous = dict(self._data)
        for key, value in values.items():
            if value is None:
                self._data.pop(key, None)
            else:
                self._data[key] = value
        if self._data == previous:
            return
        try:
            self._write()
        except PersistenceError:
            self._data = previous
            raise


# ============================================================================
# Schema migrations
# ============================================================================

Snapshot = dict[str, Any]
Migration = Callable[[Snapshot], Snapshot]


def _migrate_v0_to_v1(snapshot: Snapshot) -> Snapshot:
    """Normalize unversioned blobs.

    Fills in ids, timestamps and titles that older writers could omit, and
    drops messages whose role the engine does not know.
    """
    chats = []
    for raw_chat in snapshot.get("chats") or []:
        if not isinstance(raw_chat, dict):
            continue
        chat = dict(raw_chat)
        chat.setdefault("id", generate_id("chat"))
        chat["createdAt"] = chat.get("createdAt") or utc_now_iso()

        messages = []
        for raw_message in chat.get("messages") or []:
            if not isinstance(raw_message, dict) or raw_message.get("role") not in ("user", "assistant"):
                continue
            message = dict(raw_message)
            message["id"] = message.get("id") or generate_id("msg")
            message["timestamp"] = message.get("timestamp") or chat["createdAt"]
            message["content"] = str(message.get("content") or "")
            messages.append(message)
        chat["messages"] = messages

        if not chat.get("title"):
            first_user = next((m["content"] for m in messages if m["role"] == "user"), None)
            chat["title"] = DEFAULT_CHAT_TITLE if first_user is None else make_title(first_user)
        chats.append(chat)

    return {**snapshot, "chats": chats}


#: Forward migrations keyed by the version they upgrade from.
MIGRATIONS: dict[int, Migration] = {
    0: _migrate_v0_to_v1,
}


def migrate_snapshot(snapshot: Snapshot, from_version: int, to_version: int = SCHEMA_VERSION) -> Snapshot:
    """Apply forward migrations in order until ``to_version`` is reached.

    Raises:
        PersistenceError: If the stored version is newer than this build or a
            migration step is missing
    """
    if from_version > to_version:
        raise PersistenceError(f"Stored schema version {from_version} is newer than supported {to_version}")

    version = from_version
    while version < to_version:
        migration = MIGRATIONS.get(version)
        if migration is None:
            raise PersistenceError(f"No migration registered for schema version {version}")
        snapshot = migration(snapshot)
        logger.info(f"Migrated stored sessions from schema v{version} to v{version + 1}")
        version += 1
    return snapshot
