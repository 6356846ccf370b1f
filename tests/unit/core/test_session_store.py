"""Tests for session store module.

Tests SessionStore for chat lifecycle, the active chat pointer, settings and
persistence through the key-value adapter.
"""

from __future__ import annotations

import json
import os

from pathlib import Path
from unittest.mock import patch

import pytest

from loanlens.core.constants import (
    ACTIVE_CHAT_STORAGE_KEY,
    CHATS_STORAGE_KEY,
    SCHEMA_VERSION,
    SCHEMA_VERSION_STORAGE_KEY,
    SETTINGS_STORAGE_KEY,
)
from loanlens.core.session_store import SessionStore
from loanlens.models.error_models import NotFoundError, PersistenceError
from loanlens.models.session_models import Message
from loanlens.models.settings_models import Settings
from loanlens.utils.persistence import InMemoryStore, JsonFileStore


def _stored_chat(chat_id: str, *contents: str) -> dict[str, object]:
    return {
        "id": chat_id,
        "title": contents[0] if contents else "New Chat",
        "createdAt": "2024-05-01T10:00:00+00:00",
        "messages": [
            {
                "id": f"{chat_id}_m{i}",
                "role": "user" if i % 2 == 0 else "assistant",
                "content": content,
                "timestamp": "2024-05-01T10:00:00+00:00",
            }
            for i, content in enumerate(contents)
        ],
    }


def _adapter_with(chats: list[dict[str, object]], active: str | None = None, **extra: str) -> InMemoryStore:
    data = {
        SCHEMA_VERSION_STORAGE_KEY: str(SCHEMA_VERSION),
        CHATS_STORAGE_KEY: json.dumps(chats),
        **extra,
    }
    if active is not None:
        data[ACTIVE_CHAT_STORAGE_KEY] = active
    return InMemoryStore(data)


class TestSessionStoreInit:
    """Tests for loading persisted state."""

    def test_empty_store(self, store: SessionStore, memory_adapter: InMemoryStore) -> None:
        assert store.list_chats() == []
        assert store.active_chat is None
        assert store.settings == Settings()
        # Unversioned (empty) store is stamped with the current version
        assert memory_adapter.get(SCHEMA_VERSION_STORAGE_KEY) == str(SCHEMA_VERSION)

    def test_restores_chats_and_active_pointer(self) -> None:
        adapter = _adapter_with([_stored_chat("chat_a", "hi"), _stored_chat("chat_b", "yo")], active="chat_b")

        store = SessionStore(adapter)

        assert [c.id for c in store.list_chats()] == ["chat_a", "chat_b"]
        assert store.active_chat_id == "chat_b"

    def test_stale_active_pointer_falls_back_to_first_chat(self) -> None:
        adapter = _adapter_with([_stored_chat("chat_a"), _stored_chat("chat_b")], active="chat_gone")
        assert SessionStore(adapter).active_chat_id == "chat_a"

    def test_missing_active_pointer_with_chats(self) -> None:
        assert SessionStore(_adapter_with([_stored_chat("chat_a")])).active_chat_id == "chat_a"

    def test_skips_invalid_and_duplicate_chats(self) -> None:
        adapter = _adapter_with(
            [
                _stored_chat("chat_a", "hi"),
                {"id": "chat_bad", "messages": [{"role": "user"}]},
                _stored_chat("chat_a", "again"),
            ]
        )

        store = SessionStore(adapter)

        assert [c.id for c in store.list_chats()] == ["chat_a"]
        assert store.chats[0].messages[0].content == "hi"

    def test_corrupt_chats_blob(self) -> None:
        adapter = InMemoryStore({SCHEMA_VERSION_STORAGE_KEY: "1", CHATS_STORAGE_KEY: "{broken"})
        assert SessionStore(adapter).list_chats() == []

    def test_merges_stored_settings_over_defaults(self) -> None:
        adapter = _adapter_with([], **{SETTINGS_STORAGE_KEY: json.dumps({"model": "gpt-4o", "temperature": 0.2})})

        settings = SessionStore(adapter).settings

        assert settings.model == "gpt-4o"
        assert settings.temperature == 0.2
        assert settings.max_tokens == 2048

    def test_invalid_stored_settings_fall_back(self) -> None:
        adapter = _adapter_with([], **{SETTINGS_STORAGE_KEY: json.dumps({"temperature": 9})})
        assert SessionStore(adapter).settings.temperature == 0.7

    def test_migrates_unversioned_blob(self) -> None:
        """Legacy blobs without a version are normalized and re-saved."""
        adapter = InMemoryStore(
            {CHATS_STORAGE_KEY: json.dumps([{"id": "chat_old", "messages": [{"role": "user", "content": "hi"}]}])}
        )

        store = SessionStore(adapter)

        chat = store.get_chat("chat_old")
        assert chat is not None
        assert chat.title == "hi"
        assert chat.messages[0].id.startswith("msg_")
        assert adapter.get(SCHEMA_VERSION_STORAGE_KEY) == str(SCHEMA_VERSION)
        assert json.loads(adapter.get(CHATS_STORAGE_KEY) or "[]")[0]["title"] == "hi"

    def test_newer_schema_is_left_untouched(self) -> None:
        """Data from a newer build survives later mutations of this store."""
        stored_chats = json.dumps([_stored_chat("chat_keep", "keep me")])
        adapter = InMemoryStore({SCHEMA_VERSION_STORAGE_KEY: "2", CHATS_STORAGE_KEY: stored_chats})

        store = SessionStore(adapter)

        assert store.read_only
        assert store.list_chats() == []

        chat = store.create_chat()
        store.append_message(chat.id, Message.user("hello"))
        store.update_settings(Settings(api_key="sk-new"))

        assert store.active_chat_id == chat.id
        assert adapter.data == {SCHEMA_VERSION_STORAGE_KEY: "2", CHATS_STORAGE_KEY: stored_chats}

    def test_supported_schema_is_writable(self, store: SessionStore) -> None:
        assert store.read_only is False


class TestChatLifecycle:
    """Tests for create/delete/append."""

    def test_create_chat(self, store: SessionStore, memory_adapter: InMemoryStore) -> None:
        chat = store.create_chat()

        assert chat.title == "New Chat"
        assert chat.messages == []
        assert store.active_chat_id == chat.id
        assert memory_adapter.get(ACTIVE_CHAT_STORAGE_KEY) == chat.id

    def test_new_chats_are_prepended(self, store: SessionStore) -> None:
        first = store.create_chat()
        second = store.create_chat()
        assert [c.id for c in store.list_chats()] == [second.id, first.id]

    def test_delete_active_chat_moves_pointer_to_first(self, store: SessionStore) -> None:
        older = store.create_chat()
        newer = store.create_chat()

        assert store.delete_chat(newer.id) is True

        assert store.active_chat_id == older.id

    def test_delete_only_chat_clears_pointer(self, store: SessionStore, memory_adapter: InMemoryStore) -> None:
        chat = store.create_chat()

        store.delete_chat(chat.id)

        assert store.active_chat_id is None
        assert store.list_chats() == []
        assert memory_adapter.get(ACTIVE_CHAT_STORAGE_KEY) is None

    def test_delete_non_active_chat_keeps_pointer(self, store: SessionStore) -> None:
        other = store.create_chat()
        active = store.create_chat()

        store.delete_chat(other.id)

        assert store.active_chat_id == active.id

    def test_delete_unknown_chat(self, store: SessionStore) -> None:
        store.create_chat()
        assert store.delete_chat("chat_missing") is False
        assert len(store.list_chats()) == 1

    def test_first_user_message_sets_title(self, store: SessionStore) -> None:
        chat = store.create_chat()
        store.append_message(chat.id, Message.user("What is APR?"))
        assert chat.title == "What is APR?"

    def test_long_first_message_title_truncated(self, store: SessionStore) -> None:
        chat = store.create_chat()
        text = "Please explain every fee on this closing disclosure in detail"
        store.append_message(chat.id, Message.user(text))
        assert chat.title == text[:50] + "..."

    def test_later_messages_do_not_change_title(self, store: SessionStore) -> None:
        chat = store.create_chat()
        store.append_message(chat.id, Message.user("first"))
        store.append_message(chat.id, Message.assistant("answer"))
        store.append_message(chat.id, Message.user("second"))

        assert chat.title == "first"
        assert [m.content for m in chat.messages] == ["first", "answer", "second"]

    def test_assistant_first_keeps_default_title(self, store: SessionStore) -> None:
        chat = store.create_chat()
        store.append_message(chat.id, Message.assistant("hello"))
        assert chat.title == "New Chat"

    def test_append_to_unknown_chat(self, store: SessionStore) -> None:
        with pytest.raises(NotFoundError):
            store.append_message("chat_missing", Message.user("hi"))

    def test_set_active(self, store: SessionStore, memory_adapter: InMemoryStore) -> None:
        first = store.create_chat()
        store.create_chat()

        store.set_active(first.id)
        assert store.active_chat is first

        store.set_active(None)
        assert store.active_chat is None
        assert memory_adapter.get(ACTIVE_CHAT_STORAGE_KEY) is None


class TestPersistence:
    """Tests for snapshot writes."""

    def test_every_mutation_is_persisted(self, temp_dir: Path) -> None:
        """A store reopened from disk sees the same state."""
        path = temp_dir / "loanlens.json"
        store = SessionStore(JsonFileStore(path))
        chat = store.create_chat()
        store.append_message(chat.id, Message.user("hi"))
        store.update_settings(store.settings.with_preset("precise"))

        reopened = SessionStore(JsonFileStore(path))

        assert reopened.active_chat_id == chat.id
        assert reopened.get_chat(chat.id) == chat
        assert reopened.settings.temperature == 0.3

    def test_persisted_shape(self, store: SessionStore, memory_adapter: InMemoryStore) -> None:
        chat = store.create_chat()
        store.append_message(chat.id, Message.user("hi"))

        stored = json.loads(memory_adapter.get(CHATS_STORAGE_KEY) or "[]")
        assert stored[0]["id"] == chat.id
        assert stored[0]["createdAt"] == chat.created_at
        assert stored[0]["messages"][0]["role"] == "user"
        assert json.loads(memory_adapter.get(SETTINGS_STORAGE_KEY) or "{}")["cloudEndpoint"]

    def test_write_failure_is_logged_not_raised(self, store: SessionStore) -> None:
        with (
            patch.object(store.adapter, "set_many", side_effect=PersistenceError("disk full")),
            patch("loanlens.core.session_store.logger") as mock_logger,
        ):
            chat = store.create_chat()

            assert store.active_chat_id == chat.id
            mock_logger.error.assert_called_once()

    def test_each_mutation_is_one_write(self, temp_dir: Path) -> None:
        """A mutation replaces the store file once with the complete snapshot."""
        store = SessionStore(JsonFileStore(temp_dir / "sessions.json"))

        with patch("loanlens.utils.persistence.os.replace", wraps=os.replace) as mock_replace:
            chat = store.create_chat()

        assert mock_replace.call_count == 1
        document = json.loads((temp_dir / "sessions.json").read_text(encoding="utf-8"))
        assert document[ACTIVE_CHAT_STORAGE_KEY] == chat.id
        assert json.loads(document[CHATS_STORAGE_KEY])[0]["id"] == chat.id
        assert document[SCHEMA_VERSION_STORAGE_KEY] == str(SCHEMA_VERSION)
