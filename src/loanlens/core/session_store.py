"""Session store for persistent conversations.

Owns the chat collection, the active chat pointer and the user settings.
Every mutation writes a full snapshot to the injected persistence adapter in a
single batched write. Persisted data that cannot be migrated (for
example a newer schema) is left untouched: the store opens empty and read-only.
"""

from __future__ import annotations

from pydantic import ValidationError as PydanticValidationError

from loanlens.core.constants import (
    ACTIVE_CHAT_STORAGE_KEY,
    CHATS_STORAGE_KEY,
    SCHEMA_VERSION,
    SCHEMA_VERSION_STORAGE_KEY,
    SETTINGS_STORAGE_KEY,
)
from loanlens.models.error_models import NotFoundError, PersistenceError
from loanlens.models.session_models import Chat, Message, MessageRole, make_title
from loanlens.models.settings_models import Settings
from loanlens.utils.json_utils import json_compact, safe_json_loads
from loanlens.utils.logger import logger
from loanlens.utils.persistence import PersistenceAdapter, migrate_snapshot


class SessionStore:
    """Manages the chat collection and its lifecycle.

    Chats are kept most-recent-first. The active chat pointer is either None
    or the id of a chat in the collection.
    """

    def __init__(self, adapter: PersistenceAdapter, default_settings: Settings | None = None):
        """Initialize the store and load any persisted state.

        Args:
            adapter: Key-value store used for durability
            default_settings: Settings used when nothing valid is persisted
        """
        self.adapter = adapter
        self.chats: list[Chat] = []
        self.active_chat_id: str | None = None
        self._settings = default_settings or Settings()
        self._read_only = False
        self._load()

    # ========== Loading ==========

    def _load(self) -> None:
        """Load chats, settings and the active pointer from the adapter."""
        raw_version = self.adapter.get(SCHEMA_VERSION_STORAGE_KEY)
        try:
            version = int(raw_version) if raw_version is not None else 0
        except ValueError:
            logger.warning(f"Ignoring invalid stored schema version: {raw_version!r}")
            version = 0

        snapshot = {
            "chats": safe_json_loads(self.adapter.get(CHATS_STORAGE_KEY), default=[]),
            "settings": safe_json_loads(self.adapter.get(SETTINGS_STORAGE_KEY), default=None),
        }
        try:
            snapshot = migrate_snapshot(snapshot, version)
        except PersistenceError as e:
            logger.error(f"Failed to migrate stored sessions, opening read-only: {e}")
            self._read_only = True
            return

        self.chats = self._parse_chats(snapshot.get("chats"))
        self._settings = self._merge_settings(snapshot.get("settings"))

        saved_active = self.adapter.get(ACTIVE_CHAT_STORAGE_KEY)
        if saved_active and self.get_chat(saved_active) is not None:
            self.active_chat_id = saved_active
        else:
            self.active_chat_id = self.chats[0].id if self.chats else None

        logger.info(f"Loaded {len(self.chats)} chats (schema v{version})")
        if version != SCHEMA_VERSION:
            self._save()

    def _parse_chats(self, raw_chats: object) -> list[Chat]:
        if not isinstance(raw_chats, list):
            return []

        chats: list[Chat] = []
        seen: set[str] = set()
        for raw in raw_chats:
            try:
                chat = Chat.model_validate(raw)
            except PydanticValidationError as e:
                logger.warning(f"Skipping invalid stored chat: {e.error_count()} validation errors")
                continue
            if chat.id in seen:
                logger.warning(f"Skipping duplicate stored chat id: {chat.id}")
                continue
            seen.add(chat.id)
            chats.append(chat)
        return chats

    def _merge_settings(self, raw_settings: object) -> Settings:
        """Overlay persisted settings on the defaults."""
        if not isinstance(raw_settings, dict):
            return self._settings

        merged = {**self._settings.to_dict(), **raw_settings}
        try:
            return Settings.model_validate(merged)
        except PydanticValidationError as e:
            logger.warning(f"Ignoring invalid stored settings: {e.error_count()} validation errors")
            return self._settings

    # ========== Saving ==========

    def _save(self) -> None:
        """Write the full snapshot in one batch. Failures are logged, never raised."""
        if self._read_only:
            logger.warning("Session store is read-only, changes are kept in memory only")
            return

        try:
            self.adapter.set_many(
                {
                    SCHEMA_VERSION_STORAGE_KEY: str(SCHEMA_VERSION),
                    CHATS_STORAGE_KEY: json_compact([chat.to_dict() for chat in self.chats]),
                    SETTINGS_STORAGE_KEY: json_compact(self._settings.to_dict()),
                    ACTIVE_CHAT_STORAGE_KEY: self.active_chat_id,
                }
            )
        except PersistenceError as e:
            logger.error(f"Failed to save sessions: {e}", exc_info=True)

    # ========== Chat lifecycle ==========

    def create_chat(self) -> Chat:
        """Create an empty chat, prepend it and make it active.

        Returns:
            The new chat
        """
        chat = Chat()
        self.chats.insert(0, chat)
        self.active_chat_id = chat.id
        self._save()

        logger.info(f"Created new chat: {chat.id}")
        return chat

    def delete_chat(self, chat_id: str) -> bool:
        """Delete a chat, repointing the active chat if needed.

        Args:
            chat_id: Chat to delete

        Returns:
            True if deleted, False if not found
        """
        chat = self.get_chat(chat_id)
        if chat is None:
            logger.warning(f"Attempted to delete non-existent chat: {chat_id}")
            return False

        self.chats.remove(chat)
        if self.active_chat_id == chat_id:
            self.active_chat_id = self.chats[0].id if self.chats else None

        self._save()
        logger.info(f"Deleted chat: {chat_id}")
        return True

    def append_message(self, chat_id: str, message: Message) -> Chat:
        """Append a message to a chat.

        The first user message of an empty chat also becomes its title.

        Raises:
            NotFoundError: If no chat has this id
        """
        chat = self.get_chat(chat_id)
        if chat is None:
            raise NotFoundError(chat_id)

        if not chat.messages and message.role == MessageRole.USER:
            chat.title = make_title(message.content)
        chat.messages.append(message)

        self._save()
        logger.debug(f"Appended {message.role} message to {chat_id} ({len(chat.messages)} total)")
        return chat

    def set_active(self, chat_id: str | None) -> None:
        """Point the active chat at ``chat_id`` (or clear it with None)."""
        self.active_chat_id = chat_id
        self._save()

    # ========== Queries ==========

    @property
    def read_only(self) -> bool:
        """True when persisted data could not be loaded and must not be overwritten."""
        return self._read_only

    def get_chat(self, chat_id: str) -> Chat | None:
        """Get chat by ID, or None if not found."""
        return next((chat for chat in self.chats if chat.id == chat_id), None)

    def list_chats(self) -> list[Chat]:
        """All chats, most recent first."""
        return list(self.chats)

    @property
    def active_chat(self) -> Chat | None:
        """The chat the active pointer references, if any."""
        if self.active_chat_id is None:
            return None
        return self.get_chat(self.active_chat_id)

    # ========== Settings ==========

    @property
    def settings(self) -> Settings:
        """Current connection and generation settings."""
        return self._settings

    def update_settings(self, settings: Settings) -> None:
        """Replace the settings and persist them."""
        self._settings = settings
        self._save()
        logger.info(f"Settings updated (connection={settings.connection_type}, model={settings.active_model})")
