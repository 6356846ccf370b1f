"""
Constants and configuration for LoanLens.
Centralizes all magic numbers and configuration values.
Includes Pydantic validation for environment variables.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ============================================================================
# Project Paths
# ============================================================================

#: Project root directory (parent of src/)
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent

#: Default location of the key-value store holding chats and settings
DEFAULT_STORAGE_PATH = "data/loanlens.json"

# ============================================================================
# Persistence Configuration
# ============================================================================

#: Storage key for the serialized chat collection.
CHATS_STORAGE_KEY = "loanlens-chats"

#: Storage key for the serialized settings object.
SETTINGS_STORAGE_KEY = "loanlens-settings"

#: Storage key for the active chat id (absent when no chat is active).
ACTIVE_CHAT_STORAGE_KEY = "loanlens-active-chat"

#: Storage key for the persisted schema version.
#: Blobs written before versioning was introduced carry no version and are
#: treated as version 0.
SCHEMA_VERSION_STORAGE_KEY = "loanlens-schema-version"

#: Current schema version of the persisted blob.
SCHEMA_VERSION = 1

# ============================================================================
# Chat Configuration
# ============================================================================

#: Title given to a chat before its first user message.
DEFAULT_CHAT_TITLE = "New Chat"

#: Maximum characters of the first user message kept in a chat title.
CHAT_TITLE_MAX_LENGTH = 50

#: Suffix appended to a chat title that was truncated.
CHAT_TITLE_ELLIPSIS = "..."

#: Length of generated chat/message IDs (hex characters).
#: 12 hex chars = 6 bytes, enough for a single local collection.
CHAT_ID_LENGTH = 12

#: Assistant content used when a non-streaming response carries no content.
NO_RESPONSE_TEXT = "No response received."

#: Template for the assistant message committed when a turn fails.
ERROR_MESSAGE_TEMPLATE = "⚠️ Error: {reason}\n\nPlease check your API settings and try again."

#: Heading labels used when a chat is exported as Markdown.
EXPORT_ROLE_LABELS = {"user": "👤 User", "assistant": "🤖 LoanLens AI"}

# ============================================================================
# HTTP / SSE Configuration
# ============================================================================

#: Path appended to the configured endpoint for completion requests.
CHAT_COMPLETIONS_PATH = "/chat/completions"

#: Path appended to the configured endpoint for the connectivity check.
MODELS_PATH = "/models"

#: Prefix of a content-bearing Server-Sent Events line.
SSE_DATA_PREFIX = "data: "

#: Payload that signals the end of a completion stream.
SSE_DONE_SENTINEL = "[DONE]"

#: Default httpx timeouts (seconds). Reads are generous because local models
#: can stall for a long time before emitting the first token.
DEFAULT_CONNECT_TIMEOUT = 30.0
DEFAULT_READ_TIMEOUT = 300.0
DEFAULT_WRITE_TIMEOUT = 30.0
DEFAULT_POOL_TIMEOUT = 30.0

# ============================================================================
# Logging Configuration
# ============================================================================

#: Maximum size in bytes for log files before rotation (10MB).
LOG_MAX_SIZE = 10 * 1024 * 1024

#: Number of conversation log backups to retain during rotation.
LOG_BACKUP_COUNT_CONVERSATIONS = 5

#: Number of error log backups to retain during rotation.
LOG_BACKUP_COUNT_ERRORS = 3

#: Maximum characters to show in log previews for user input/response.
LOG_PREVIEW_LENGTH = 50

#: Length of the per-process logger correlation id.
LOGGER_ID_LENGTH = 8

# ============================================================================
# Environment Configuration with Pydantic Validation
# ============================================================================


class Environment(BaseSettings):
    """Environment settings with validation.

    Loads from environment variables and .env file. These are process-level
    knobs; per-user connection and generation settings are persisted in the
    session store instead.
    """

    # Optional debug setting
    debug: bool = Field(default=False, description="Enable debug logging")

    # HTTP request/response logging (for debugging provider issues)
    http_request_logging: bool = Field(default=False, description="Enable HTTP request/response logging")

    # Conversation content in log files (redacted) instead of [HIDDEN]
    enable_content_logging: bool = Field(default=False, description="Log redacted message previews")

    # Key-value store location
    storage_path: str = Field(default=DEFAULT_STORAGE_PATH, description="Path of the JSON key-value store")

    # Network timeouts
    connect_timeout: float = Field(default=DEFAULT_CONNECT_TIMEOUT, gt=0, description="Connect timeout (seconds)")
    read_timeout: float = Field(default=DEFAULT_READ_TIMEOUT, gt=0, description="Read timeout (seconds)")
    turn_timeout: float | None = Field(default=None, description="Upper bound for a whole turn (seconds)")

    # Seeds the cloud API key when the stored settings have none
    loanlens_api_key: str | None = Field(default=None, description="API key for the cloud endpoint")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("turn_timeout")
    @classmethod
    def validate_turn_timeout(cls, v: float | None) -> float | None:
        """Treat non-positive turn timeouts as disabled."""
        if v is not None and v <= 0:
            return None
        return v

    @field_validator("loanlens_api_key")
    @classmethod
    def validate_api_key(cls, v: str | None) -> str | None:
        """Normalize blank API keys to None."""
        if v is not None and not v.strip():
            return None
        return v

    def model_post_init(self, __context: Any) -> None:
        """Keep the read timeout within the turn timeout when both are set."""
        if self.turn_timeout is not None and self.read_timeout > self.turn_timeout:
            self.read_timeout = self.turn_timeout


@lru_cache
def get_environment() -> Environment:
    """Get cached environment settings.

    Uses LRU cache to ensure we only load and validate settings once.
    """
    return Environment()
