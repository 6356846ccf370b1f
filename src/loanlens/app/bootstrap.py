"""Application initialization and configuration for LoanLens.

This module handles all bootstrap operations required before entering the main
loop: environment loading, settings validation, persistence setup and client
creation.
"""

from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv

from loanlens.app.state import AppState
from loanlens.core.completion_client import CompletionClient
from loanlens.core.constants import PROJECT_ROOT, Environment, get_environment
from loanlens.core.session_controller import SessionController, StreamDeltaCallback
from loanlens.core.session_store import SessionStore
from loanlens.utils.client_factory import create_http_client
from loanlens.utils.logger import logger
from loanlens.utils.persistence import JsonFileStore


def _seed_api_key(store: SessionStore, api_key: str | None) -> None:
    """Copy the environment API key into the settings when none is stored."""
    if not api_key or store.settings.api_key:
        return
    store.update_settings(store.settings.model_copy(update={"api_key": api_key}))
    logger.info("Seeded cloud API key from environment")


def initialize_application(
    environment: Environment | None = None,
    on_stream_delta: StreamDeltaCallback | None = None,
) -> AppState:
    """Initialize LoanLens and return populated state.

    1. Load .env and validate the environment
    2. Open the JSON key-value store and load chats and settings
    3. Create the httpx client (with optional request logging)
    4. Wire the completion client and session controller

    Args:
        environment: Pre-built environment (defaults to the cached one)
        on_stream_delta: Receives the cumulative text while a turn streams

    Returns:
        AppState ready for the main loop
    """
    if environment is None:
        load_dotenv(PROJECT_ROOT / ".env")
        environment = get_environment()

    storage_path = Path(environment.storage_path).expanduser()
    store = SessionStore(JsonFileStore(storage_path))
    _seed_api_key(store, environment.loanlens_api_key)
    logger.info(f"Session store ready at {storage_path}")

    http_client = create_http_client(
        enable_logging=environment.http_request_logging,
        connect_timeout=environment.connect_timeout,
        read_timeout=environment.read_timeout,
    )
    if environment.http_request_logging:
        logger.info("HTTP request/response logging enabled")

    client = CompletionClient(http_client)
    controller = SessionController(
        store,
        client,
        on_stream_delta=on_stream_delta,
        turn_timeout=environment.turn_timeout,
    )

    settings = store.settings
    logger.info(f"App initialized (connection={settings.connection_type}, model={settings.active_model})")

    return AppState(
        environment=environment,
        store=store,
        http_client=http_client,
        client=client,
        controller=controller,
    )
