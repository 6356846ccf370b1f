"""Application state management for LoanLens.

AppState is the single container for everything the front end needs after
bootstrap. It is passed explicitly to the command handlers rather than kept in
module-level globals.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from loanlens.core.completion_client import CompletionClient
from loanlens.core.constants import Environment
from loanlens.core.session_controller import SessionController
from loanlens.core.session_store import SessionStore


@dataclass
class AppState:
    """Application state container.

    Attributes:
        environment: Validated process-level configuration
        store: Chat collection and settings
        http_client: Shared httpx client, closed on shutdown
        client: Completion client bound to ``http_client``
        controller: Turn orchestrator (one per process)
    """

    environment: Environment
    store: SessionStore
    http_client: httpx.AsyncClient
    client: CompletionClient
    controller: SessionController

    async def aclose(self) -> None:
        """Release network resources, cancelling any in-flight turn first."""
        self.controller.cancel("shutdown")
        await self.http_client.aclose()
