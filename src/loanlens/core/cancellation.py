"""Stop flag shared by the session controller and the completion client.

The controller flips the flag; the client checks it before sending and
between streamed lines, so a stopped turn ends at the next line it reads.
"""

from __future__ import annotations

from loanlens.models.error_models import RequestCancelledError


class CancellationToken:
    """One-shot stop request for a single turn. The first reason given sticks."""

    def __init__(self) -> None:
        self._cancelled = False
        self._cancel_reason: str | None = None

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def cancel_reason(self) -> str | None:
        return self._cancel_reason

    def cancel(self, reason: str | None = None) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._cancel_reason = reason

    def check(self) -> None:
        """Raise RequestCancelledError once the turn has been stopped."""
        if self._cancelled:
            raise RequestCancelledError(self._cancel_reason)
