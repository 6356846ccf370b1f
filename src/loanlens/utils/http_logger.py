"""
HTTP request/response logging for debugging completion provider issues.

Captures request payloads and response status using httpx event hooks.
"""

from __future__ import annotations

import json

from typing import Any

import httpx

from loanlens.utils.logger import logger

SENSITIVE_HEADERS = ("authorization", "api-key", "x-api-key")


class HTTPLogger:
    """Logs HTTP requests and responses for debugging."""

    def __init__(self, enabled: bool = True):
        """Initialize HTTP logger.

        Args:
            enabled: Whether to enable HTTP logging (default: True)
        """
        self.enabled = enabled
        self._request_data: dict[int, dict[str, Any]] = {}

    async def log_request(self, request: httpx.Request) -> None:
        """Log outgoing HTTP request.

        Args:
            request: The httpx request object
        """
        if not self.enabled:
            return

        try:
            body_str = request.content.decode("utf-8") if request.content else ""
            body_json = json.loads(body_str) if body_str else {}
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            body_json = {"_error": f"Unreadable body: {e!s}"}

        self._request_data[id(request)] = {"method": request.method, "url": str(request.url)}

        logger.info(
            f"HTTP Request: {request.method} {request.url}",
            http_request=True,
            method=request.method,
            url=str(request.url),
            headers=self._sanitize_headers(dict(request.headers)),
            payload=self._sanitize_payload(body_json),
        )

    async def log_response(self, response: httpx.Response) -> None:
        """Log HTTP response status. Bodies are never read here, since
        completion responses are usually streams.

        Args:
            response: The httpx response object
        """
        if not self.enabled:
            return

        request_data = self._request_data.pop(id(response.request), {})
        logger.info(
            f"HTTP Response: {response.status_code} "
            f"{request_data.get('method', 'UNKNOWN')} {request_data.get('url', 'UNKNOWN')}",
            http_response=True,
            status_code=response.status_code,
            content_type=response.headers.get("content-type", ""),
        )

    def _sanitize_headers(self, headers: dict[str, str]) -> dict[str, str]:
        """Mask sensitive header values, keeping the last 4 characters."""
        sanitized = headers.copy()
        for key, value in headers.items():
            if key.lower() in SENSITIVE_HEADERS:
                sanitized[key] = f"***{value[-4:]}" if len(value) > 4 else "***"
        return sanitized

    def _sanitize_payload(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Replace message contents with their lengths."""
        messages = payload.get("messages")
        if not isinstance(messages, list):
            return payload
        summary = [
            {"role": m.get("role"), "chars": len(str(m.get("content", "")))} for m in messages if isinstance(m, dict)
        ]
        return {**payload, "messages": summary}


def create_logging_client(
    enabled: bool = True,
    timeout: httpx.Timeout | None = None,
) -> httpx.AsyncClient:
    """Create an httpx client with request/response logging.

    Args:
        enabled: Whether to enable HTTP logging
        timeout: Optional timeout configuration

    Returns:
        Configured httpx.AsyncClient with event hooks
    """
    http_logger = HTTPLogger(enabled=enabled)

    event_hooks: dict[str, list[Any]] = {
        "request": [http_logger.log_request],
        "response": [http_logger.log_response],
    }

    return httpx.AsyncClient(event_hooks=event_hooks, timeout=timeout)
