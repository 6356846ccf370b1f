"""
Utils Module - Infrastructure Utilities
=======================================

Modules:
    logger: JSON structured logging with rotation and PII redaction
    http_logger: httpx event hooks for request/response debugging
    client_factory: httpx.AsyncClient creation with streaming-friendly timeouts
    persistence: Key-value store adapters and schema migrations
    json_utils: Shared JSON serialization helpers
"""
