"""Centralized JSON serialization utilities.

Pre-created partial functions for common JSON serialization patterns.
"""

from __future__ import annotations

import json

from collections.abc import Callable
from functools import partial
from typing import Any

# Compact JSON serialization (no spaces) with fallback to str for non-serializable types.
# Use for values written to the key-value store.
json_compact: Callable[..., str] = partial(json.dumps, separators=(",", ":"), default=str, ensure_ascii=False)

# Pretty-printed JSON with 2-space indentation.
# Use for human-readable output files such as chat exports.
json_pretty: Callable[..., str] = partial(json.dumps, indent=2, default=str, ensure_ascii=False)


def safe_json_loads(text: str | None, default: Any = None) -> Any:
    """Parse JSON text, returning ``default`` for None or invalid input.

    Example:
        >>> safe_json_loads('{"a": 1}')
        {'a': 1}
        >>> safe_json_loads("not json", default=[])
        []
    """
    if text is None:
        return default
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return default
