"""Tests for JSON utility functions."""

from __future__ import annotations

from loanlens.utils.json_utils import json_compact, json_pretty, safe_json_loads


class TestJsonUtils:
    """Tests for serialization helpers."""

    def test_compact(self) -> None:
        assert json_compact({"a": [1, 2]}) == '{"a":[1,2]}'

    def test_pretty_uses_two_spaces(self) -> None:
        assert json_pretty({"a": 1}) == '{\n  "a": 1\n}'

    def test_non_ascii_preserved(self) -> None:
        assert json_compact({"t": "⚠️ Error"}) == '{"t":"⚠️ Error"}'

    def test_safe_loads(self) -> None:
        assert safe_json_loads('{"a": 1}') == {"a": 1}
        assert safe_json_loads(None, default=[]) == []
        assert safe_json_loads("not json", default=[]) == []
        assert safe_json_loads("not json") is None
