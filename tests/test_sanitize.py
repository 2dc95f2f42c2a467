"""Tests for identifier sanitization.

Verifies that ``sanitize_identifier()`` is total and length-preserving,
that ``quote_identifier()`` always sanitizes before quoting, and that
``is_valid_identifier()`` applies the stricter caller-side format.
"""

import re

import pytest

from schema_sync.schema.sanitize import (
    MAX_IDENTIFIER_LENGTH,
    is_valid_identifier,
    quote_identifier,
    sanitize_identifier,
)

SAFE = re.compile(r"^[A-Za-z0-9_]*$")


class TestSanitizeIdentifier:
    """Verify every unsafe character becomes an underscore."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("users", "users"),
            ("order items", "order_items"),
            ("user-email", "user_email"),
            ("a.b c", "a_b_c"),
            ("drop`table", "drop_table"),
            ("x; DROP TABLE y; --", "x__DROP_TABLE_y____"),
            ("", ""),
        ],
    )
    def test_known_inputs(self, raw: str, expected: str) -> None:
        """Known inputs map to the expected sanitized names."""
        assert sanitize_identifier(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        ["naïve", "表格", "emoji😀name", "tab\tname", "new\nline", "quote'd", 'dq"x', "%s:name"],
    )
    def test_output_is_safe_and_same_length(self, raw: str) -> None:
        """Output matches ^[A-Za-z0-9_]*$ and keeps the input length."""
        result = sanitize_identifier(raw)
        assert SAFE.match(result)
        assert len(result) == len(raw)

    def test_idempotent(self) -> None:
        """Sanitizing a sanitized name changes nothing."""
        once = sanitize_identifier("my-table name")
        assert sanitize_identifier(once) == once

    def test_no_length_limit(self) -> None:
        """The sanitizer never truncates."""
        raw = "x" * (MAX_IDENTIFIER_LENGTH * 2)
        assert sanitize_identifier(raw) == raw


class TestQuoteIdentifier:
    """Verify quoting wraps the sanitized name in backticks."""

    def test_quotes_plain_name(self) -> None:
        assert quote_identifier("users") == "`users`"

    def test_backtick_cannot_escape(self) -> None:
        """An embedded backtick is replaced, not doubled or kept."""
        assert quote_identifier("a`; DROP TABLE b") == "`a___DROP_TABLE_b`"


class TestIsValidIdentifier:
    """Verify the stricter caller-side identifier format."""

    @pytest.mark.parametrize("name", ["shop", "_private", "Shop_2024", "a" * MAX_IDENTIFIER_LENGTH])
    def test_valid(self, name: str) -> None:
        assert is_valid_identifier(name)

    @pytest.mark.parametrize(
        "name", ["", "1shop", "my-shop", "my shop", "a" * (MAX_IDENTIFIER_LENGTH + 1)]
    )
    def test_invalid(self, name: str) -> None:
        assert not is_valid_identifier(name)

    def test_custom_max_length(self) -> None:
        """max_length overrides the MySQL default."""
        assert not is_valid_identifier("abcdef", max_length=5)
        assert is_valid_identifier("abcde", max_length=5)
