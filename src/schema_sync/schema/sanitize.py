"""Identifier sanitization for MySQL DDL.

Every user-supplied name (table, column, database) passes through
``sanitize_identifier`` before it is interpolated into a statement.
Pure functions -- no I/O.

Usage:
    from schema_sync.schema.sanitize import sanitize_identifier, quote_identifier

    sanitize_identifier("order items")   # 'order_items'
    quote_identifier("order-items")      # '`order_items`'
"""

import re

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_]")
_VALID_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# MySQL limit for table, column, database and constraint names
MAX_IDENTIFIER_LENGTH = 64


def sanitize_identifier(name: str) -> str:
    """Replace every character outside ``[A-Za-z0-9_]`` with ``_``.

    Total and deterministic: the output always has the same length as the
    input and never fails.  No length limit is enforced here.

    Examples:
        >>> sanitize_identifier("user-email")
        'user_email'
        >>> sanitize_identifier("a.b c")
        'a_b_c'
        >>> sanitize_identifier("")
        ''
    """
    return _UNSAFE_CHARS.sub("_", name)


def quote_identifier(name: str) -> str:
    """Sanitize *name* and wrap it in backticks."""
    return f"`{sanitize_identifier(name)}`"


def is_valid_identifier(name: str, max_length: int = MAX_IDENTIFIER_LENGTH) -> bool:
    """Check the stricter format callers may enforce before sanitizing.

    A valid identifier starts with a letter or underscore, contains only
    word characters, and is at most *max_length* characters long.

    Examples:
        >>> is_valid_identifier("shop_db")
        True
        >>> is_valid_identifier("1shop")
        False
    """
    if not name or len(name) > max_length:
        return False
    return _VALID_IDENTIFIER.match(name) is not None
