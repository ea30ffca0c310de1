"""SQL statements for the single-column sample tables.

Kept separate from the connection layer so the generated T-SQL can be
tested without a database.
"""

from __future__ import annotations

import re

from ._constants import SAMPLE_COLUMN

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def quote_identifier(name: str) -> str:
    """Return *name* wrapped in brackets, rejecting anything but a plain identifier."""
    if not _IDENTIFIER_RE.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return f"[{name}]"


def quote_literal(value: str) -> str:
    """Return *value* as a T-SQL string literal."""
    return "'" + value.replace("'", "''") + "'"


def build_create_table(table: str, column: str = SAMPLE_COLUMN) -> str:
    return (
        f"CREATE TABLE {quote_identifier(table)} "
        f"({quote_identifier(column)} [varchar](30) NOT NULL)"
    )


def build_insert(table: str, value: str) -> str:
    if len(value) > 30:
        raise ValueError(f"Sample value must be at most 30 characters, got {len(value)}")
    return f"INSERT INTO {quote_identifier(table)} VALUES ({quote_literal(value)})"


def build_select_all(table: str) -> str:
    return f"SELECT * FROM {quote_identifier(table)};"
