"""DDL and INSERT synthesis from catalog column descriptors.

Both statements for a table are built from the same ordered
``ColumnDescriptor`` list, so the CREATE TABLE column order and the INSERT
column/value order can never diverge.  Identifiers are always quoted as
identifiers (reserved words and mixed case survive a restore).

Usage:
    from pg_backup.backup.ddl import build_create_statement, build_insert_statement

    create_sql = build_create_statement("users", columns)
    insert_sql = build_insert_statement("users", columns, {"id": 1, "name": "Ann"})
"""

from collections.abc import Mapping, Sequence
from typing import Any

from pg_backup.backup.codec import quote_ident, render_value
from pg_backup.errors import SerializationError
from pg_backup.schema.models import ColumnDescriptor


def order_columns(columns: Sequence[ColumnDescriptor]) -> list[ColumnDescriptor]:
    """Return *columns* sorted by ordinal position."""
    return sorted(columns, key=lambda c: c.ordinal_position)


def build_create_statement(table: str, columns: Sequence[ColumnDescriptor]) -> str:
    """Build a ``CREATE TABLE`` statement, one line per column.

    Example:
        >>> print(build_create_statement("users", [
        ...     ColumnDescriptor(name="id", declared_type="integer",
        ...                      nullable=False, ordinal_position=1),
        ... ]))
        CREATE TABLE "users" (
          "id" integer NOT NULL
        );
    """
    lines = []
    for col in order_columns(columns):
        line = f"  {quote_ident(col.name)} {col.declared_type} {col.not_null_marker}"
        lines.append(line.rstrip())
    body = ",\n".join(lines)
    return f"CREATE TABLE {quote_ident(table)} (\n{body}\n);"


def build_insert_statement(
    table: str,
    columns: Sequence[ColumnDescriptor],
    row: Mapping[str, Any],
    diagnostics: list[SerializationError] | None = None,
) -> str:
    """Build one ``INSERT INTO`` statement for *row*.

    Values are looked up by column name in ordinal order -- never in the
    order the row's keys happen to arrive.  A column missing from *row*
    renders as ``NULL``.
    """
    ordered = order_columns(columns)
    column_list = ", ".join(quote_ident(c.name) for c in ordered)
    values = ", ".join(
        render_value(row.get(c.name), c.declared_type, diagnostics) for c in ordered
    )
    return f"INSERT INTO {quote_ident(table)} ({column_list}) VALUES ({values});"
