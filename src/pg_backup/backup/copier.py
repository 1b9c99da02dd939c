"""Table copier: replace a target table's rows with a source table's rows.

Steps, each of which must succeed before the next starts:

1. The table exists in the source, then in the target (``NotFoundError``
   names the side).
2. The table is not system-owned (``UnsafeSchemaError``) and its source
   columns resolve: ``NoColumnsError`` if there are none,
   ``UnsafeSchemaError`` if any is system-flagged.
3. Source rows are read.  Zero rows is a successful no-op: the target is
   not touched and no transaction is opened.
4. One transaction on the target: ``DELETE`` every existing row, then one
   parameterized ``INSERT`` per source row in source order.  Commit on
   success; any failure rolls the whole transaction back and surfaces as
   ``TransactionError`` chained to the original cause.

Values are bound, never interpolated: this path controls both ends of a
live connection, unlike the dump path that produces portable text.

Usage:
    async with SchemaIntrospector(source_url) as source, \\
            SchemaIntrospector(target_url) as target_catalog:
        target = AsyncPostgresAdapter(target_url)
        try:
            outcome = await copy_table_data(source, target_catalog, target, "users")
        finally:
            await target.close()
"""

import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from pg_backup.adapters.base import CatalogReader, DatabaseClient
from pg_backup.backup.codec import quote_ident
from pg_backup.backup.ddl import order_columns
from pg_backup.backup.models import CopyOutcome
from pg_backup.errors import (
    BackupError,
    NoColumnsError,
    NotFoundError,
    QueryError,
    TransactionError,
    UnsafeSchemaError,
)
from pg_backup.schema.filters import is_system_table, system_columns
from pg_backup.schema.models import ColumnDescriptor

logger = logging.getLogger(__name__)


def _text_ident(name: str) -> str:
    """Quote an identifier for a SQLAlchemy ``text()`` statement.

    ``text()`` reads ``:word`` as a bind marker even inside double quotes,
    so colons are backslash-escaped.
    """
    return quote_ident(name).replace(":", "\\:")


def build_delete_statement(table: str, schema_name: str = "public") -> str:
    """``DELETE FROM "schema"."table"``."""
    return f"DELETE FROM {_text_ident(schema_name)}.{_text_ident(table)}"


def build_parameterized_insert(
    table: str,
    columns: Sequence[ColumnDescriptor],
    schema_name: str = "public",
) -> str:
    """Build an INSERT with one named placeholder per column.

    Placeholders are ``:p_0``, ``:p_1``... in column order, so identifiers
    that are not valid bind names (spaces, mixed case) never reach the
    parameter layer.  JSON columns are cast explicitly because their values
    are bound as text.

    Example:
        >>> build_parameterized_insert("users", columns)
        'INSERT INTO "public"."users" ("id", "name") VALUES (:p_0, :p_1)'
    """
    column_list = ", ".join(_text_ident(c.name) for c in columns)
    placeholders = []
    for i, col in enumerate(columns):
        placeholder = f":p_{i}"
        if col.is_json:
            placeholder = f"CAST({placeholder} AS {col.declared_type.lower()})"
        placeholders.append(placeholder)
    return (
        f"INSERT INTO {_text_ident(schema_name)}.{_text_ident(table)} "
        f"({column_list}) VALUES ({', '.join(placeholders)})"
    )


def bind_row(
    columns: Sequence[ColumnDescriptor], row: Mapping[str, Any]
) -> dict[str, Any]:
    """Map a row onto ``p_<i>`` parameters in column order.

    ``None`` stays ``None`` (bound as SQL NULL).  JSON column values are
    serialized to text for the explicit cast, strings included: the driver
    hands back a decoded JSON string scalar as a plain ``str``.
    """
    params: dict[str, Any] = {}
    for i, col in enumerate(columns):
        value = row.get(col.name)
        if value is not None and col.is_json:
            value = json.dumps(value, default=str)
        params[f"p_{i}"] = value
    return params


async def copy_table_data(
    source_catalog: CatalogReader,
    target_catalog: CatalogReader,
    target: DatabaseClient,
    table: str,
    schema_name: str = "public",
) -> CopyOutcome:
    """Copy every row of *table* from source to target, replacing the target's rows.

    Args:
        source_catalog: Catalog reader on the source database (read-only).
        target_catalog: Catalog reader on the target database, used for the
            existence check.
        target: Transactional writer on the target database.
        table: Table name, identical on both sides.
        schema_name: Schema holding the table on the target.

    Returns:
        ``CopyOutcome`` with ``success=True`` and the number of rows
        inserted.

    Raises:
        NotFoundError: If the table is missing on either side (``side`` is
            ``"source"`` or ``"target"``).
        NoColumnsError: If the source table has no columns.
        UnsafeSchemaError: If the table itself or any source column is
            system-flagged.
        QueryError: If reading the source fails.
        TransactionError: If the delete or any insert fails.  The target is
            left exactly as it was.
    """
    if not await source_catalog.table_exists(table):
        raise NotFoundError(table, side="source")
    if not await target_catalog.table_exists(table):
        raise NotFoundError(table, side="target")
    if is_system_table(table):
        raise UnsafeSchemaError(table, [], reason="is a system table")

    columns = order_columns(await source_catalog.list_columns(table))
    if not columns:
        raise NoColumnsError(table)
    flagged = system_columns(c.name for c in columns)
    if flagged:
        raise UnsafeSchemaError(table, flagged)

    try:
        rows = await source_catalog.fetch_rows(table, [c.name for c in columns])
    except BackupError:
        raise
    except Exception as e:
        raise QueryError(table, e) from e

    outcome = CopyOutcome(table=table, source_row_count=len(rows))
    if not rows:
        logger.info("Source table %s is empty, target left untouched", table)
        outcome.success = True
        return outcome

    delete_sql = build_delete_statement(table, schema_name)
    insert_sql = build_parameterized_insert(table, columns, schema_name)
    logger.debug("Copy %s: %s", table, insert_sql)

    inserted = 0
    try:
        async with target.transaction() as tx:
            await tx.execute(delete_sql)
            for row in rows:
                await tx.execute(insert_sql, bind_row(columns, row))
                inserted += 1
    except Exception as e:
        logger.warning(
            "Copy of %s rolled back after %d of %d rows: %s",
            table,
            inserted,
            len(rows),
            e,
        )
        raise TransactionError(table, e, copied_before_failure=inserted) from e

    outcome.copied_row_count = inserted
    outcome.success = True
    logger.info("Copied %d rows into %s", inserted, table)
    return outcome
