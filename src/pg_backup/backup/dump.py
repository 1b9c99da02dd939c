"""Dump generator: catalog + filter + DDL + codec -> ``DumpDocument``.

Walks the user tables in catalog order.  A table is dropped whole -- never
partially redacted -- when its name is system-flagged or when any of its
columns is; the document's ``skipped`` list says which table and why.
Surviving tables get a CREATE TABLE block built from the catalog column
list and one INSERT per row built from the very same list.

A failed query on any table aborts the whole dump: no partial document is
returned.  Values that cannot be rendered degrade to ``NULL`` and are
reported in ``DumpDocument.warnings``.

Usage:
    from pg_backup.backup.dump import dump_database, write_dump
    from pg_backup.schema.introspector import SchemaIntrospector

    async with SchemaIntrospector(url) as catalog:
        document = await dump_database(catalog)
    path = write_dump(document, "backup.sql")
"""

import logging
from datetime import datetime
from pathlib import Path

from pg_backup.adapters.base import CatalogReader
from pg_backup.backup.ddl import (
    build_create_statement,
    build_insert_statement,
    order_columns,
)
from pg_backup.backup.models import DumpDocument, SkippedTable, TableDump
from pg_backup.errors import (
    BackupError,
    NoColumnsError,
    NotFoundError,
    QueryError,
    SerializationError,
    UnsafeSchemaError,
)
from pg_backup.schema.filters import is_system_table, system_columns
from pg_backup.schema.models import ColumnDescriptor

logger = logging.getLogger(__name__)


async def dump_database(catalog: CatalogReader) -> DumpDocument:
    """Dump every user table the system-object filter lets through.

    Args:
        catalog: Catalog reader connected to the source database.

    Returns:
        ``DumpDocument`` with one block per surviving table, in catalog
        order, plus the skipped tables and value warnings.

    Raises:
        QueryError: If any table query fails (names the table).
        NotFoundError: If a listed table disappears before it is read.
    """
    document = DumpDocument()
    diagnostics: list[SerializationError] = []

    tables = await catalog.list_user_tables()
    logger.info("Dumping %d tables", len(tables))

    for table in tables:
        if is_system_table(table):
            logger.warning("Skipping table %s: system table", table)
            document.skipped.append(SkippedTable(table=table, reason="system table"))
            continue

        columns = await _read_columns(catalog, table)

        flagged = system_columns(c.name for c in columns)
        if flagged:
            logger.warning(
                "Skipping table %s: system columns %s", table, ", ".join(flagged)
            )
            document.skipped.append(
                SkippedTable(table=table, reason="system columns", columns=flagged)
            )
            continue

        if not columns:
            logger.warning("Skipping table %s: no columns", table)
            document.skipped.append(SkippedTable(table=table, reason="no columns"))
            continue

        document.blocks.append(await _dump_block(catalog, table, columns, diagnostics))

    document.warnings = [str(d) for d in diagnostics]
    logger.info(
        "Dump complete: %d tables, %d rows, %d skipped, %d warnings",
        len(document.blocks),
        document.row_count,
        len(document.skipped),
        len(document.warnings),
    )
    return document


async def dump_table(catalog: CatalogReader, table: str) -> DumpDocument:
    """Dump a single table, refusing instead of skipping.

    Raises:
        NotFoundError: If the table is not a user table.
        UnsafeSchemaError: If the table or any of its columns is
            system-flagged.
        NoColumnsError: If the table has no columns.
        QueryError: If a query fails.
    """
    if not await catalog.table_exists(table):
        raise NotFoundError(table)
    if is_system_table(table):
        raise UnsafeSchemaError(table, [], reason="is a system table")

    columns = await _read_columns(catalog, table)
    if not columns:
        raise NoColumnsError(table)

    flagged = system_columns(c.name for c in columns)
    if flagged:
        raise UnsafeSchemaError(table, flagged)

    diagnostics: list[SerializationError] = []
    block = await _dump_block(catalog, table, columns, diagnostics)
    return DumpDocument(blocks=[block], warnings=[str(d) for d in diagnostics])


async def _read_columns(catalog: CatalogReader, table: str) -> list[ColumnDescriptor]:
    try:
        return order_columns(await catalog.list_columns(table))
    except BackupError:
        raise
    except Exception as e:
        raise QueryError(table, e) from e


async def _dump_block(
    catalog: CatalogReader,
    table: str,
    columns: list[ColumnDescriptor],
    diagnostics: list[SerializationError],
) -> TableDump:
    """Build one table block from a single ordered column list."""
    names = [c.name for c in columns]
    try:
        rows = await catalog.fetch_rows(table, names)
    except BackupError:
        raise
    except Exception as e:
        raise QueryError(table, e) from e

    logger.debug("Table %s: %d columns, %d rows", table, len(columns), len(rows))
    return TableDump(
        table=table,
        columns=columns,
        create_statement=build_create_statement(table, columns),
        insert_statements=[
            build_insert_statement(table, columns, row, diagnostics) for row in rows
        ],
    )


def write_dump(
    document: DumpDocument,
    output_path: str | None = None,
    output_dir: str = "backups",
) -> str:
    """Write a dump document to a ``.sql`` file.

    Args:
        document: Dump to persist.
        output_path: Path to write.  When ``None``, generates a timestamped
            path under *output_dir*.

    Returns:
        Absolute path to the written file.
    """
    if output_path is None:
        backups_dir = Path.cwd() / output_dir
        backups_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y-%m-%d-%H%M%S")
        output_path = str(backups_dir / f"dump-{timestamp}.sql")

    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(document.to_sql(), encoding="utf-8")

    logger.info("Wrote %d tables to %s", len(document.blocks), path)
    return str(path.resolve())
