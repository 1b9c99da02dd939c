"""URL-level entry points.

Each function takes its connection string(s) as arguments, opens what it
needs for the duration of the call and releases it on every exit path.
Nothing is cached between calls, so concurrent callers never share
connection state.

Usage:
    from pg_backup.operations import build_full_dump, copy_table

    document = await build_full_dump("postgresql://app@localhost/app")
    outcome = await copy_table(prod_url, staging_url, "users")
"""

import logging

import psycopg

from pg_backup.adapters.postgres import AsyncPostgresAdapter, normalize_url, redact_url
from pg_backup.backup.copier import copy_table_data
from pg_backup.backup.dump import dump_database, dump_table
from pg_backup.backup.models import CopyOutcome, DumpDocument, RestoreResult
from pg_backup.backup.restore import apply_restore_batch
from pg_backup.errors import DatabaseConnectionError
from pg_backup.schema.filters import is_system_table
from pg_backup.schema.introspector import SchemaIntrospector
from pg_backup.schema.models import TableDescription

logger = logging.getLogger(__name__)


async def list_tables(database_url: str, schema_name: str = "public") -> list[str]:
    """List user tables, system tables filtered out, in catalog order."""
    async with SchemaIntrospector(database_url, schema_name) as catalog:
        tables = await catalog.list_user_tables()
    return [t for t in tables if not is_system_table(t)]


async def describe_table(
    database_url: str,
    table: str,
    schema_name: str = "public",
    sample_size: int = 10,
) -> TableDescription:
    """Describe one table for diagnostics.  Read-only."""
    async with SchemaIntrospector(database_url, schema_name) as catalog:
        return await catalog.describe_table(table, sample_size=sample_size)


async def build_full_dump(database_url: str, schema_name: str = "public") -> DumpDocument:
    """Dump every user table of the database."""
    logger.info("Full dump of %s", redact_url(database_url))
    async with SchemaIntrospector(database_url, schema_name) as catalog:
        return await dump_database(catalog)


async def build_table_dump(
    database_url: str, table: str, schema_name: str = "public"
) -> DumpDocument:
    """Dump one table, refusing unsafe or missing tables."""
    logger.info("Dump of table %s from %s", table, redact_url(database_url))
    async with SchemaIntrospector(database_url, schema_name) as catalog:
        return await dump_table(catalog, table)


async def copy_table(
    source_url: str,
    target_url: str,
    table: str,
    schema_name: str = "public",
) -> CopyOutcome:
    """Replace *table*'s rows in the target with the source's rows.

    The source is only read.  The target engine is disposed even when the
    copy fails.
    """
    logger.info(
        "Copy of table %s from %s to %s",
        table,
        redact_url(source_url),
        redact_url(target_url),
    )
    async with SchemaIntrospector(source_url, schema_name) as source_catalog:
        async with SchemaIntrospector(target_url, schema_name) as target_catalog:
            target = AsyncPostgresAdapter(target_url)
            try:
                return await copy_table_data(
                    source_catalog,
                    target_catalog,
                    target,
                    table,
                    schema_name=schema_name,
                )
            finally:
                await target.close()


async def apply_restore(database_url: str, batch: str) -> RestoreResult:
    """Apply a SQL batch (usually a dump file) in one transaction."""
    logger.info("Restore into %s", redact_url(database_url))
    try:
        conn = await psycopg.AsyncConnection.connect(
            normalize_url(database_url), autocommit=True, connect_timeout=10
        )
    except psycopg.OperationalError as e:
        raise DatabaseConnectionError(redact_url(database_url), e) from e

    async with conn:
        return await apply_restore_batch(conn, batch)
