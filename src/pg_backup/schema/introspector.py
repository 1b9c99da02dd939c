"""PostgreSQL catalog reader via information_schema and pg_catalog.

This module queries the live database to extract what a dump needs:
- User tables of one schema (base tables only, catalog order)
- Columns in ordinal order with declared type, nullability and default
- Row data for an explicit column list (never ``SELECT *``)

Uses psycopg (v3) ``AsyncConnection`` in autocommit mode.  The reader is
read-only; it never mutates source data.
"""

import logging
from typing import Any

import psycopg
from psycopg import AsyncConnection, errors, sql

from pg_backup.adapters.postgres import normalize_url, redact_url
from pg_backup.errors import (
    DatabaseConnectionError,
    NoColumnsError,
    NotFoundError,
    QueryError,
)
from pg_backup.schema.filters import is_system_like_value, system_columns
from pg_backup.schema.models import ColumnDescriptor, TableDescription

logger = logging.getLogger(__name__)


class SchemaIntrospector:
    """Reads tables, columns and rows of one PostgreSQL schema.

    Implements the ``CatalogReader`` protocol.  Works with any PostgreSQL
    database (RDS, Supabase, local).

    Usage:
        async with SchemaIntrospector(database_url) as introspector:
            tables = await introspector.list_user_tables()
            columns = await introspector.list_columns("users")
            rows = await introspector.fetch_rows("users", [c.name for c in columns])
    """

    def __init__(
        self,
        database_url: str,
        schema_name: str = "public",
        connect_timeout: int = 10,
    ):
        """Initialize with database connection URL.

        Args:
            database_url: PostgreSQL connection URL
            schema_name: Schema holding the user tables (default: public)
            connect_timeout: Connection timeout in seconds (default: 10)
        """
        self._database_url = database_url
        self._schema_name = schema_name
        self._connect_timeout = connect_timeout
        self._conn: AsyncConnection | None = None

    @property
    def schema_name(self) -> str:
        return self._schema_name

    async def __aenter__(self) -> "SchemaIntrospector":
        """Open the connection."""
        try:
            self._conn = await psycopg.AsyncConnection.connect(
                normalize_url(self._database_url),
                connect_timeout=self._connect_timeout,
                autocommit=True,
            )
        except psycopg.OperationalError as e:
            raise DatabaseConnectionError(redact_url(self._database_url), e) from e
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Close the connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_conn(self) -> AsyncConnection:
        if not self._conn:
            raise RuntimeError("Introspector not connected. Use async with statement.")
        return self._conn

    async def list_user_tables(self) -> list[str]:
        """Get all base table names in the schema, unfiltered."""
        query = """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = %s
              AND table_type = 'BASE TABLE'
            ORDER BY table_name
        """
        conn = self._require_conn()
        try:
            async with conn.cursor() as cur:
                await cur.execute(query, (self._schema_name,))
                return [row[0] for row in await cur.fetchall()]
        except psycopg.Error as e:
            raise QueryError("information_schema.tables", e) from e

    async def table_exists(self, table: str) -> bool:
        """Check that *table* is a base table in the schema right now."""
        query = """
            SELECT 1
            FROM information_schema.tables
            WHERE table_schema = %s
              AND table_name = %s
              AND table_type = 'BASE TABLE'
        """
        conn = self._require_conn()
        try:
            async with conn.cursor() as cur:
                await cur.execute(query, (self._schema_name, table))
                return await cur.fetchone() is not None
        except psycopg.Error as e:
            raise QueryError(table, e) from e

    async def list_columns(self, table: str) -> list[ColumnDescriptor]:
        """Get columns for a table ordered by ordinal position.

        ``format_type`` gives the full declared type (``varchar(40)``,
        ``integer[]``) rather than information_schema's ``ARRAY`` /
        ``USER-DEFINED`` placeholders.

        Raises:
            NotFoundError: If the table does not exist.
        """
        query = """
            SELECT
                a.attname,
                format_type(a.atttypid, a.atttypmod) AS declared_type,
                NOT a.attnotnull AS nullable,
                a.attnum AS ordinal_position,
                pg_get_expr(d.adbin, d.adrelid) AS column_default
            FROM pg_catalog.pg_attribute a
            JOIN pg_catalog.pg_class t ON t.oid = a.attrelid
            JOIN pg_catalog.pg_namespace n ON n.oid = t.relnamespace
            LEFT JOIN pg_catalog.pg_attrdef d
                ON d.adrelid = a.attrelid AND d.adnum = a.attnum
            WHERE n.nspname = %s
              AND t.relname = %s
              AND t.relkind IN ('r', 'p')
              AND a.attnum > 0
              AND NOT a.attisdropped
            ORDER BY a.attnum
        """
        conn = self._require_conn()
        try:
            async with conn.cursor() as cur:
                await cur.execute(query, (self._schema_name, table))
                rows = await cur.fetchall()
        except psycopg.Error as e:
            raise QueryError(table, e) from e

        if not rows and not await self.table_exists(table):
            raise NotFoundError(table)

        columns = []
        for name, declared_type, nullable, position, default in rows:
            columns.append(
                ColumnDescriptor(
                    name=name,
                    declared_type=declared_type,
                    nullable=nullable,
                    ordinal_position=position,
                    default=default,
                )
            )
        return columns

    async def fetch_rows(
        self, table: str, columns: list[str], limit: int | None = None
    ) -> list[dict[str, Any]]:
        """Select exactly *columns* from *table*.

        Result tuples are zipped with the requested names, so each row's key
        order is the requested column order.

        Raises:
            NoColumnsError: If *columns* is empty.
            NotFoundError: If the table was dropped since it was listed.
            QueryError: If the database rejects the query.
        """
        if not columns:
            raise NoColumnsError(table)

        query = sql.SQL("SELECT {columns} FROM {schema}.{table}").format(
            columns=sql.SQL(", ").join(sql.Identifier(c) for c in columns),
            schema=sql.Identifier(self._schema_name),
            table=sql.Identifier(table),
        )
        if limit is not None:
            query = sql.SQL("{} LIMIT {}").format(query, sql.Literal(limit))

        conn = self._require_conn()
        try:
            async with conn.cursor() as cur:
                await cur.execute(query)
                rows = await cur.fetchall()
        except errors.UndefinedTable as e:
            raise NotFoundError(table) from e
        except psycopg.Error as e:
            raise QueryError(table, e) from e

        logger.debug("Fetched %d rows from %s", len(rows), table)
        return [dict(zip(columns, row)) for row in rows]

    async def describe_table(self, table: str, sample_size: int = 10) -> TableDescription:
        """Describe a table and flag anything that looks like catalog data.

        Reads the column list and the first *sample_size* rows; reports
        system-flagged column names and text values that look like catalog
        object names.

        Raises:
            NotFoundError: If the table does not exist.
        """
        columns = await self.list_columns(table)
        description = TableDescription(
            table=table,
            columns=columns,
            system_columns=system_columns(c.name for c in columns),
        )
        if not columns:
            return description

        rows = await self.fetch_rows(table, [c.name for c in columns], limit=sample_size)
        description.sampled_rows = len(rows)
        for row in rows:
            for name, value in row.items():
                if is_system_like_value(value):
                    description.suspicious_values.setdefault(name, []).append(value)
        return description
