"""Client protocol definitions.

Defines the Protocols the engine is written against:

- ``CatalogReader``: read-only catalog and row access
  (implemented by ``SchemaIntrospector``).
- ``DatabaseClient``: transactional writes to a target database
  (implemented by ``AsyncPostgresAdapter``).
- ``TransactionClient``: the handle yielded inside a transaction.

All methods are ``async def`` -- the library is async-first.

Usage:
    from pg_backup.adapters.base import CatalogReader, DatabaseClient

    async def copy(catalog: CatalogReader, target: DatabaseClient) -> None:
        columns = await catalog.list_columns("users")
        rows = await catalog.fetch_rows("users", [c.name for c in columns])
        async with target.transaction() as tx:
            await tx.execute('DELETE FROM public."users"')
"""

from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol

from pg_backup.schema.models import ColumnDescriptor


class CatalogReader(Protocol):
    """Read-only access to a database's user schema."""

    async def list_user_tables(self) -> list[str]:
        """List base tables of the user schema in catalog order, unfiltered."""
        ...

    async def table_exists(self, table: str) -> bool:
        """True if *table* is a base table in the user schema right now."""
        ...

    async def list_columns(self, table: str) -> list[ColumnDescriptor]:
        """Columns of *table* ordered by ordinal position.

        Raises:
            NotFoundError: If the table does not exist.
        """
        ...

    async def fetch_rows(
        self, table: str, columns: list[str], limit: int | None = None
    ) -> list[dict[str, Any]]:
        """Select exactly *columns* from *table* (at most *limit* rows).

        Each returned dict has its keys in the requested column order.

        Raises:
            NotFoundError: If the table was dropped before the read.
            QueryError: If the database rejects the query.
        """
        ...


class TransactionClient(Protocol):
    """Statement execution inside an open transaction."""

    async def execute(self, sql: str, params: dict[str, Any] | None = None) -> None:
        """Execute one statement with named bound parameters."""
        ...


class DatabaseClient(Protocol):
    """Target database that accepts transactional writes."""

    def transaction(self) -> AbstractAsyncContextManager[TransactionClient]:
        """Open a transaction.

        Commits when the block exits cleanly, rolls back in full when it
        raises.
        """
        ...

    async def close(self) -> None:
        """Release pooled connections."""
        ...
