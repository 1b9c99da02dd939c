"""Database client protocols and the async PostgreSQL write adapter.

Usage:
    from pg_backup.adapters import CatalogReader, DatabaseClient, AsyncPostgresAdapter
"""

from pg_backup.adapters.base import CatalogReader, DatabaseClient, TransactionClient
from pg_backup.adapters.postgres import AsyncPostgresAdapter

__all__ = [
    "CatalogReader",
    "DatabaseClient",
    "TransactionClient",
    "AsyncPostgresAdapter",
]
