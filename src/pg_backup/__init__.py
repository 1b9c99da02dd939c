"""pg-backup: dump, restore and copy PostgreSQL user tables.

Exports user tables as portable SQL text (CREATE TABLE plus one INSERT per
row), applies such text back in one transaction, and copies a table
between two live databases.  Catalog artifacts are filtered out on the
way.

Usage:
    from pg_backup import build_full_dump, build_table_dump, copy_table, apply_restore
    from pg_backup import load_db_config, get_profile_url
"""

__version__ = "0.1.0"

# Entry points
from pg_backup.operations import (
    apply_restore,
    build_full_dump,
    build_table_dump,
    copy_table,
    describe_table,
    list_tables,
)

# Models
from pg_backup.backup.models import CopyOutcome, DumpDocument, RestoreResult

# Errors
from pg_backup.errors import (
    BackupError,
    DatabaseConnectionError,
    NoColumnsError,
    NotFoundError,
    ProfileNotFoundError,
    QueryError,
    SerializationError,
    TransactionError,
    UnsafeSchemaError,
)

# Config
from pg_backup.config.loader import load_db_config
from pg_backup.config.models import DatabaseConfig, DatabaseProfile
from pg_backup.factory import get_profile_url, resolve_url

__all__ = [
    # Entry points
    "list_tables",
    "describe_table",
    "build_full_dump",
    "build_table_dump",
    "copy_table",
    "apply_restore",
    # Models
    "DumpDocument",
    "CopyOutcome",
    "RestoreResult",
    # Errors
    "BackupError",
    "DatabaseConnectionError",
    "NotFoundError",
    "UnsafeSchemaError",
    "NoColumnsError",
    "SerializationError",
    "QueryError",
    "TransactionError",
    "ProfileNotFoundError",
    # Config
    "load_db_config",
    "DatabaseConfig",
    "DatabaseProfile",
    "get_profile_url",
    "resolve_url",
]
