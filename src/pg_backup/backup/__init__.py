"""Dump, restore and table copy.

Provides the dump generator (``dump_database``, ``dump_table``), the
restore executor (``apply_restore_batch``), offline dump inspection
(``inspect_dump``) and the table copier (``copy_table_data``).

Usage:
    from pg_backup.backup import dump_database, write_dump, inspect_dump
    from pg_backup.backup import apply_restore_batch, copy_table_data
"""

from pg_backup.backup.copier import copy_table_data
from pg_backup.backup.dump import dump_database, dump_table, write_dump
from pg_backup.backup.models import (
    CopyOutcome,
    DumpDocument,
    DumpSummary,
    RestoreResult,
    SkippedTable,
    TableDump,
)
from pg_backup.backup.restore import apply_restore_batch, inspect_dump

__all__ = [
    "dump_database",
    "dump_table",
    "write_dump",
    "apply_restore_batch",
    "inspect_dump",
    "copy_table_data",
    "DumpDocument",
    "TableDump",
    "SkippedTable",
    "CopyOutcome",
    "RestoreResult",
    "DumpSummary",
]
