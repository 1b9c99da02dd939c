"""Catalog introspection and the system-object filter.

Usage:
    from pg_backup.schema import SchemaIntrospector, is_system_table
"""

from pg_backup.schema.filters import (
    has_system_column,
    is_system_like_value,
    is_system_name,
    is_system_table,
    system_columns,
)
from pg_backup.schema.models import ColumnDescriptor, TableDescription
from pg_backup.schema.introspector import SchemaIntrospector

__all__ = [
    "SchemaIntrospector",
    "ColumnDescriptor",
    "TableDescription",
    "is_system_name",
    "is_system_table",
    "has_system_column",
    "system_columns",
    "is_system_like_value",
]
