"""Pydantic models for dump documents and copy/restore outcomes.

A ``DumpDocument`` is built fresh for every export request and holds
per-table blocks in catalog enumeration order.  Its ``to_sql()`` output is
the persisted file format::

    -- Table: users
    CREATE TABLE "users" (
      "id" integer NOT NULL,
      "name" text
    );

    -- Data for table users
    INSERT INTO "users" ("id", "name") VALUES (1, 'Ann');

Usage:
    from pg_backup.backup.models import DumpDocument, TableDump, CopyOutcome
"""

from pydantic import BaseModel, Field

from pg_backup.schema.models import ColumnDescriptor


class TableDump(BaseModel):
    """One per-table block of a dump."""

    table: str
    columns: list[ColumnDescriptor] = Field(default_factory=list)
    create_statement: str
    insert_statements: list[str] = Field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.insert_statements)

    def to_sql(self) -> str:
        """Render the block.  Empty tables get no data section."""
        parts = [f"-- Table: {self.table}\n{self.create_statement}\n"]
        if self.insert_statements:
            data = "\n".join(self.insert_statements)
            parts.append(f"-- Data for table {self.table}\n{data}\n")
        return "\n".join(parts)


class SkippedTable(BaseModel):
    """A table excluded from a full dump, and why."""

    table: str
    reason: str
    columns: list[str] = Field(default_factory=list)


class DumpDocument(BaseModel):
    """A full or single-table dump.

    Example:
        >>> doc = DumpDocument()
        >>> doc.to_sql()
        ''
    """

    blocks: list[TableDump] = Field(default_factory=list)
    skipped: list[SkippedTable] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def table_names(self) -> list[str]:
        return [b.table for b in self.blocks]

    @property
    def row_count(self) -> int:
        return sum(b.row_count for b in self.blocks)

    def to_sql(self) -> str:
        """Concatenate blocks in order, separated by a blank line."""
        return "\n".join(block.to_sql() for block in self.blocks)


class CopyOutcome(BaseModel):
    """Result of a table copy."""

    table: str = ""
    source_row_count: int = 0
    copied_row_count: int = 0
    success: bool = False


class RestoreResult(BaseModel):
    """Result of applying a restore batch."""

    success: bool = False
    statement_count: int = 0


class DumpSummary(BaseModel):
    """Result of inspecting a dump file without touching a database."""

    valid: bool
    tables: list[str] = Field(default_factory=list)
    create_count: int = 0
    insert_count: int = 0
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
