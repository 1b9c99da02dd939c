"""Pydantic models for catalog introspection.

Example:
    >>> col = ColumnDescriptor(name="id", declared_type="integer",
    ...                        nullable=False, ordinal_position=1)
    >>> col.not_null_marker
    'NOT NULL'
"""

from pydantic import BaseModel, ConfigDict, Field


class ColumnDescriptor(BaseModel):
    """One column of a user table, as read from the catalog.

    ``ordinal_position`` is authoritative for column order in both DDL and
    row serialization.  ``default`` is informational only and is never
    written into a dump.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    declared_type: str
    nullable: bool = True
    ordinal_position: int = Field(ge=1)
    default: str | None = None

    @property
    def not_null_marker(self) -> str:
        """``"NOT NULL"`` for non-nullable columns, empty string otherwise."""
        return "" if self.nullable else "NOT NULL"

    @property
    def is_json(self) -> bool:
        """True for ``json``/``jsonb`` columns."""
        return self.declared_type.lower() in ("json", "jsonb")


class TableDescription(BaseModel):
    """Diagnostic view of a table (``describe`` command).

    Lists columns plus anything the system-object filter flagged: column
    names, and sample values that look like catalog objects.
    """

    table: str
    columns: list[ColumnDescriptor] = Field(default_factory=list)
    system_columns: list[str] = Field(default_factory=list)
    suspicious_values: dict[str, list[str]] = Field(default_factory=dict)
    sampled_rows: int = 0

    @property
    def is_safe(self) -> bool:
        """True when nothing was flagged."""
        return not self.system_columns and not self.suspicious_values
