"""Exception taxonomy for the dump/restore/copy engine.

Every refusal names the offending table (and column list where relevant)
so an operator can decide whether to fix the filter or the schema.

Usage:
    from pg_backup.errors import NotFoundError, UnsafeSchemaError

    try:
        document = await dump_table(catalog, "users")
    except UnsafeSchemaError as e:
        print(e.table, e.columns)
"""


class BackupError(Exception):
    """Base class for all engine errors."""


class DatabaseConnectionError(BackupError, ConnectionError):
    """Raised when a database cannot be reached."""

    def __init__(self, target: str, cause: BaseException | None = None) -> None:
        self.target = target
        self.cause = cause
        message = f"Cannot connect to {target}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class NotFoundError(BackupError):
    """Raised when a named table is absent from the user schema.

    ``side`` is ``"source"`` or ``"target"`` when raised by the table copier.
    """

    def __init__(self, table: str, side: str | None = None) -> None:
        self.table = table
        self.side = side
        where = f" in {side} database" if side else " in user schema"
        super().__init__(f"Table '{table}' not found{where}")


class UnsafeSchemaError(BackupError):
    """Raised when a table is, or carries columns, flagged as system-owned."""

    def __init__(
        self,
        table: str,
        columns: list[str],
        reason: str = "contains system columns",
    ) -> None:
        self.table = table
        self.columns = list(columns)
        self.reason = reason
        super().__init__(
            f"Table '{table}' {reason} and cannot be "
            f"exported safely. Columns: [{', '.join(self.columns)}]"
        )


class NoColumnsError(BackupError):
    """Raised when a table has no columns to dump or copy."""

    def __init__(self, table: str) -> None:
        self.table = table
        super().__init__(f"No columns found for table '{table}'")


class SerializationError(BackupError):
    """A value that could not be rendered and was suppressed to NULL.

    Never raised by the value codec -- instances are collected as
    diagnostics so the rest of a dump can proceed.
    """

    def __init__(self, value_repr: str, reason: str) -> None:
        self.value_repr = value_repr
        self.reason = reason
        super().__init__(f"Value {value_repr} rendered as NULL: {reason}")


class QueryError(BackupError):
    """Raised when the database rejects a query for a table."""

    def __init__(self, table: str, cause: BaseException) -> None:
        self.table = table
        self.cause = cause
        super().__init__(f"Query failed for '{table}': {cause}")


class TransactionError(BackupError):
    """Raised when a copy transaction fails and is rolled back."""

    def __init__(
        self,
        table: str,
        cause: BaseException,
        copied_before_failure: int = 0,
    ) -> None:
        self.table = table
        self.cause = cause
        self.copied_before_failure = copied_before_failure
        super().__init__(
            f"Copy of table '{table}' rolled back after "
            f"{copied_before_failure} rows: {cause}"
        )


class ProfileNotFoundError(BackupError):
    """Raised when no database profile is configured or found."""
