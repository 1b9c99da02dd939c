"""Shared fixtures: in-memory stand-ins for a source catalog and a target database.

``FakeCatalog`` implements the ``CatalogReader`` protocol over plain
dicts.  ``FakeTarget`` implements ``DatabaseClient``: it executes the
copier's DELETE / parameterized INSERT statements against an in-memory
table and restores its snapshot when a transaction block raises, so
rollback behaviour can be asserted without a live database.
"""

import copy
import re
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import pytest

from pg_backup.errors import NotFoundError
from pg_backup.schema.models import ColumnDescriptor

SRC_DIR = Path(__file__).parent.parent / "src" / "pg_backup"

_INSERT_RE = re.compile(
    r'^INSERT INTO "(?P<schema>[^"]+)"\."(?P<table>[^"]+)" \((?P<columns>.*?)\) VALUES'
)
_DELETE_RE = re.compile(r'^DELETE FROM "(?P<schema>[^"]+)"\."(?P<table>[^"]+)"$')


def col(
    name: str,
    declared_type: str = "text",
    position: int = 1,
    nullable: bool = True,
    default: str | None = None,
) -> ColumnDescriptor:
    """Shorthand for building a ColumnDescriptor."""
    return ColumnDescriptor(
        name=name,
        declared_type=declared_type,
        nullable=nullable,
        ordinal_position=position,
        default=default,
    )


def split_values(statement: str) -> list[str]:
    """Split the VALUES (...) list of an INSERT into literal tokens.

    Commas inside quoted literals and ``ARRAY[...]`` brackets do not split.
    """
    start = statement.index(" VALUES (") + len(" VALUES (")
    body = statement[start:].rstrip(";")[:-1]

    tokens: list[str] = []
    current = ""
    depth = 0
    in_quote = False
    i = 0
    while i < len(body):
        ch = body[i]
        if in_quote:
            current += ch
            if ch == "'":
                if body[i + 1:i + 2] == "'":
                    current += "'"
                    i += 1
                else:
                    in_quote = False
        elif ch == "'":
            in_quote = True
            current += ch
        elif ch == "[":
            depth += 1
            current += ch
        elif ch == "]":
            depth -= 1
            current += ch
        elif ch == "," and depth == 0:
            tokens.append(current.strip())
            current = ""
        else:
            current += ch
        i += 1
    tokens.append(current.strip())
    return tokens


def parse_literal(token: str) -> Any:
    """Read back a scalar literal produced by the value codec."""
    if token == "NULL":
        return None
    if token == "TRUE":
        return True
    if token == "FALSE":
        return False
    if token.startswith("'") and token.endswith("'"):
        return token[1:-1].replace("''", "'")
    if re.fullmatch(r"-?\d+", token):
        return int(token)
    return float(token)


class FakeCatalog:
    """In-memory ``CatalogReader``.

    Args:
        tables: Mapping of table name to ``(columns, rows)``.  Iteration
            order is the catalog order.
        failing_tables: Tables whose ``fetch_rows`` raises ``RuntimeError``.
    """

    def __init__(
        self,
        tables: dict[str, tuple[list[ColumnDescriptor], list[dict[str, Any]]]],
        failing_tables: set[str] | None = None,
    ) -> None:
        self.tables = tables
        self.failing_tables = failing_tables or set()
        self.fetch_calls: list[tuple[str, list[str]]] = []
        self.entered = 0
        self.exited = 0

    async def __aenter__(self) -> "FakeCatalog":
        self.entered += 1
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.exited += 1

    async def list_user_tables(self) -> list[str]:
        return list(self.tables)

    async def table_exists(self, table: str) -> bool:
        return table in self.tables

    async def list_columns(self, table: str) -> list[ColumnDescriptor]:
        if table not in self.tables:
            raise NotFoundError(table)
        return list(self.tables[table][0])

    async def fetch_rows(
        self, table: str, columns: list[str], limit: int | None = None
    ) -> list[dict[str, Any]]:
        self.fetch_calls.append((table, list(columns)))
        if table in self.failing_tables:
            raise RuntimeError(f'relation "{table}" is locked')
        if table not in self.tables:
            raise NotFoundError(table)
        rows = self.tables[table][1]
        if limit is not None:
            rows = rows[:limit]
        return [{c: row.get(c) for c in columns} for row in rows]


class FakeTransaction:
    """Executes the copier's statements against ``FakeTarget.data``."""

    def __init__(self, target: "FakeTarget") -> None:
        self._target = target

    async def execute(self, sql: str, params: dict[str, Any] | None = None) -> None:
        self._target.statements.append((sql, params))

        match = _DELETE_RE.match(sql)
        if match:
            self._target.data[match["table"]] = []
            return

        match = _INSERT_RE.match(sql)
        if match:
            self._target.insert_attempts += 1
            if self._target.insert_attempts == self._target.fail_on_insert:
                raise RuntimeError("duplicate key value violates unique constraint")
            names = [c.strip().strip('"') for c in match["columns"].split(",")]
            params = params or {}
            row = {name: params[f"p_{i}"] for i, name in enumerate(names)}
            self._target.data.setdefault(match["table"], []).append(row)
            return

        raise AssertionError(f"unexpected statement: {sql}")


class FakeTarget:
    """In-memory ``DatabaseClient`` with snapshot rollback.

    Args:
        data: Existing rows per table.
        fail_on_insert: 1-based index of the INSERT that raises.
    """

    def __init__(
        self,
        data: dict[str, list[dict[str, Any]]] | None = None,
        fail_on_insert: int | None = None,
    ) -> None:
        self.data = data or {}
        self.fail_on_insert = fail_on_insert
        self.insert_attempts = 0
        self.transactions_opened = 0
        self.committed = 0
        self.rolled_back = 0
        self.closed = False
        self.statements: list[tuple[str, dict[str, Any] | None]] = []

    @asynccontextmanager
    async def transaction(self):
        self.transactions_opened += 1
        snapshot = copy.deepcopy(self.data)
        try:
            yield FakeTransaction(self)
        except BaseException:
            self.data = snapshot
            self.rolled_back += 1
            raise
        self.committed += 1

    async def close(self) -> None:
        self.closed = True


# ------------------------------------------------------------------
# Fixtures
# ------------------------------------------------------------------


@pytest.fixture
def users_columns() -> list[ColumnDescriptor]:
    return [
        col("id", "integer", 1, nullable=False),
        col("name", "text", 2),
        col("email", "character varying(255)", 3),
    ]


@pytest.fixture
def users_rows() -> list[dict[str, Any]]:
    return [
        {"id": 1, "name": "Ann", "email": "ann@example.com"},
        {"id": 2, "name": "O'Brien", "email": None},
        {"id": 3, "name": "Cho", "email": "cho@example.com"},
        {"id": 4, "name": "Dee", "email": "dee@example.com"},
        {"id": 5, "name": "Eve", "email": None},
    ]
