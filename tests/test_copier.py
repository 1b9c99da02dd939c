"""Tests for the table copier.

Uses the in-memory ``FakeCatalog`` / ``FakeTarget`` pair from conftest:
the target applies DELETE and parameterized INSERTs to a dict and restores
its snapshot when the transaction block raises.
"""

import pytest
from sqlalchemy import text

from conftest import FakeCatalog, FakeTarget, col
from pg_backup.backup.copier import (
    bind_row,
    build_delete_statement,
    build_parameterized_insert,
    copy_table_data,
)
from pg_backup.errors import (
    NoColumnsError,
    NotFoundError,
    TransactionError,
    UnsafeSchemaError,
)


def _pair(users_columns, users_rows, target_rows=None):
    source = FakeCatalog({"users": (users_columns, users_rows)})
    target_catalog = FakeCatalog({"users": (users_columns, [])})
    target = FakeTarget({"users": list(target_rows or [])})
    return source, target_catalog, target


class TestCopySuccess:
    """Happy path: replace semantics, order preserved, NULL bound as NULL."""

    async def test_five_rows_copied_in_order(self, users_columns, users_rows):
        source, target_catalog, target = _pair(users_columns, users_rows)

        outcome = await copy_table_data(source, target_catalog, target, "users")

        assert outcome.success is True
        assert outcome.copied_row_count == 5
        assert outcome.source_row_count == 5
        assert outcome.table == "users"
        assert target.data["users"] == users_rows
        assert target.committed == 1

    async def test_existing_rows_replaced(self, users_columns, users_rows):
        stale = [{"id": 99, "name": "Old", "email": None}]
        source, target_catalog, target = _pair(users_columns, users_rows[:2], stale)

        await copy_table_data(source, target_catalog, target, "users")

        assert [r["id"] for r in target.data["users"]] == [1, 2]

    async def test_delete_runs_first(self, users_columns, users_rows):
        source, target_catalog, target = _pair(users_columns, users_rows)
        await copy_table_data(source, target_catalog, target, "users")
        assert target.statements[0][0] == 'DELETE FROM "public"."users"'
        assert len(target.statements) == 6

    async def test_null_bound_as_none(self, users_columns, users_rows):
        source, target_catalog, target = _pair(users_columns, users_rows)
        await copy_table_data(source, target_catalog, target, "users")
        _, params = target.statements[2]
        assert params == {"p_0": 2, "p_1": "O'Brien", "p_2": None}

    async def test_values_bound_not_interpolated(self, users_columns, users_rows):
        source, target_catalog, target = _pair(users_columns, users_rows)
        await copy_table_data(source, target_catalog, target, "users")
        for sql, _ in target.statements[1:]:
            assert "O'Brien" not in sql
            assert ":p_0" in sql

    async def test_empty_source_opens_no_transaction(self, users_columns):
        stale = [{"id": 99, "name": "Old", "email": None}]
        source, target_catalog, target = _pair(users_columns, [], stale)

        outcome = await copy_table_data(source, target_catalog, target, "users")

        assert outcome.success is True
        assert outcome.copied_row_count == 0
        assert target.transactions_opened == 0
        assert target.data["users"] == stale

    async def test_custom_schema(self, users_columns, users_rows):
        source, target_catalog, target = _pair(users_columns, users_rows[:1])
        await copy_table_data(
            source, target_catalog, target, "users", schema_name="archive"
        )
        assert target.statements[0][0] == 'DELETE FROM "archive"."users"'


class TestCopyRollback:
    """Any insertion failure leaves the target untouched."""

    async def test_failure_on_third_insert_rolls_back(self, users_columns, users_rows):
        source, target_catalog, target = _pair(users_columns, users_rows)
        target.fail_on_insert = 3

        with pytest.raises(TransactionError) as excinfo:
            await copy_table_data(source, target_catalog, target, "users")

        assert target.data["users"] == []
        assert target.rolled_back == 1
        assert target.committed == 0
        assert excinfo.value.copied_before_failure == 2
        assert excinfo.value.table == "users"

    async def test_original_cause_chained(self, users_columns, users_rows):
        source, target_catalog, target = _pair(users_columns, users_rows)
        target.fail_on_insert = 1

        with pytest.raises(TransactionError) as excinfo:
            await copy_table_data(source, target_catalog, target, "users")

        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert "duplicate key" in str(excinfo.value)

    async def test_existing_rows_survive_failure(self, users_columns, users_rows):
        stale = [{"id": 99, "name": "Old", "email": None}]
        source, target_catalog, target = _pair(users_columns, users_rows, stale)
        target.fail_on_insert = 5

        with pytest.raises(TransactionError):
            await copy_table_data(source, target_catalog, target, "users")

        assert target.data["users"] == stale


class TestCopyRefusals:
    """Validation failures happen before any write."""

    async def test_missing_in_source(self, users_columns):
        source = FakeCatalog({})
        target_catalog = FakeCatalog({"users": (users_columns, [])})
        target = FakeTarget()

        with pytest.raises(NotFoundError) as excinfo:
            await copy_table_data(source, target_catalog, target, "users")

        assert excinfo.value.side == "source"
        assert "source database" in str(excinfo.value)
        assert target.transactions_opened == 0

    async def test_missing_in_target(self, users_columns, users_rows):
        source = FakeCatalog({"users": (users_columns, users_rows)})
        target = FakeTarget()

        with pytest.raises(NotFoundError) as excinfo:
            await copy_table_data(source, FakeCatalog({}), target, "users")

        assert excinfo.value.side == "target"
        assert target.transactions_opened == 0

    async def test_no_columns(self):
        source = FakeCatalog({"hollow": ([], [])})
        target_catalog = FakeCatalog({"hollow": ([], [])})

        with pytest.raises(NoColumnsError):
            await copy_table_data(source, target_catalog, FakeTarget(), "hollow")

    async def test_system_column_refused(self):
        columns = [col("id", "integer", 1), col("pg_index_name", "text", 2)]
        source = FakeCatalog({"leaky": (columns, [{"id": 1, "pg_index_name": "x"}])})
        target_catalog = FakeCatalog({"leaky": (columns, [])})
        target = FakeTarget()

        with pytest.raises(UnsafeSchemaError) as excinfo:
            await copy_table_data(source, target_catalog, target, "leaky")

        assert excinfo.value.columns == ["pg_index_name"]
        assert source.fetch_calls == []
        assert target.transactions_opened == 0

    async def test_system_table_refused(self, users_columns, users_rows):
        source = FakeCatalog({"pg_stat_statements": (users_columns, users_rows)})
        target_catalog = FakeCatalog({"pg_stat_statements": (users_columns, [])})
        target = FakeTarget({"pg_stat_statements": []})

        with pytest.raises(UnsafeSchemaError, match="is a system table"):
            await copy_table_data(source, target_catalog, target, "pg_stat_statements")

        assert source.fetch_calls == []
        assert target.transactions_opened == 0
        assert target.data["pg_stat_statements"] == []


class TestStatementBuilders:
    """SQL and parameter shapes."""

    def test_delete(self):
        assert build_delete_statement("Order") == 'DELETE FROM "public"."Order"'

    def test_insert_placeholders(self, users_columns):
        assert build_parameterized_insert("users", users_columns) == (
            'INSERT INTO "public"."users" ("id", "name", "email") '
            "VALUES (:p_0, :p_1, :p_2)"
        )

    def test_json_cast(self):
        columns = [col("id", "integer", 1), col("meta", "jsonb", 2)]
        sql = build_parameterized_insert("t", columns)
        assert sql.endswith("VALUES (:p_0, CAST(:p_1 AS jsonb))")

    def test_bind_row_serializes_json(self):
        columns = [col("id", "integer", 1), col("meta", "jsonb", 2)]
        params = bind_row(columns, {"id": 1, "meta": {"a": [1, 2]}})
        assert params == {"p_0": 1, "p_1": '{"a": [1, 2]}'}

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("42", '"42"'), ("hello", '"hello"'), ('{"a": 1}', '"{\\"a\\": 1}"')],
    )
    def test_bind_row_json_string_scalar_stays_string(self, value, expected):
        columns = [col("meta", "jsonb", 1)]
        assert bind_row(columns, {"meta": value}) == {"p_0": expected}

    def test_bind_row_json_scalars(self):
        columns = [col("a", "json", 1), col("b", "jsonb", 2)]
        assert bind_row(columns, {"a": 42, "b": True}) == {"p_0": "42", "p_1": "true"}

    def test_colon_in_identifier_is_not_a_bind_marker(self):
        columns = [col("a :b", "text", 1), col("c", "jsonb", 2)]
        sql = build_parameterized_insert("odd:table", columns)
        assert '"odd\\:table"' in sql
        assert '"a \\:b"' in sql
        assert set(text(sql).compile().params) == {"p_0", "p_1"}

    def test_colon_in_delete_target(self):
        sql = build_delete_statement("t :x", schema_name="s")
        assert sql == 'DELETE FROM "s"."t \\:x"'
        assert text(sql).compile().params == {}

    def test_bind_row_json_null_stays_none(self):
        columns = [col("meta", "json", 1)]
        assert bind_row(columns, {"meta": None}) == {"p_0": None}

    def test_bind_row_keeps_arrays(self):
        columns = [col("tags", "text[]", 1)]
        assert bind_row(columns, {"tags": ["a", "b"]}) == {"p_0": ["a", "b"]}
