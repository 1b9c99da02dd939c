"""Tests for package exports and library-wide source conventions."""

import ast

import pytest

import pg_backup
from conftest import SRC_DIR

LIBRARY_FILES = sorted(
    p for p in SRC_DIR.rglob("*.py") if "cli" not in p.relative_to(SRC_DIR).parts
)


class TestTopLevelExports:
    """Everything in ``__all__`` is importable from the package root."""

    def test_version(self):
        assert pg_backup.__version__ == "0.1.0"

    @pytest.mark.parametrize("name", pg_backup.__all__)
    def test_name_exported(self, name):
        assert hasattr(pg_backup, name)

    def test_entry_points_present(self):
        for name in [
            "list_tables",
            "build_full_dump",
            "build_table_dump",
            "copy_table",
            "apply_restore",
        ]:
            assert name in pg_backup.__all__

    def test_subpackage_exports(self):
        from pg_backup.adapters import __all__ as adapters_all
        from pg_backup.backup import __all__ as backup_all
        from pg_backup.schema import __all__ as schema_all

        assert "AsyncPostgresAdapter" in adapters_all
        assert "copy_table_data" in backup_all
        assert "SchemaIntrospector" in schema_all


class TestLibraryConventions:
    """Library modules log, they never print."""

    @pytest.mark.parametrize("path", LIBRARY_FILES, ids=lambda p: p.name)
    def test_no_print(self, path):
        tree = ast.parse(path.read_text())
        for node in ast.walk(tree):
            if isinstance(node, ast.Call) and isinstance(node.func, ast.Name):
                assert node.func.id != "print", f"print() in {path}"

    @pytest.mark.parametrize("path", LIBRARY_FILES, ids=lambda p: p.name)
    def test_no_bare_except(self, path):
        tree = ast.parse(path.read_text())
        for node in ast.walk(tree):
            if isinstance(node, ast.ExceptHandler):
                assert node.type is not None, f"bare except in {path}:{node.lineno}"
