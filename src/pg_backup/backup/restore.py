"""Restore executor and offline dump inspection.

``apply_restore_batch`` submits a whole SQL batch (typically the text of a
dump file) to the target database in one ``execute`` call, inside one
explicit transaction: either every statement lands or none does.  The
batch's grammar is not parsed or validated -- the database is the judge.

``inspect_dump`` is the offline counterpart used before a restore: it
reads dump text without touching a database and reports its shape.

Usage:
    from psycopg import AsyncConnection
    from pg_backup.backup.restore import apply_restore_batch, inspect_dump

    text = Path("backups/dump-2026-01-01-1200.sql").read_text()
    summary = inspect_dump(text)   # sync -- no database I/O
    if summary.valid:
        async with await AsyncConnection.connect(url, autocommit=True) as conn:
            result = await apply_restore_batch(conn, text)
"""

import logging
import re

import psycopg
from psycopg import AsyncConnection

from pg_backup.backup.models import DumpSummary, RestoreResult
from pg_backup.errors import QueryError

logger = logging.getLogger(__name__)

RESTORE_TARGET = "restore batch"

_TABLE_MARKER = "-- Table: "
_DATA_MARKER = "-- Data for table "
_CREATE_RE = re.compile(r'^CREATE TABLE\s+(?:"((?:[^"]|"")+)"|([A-Za-z_][\w$]*))')
_INSERT_RE = re.compile(r'^INSERT INTO\s+(?:"((?:[^"]|"")+)"|([A-Za-z_][\w$]*))')
_DOLLAR_TAG_RE = re.compile(r"\$(?:[A-Za-z_][A-Za-z0-9_]*)?\$")


async def apply_restore_batch(conn: AsyncConnection, batch: str) -> RestoreResult:
    """Apply a statement batch in one transaction.

    The batch is sent without parameters (simple query protocol), so it may
    hold many statements and literal ``%`` characters pass through
    untouched.

    Args:
        conn: Open psycopg connection to the restore target.  Must not be
            inside a transaction already.
        batch: SQL text, usually a dump file's contents.

    Returns:
        ``RestoreResult`` with ``success=True`` and the number of top-level
        statements submitted.  An empty batch is a successful no-op.

    Raises:
        QueryError: If the database rejects the batch.  Nothing is
            committed.
    """
    statement_count = count_statements(batch)
    if statement_count == 0:
        logger.info("Restore batch is empty, nothing to apply")
        return RestoreResult(success=True, statement_count=0)

    logger.info("Applying restore batch of %d statements", statement_count)
    try:
        async with conn.transaction():
            await conn.execute(batch)
    except psycopg.Error as e:
        logger.warning("Restore rolled back: %s", e)
        raise QueryError(RESTORE_TARGET, e) from e

    logger.info("Restore committed")
    return RestoreResult(success=True, statement_count=statement_count)


def count_statements(batch: str) -> int:
    """Count top-level SQL statements in *batch*.

    Semicolons inside string literals, quoted identifiers, dollar-quoted
    bodies and comments do not terminate a statement.  A trailing
    statement without a semicolon still counts.

    Example:
        >>> count_statements("INSERT INTO t VALUES ('a;b'); -- done;")
        1
    """
    count = 0
    pending = False
    i = 0
    n = len(batch)
    while i < n:
        ch = batch[i]
        if batch.startswith("--", i):
            end = batch.find("\n", i)
            i = n if end == -1 else end + 1
            continue
        if batch.startswith("/*", i):
            end = batch.find("*/", i + 2)
            i = n if end == -1 else end + 2
            continue
        if ch in ("'", '"'):
            i = _skip_quoted(batch, i, ch)
            pending = True
            continue
        if ch == "$":
            match = _DOLLAR_TAG_RE.match(batch, i)
            if match:
                tag = match.group(0)
                end = batch.find(tag, match.end())
                i = n if end == -1 else end + len(tag)
                pending = True
                continue

        if ch == ";":
            if pending:
                count += 1
            pending = False
        elif not ch.isspace():
            pending = True
        i += 1

    if pending:
        count += 1
    return count


def _skip_quoted(text: str, start: int, quote: str) -> int:
    """Return the index just past the quoted run opening at *start*."""
    i = start + 1
    while True:
        end = text.find(quote, i)
        if end == -1:
            return len(text)
        # doubled quote is an escaped quote
        if text.startswith(quote * 2, end):
            i = end + 2
            continue
        return end + 1


def _statement_table(pattern: re.Pattern[str], line: str) -> str | None:
    match = pattern.match(line)
    if not match:
        return None
    quoted, bare = match.groups()
    if quoted is not None:
        return quoted.replace('""', '"')
    return bare


def inspect_dump(text: str) -> DumpSummary:
    """Inspect dump text without connecting to a database.

    Counts ``-- Table:`` blocks, ``CREATE TABLE`` and ``INSERT INTO``
    lines.  A file with no statements at all, or with an INSERT for a
    table that has no CREATE block, is reported invalid.  Hand-edited
    shapes (missing markers) only produce warnings.

    Args:
        text: Dump file contents.

    Returns:
        ``DumpSummary``; ``valid`` is False when ``errors`` is non-empty.

    Example:
        >>> summary = inspect_dump(document.to_sql())
        >>> summary.valid, summary.tables
        (True, ['users'])
    """
    summary = DumpSummary(valid=True)
    created: set[str] = set()
    orphan_inserts: set[str] = set()

    for line_no, line in enumerate(text.splitlines(), start=1):
        if line.startswith(_TABLE_MARKER):
            summary.tables.append(line[len(_TABLE_MARKER):].strip())
            continue

        if line.startswith(_DATA_MARKER):
            name = line[len(_DATA_MARKER):].strip()
            if name not in summary.tables:
                summary.warnings.append(
                    f"Line {line_no}: data section for '{name}' has no table header"
                )
            continue

        table = _statement_table(_CREATE_RE, line)
        if table is not None:
            summary.create_count += 1
            created.add(table)
            continue

        table = _statement_table(_INSERT_RE, line)
        if table is not None:
            summary.insert_count += 1
            if table not in created and table not in orphan_inserts:
                orphan_inserts.add(table)
                summary.errors.append(
                    f"Line {line_no}: INSERT into '{table}' before any CREATE TABLE"
                )

    if summary.create_count == 0 and summary.insert_count == 0:
        if count_statements(text) == 0:
            summary.errors.append("No SQL statements found")
        else:
            summary.warnings.append("No CREATE TABLE or INSERT INTO statements found")

    if summary.tables and len(summary.tables) != summary.create_count:
        summary.warnings.append(
            f"{len(summary.tables)} table headers but "
            f"{summary.create_count} CREATE TABLE statements"
        )

    summary.valid = not summary.errors
    return summary
