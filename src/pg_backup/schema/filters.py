"""System-object filter: tell catalog artifacts apart from user data.

PostgreSQL offers no single API that answers "is this name a user object?"
for every place a name or value can leak into a dump, so classification is
a name-pattern heuristic: a name is system-owned only when it carries a
reserved catalog prefix AND contains a known catalog-concept keyword.
Requiring both keeps ordinary user names such as ``foreign_policy`` or
``user_mapping`` out of the net.

This is a best-effort safety filter, not a security boundary.  A user
table that happens to look like ``pg_stat_report`` is excluded; that is an
accepted false positive.

Pure logic -- no I/O, never raises.

Usage:
    from pg_backup.schema.filters import is_system_table, has_system_column

    is_system_table("pg_user_mapping")            # True
    is_system_table("foreign_policy")             # False
    has_system_column(["id", "name", "email"])    # False
"""

import re
from collections.abc import Iterable

# Reserved prefixes of catalog relations, columns and index names.
RESERVED_PREFIXES: tuple[str, ...] = ("pg_",)

# Catalog concepts: index, constraint, mapping, procedure, object-id, toast,
# statistics, foreign, server, wrapper, transaction-id, relation, attribute.
CATALOG_KEYWORDS: tuple[str, ...] = (
    "index",
    "constraint",
    "mapping",
    "proc",
    "oid",
    "toast",
    "stat",
    "foreign",
    "server",
    "wrapper",
    "xid",
    "rel",
    "att",
)

# Whole-name prefixes that are always catalog territory for tables.
SYSTEM_TABLE_PREFIXES: tuple[str, ...] = ("information_schema", "pg_toast")

_IDENTIFIER_RE = re.compile(r"^[a-z_][a-z0-9_$]*$")


def is_system_name(name: object) -> bool:
    """Return True when *name* has a reserved prefix and a catalog keyword."""
    if not isinstance(name, str):
        return False
    lowered = name.lower()
    for prefix in RESERVED_PREFIXES:
        if lowered.startswith(prefix):
            remainder = lowered[len(prefix):]
            return any(keyword in remainder for keyword in CATALOG_KEYWORDS)
    return False


def is_system_table(name: object) -> bool:
    """Classify a table name as database-internal."""
    if not isinstance(name, str):
        return False
    if name.lower().startswith(SYSTEM_TABLE_PREFIXES):
        return True
    return is_system_name(name)


def system_columns(column_names: Iterable[object]) -> list[str]:
    """Return the column names flagged as system-owned, in input order."""
    return [c for c in column_names if isinstance(c, str) and is_system_name(c)]


def has_system_column(column_names: Iterable[object]) -> bool:
    """True if any column name is flagged as system-owned."""
    return bool(system_columns(column_names))


def is_system_like_value(value: object) -> bool:
    """True when a text value looks like a catalog object name.

    Only identifier-shaped text qualifies (``pg_foreign_server_name_index``),
    so free text that merely mentions ``pg_`` is left alone.
    """
    if not isinstance(value, str):
        return False
    candidate = value.strip().strip('"')
    if not _IDENTIFIER_RE.match(candidate.lower()):
        return False
    return is_system_name(candidate)
