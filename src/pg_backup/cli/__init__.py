"""CLI for dumping, restoring and copying PostgreSQL user tables.

Usage:
    pg-backup --profile prod tables
    pg-backup --profile prod describe users
    pg-backup --profile prod dump
    pg-backup --url postgresql://app@localhost/app dump --table users --output users.sql
    pg-backup validate backups/dump-2026-01-01-120000.sql
    pg-backup --profile staging restore backups/dump-2026-01-01-120000.sql --yes
    pg-backup copy --from prod --to staging --table users --yes
    pg-backup profiles

Commands:
    tables    - List user tables (system tables filtered out)
    describe  - Show a table's columns and anything flagged as system-like
    dump      - Dump all tables, or one table, to a .sql file
    restore   - Apply a dump file in one transaction
    validate  - Inspect a dump file without connecting
    copy      - Replace a table's rows in one database with another's
    profiles  - List profiles from db.toml
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from pg_backup.backup.dump import write_dump
from pg_backup.backup.restore import inspect_dump
from pg_backup.config.loader import load_db_config
from pg_backup.errors import BackupError
from pg_backup.factory import (
    get_active_profile_name,
    get_profile_url,
    resolve_target,
)
from pg_backup.operations import (
    apply_restore,
    build_full_dump,
    build_table_dump,
    copy_table,
    describe_table,
    list_tables,
)

console = Console()
err_console = Console(stderr=True)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        format="%(message)s",
        datefmt="[%X]",
        level=logging.DEBUG if verbose else logging.WARNING,
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


# ============================================================================
# Argument helpers
# ============================================================================


def _database_url(args: argparse.Namespace) -> str:
    """Resolve the database for single-database commands.

    Priority: ``--url``, then ``--profile``, then ``{env_prefix}DB_PROFILE``.

    Raises:
        ProfileNotFoundError: If no profile can be determined or found.
        FileNotFoundError: If a profile is needed and db.toml is missing.
    """
    if args.url:
        return args.url
    profile = args.profile or get_active_profile_name(env_prefix=args.env_prefix)
    return get_profile_url(profile, args.config)


def _dump_settings(args: argparse.Namespace) -> tuple[str, str]:
    """Return ``(schema_name, output_dir)`` from db.toml, or the defaults."""
    try:
        config = load_db_config(args.config)
    except FileNotFoundError:
        return "public", "backups"
    return config.schema_name, config.output_dir


def _fail(message: str) -> int:
    console.print(f"[bold red]x[/bold red] {message}")
    return 1


def _confirm(prompt: str) -> bool:
    response = console.input(f"{prompt} [y/N] ")
    return response.strip().lower() in ("y", "yes")


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_tables(args: argparse.Namespace) -> int:
    """Async implementation for tables command."""
    url = _database_url(args)
    schema_name, _ = _dump_settings(args)

    tables = await list_tables(url, schema_name)

    table = Table(title="User Tables", show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Table")
    for i, name in enumerate(tables, start=1):
        table.add_row(str(i), name)

    console.print(table)
    console.print(f"[dim]{len(tables)} tables[/dim]")
    return 0


async def _async_describe(args: argparse.Namespace) -> int:
    """Async implementation for describe command."""
    url = _database_url(args)
    schema_name, _ = _dump_settings(args)

    description = await describe_table(
        url, args.table, schema_name, sample_size=args.sample
    )

    table = Table(
        title=f"Table: {description.table}", show_header=True, header_style="bold"
    )
    table.add_column("#", justify="right", style="dim")
    table.add_column("Column")
    table.add_column("Type")
    table.add_column("Nullable")
    table.add_column("Default", style="dim")

    flagged = set(description.system_columns)
    for col in description.columns:
        name = f"[bold red]{col.name}[/bold red]" if col.name in flagged else col.name
        table.add_row(
            str(col.ordinal_position),
            name,
            col.declared_type,
            "yes" if col.nullable else "no",
            col.default or "",
        )
    console.print(table)

    if description.system_columns:
        console.print(
            f"[yellow]System-like columns:[/yellow] "
            f"{', '.join(description.system_columns)}"
        )
    for column, values in description.suspicious_values.items():
        console.print(
            f"[yellow]System-like values in {column}:[/yellow] {', '.join(values)}"
        )
    if description.is_safe:
        console.print(
            f"[bold green]v[/bold green] Nothing flagged "
            f"({description.sampled_rows} rows sampled)"
        )
    return 0


async def _async_dump(args: argparse.Namespace) -> int:
    """Async implementation for dump command."""
    url = _database_url(args)
    schema_name, output_dir = _dump_settings(args)

    if args.table:
        console.print(f"Dumping table [bold]{args.table}[/bold]...", style="dim")
        document = await build_table_dump(url, args.table, schema_name)
    else:
        console.print("Dumping database...", style="dim")
        document = await build_full_dump(url, schema_name)

    path = write_dump(document, output_path=args.output, output_dir=output_dir)

    console.print()
    console.print(f"[bold green]v[/bold green] Dump written: [cyan]{path}[/cyan]")
    console.print(f"  Tables: {len(document.blocks)}")
    console.print(f"  Rows: {document.row_count}")

    if document.skipped:
        skipped = Table(title="Skipped Tables", show_header=True, header_style="bold")
        skipped.add_column("Table", style="dim")
        skipped.add_column("Reason")
        skipped.add_column("Columns")
        for entry in document.skipped:
            skipped.add_row(entry.table, entry.reason, ", ".join(entry.columns))
        console.print(skipped)

    if document.warnings:
        console.print(
            f"\n[yellow]{len(document.warnings)} values written as NULL:[/yellow]"
        )
        for warning in document.warnings:
            console.print(f"  - {warning}")
    return 0


async def _async_restore(args: argparse.Namespace) -> int:
    """Async implementation for restore command."""
    dump_path = Path(args.dump_file)
    if not dump_path.exists():
        return _fail(f"Dump file not found: {dump_path}")
    batch = dump_path.read_text(encoding="utf-8")

    url = _database_url(args)
    summary = inspect_dump(batch)

    console.print(f"Restoring from: [bold]{dump_path}[/bold]")
    console.print(
        f"  Tables: {len(summary.tables)}  "
        f"CREATE: {summary.create_count}  INSERT: {summary.insert_count}"
    )
    for error in summary.errors:
        console.print(f"  [red]- {error}[/red]")

    if not args.yes:
        console.print(
            "[yellow]The whole file runs in one transaction against the "
            "target database.[/yellow]"
        )
        if not _confirm("Continue?"):
            console.print("Cancelled.")
            return 0

    result = await apply_restore(url, batch)
    console.print(
        f"[bold green]v[/bold green] Restore committed "
        f"({result.statement_count} statements)"
    )
    return 0


async def _async_copy(args: argparse.Namespace) -> int:
    """Async implementation for copy command."""
    source_url = resolve_target(args.source, args.config)
    target_url = resolve_target(args.dest, args.config)
    schema_name, _ = _dump_settings(args)

    if source_url == target_url:
        return _fail(f"Source and target are the same database: {args.source}")

    console.print(f"  Source: [bold]{args.source}[/bold]")
    console.print(f"  Target: [bold cyan]{args.dest}[/bold cyan]")
    console.print(f"  Table: [dim]{args.table}[/dim]")

    if not args.yes:
        console.print(
            f"[yellow]All existing rows of {args.table} in the target will be "
            f"replaced.[/yellow]"
        )
        if not _confirm("Continue?"):
            console.print("Cancelled.")
            return 0

    outcome = await copy_table(source_url, target_url, args.table, schema_name)
    console.print(
        f"[bold green]v[/bold green] Copied {outcome.copied_row_count} rows "
        f"into {outcome.table}"
    )
    return 0


def _run(coro_fn, args: argparse.Namespace) -> int:
    """Run an async command, reporting engine errors as exit code 1."""
    try:
        return asyncio.run(coro_fn(args))
    except (BackupError, FileNotFoundError) as e:
        return _fail(str(e))


# ============================================================================
# Sync command wrappers (cmd_validate, cmd_profiles read local files only)
# ============================================================================


def cmd_tables(args: argparse.Namespace) -> int:
    """List user tables.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 on failure.
    """
    return _run(_async_tables, args)


def cmd_describe(args: argparse.Namespace) -> int:
    """Describe one table."""
    return _run(_async_describe, args)


def cmd_dump(args: argparse.Namespace) -> int:
    """Dump the database, or one table, to a file.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 on failure.
    """
    return _run(_async_dump, args)


def cmd_restore(args: argparse.Namespace) -> int:
    """Apply a dump file to the database."""
    return _run(_async_restore, args)


def cmd_copy(args: argparse.Namespace) -> int:
    """Copy one table between databases."""
    return _run(_async_copy, args)


def cmd_validate(args: argparse.Namespace) -> int:
    """Inspect a dump file.

    Reads only the local file -- no database calls.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 if the dump looks valid, 1 otherwise.
    """
    dump_path = Path(args.dump_file)
    if not dump_path.exists():
        return _fail(f"Dump file not found: {dump_path}")

    summary = inspect_dump(dump_path.read_text(encoding="utf-8"))

    console.print(f"Validating: [bold]{dump_path}[/bold]")
    console.print(f"  Tables: {', '.join(summary.tables) or '-'}")
    console.print(f"  CREATE TABLE: {summary.create_count}")
    console.print(f"  INSERT INTO: {summary.insert_count}")

    if summary.errors:
        console.print(f"\n[red]Found {len(summary.errors)} errors:[/red]")
        for error in summary.errors:
            console.print(f"  - {error}")

    if summary.warnings:
        console.print(f"\n[yellow]Found {len(summary.warnings)} warnings:[/yellow]")
        for warning in summary.warnings:
            console.print(f"  - {warning}")

    if summary.valid:
        console.print("\n[bold green]v[/bold green] Dump is valid")
        return 0
    console.print("\n[bold red]x[/bold red] Dump is invalid")
    return 1


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from db.toml.

    Reads only local TOML config -- no database calls.

    Args:
        args: Parsed CLI arguments.

    Returns:
        0 on success, 1 if db.toml not found.
    """
    try:
        config = load_db_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        return _fail(str(e))

    try:
        current = get_active_profile_name(env_prefix=args.env_prefix)
    except BackupError:
        current = None

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        marker = "[bold green]*[/bold green]" if name == current else " "
        name_style = "bold cyan" if name == current else ""
        table.add_row(
            marker,
            f"[{name_style}]{name}[/{name_style}]" if name_style else name,
            profile.description or "",
        )

    console.print(table)

    if current:
        console.print(
            f"\n[bold green]*[/bold green] = {args.env_prefix}DB_PROFILE"
        )
    return 0


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="pg-backup",
        description="Dump, restore and copy PostgreSQL user tables",
    )

    # Global options
    target = parser.add_mutually_exclusive_group()
    target.add_argument("--url", help="Database connection URL")
    target.add_argument("--profile", help="Profile name from db.toml")
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_PROFILE)"
        ),
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to db.toml (default: ./db.toml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # tables command
    p_tables = subparsers.add_parser("tables", help="List user tables")
    p_tables.set_defaults(func=cmd_tables)

    # describe command
    p_describe = subparsers.add_parser(
        "describe",
        help="Show a table's columns and system-like flags",
    )
    p_describe.add_argument("table", help="Table name")
    p_describe.add_argument(
        "--sample",
        type=int,
        default=10,
        help="Number of rows to scan for system-like values (default: 10)",
    )
    p_describe.set_defaults(func=cmd_describe)

    # dump command
    p_dump = subparsers.add_parser("dump", help="Dump tables to a .sql file")
    p_dump.add_argument("--table", help="Dump only this table")
    p_dump.add_argument(
        "--output",
        "-o",
        help="Output path (default: <output_dir>/dump-<timestamp>.sql)",
    )
    p_dump.set_defaults(func=cmd_dump)

    # restore command
    p_restore = subparsers.add_parser(
        "restore",
        help="Apply a dump file in one transaction",
    )
    p_restore.add_argument("dump_file", help="Path to the .sql dump")
    p_restore.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Skip the confirmation prompt",
    )
    p_restore.set_defaults(func=cmd_restore)

    # validate command
    p_validate = subparsers.add_parser(
        "validate",
        help="Inspect a dump file without connecting",
    )
    p_validate.add_argument("dump_file", help="Path to the .sql dump")
    p_validate.set_defaults(func=cmd_validate)

    # copy command
    p_copy = subparsers.add_parser(
        "copy",
        help="Replace a table's rows in the target with the source's rows",
    )
    p_copy.add_argument(
        "--from",
        "-f",
        dest="source",
        required=True,
        help="Source profile name or URL",
    )
    p_copy.add_argument(
        "--to",
        "-t",
        dest="dest",
        required=True,
        help="Target profile name or URL",
    )
    p_copy.add_argument("--table", required=True, help="Table to copy")
    p_copy.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Skip the confirmation prompt",
    )
    p_copy.set_defaults(func=cmd_copy)

    # profiles command
    p_profiles = subparsers.add_parser("profiles", help="List available profiles")
    p_profiles.set_defaults(func=cmd_profiles)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
