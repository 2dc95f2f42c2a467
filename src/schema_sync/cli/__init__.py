"""CLI module for MySQL schema synchronization.

Provides commands for connection profile management, database creation,
sync previews, schema sync, and post-sync verification.

Usage:
    DB_PROFILE=local schema-sync connect
    schema-sync status
    schema-sync profiles
    schema-sync create-db shop
    schema-sync databases
    schema-sync plan --document schema.json
    schema-sync sync --document schema.json --confirm
    schema-sync verify --document schema.json
    schema-sync reset-ai orders

Commands:
    connect    - Test the profile's connection and remember the profile
    status     - Show current connection status
    profiles   - List available profiles
    create-db  - Create a database on the profile's server
    databases  - List databases on the profile's server
    plan       - Show the DDL a sync would run (dry run)
    sync       - Drop and recreate tables to match a schema document
    verify     - Check live tables and columns against a schema document
    reset-ai   - Reset a table's AUTO_INCREMENT counter
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from schema_sync.config.loader import load_sync_config
from schema_sync.config.models import DatabaseProfile, TableErrorPolicy
from schema_sync.database import (
    create_database,
    list_databases,
    reset_auto_increment,
    test_connection,
)
from schema_sync.factory import (
    ProfileNotFoundError,
    connect_and_validate,
    get_active_profile,
    get_adapter,
    read_profile_lock,
    resolve_connection,
)
from schema_sync.schema.comparator import validate_document
from schema_sync.schema.introspector import SchemaIntrospector
from schema_sync.schema.models import SchemaDocument
from schema_sync.schema.reconciler import preview_sync, sync_schema

console = Console()


# ============================================================================
# Shared helpers
# ============================================================================


def _config_path(args: argparse.Namespace) -> Path | None:
    config = getattr(args, "config", None)
    return Path(config) if config else None


def _load_document(document_file: str | Path) -> SchemaDocument:
    """Read a schema document from a JSON file.

    Accepts either ``{"tables": [...], "relationships": [...]}`` or the
    same object nested under ``schemaData``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not valid JSON or not a valid document.
    """
    path = Path(document_file)
    if not path.exists():
        raise FileNotFoundError(f"Schema document not found: {path}")

    data = json.loads(path.read_text())
    if isinstance(data, dict) and "schemaData" in data:
        data = data["schemaData"]
    return SchemaDocument.from_json(data)


def _resolve_profile(args: argparse.Namespace) -> tuple[str, DatabaseProfile] | None:
    """Resolve the active profile, printing a hint when there is none."""
    env_prefix = getattr(args, "env_prefix", "")
    try:
        return get_active_profile(env_prefix=env_prefix, config_path=_config_path(args))
    except ProfileNotFoundError as e:
        console.print(f"[yellow]{e}[/yellow]")
        return None
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return None


def _target_database(args: argparse.Namespace, profile: DatabaseProfile) -> str | None:
    database = getattr(args, "database", None) or profile.database
    if not database:
        console.print(
            "[red]Error: no database selected.[/red] "
            "[dim]Set[/dim] [cyan]database[/cyan] [dim]in the profile or pass[/dim] "
            "[cyan]--database[/cyan]"
        )
    return database


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_connect(args: argparse.Namespace) -> int:
    """Async implementation for connect command.

    Returns:
        0 on success, 1 on failure.
    """
    env_prefix = getattr(args, "env_prefix", "")

    previous_profile = read_profile_lock()

    console.print("Connecting to database...", style="dim")

    result = await connect_and_validate(env_prefix=env_prefix, config_path=_config_path(args))

    if result.success:
        console.print()
        console.print(
            f"[bold green]v[/bold green] Connected to profile: "
            f"[bold cyan]{result.profile_name}[/bold cyan]"
        )

        if previous_profile and previous_profile != result.profile_name:
            console.print(
                f"\n[dim]Switched from[/dim] [bold]{previous_profile}[/bold] "
                f"[dim]to[/dim] [bold cyan]{result.profile_name}[/bold cyan]"
            )

        return 0

    console.print()
    console.print(f"[bold red]x[/bold red] {result.error}")
    return 1


async def _async_create_db(args: argparse.Namespace) -> int:
    """Async implementation for create-db command."""
    resolved = _resolve_profile(args)
    if resolved is None:
        return 1
    profile_name, profile = resolved
    config = resolve_connection(profile)

    console.print(f"Testing connection for profile: [bold cyan]{profile_name}[/bold cyan]")
    check = await test_connection(config)
    if not check.success:
        console.print(f"\n[bold red]x[/bold red] MySQL connection failed: {check.message}")
        return 1

    result = await create_database(config, args.name)
    if result.success:
        console.print(f"\n[bold green]v[/bold green] {result.message}")
        return 0

    console.print(f"\n[bold red]x[/bold red] {result.message}")
    return 1


async def _async_databases(args: argparse.Namespace) -> int:
    """Async implementation for databases command."""
    resolved = _resolve_profile(args)
    if resolved is None:
        return 1
    profile_name, profile = resolved

    result = await list_databases(resolve_connection(profile))
    if not result.success:
        console.print(f"[bold red]x[/bold red] {result.message}")
        return 1

    table = Table(title=f"Databases ({profile_name})", show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Database")
    for name in result.databases:
        marker = "[bold green]*[/bold green]" if name == profile.database else " "
        table.add_row(marker, name)
    console.print(table)
    return 0


async def _async_plan(args: argparse.Namespace) -> int:
    """Async implementation for plan command.

    Connects only to read the table inventory; no DDL is executed.

    Returns:
        0 on success, 1 on failure.
    """
    resolved = _resolve_profile(args)
    if resolved is None:
        return 1
    profile_name, profile = resolved

    database = _target_database(args, profile)
    if not database:
        return 1

    try:
        document = _load_document(args.document)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"\n[red]Error: {e}[/red]")
        return 1

    console.print(
        f"Planning sync for [bold cyan]{profile_name}[/bold cyan] "
        f"database [bold]{database}[/bold]"
    )

    try:
        plan = await preview_sync(resolve_connection(profile), database, document)
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] Connection failed: {e}")
        return 1

    console.print()
    plan_table = Table(title="Sync Plan", show_header=True, header_style="bold")
    plan_table.add_column("Table", style="dim")
    plan_table.add_column("Action")
    plan_table.add_column("Columns", justify="right")

    for name in plan.drops:
        plan_table.add_row(name, "[bold red]DROP[/bold red]", "")
    for step in plan.tables:
        if step.duplicate_of is not None:
            action = "[bold red]DUPLICATE[/bold red]"
        elif step.is_recreate:
            action = "[bold yellow]RECREATE[/bold yellow]"
        else:
            action = "[bold green]CREATE[/bold green]"
        plan_table.add_row(step.table, action, str(step.column_count))
    console.print(plan_table)

    if plan.relationships:
        console.print()
        fk_table = Table(title="Foreign Keys", show_header=True, header_style="bold")
        fk_table.add_column("Constraint")
        fk_table.add_column("Columns")
        fk_table.add_column("On Delete")
        fk_table.add_column("On Update")
        for rel in plan.relationships:
            fk_table.add_row(
                rel.constraint_name, rel.describe(), rel.on_delete.value, rel.on_update.value
            )
        console.print(fk_table)

    if plan.skipped_relationships:
        console.print(
            f"\n[yellow]{len(plan.skipped_relationships)} relationship(s) skipped "
            f"(dangling reference):[/yellow] {', '.join(plan.skipped_relationships)}"
        )
    if plan.blocked_relationships:
        console.print(
            f"\n[red]{len(plan.blocked_relationships)} relationship(s) will fail "
            f"(endpoint table is a duplicate):[/red] {', '.join(plan.blocked_relationships)}"
        )

    if plan.drops or plan.recreate_count:
        console.print(
            "\n[bold yellow]Warning:[/bold yellow] dropped and recreated tables lose all rows."
        )

    if getattr(args, "show_sql", False):
        console.print()
        console.print("[bold]Statements:[/bold]")
        for sql in plan.statements():
            console.print(sql, markup=False, highlight=False)

    return 0


async def _async_sync(args: argparse.Namespace) -> int:
    """Async implementation for sync command.

    Without ``--confirm`` this prints the plan and exits.

    Returns:
        0 on success, 1 on failure.
    """
    if not args.confirm:
        exit_code = await _async_plan(args)
        if exit_code == 0:
            console.print()
            console.print(
                "[dim]To apply the sync, add[/dim] [cyan]--confirm[/cyan] [dim]flag.[/dim]"
            )
        return exit_code

    resolved = _resolve_profile(args)
    if resolved is None:
        return 1
    profile_name, profile = resolved

    database = _target_database(args, profile)
    if not database:
        return 1

    try:
        document = _load_document(args.document)
        policy = (
            TableErrorPolicy(args.policy)
            if args.policy
            else load_sync_config(_config_path(args)).sync.table_error_policy
        )
    except (FileNotFoundError, ValueError) as e:
        console.print(f"\n[red]Error: {e}[/red]")
        return 1

    console.print(
        f"Syncing {len(document.tables)} table(s) to [bold cyan]{profile_name}[/bold cyan] "
        f"database [bold]{database}[/bold] (policy: {policy.value})"
    )

    report = await sync_schema(
        resolve_connection(profile),
        database,
        document.tables,
        document.relationships,
        table_error_policy=policy,
    )

    console.print()
    for line in report.details:
        style = "red" if line.startswith("Failed") else "dim"
        console.print(f"  {line}", style=style, markup=False, highlight=False)

    if report.skipped_count:
        console.print(
            f"\n[yellow]{report.skipped_count} relationship(s) skipped "
            f"(dangling reference)[/yellow]"
        )

    if report.success:
        console.print(f"\n[bold green]v[/bold green] {report.message}")
        return 0

    console.print(f"\n[bold red]x[/bold red] {report.message}")
    return 1


async def _async_verify(args: argparse.Namespace) -> int:
    """Async implementation for verify command.

    Returns:
        0 when live tables and columns match the document, 1 otherwise.
    """
    resolved = _resolve_profile(args)
    if resolved is None:
        return 1
    profile_name, profile = resolved

    database = _target_database(args, profile)
    if not database:
        return 1

    try:
        document = _load_document(args.document)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"\n[red]Error: {e}[/red]")
        return 1

    console.print(
        f"Verifying [bold cyan]{profile_name}[/bold cyan] database [bold]{database}[/bold]"
    )

    try:
        async with await get_adapter(
            profile_name=profile_name,
            database=database,
            config_path=_config_path(args),
        ) as client:
            actual_columns = await SchemaIntrospector(client).get_column_names()
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] Connection failed: {e}")
        return 1

    result = validate_document(actual_columns, document)

    console.print()
    if result.valid:
        console.print("[bold green]v[/bold green] Schema matches document")
        if result.extra_tables:
            console.print(f"  Extra tables: [yellow]{', '.join(result.extra_tables)}[/yellow]")
        return 0

    console.print("[bold red]x[/bold red] Schema has drifted")
    console.print(result.format_report())
    return 1


async def _async_reset_ai(args: argparse.Namespace) -> int:
    """Async implementation for reset-ai command."""
    resolved = _resolve_profile(args)
    if resolved is None:
        return 1
    _, profile = resolved

    database = _target_database(args, profile)
    if not database:
        return 1

    result = await reset_auto_increment(resolve_connection(profile), database, args.table)
    if result.success:
        console.print(
            f"[bold green]v[/bold green] {result.table}: {result.message}"
        )
        return 0

    console.print(f"[bold red]x[/bold red] {result.message}")
    return 1


# ============================================================================
# Sync command wrappers
# ============================================================================


def cmd_connect(args: argparse.Namespace) -> int:
    """Test the active profile's connection and write the profile lock.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_connect(args))


def cmd_status(args: argparse.Namespace) -> int:
    """Show current connection status.

    Reads only local files (lock file and TOML config) -- no database calls.

    Returns:
        0 always (informational command).
    """
    profile = read_profile_lock()

    if profile:
        table = Table(title="Connection Status", show_header=False)
        table.add_column("Key", style="dim")
        table.add_column("Value")

        table.add_row("Current profile", f"[bold cyan]{profile}[/bold cyan]")
        table.add_row("Profile source", ".db-profile (connected)")

        try:
            config = load_sync_config(_config_path(args))
            if profile in config.profiles:
                p = config.profiles[profile]
                table.add_row("Server", f"{p.host}:{p.port}")
                table.add_row("Database", p.database or "[dim]none[/dim]")
                if p.description:
                    table.add_row("Description", p.description)
            else:
                table.add_row("Warning", "[yellow]profile missing from config[/yellow]")
        except FileNotFoundError:
            table.add_row("Warning", "[yellow]schema_sync.toml not found[/yellow]")

        console.print(table)
    else:
        console.print("[yellow]No connected profile.[/yellow]")
        console.print("[dim]Run:[/dim] [cyan]DB_PROFILE=<name> schema-sync connect[/cyan]")

    return 0


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from schema_sync.toml.

    Reads only local TOML config -- no database calls.

    Returns:
        0 on success, 1 if schema_sync.toml not found.
    """
    try:
        config = load_sync_config(_config_path(args))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    current = read_profile_lock()

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("Server")
    table.add_column("Database")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        marker = "[bold green]*[/bold green]" if name == current else " "
        name_style = "bold cyan" if name == current else ""
        table.add_row(
            marker,
            f"[{name_style}]{name}[/{name_style}]" if name_style else name,
            f"{profile.host}:{profile.port}",
            profile.database or "",
            profile.description or "",
        )

    console.print(table)

    if current:
        console.print("\n[bold green]*[/bold green] = current profile")

    return 0


def cmd_create_db(args: argparse.Namespace) -> int:
    """Create a database.  Wraps the async implementation with ``asyncio.run()``."""
    return asyncio.run(_async_create_db(args))


def cmd_databases(args: argparse.Namespace) -> int:
    """List databases.  Wraps the async implementation with ``asyncio.run()``."""
    return asyncio.run(_async_databases(args))


def cmd_plan(args: argparse.Namespace) -> int:
    """Preview a sync.  Wraps the async implementation with ``asyncio.run()``."""
    return asyncio.run(_async_plan(args))


def cmd_sync(args: argparse.Namespace) -> int:
    """Sync a schema document to MySQL.

    Wraps the async implementation with ``asyncio.run()``.

    Returns:
        0 on success, 1 on failure.
    """
    return asyncio.run(_async_sync(args))


def cmd_verify(args: argparse.Namespace) -> int:
    """Verify a database.  Wraps the async implementation with ``asyncio.run()``."""
    return asyncio.run(_async_verify(args))


def cmd_reset_ai(args: argparse.Namespace) -> int:
    """Reset AUTO_INCREMENT.  Wraps the async implementation with ``asyncio.run()``."""
    return asyncio.run(_async_reset_ai(args))


# ============================================================================
# Main entry point
# ============================================================================


def _add_document_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--document",
        required=True,
        help="Path to schema document JSON ({tables, relationships})",
    )
    parser.add_argument(
        "--database",
        help="Target database (defaults to the profile's database)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="schema-sync",
        description="Synchronize MySQL databases with declarative schema documents",
    )

    # Global options
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
        help="Path to schema_sync.toml (default: ./schema_sync.toml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log each phase and DDL statement",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # connect command
    p_connect = subparsers.add_parser(
        "connect",
        help="Test the profile's connection and remember the profile",
    )
    p_connect.set_defaults(func=cmd_connect)

    # status command
    p_status = subparsers.add_parser("status", help="Show current connection status")
    p_status.set_defaults(func=cmd_status)

    # profiles command
    p_profiles = subparsers.add_parser("profiles", help="List available profiles")
    p_profiles.set_defaults(func=cmd_profiles)

    # create-db command
    p_create_db = subparsers.add_parser(
        "create-db",
        help="Create a database on the profile's server",
    )
    p_create_db.add_argument("name", help="Database name (sanitized before use)")
    p_create_db.set_defaults(func=cmd_create_db)

    # databases command
    p_databases = subparsers.add_parser(
        "databases",
        help="List databases on the profile's server",
    )
    p_databases.set_defaults(func=cmd_databases)

    # plan command
    p_plan = subparsers.add_parser("plan", help="Show what a sync would do (dry run)")
    _add_document_args(p_plan)
    p_plan.add_argument(
        "--show-sql",
        action="store_true",
        help="Print every DDL statement in execution order",
    )
    p_plan.set_defaults(func=cmd_plan)

    # sync command
    p_sync = subparsers.add_parser(
        "sync",
        help="Drop and recreate tables to match a schema document",
    )
    _add_document_args(p_sync)
    p_sync.add_argument(
        "--policy",
        choices=[p.value for p in TableErrorPolicy],
        default=None,
        help="What to do when a table fails (default: [sync] table_error_policy)",
    )
    p_sync.add_argument(
        "--confirm",
        action="store_true",
        help="Actually perform the sync (destroys data in synced tables)",
    )
    p_sync.set_defaults(func=cmd_sync)

    # verify command
    p_verify = subparsers.add_parser(
        "verify",
        help="Check live tables and columns against a schema document",
    )
    _add_document_args(p_verify)
    p_verify.set_defaults(func=cmd_verify)

    # reset-ai command
    p_reset_ai = subparsers.add_parser(
        "reset-ai",
        help="Reset a table's AUTO_INCREMENT counter to MAX(id) + 1",
    )
    p_reset_ai.add_argument("table", help="Table name (sanitized before use)")
    p_reset_ai.add_argument(
        "--database",
        help="Target database (defaults to the profile's database)",
    )
    p_reset_ai.set_defaults(func=cmd_reset_ai)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
