"""CLI for the db-builder backend.

Provides commands for profile and session management, project and table
inspection, schema comparison, plan pricing, API key masking and project
export/import.

Usage:
    db-builder profiles
    db-builder --profile prod login --email me@example.com
    db-builder whoami
    db-builder projects
    db-builder create-project "Shop" --description "Online shop"
    db-builder tables <project-id>
    db-builder compare <project-id>
    db-builder price --catalog pricing.json basic --cycle yearly
    db-builder mask-key hzm_...
    db-builder export <project-id> --output shop.json
    db-builder import shop.json --name "Shop (copy)" --dry-run

Commands:
    profiles        - List configured profiles
    login           - Log in and store the session
    logout          - Clear the stored session
    whoami          - Show the logged-in user
    projects        - List your projects
    create-project  - Create a project
    delete-project  - Delete a project
    tables          - Show tables and fields of a project
    compare         - Compare a project definition with backend tables
    price           - Price a plan with its campaign
    mask-key        - Mask and inspect an API key
    export          - Export a project definition to JSON
    import          - Create a project from an export file
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from db_builder.apikeys import extract_metadata, mask_api_key, validate_api_key
from db_builder.backup.export_import import export_project, import_project, validate_export
from db_builder.client.http import ApiClient
from db_builder.client.tokens import AUTH_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_KEY, FileTokenStore
from db_builder.config.loader import load_client_config
from db_builder.error_handler import get_error_message, should_logout
from db_builder.errors import DbBuilderError
from db_builder.factory import (
    ProfileNotFoundError,
    clear_profile_lock,
    get_client,
    read_profile_lock,
    resolve_profile,
    write_profile_lock,
)
from db_builder.models.pricing import BillingCycle, Campaign, PricingPlan
from db_builder.models.project import Project
from db_builder.models.user import User
from db_builder.pricing import available_plans, quote_plan
from db_builder.schema.comparator import (
    columns_from_tables_detailed,
    expected_columns,
    validate_schema,
)
from db_builder.schema.models import TableStatus
from db_builder.services.admin import DebugService
from db_builder.services.projects import ProjectsService
from db_builder.store import DatabaseSession, DatabaseState, Store

logger = logging.getLogger(__name__)

console = Console()


# ============================================================================
# Helpers
# ============================================================================


def _config_path(args: argparse.Namespace) -> Path | None:
    config = getattr(args, "config", None)
    return Path(config) if config else None


def _open_client(args: argparse.Namespace) -> ApiClient | None:
    """Build a client for the selected profile, reporting config errors."""
    try:
        return get_client(
            profile_name=getattr(args, "profile", None),
            env_prefix=getattr(args, "env_prefix", ""),
            config_path=_config_path(args),
        )
    except (FileNotFoundError, KeyError, ValueError, ProfileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return None


def _logged_in_user(client: ApiClient) -> User | None:
    stored = client.stored_user() if client.is_authenticated() else None
    if not stored:
        console.print("[yellow]Not logged in.[/yellow]")
        console.print("[dim]Run[/dim] [cyan]db-builder login[/cyan] [dim]first.[/dim]")
        return None
    try:
        return User.model_validate(stored)
    except PydanticValidationError:
        console.print("[yellow]Stored session is unreadable; please log in again.[/yellow]")
        client.clear_tokens()
        return None


def _report_error(client: ApiClient, error: DbBuilderError) -> int:
    """Print ``error`` for the user; an expired session is cleared."""
    logger.debug("Command failed", exc_info=error)
    console.print(f"[bold red]x[/bold red] {get_error_message(error)}")
    if should_logout(error):
        client.clear_tokens()
        console.print("[dim]Run[/dim] [cyan]db-builder login[/cyan] [dim]to sign in again.[/dim]")
    return 1


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_login(args: argparse.Namespace) -> int:
    """Async implementation for login command.

    Args:
        args: Parsed arguments with email, password, profile.

    Returns:
        0 on success, 1 on failure.
    """
    client = _open_client(args)
    if client is None:
        return 1

    password = args.password or Prompt.ask("Password", password=True, console=console)

    async with client:
        session = DatabaseSession(client)
        console.print(f"Logging in to {client.base_url}...", style="dim")
        if not await session.login(args.email, password):
            console.print("[bold red]x[/bold red] Login failed")
            return 1

        user = session.state.user
        console.print()
        console.print(
            f"[bold green]v[/bold green] Logged in as [bold cyan]{user.email}[/bold cyan]"
        )
        console.print(f"  Projects: {len(session.state.projects)}")

    if args.profile:
        previous = read_profile_lock()
        write_profile_lock(args.profile)
        if previous and previous != args.profile:
            console.print(
                f"\n[dim]Switched from[/dim] [bold]{previous}[/bold] "
                f"[dim]to[/dim] [bold cyan]{args.profile}[/bold cyan]"
            )
    return 0


async def _async_whoami(args: argparse.Namespace) -> int:
    client = _open_client(args)
    if client is None:
        return 1

    async with client:
        if not client.is_authenticated():
            console.print("[yellow]Not logged in.[/yellow]")
            return 1
        response = await client.get_current_user()
        if not response.success or not response.data:
            console.print(f"[bold red]x[/bold red] {response.error or 'Unknown user'}")
            return 1
        try:
            user = User.model_validate(response.data)
        except PydanticValidationError:
            console.print("[bold red]x[/bold red] Unexpected user payload from the backend")
            return 1

    table = Table(title="Current User", show_header=False)
    table.add_column("Field", style="dim")
    table.add_column("Value")
    table.add_row("Email", user.email)
    table.add_row("Name", user.name or "-")
    table.add_row("Subscription", user.subscription_type.value)
    table.add_row("Limits", f"{user.max_projects} projects / {user.max_tables} tables")
    table.add_row("Admin", "yes" if user.is_admin else "no")
    console.print(table)
    return 0


async def _async_projects(args: argparse.Namespace) -> int:
    client = _open_client(args)
    if client is None:
        return 1

    async with client:
        user = _logged_in_user(client)
        if user is None:
            return 1
        try:
            response = await ProjectsService(client).get_user_projects(user.id)
        except DbBuilderError as e:
            return _report_error(client, e)

    table = Table(title="Projects", show_header=True, header_style="bold")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold cyan")
    table.add_column("Tables", justify="right")
    table.add_column("Description")
    for project in response.data:
        table.add_row(project.id, project.name, str(len(project.tables)), project.description or "")
    console.print(table)
    return 0


async def _async_create_project(args: argparse.Namespace) -> int:
    client = _open_client(args)
    if client is None:
        return 1

    async with client:
        user = _logged_in_user(client)
        if user is None:
            return 1
        session = DatabaseSession(
            client, Store(DatabaseState(user=user, is_authenticated=True))
        )
        project = await session.create_project(args.name, args.description)

    if project is None:
        console.print("[bold red]x[/bold red] Failed to create project")
        return 1
    console.print(
        f"[bold green]v[/bold green] Created project [bold cyan]{project.name}[/bold cyan] "
        f"({project.id})"
    )
    if project.api_key:
        console.print(f"  API key: {mask_api_key(project.api_key)}")
    return 0


async def _async_delete_project(args: argparse.Namespace) -> int:
    if not args.confirm:
        console.print(
            f"[yellow]This deletes project {args.project_id} and all its tables.[/yellow]"
        )
        console.print("[dim]Re-run with[/dim] [cyan]--confirm[/cyan] [dim]to proceed.[/dim]")
        return 1

    client = _open_client(args)
    if client is None:
        return 1

    async with client:
        if _logged_in_user(client) is None:
            return 1
        deleted = await DatabaseSession(client).delete_project(args.project_id)

    if not deleted:
        console.print(f"[bold red]x[/bold red] Failed to delete project {args.project_id}")
        return 1
    console.print(f"[bold green]v[/bold green] Deleted project {args.project_id}")
    return 0


async def _async_tables(args: argparse.Namespace) -> int:
    client = _open_client(args)
    if client is None:
        return 1

    async with client:
        try:
            response = await ProjectsService(client).get(args.project_id)
        except DbBuilderError as e:
            return _report_error(client, e)

    project = response.data
    console.print(f"[bold cyan]{project.name}[/bold cyan] [dim]({project.id})[/dim]")
    if not project.tables:
        console.print("[dim]No tables.[/dim]")
        return 0

    for table_def in project.tables:
        table = Table(title=table_def.name, show_header=True, header_style="bold")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Field")
        table.add_column("Type")
        table.add_column("Required")
        table.add_column("Relations")
        for position, field in enumerate(table_def.fields, start=1):
            relations = ", ".join(
                f"{r.relationship_type.value} -> "
                f"{_target_name(project, r.target_table_id, r.target_field_id)}"
                for r in field.relationships
            )
            table.add_row(
                str(position),
                field.name,
                field.type.value,
                "[green]yes[/green]" if field.required else "no",
                relations,
            )
        console.print(table)
    return 0


def _target_name(project: Project, table_id: str, field_id: str) -> str:
    target_table = project.find_table(table_id)
    if target_table is None:
        return "[red]?[/red]"
    target_field = target_table.find_field(field_id)
    return f"{target_table.name}.{target_field.name if target_field else '?'}"


async def _async_compare(args: argparse.Namespace) -> int:
    """Async implementation for compare command.

    Compares the project's table and field definitions with the tables
    reported by ``/debug/tables-detailed``.

    Returns:
        0 when every defined table and field exists, 1 otherwise.
    """
    client = _open_client(args)
    if client is None:
        return 1

    async with client:
        try:
            project = (await ProjectsService(client).get(args.project_id)).data
            payload = await DebugService(client).tables_detailed()
        except DbBuilderError as e:
            return _report_error(client, e)

    try:
        actual = columns_from_tables_detailed(payload, schema=args.schema)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    expected = expected_columns(project)
    if not args.show_extra:
        # Backend has system tables unrelated to the project
        actual = {name: cols for name, cols in actual.items() if name in expected}

    result = validate_schema(actual, expected, project_name=project.name)
    console.print(f"Comparing [bold cyan]{project.name}[/bold cyan] with backend tables")
    console.print()
    if result.valid:
        console.print("[bold green]v[/bold green] All tables and fields exist")
        if result.extra_tables:
            console.print(f"  Extra tables: [yellow]{', '.join(result.extra_tables)}[/yellow]")
        return 0

    stats = result.stats()
    console.print(
        f"[bold red]x[/bold red] {result.error_count} differences "
        f"({stats[TableStatus.MATCH]} tables match, {stats[TableStatus.INCOMPLETE]} incomplete, "
        f"{stats[TableStatus.MISSING]} missing)"
    )
    console.print(result.format_report())
    return 1


async def _async_export(args: argparse.Namespace) -> int:
    client = _open_client(args)
    if client is None:
        return 1

    async with client:
        try:
            path = await export_project(client, args.project_id, args.output)
        except DbBuilderError as e:
            return _report_error(client, e)

    console.print(f"[bold green]v[/bold green] Exported to {path}")
    return 0


async def _async_import(args: argparse.Namespace) -> int:
    """Async implementation for import command.

    The export file is validated by the caller; the new project is owned
    by the logged-in user when there is one.
    """
    client = _open_client(args)
    if client is None:
        return 1

    async with client:
        user = client.stored_user() or {}
        try:
            summary = await import_project(
                client,
                args.path,
                name=args.name,
                user_id=user.get("id"),
                dry_run=args.dry_run,
            )
        except DbBuilderError as e:
            return _report_error(client, e)

    prefix = "[dim](dry run)[/dim] " if summary["dry_run"] else ""
    target = summary["project_id"] or summary["name"]
    console.print(
        f"{prefix}[bold green]v[/bold green] Project {target}: "
        f"{summary['tables']} tables, {summary['fields']} fields, "
        f"{summary['relationships']} relationships"
    )
    if summary["dropped_relationships"]:
        console.print(
            f"  [yellow]{summary['dropped_relationships']} relationships dropped "
            f"(targets missing)[/yellow]"
        )
    return 0


# ============================================================================
# Sync command implementations
# ============================================================================


def cmd_login(args: argparse.Namespace) -> int:
    """Log in and store the session.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_login(args))


def cmd_logout(args: argparse.Namespace) -> int:
    """Clear the stored session and the profile lock."""
    try:
        _, _, session_file = resolve_profile(
            getattr(args, "profile", None),
            getattr(args, "env_prefix", ""),
            _config_path(args),
        )
    except (FileNotFoundError, KeyError, ValueError, ProfileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1
    store = FileTokenStore(Path(session_file))
    for key in (AUTH_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_KEY):
        store.remove(key)
    clear_profile_lock()
    console.print("[bold green]v[/bold green] Logged out")
    return 0


def cmd_whoami(args: argparse.Namespace) -> int:
    return asyncio.run(_async_whoami(args))


def cmd_projects(args: argparse.Namespace) -> int:
    return asyncio.run(_async_projects(args))


def cmd_create_project(args: argparse.Namespace) -> int:
    return asyncio.run(_async_create_project(args))


def cmd_delete_project(args: argparse.Namespace) -> int:
    return asyncio.run(_async_delete_project(args))


def cmd_tables(args: argparse.Namespace) -> int:
    return asyncio.run(_async_tables(args))


def cmd_compare(args: argparse.Namespace) -> int:
    return asyncio.run(_async_compare(args))


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from db-builder.toml.

    Returns:
        0 on success, 1 if db-builder.toml not found.
    """
    try:
        config = load_client_config(_config_path(args))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    current = read_profile_lock()

    table = Table(title="Backend Profiles", show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Profile")
    table.add_column("Base URL")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        marker = "[bold green]*[/bold green]" if name == current else " "
        table.add_row(
            marker,
            f"[bold cyan]{name}[/bold cyan]" if name == current else name,
            profile.base_url,
            profile.description or "",
        )

    console.print(table)

    if current:
        console.print("\n[bold green]*[/bold green] = current profile")

    return 0


def cmd_price(args: argparse.Namespace) -> int:
    """Price a plan from a JSON catalog ``{"plans": [...], "campaigns": [...]}``.

    Without a plan id, lists the plans offered for upgrade.
    """
    try:
        catalog = json.loads(Path(args.catalog).read_text(encoding="utf-8"))
        plans = [PricingPlan.model_validate(p) for p in catalog.get("plans", [])]
        campaigns = [Campaign.model_validate(c) for c in catalog.get("campaigns", [])]
    except (OSError, ValueError) as e:
        console.print(f"[red]Error reading catalog: {e}[/red]")
        return 1

    plan_ids = [args.plan_id] if args.plan_id else [p.id for p in available_plans(plans)]
    if not plan_ids:
        console.print("[dim]No plans available.[/dim]")
        return 0

    table = Table(
        title=f"Pricing ({args.cycle})", show_header=True, header_style="bold"
    )
    table.add_column("Plan")
    table.add_column("Original", justify="right")
    table.add_column("Discount", justify="right")
    table.add_column("Final", justify="right", style="bold")
    table.add_column("Campaign")

    by_id = {p.id: p for p in plans}
    for plan_id in plan_ids:
        try:
            quote = quote_plan(plan_id, args.cycle, plans, campaigns)
        except KeyError as e:
            console.print(f"[red]Error: {e.args[0]}[/red]")
            return 1
        currency = by_id[plan_id].currency
        table.add_row(
            by_id[plan_id].name,
            f"{quote.original_price} {currency}",
            f"[green]-{quote.discount}[/green]" if quote.has_discount else "-",
            f"{quote.final_price} {currency}",
            quote.campaign.name if quote.campaign and quote.has_discount else "",
        )
    console.print(table)
    return 0


def cmd_mask_key(args: argparse.Namespace) -> int:
    """Print the masked form of an API key and what its format tells."""
    console.print(mask_api_key(args.key))
    if not validate_api_key(args.key):
        console.print("[bold red]x[/bold red] Not a valid API key")
        return 1

    metadata = extract_metadata(args.key)
    created = datetime.fromtimestamp(metadata.timestamp / 1000, tz=timezone.utc)
    console.print(f"  Issued: {created.isoformat()}")
    console.print(f"  Kind: {'project key' if metadata.is_project_key else 'account key'}")
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    """Export a project definition to JSON."""
    return asyncio.run(_async_export(args))


def cmd_import(args: argparse.Namespace) -> int:
    """Validate an export file and create a project from it."""
    report = validate_export(args.path)
    for warning in report["warnings"]:
        console.print(f"[yellow]! {warning}[/yellow]")
    if not report["valid"]:
        console.print(f"[bold red]x[/bold red] Invalid export ({len(report['errors'])} errors):")
        for error in report["errors"]:
            console.print(f"  - {error}")
        return 1
    return asyncio.run(_async_import(args))


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="db-builder",
        description="Command-line client for the db-builder backend",
    )

    # Global options
    parser.add_argument(
        "--env-prefix",
        default="",
        help=(
            "Prefix for environment variable lookup "
            "(e.g., --env-prefix APP_ reads APP_DB_BUILDER_PROFILE)"
        ),
    )
    parser.add_argument("--profile", help="Profile from db-builder.toml")
    parser.add_argument("--config", help="Path to db-builder.toml")
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_profiles = subparsers.add_parser("profiles", help="List configured profiles")
    p_profiles.set_defaults(func=cmd_profiles)

    p_login = subparsers.add_parser("login", help="Log in and store the session")
    p_login.add_argument("--email", required=True, help="Account email")
    p_login.add_argument("--password", help="Password (prompted when omitted)")
    p_login.set_defaults(func=cmd_login)

    p_logout = subparsers.add_parser("logout", help="Clear the stored session")
    p_logout.set_defaults(func=cmd_logout)

    p_whoami = subparsers.add_parser("whoami", help="Show the logged-in user")
    p_whoami.set_defaults(func=cmd_whoami)

    p_projects = subparsers.add_parser("projects", help="List your projects")
    p_projects.set_defaults(func=cmd_projects)

    p_create = subparsers.add_parser("create-project", help="Create a project")
    p_create.add_argument("name", help="Project name")
    p_create.add_argument("--description", help="Project description")
    p_create.set_defaults(func=cmd_create_project)

    p_delete = subparsers.add_parser("delete-project", help="Delete a project")
    p_delete.add_argument("project_id", help="Project ID")
    p_delete.add_argument("--confirm", action="store_true", help="Actually delete")
    p_delete.set_defaults(func=cmd_delete_project)

    p_tables = subparsers.add_parser("tables", help="Show tables and fields of a project")
    p_tables.add_argument("project_id", help="Project ID")
    p_tables.set_defaults(func=cmd_tables)

    p_compare = subparsers.add_parser(
        "compare", help="Compare a project definition with backend tables"
    )
    p_compare.add_argument("project_id", help="Project ID")
    p_compare.add_argument("--schema", help="Only consider tables in this schema")
    p_compare.add_argument(
        "--show-extra",
        action="store_true",
        help="Report backend tables the project does not define",
    )
    p_compare.set_defaults(func=cmd_compare)

    p_price = subparsers.add_parser("price", help="Price a plan with its campaign")
    p_price.add_argument(
        "--catalog", required=True, help='JSON file with "plans" and "campaigns"'
    )
    p_price.add_argument("plan_id", nargs="?", help="Plan ID (default: all available plans)")
    p_price.add_argument(
        "--cycle",
        choices=[c.value for c in BillingCycle],
        default=BillingCycle.MONTHLY.value,
        help="Billing cycle",
    )
    p_price.set_defaults(func=cmd_price)

    p_mask = subparsers.add_parser("mask-key", help="Mask and inspect an API key")
    p_mask.add_argument("key", help="API key")
    p_mask.set_defaults(func=cmd_mask_key)

    p_export = subparsers.add_parser("export", help="Export a project definition to JSON")
    p_export.add_argument("project_id", help="Project ID")
    p_export.add_argument("--output", "-o", help="Output path (default: ./exports/)")
    p_export.set_defaults(func=cmd_export)

    p_import = subparsers.add_parser("import", help="Create a project from an export file")
    p_import.add_argument("path", help="Export file")
    p_import.add_argument("--name", help="Name of the new project")
    p_import.add_argument(
        "--dry-run", action="store_true", help="Validate and count without creating"
    )
    p_import.set_defaults(func=cmd_import)

    return parser


def main() -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = build_parser().parse_args()
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
