"""Main CLI entry point for ReachGraph."""

import click
from rich.console import Console
from rich.table import Table

from reachgraph import __version__
from reachgraph.cli.analytics import creator, family, insights
from reachgraph.cli.content import content, link, suggest
from reachgraph.cli.metrics import overlap, sync
from reachgraph.cli.report import report
from reachgraph.cli.status import status
from reachgraph.config import get_settings
from reachgraph.database.connection import database_exists, initialize_database
from reachgraph.utils.logging import setup_logging

console = Console()

CREATED_MESSAGE = "[green]✓[/green] Database initialized with default platform overlaps"


@click.group()
@click.version_option(__version__, prog_name="reachgraph")
@click.option("-v", "--verbose", is_flag=True, help="Log at DEBUG and show skipped rows")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """
    ReachGraph - Content family graph and cross-platform analytics.

    Link a creator's content across platforms into families, sync daily
    metrics, and roll them up with audience-overlap deduplication.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    log_settings = get_settings().logging
    setup_logging(
        level="DEBUG" if verbose else log_settings.level,
        log_file=log_settings.file,
        max_size_mb=log_settings.max_size_mb,
        backup_count=log_settings.backup_count,
    )

    # First run
    if not database_exists():
        console.print("[dim]Creating database...[/dim]")
        initialize_database(populate_defaults=True)
        console.print(CREATED_MESSAGE)


@cli.command()
@click.option("-y", "--yes", is_flag=True, help="Reset without asking")
def init(yes: bool) -> None:
    """Create the database, or wipe it back to default overlaps."""
    from reachgraph.database.connection import reset_database

    if not database_exists():
        initialize_database(populate_defaults=True)
        console.print(CREATED_MESSAGE)
        return

    if not yes and not click.confirm(
        "This deletes all content, links and metrics. Reset the database?"
    ):
        console.print("[yellow]Cancelled.[/yellow] Nothing was changed.")
        return

    reset_database()
    console.print("[green]✓[/green] Database reset to default platform overlaps")


@cli.command()
@click.option("--check", is_flag=True, help="List migrations without applying them")
@click.option("--to", "target_version", type=click.IntRange(min=1), help="Stop at this schema version")
def migrate(check: bool, target_version: int | None) -> None:
    """Bring the database schema up to date."""
    from reachgraph.database.migrations import migrate as run_migrations
    from reachgraph.database.migrations import migration_status, registered_migrations

    if check:
        info = migration_status()
        applied = set(info["applied_versions"])

        table = Table(title="Schema Migrations", show_header=True, header_style="bold cyan")
        table.add_column("Version", justify="right")
        table.add_column("Name")
        table.add_column("State")
        for m in registered_migrations():
            state = "[green]applied[/green]" if m.version in applied else "[yellow]pending[/yellow]"
            table.add_row(str(m.version), m.name, state)

        console.print(table)
        console.print(
            f"Schema version {info['current_version']} of {info['latest_version']}, "
            f"{info['pending']} pending"
        )
        return

    count = run_migrations(target_version=target_version)
    if count:
        console.print(f"[green]✓[/green] Applied {count} migration(s)")
    else:
        console.print("[dim]Schema is up to date[/dim]")


for command in (content, link, suggest, sync, overlap, family, creator, insights, report, status):
    cli.add_command(command)


if __name__ == "__main__":
    cli()
