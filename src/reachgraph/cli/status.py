"""Status command for displaying store statistics."""

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from reachgraph.database.connection import get_db_path
from reachgraph.database.migrations import migration_status
from reachgraph.database.queries import get_store_stats
from reachgraph.utils.formatting import format_file_size

console = Console()


@click.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show store and configuration status."""
    stats = get_store_stats()
    migrations = migration_status()

    # Header
    console.print()
    console.print(Panel.fit("[bold]ReachGraph Status[/bold]", border_style="blue"))
    console.print()

    # Database info
    db_path = get_db_path()
    db_size = db_path.stat().st_size if db_path.exists() else 0

    console.print(f"[bold]Database:[/bold] {db_path}")
    console.print(f"[dim]Size: {format_file_size(db_size)}[/dim]")
    console.print(
        f"[dim]Schema version: {migrations['current_version']} "
        f"(latest {migrations['latest_version']}, {migrations['pending']} pending)[/dim]"
    )
    console.print()

    # Graph table
    graph_table = Table(title="Content Graph", show_header=True, header_style="bold cyan")
    graph_table.add_column("Metric", style="dim")
    graph_table.add_column("Value", justify="right")

    graph_table.add_row("Creators", str(stats["creators"]))
    graph_table.add_row("Content items", str(stats["content_nodes"]))
    graph_table.add_row("Relationships", str(stats["edges"]))
    graph_table.add_row("Families", str(stats["families"]))

    console.print(graph_table)
    console.print()

    # Platforms table
    if stats["platforms"]:
        platform_table = Table(title="Platforms", show_header=True, header_style="bold cyan")
        platform_table.add_column("Platform", style="dim")
        platform_table.add_column("Content items", justify="right")

        for platform, count in stats["platforms"].items():
            platform_table.add_row(platform, str(count))

        console.print(platform_table)
        console.print()

    # Metrics info
    console.print(f"[bold]Metric rows:[/bold] {stats['metric_rows']}")
    if stats["first_metric_date"]:
        console.print(
            f"[bold]Metric range:[/bold] {stats['first_metric_date']} to {stats['last_metric_date']}"
        )
    else:
        console.print("[dim]No metrics synced yet[/dim]")

    console.print(f"[bold]Overlap estimates:[/bold] {stats['platform_overlaps']}")
    console.print()
