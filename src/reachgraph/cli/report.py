"""Markdown report command."""

from datetime import datetime
from pathlib import Path

import click
from rich.console import Console

from reachgraph.cli import abort
from reachgraph.exceptions import ReachGraphError
from reachgraph.processing.aggregation import Period
from reachgraph.reports.generator import FamilyReportGenerator

console = Console()


@click.command()
@click.argument("root_id")
@click.option(
    "-o",
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write here instead of the reports directory",
)
@click.option("--days", type=click.IntRange(min=1), default=None, help="Length of the period in days")
@click.option(
    "--end",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Last day of the period (default today)",
)
@click.pass_context
def report(
    ctx: click.Context,
    root_id: str,
    output: Path | None,
    days: int | None,
    end: datetime | None,
) -> None:
    """Write a markdown report for the family containing ROOT_ID."""
    verbose = ctx.obj.get("verbose", False) if ctx.obj else False

    try:
        generator = FamilyReportGenerator()
        period = None
        if days is not None or end is not None:
            period = Period.last_n_days(
                days or generator.engine.default_period_days, end.date() if end else None
            )
        path = generator.generate(root_id, period=period, output_path=output)
    except ReachGraphError as e:
        abort("Report generation", e)

    console.print(f"[green]✓[/green] Report written to [bold]{path}[/bold]")
    if verbose:
        console.print(f"[dim]{path.resolve()}[/dim]")
