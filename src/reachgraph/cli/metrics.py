"""Metric sync and audience overlap commands."""

import json
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from reachgraph.cli import abort
from reachgraph.database.models import DailyMetric
from reachgraph.engine import ReachGraphEngine, get_engine
from reachgraph.exceptions import ReachGraphError
from reachgraph.utils.formatting import format_percent

console = Console()


def _resolve_rows(
    engine: ReachGraphEngine, records: list[Any]
) -> tuple[list[DailyMetric], list[str]]:
    """
    Turn connector records into DailyMetric rows.

    A record names its content either by "content_id" or by
    "creator_id" + "platform" + "external_id". The day is "date" or
    "metric_date"; raw platform fields go under "metrics".
    """
    rows: list[DailyMetric] = []
    problems: list[str] = []

    for i, record in enumerate(records, 1):
        if not isinstance(record, dict):
            problems.append(f"record {i}: expected an object, got {type(record).__name__}")
            continue

        content_id = record.get("content_id")
        if content_id is None and {"creator_id", "platform", "external_id"} <= record.keys():
            node = engine.nodes.find_by_external_id(
                record["creator_id"], record["platform"], record["external_id"]
            )
            if node is None:
                problems.append(
                    f"record {i}: no content {record['platform']}:{record['external_id']} "
                    f"for {record['creator_id']}"
                )
                continue
            content_id = node.id

        metric_date = record.get("date", record.get("metric_date"))
        if content_id is None or metric_date is None:
            problems.append(f"record {i}: needs a content reference and a date")
            continue

        try:
            rows.append(
                DailyMetric(
                    content_id=content_id,
                    metric_date=metric_date,
                    metrics=record.get("metrics", {}),
                )
            )
        except ValidationError as e:
            problems.append(f"record {i}: {e.errors()[0]['msg']}")

    return rows, problems


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def sync(ctx: click.Context, file: Path) -> None:
    """Upsert raw daily metrics from a JSON FILE.

    FILE holds a list of records like
    {"content_id": "...", "date": "2024-05-01", "metrics": {"views": 120}}.
    """
    verbose = ctx.obj.get("verbose", False) if ctx.obj else False

    try:
        records = json.loads(file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]✗[/red] Not valid JSON: {e} ({file})")
        raise click.Abort()

    if isinstance(records, dict):
        records = [records]
    if not isinstance(records, list):
        console.print(f"[red]✗[/red] Expected a JSON object or a list of them in {file}")
        raise click.Abort()

    engine = get_engine()
    try:
        rows, problems = _resolve_rows(engine, records)
        result = engine.sync_metrics(rows)
    except ReachGraphError as e:
        abort("Sync", e)

    skipped = result.skipped + len(problems)
    console.print(f"[green]✓[/green] Synced {result.synced} metric row(s)")
    if skipped:
        console.print(f"[yellow]![/yellow] Skipped {skipped} row(s)")
        if verbose:
            for message in problems + result.errors:
                console.print(f"  [dim]{message}[/dim]")


@click.group()
def overlap() -> None:
    """Manage audience overlap estimates between platforms."""
    pass


@overlap.command("set")
@click.argument("platform_a")
@click.argument("platform_b")
@click.argument("rate", type=click.FloatRange(0.0, 1.0))
def set_overlap(platform_a: str, platform_b: str, rate: float) -> None:
    """Set the share of audience PLATFORM_A and PLATFORM_B have in common."""
    try:
        stored = get_engine().set_overlap(platform_a, platform_b, rate)
    except (ReachGraphError, ValueError) as e:
        abort("Setting overlap", e)

    console.print(
        f"[green]✓[/green] {stored.platform_a}/{stored.platform_b} overlap set to "
        f"{format_percent(stored.overlap_rate)}"
    )


@overlap.command("list")
def list_overlaps() -> None:
    """List stored overlap estimates."""
    overlaps = get_engine().overlaps()

    if not overlaps:
        console.print("[dim]No overlap estimates stored.[/dim]")
        return

    table = Table(title="Audience Overlap", show_header=True, header_style="bold cyan")
    table.add_column("Platform A")
    table.add_column("Platform B")
    table.add_column("Overlap", justify="right")
    table.add_column("Updated", style="dim")

    for o in overlaps:
        table.add_row(
            o.platform_a,
            o.platform_b,
            format_percent(o.overlap_rate),
            o.updated_at.strftime("%Y-%m-%d"),
        )

    console.print(table)
