"""Family, creator and insight commands."""

import json
from datetime import datetime
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from reachgraph.cli import abort
from reachgraph.engine import get_engine
from reachgraph.exceptions import ReachGraphError
from reachgraph.processing.aggregation import (
    AggregateMetrics,
    ContentTypeBreakdown,
    Period,
    PlatformBreakdown,
)
from reachgraph.processing.insights import EntityType
from reachgraph.utils.formatting import (
    format_change,
    format_currency,
    format_number,
    format_percent,
    truncate_text,
)

console = Console()

ENTITY_TYPES = [t.value for t in EntityType]

period_options = [
    click.option("--days", type=click.IntRange(min=1), default=None, help="Length of the period in days"),
    click.option(
        "--end",
        type=click.DateTime(formats=["%Y-%m-%d"]),
        default=None,
        help="Last day of the period (default today)",
    ),
    click.option("--json", "as_json", is_flag=True, help="Print JSON instead of tables"),
]


def with_period_options(func):
    """Attach the shared --days/--end/--json options."""
    for option in reversed(period_options):
        func = option(func)
    return func


def _period(days: int | None, end: datetime | None) -> Period:
    engine = get_engine()
    return Period.last_n_days(days or engine.default_period_days, end.date() if end else None)


def _print_json(data: dict[str, Any] | list[Any]) -> None:
    click.echo(json.dumps(data, indent=2))


def _print_totals(title: str, aggregate: AggregateMetrics, unique_reach: float) -> None:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Metric")
    table.add_column("Total", justify="right")
    table.add_column("Change", justify="right")

    rows = [
        ("Views", aggregate.total_views, "views"),
        ("Engagements", aggregate.total_engagements, "engagements"),
        ("Shares", aggregate.total_shares, "shares"),
        ("Comments", aggregate.total_comments, "comments"),
        ("Likes", aggregate.total_likes, "likes"),
    ]
    for label, value, key in rows:
        change = aggregate.growth.get(key)
        table.add_row(label, format_number(value), format_change(change) if change is not None else "-")

    value_change = aggregate.growth.get("content_value")
    table.add_row(
        "Content value",
        format_currency(aggregate.total_content_value),
        format_change(value_change) if value_change is not None else "-",
    )
    table.add_row("Engagement rate", format_percent(aggregate.engagement_rate), "")
    table.add_row("Unique reach", format_number(unique_reach), "")

    console.print(table)


def _print_breakdown(
    title: str, label: str, breakdown: list[PlatformBreakdown] | list[ContentTypeBreakdown]
) -> None:
    if not breakdown:
        return

    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column(label)
    table.add_column("Items", justify="right")
    table.add_column("Views", justify="right")
    table.add_column("Share", justify="right")
    table.add_column("Eng. rate", justify="right")
    table.add_column("Value", justify="right")

    for entry in breakdown:
        name = entry.platform if isinstance(entry, PlatformBreakdown) else entry.content_type
        table.add_row(
            name,
            str(entry.content_count),
            format_number(entry.views),
            format_percent(entry.view_share),
            format_percent(entry.engagement_rate),
            format_currency(entry.content_value),
        )

    console.print(table)


@click.command()
@click.argument("root_id")
@with_period_options
def family(root_id: str, days: int | None, end: datetime | None, as_json: bool) -> None:
    """Show rolled-up metrics for the family containing ROOT_ID."""
    try:
        metrics = get_engine().family(root_id, _period(days, end))
    except (ReachGraphError, ValueError) as e:
        abort("Family metrics", e)

    if as_json:
        _print_json(metrics.to_dict())
        return

    console.print(
        f"\n[bold]Family {metrics.root_content_id}[/bold] "
        f"[dim]({metrics.period}, {metrics.content_count} item(s) on "
        f"{metrics.platform_count} platform(s))[/dim]"
    )
    if metrics.partial:
        console.print(
            f"[yellow]![/yellow] Partial data: {metrics.missing_metric_days} metric day(s) missing"
        )

    _print_totals("Totals", metrics.aggregate_metrics, metrics.unique_reach_estimate)
    _print_breakdown("By Platform", "Platform", metrics.platform_breakdown)
    _print_breakdown("By Content Type", "Type", metrics.content_type_breakdown)

    overlap = metrics.audience_overlap
    if overlap.platform_pairs:
        console.print(
            f"Estimated duplication: {format_percent(overlap.estimated_duplication)} "
            f"[dim](unique reach {format_number(overlap.estimated_unique_reach)})[/dim]"
        )

    table = Table(title="Content", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Depth", justify="right")
    table.add_column("Platform")
    table.add_column("Title")
    table.add_column("Views", justify="right")
    table.add_column("Missing", justify="right")

    for item in metrics.content_items:
        table.add_row(
            item.content_id,
            str(item.depth),
            item.platform,
            truncate_text(item.title, 36),
            format_number(item.aggregate_metrics.total_views),
            str(item.missing_metric_days) if item.missing_metric_days else "",
        )

    console.print(table)


@click.command()
@click.argument("creator_id")
@with_period_options
def creator(creator_id: str, days: int | None, end: datetime | None, as_json: bool) -> None:
    """Show metrics across every family of CREATOR_ID."""
    try:
        metrics = get_engine().creator(creator_id, _period(days, end))
    except (ReachGraphError, ValueError) as e:
        abort("Creator metrics", e)

    if as_json:
        _print_json(metrics.to_dict())
        return

    console.print(
        f"\n[bold]Creator {metrics.creator_id}[/bold] "
        f"[dim]({metrics.period}, {metrics.family_count} famil{'y' if metrics.family_count == 1 else 'ies'}, "
        f"{metrics.content_count} item(s))[/dim]"
    )
    if metrics.partial:
        console.print(
            f"[yellow]![/yellow] Partial data: {metrics.missing_metric_days} metric day(s) missing"
        )

    _print_totals("Totals", metrics.aggregate_metrics, metrics.unique_reach_estimate)
    _print_breakdown("By Platform", "Platform", metrics.platform_breakdown)
    _print_breakdown("By Content Type", "Type", metrics.content_type_breakdown)

    if metrics.families:
        table = Table(title="Families", show_header=True, header_style="bold cyan")
        table.add_column("Root", style="dim", no_wrap=True)
        table.add_column("Items", justify="right")
        table.add_column("Views", justify="right")
        table.add_column("Unique reach", justify="right")
        table.add_column("Value", justify="right")

        for fam in sorted(metrics.families, key=lambda f: -f.aggregate_metrics.total_views):
            table.add_row(
                fam.root_content_id,
                str(fam.content_count),
                format_number(fam.aggregate_metrics.total_views),
                format_number(fam.unique_reach_estimate),
                format_currency(fam.aggregate_metrics.total_content_value),
            )

        console.print(table)


@click.command()
@click.argument("entity_id")
@click.option(
    "--type",
    "entity_type",
    type=click.Choice(ENTITY_TYPES),
    default=EntityType.FAMILY.value,
    show_default=True,
    help="What ENTITY_ID refers to",
)
@with_period_options
def insights(
    entity_id: str, entity_type: str, days: int | None, end: datetime | None, as_json: bool
) -> None:
    """Show ranked insights for a content item, family or creator."""
    try:
        results = get_engine().insights(entity_id, entity_type, _period(days, end))
    except (ReachGraphError, ValueError) as e:
        abort("Insights", e)

    if as_json:
        _print_json([insight.to_dict() for insight in results])
        return

    if not results:
        console.print("[dim]No insights for this period.[/dim]")
        return

    for insight in results:
        console.print(
            f"\n[bold]{insight.title}[/bold] "
            f"[dim]({insight.insight_type.value}, priority {insight.priority})[/dim]"
        )
        console.print(f"  {insight.description}")
        for action in insight.recommendation_actions:
            console.print(f"  [cyan]→[/cyan] {action}")
