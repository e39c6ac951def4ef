"""Content and relationship commands."""

from datetime import datetime

import click
from rich.console import Console
from rich.table import Table

from reachgraph.cli import abort
from reachgraph.database.models import ContentType, RelationshipType
from reachgraph.engine import get_engine
from reachgraph.exceptions import ReachGraphError
from reachgraph.utils.formatting import truncate_text

console = Console()

CONTENT_TYPES = [t.value for t in ContentType]
RELATIONSHIP_TYPES = [t.value for t in RelationshipType]


# =============================================================================
# content
# =============================================================================


@click.group()
def content() -> None:
    """Manage content items."""
    pass


@content.command("add")
@click.argument("creator_id")
@click.argument("platform")
@click.argument("external_id")
@click.option(
    "--type",
    "content_type",
    type=click.Choice(CONTENT_TYPES),
    default=ContentType.VIDEO.value,
    show_default=True,
    help="Content type",
)
@click.option(
    "--published",
    type=click.DateTime(formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S"]),
    default=None,
    help="Publish time (default now)",
)
@click.option("--title", default="", help="Content title")
@click.option("--description", default=None, help="Content description")
def add_content(
    creator_id: str,
    platform: str,
    external_id: str,
    content_type: str,
    published: datetime | None,
    title: str,
    description: str | None,
) -> None:
    """Register a content item.

    CREATOR_ID: Owner of the content
    PLATFORM: Platform key (youtube, instagram, tiktok, ...)
    EXTERNAL_ID: The platform's own ID for the item
    """
    try:
        node = get_engine().create_content(
            creator_id,
            platform,
            external_id,
            content_type,
            published or datetime.now(),
            title=title,
            description=description,
        )
    except ReachGraphError as e:
        abort("Adding content", e)

    console.print(f"[green]✓[/green] Added {node.platform} {node.content_type.value}: {node.id}")


@content.command("list")
@click.argument("creator_id")
@click.option("--platform", default=None, help="Only show this platform")
def list_content(creator_id: str, platform: str | None) -> None:
    """List a creator's content items."""
    nodes = get_engine().list_content(creator_id, platform)

    if not nodes:
        console.print(f"[dim]No content for {creator_id}.[/dim]")
        return

    table = Table(title=f"Content for {creator_id}", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Platform")
    table.add_column("Type")
    table.add_column("Published")
    table.add_column("Title")

    for node in nodes:
        table.add_row(
            node.id,
            node.platform,
            node.content_type.value,
            node.published_at.strftime("%Y-%m-%d"),
            truncate_text(node.title or node.external_id, 40),
        )

    console.print(table)


@content.command("show")
@click.argument("content_id")
def show_content(content_id: str) -> None:
    """Show a content item and its relationships."""
    engine = get_engine()
    try:
        node = engine.content(content_id)
        edges = engine.relationships(content_id)
        family = engine.content_family(content_id)
    except ReachGraphError as e:
        abort("Showing content", e)

    console.print(f"[bold]{node.title or node.external_id}[/bold]")
    console.print(f"  ID:        {node.id}")
    console.print(f"  Creator:   {node.creator_id}")
    console.print(f"  Platform:  {node.platform} ({node.external_id})")
    console.print(f"  Type:      {node.content_type.value}")
    console.print(f"  Published: {node.published_at.isoformat()}")
    console.print(f"  Family:    {family.root_id} ({len(family)} item(s), depth {family.depth})")
    if node.description:
        console.print(f"  [dim]{truncate_text(node.description, 100)}[/dim]")

    if edges:
        console.print("\n[bold]Relationships:[/bold]")
        for edge in edges:
            direction = "parent of" if edge.source_id == content_id else "derived from"
            other = edge.target_id if edge.source_id == content_id else edge.source_id
            console.print(
                f"  {direction} {other} "
                f"[dim]({edge.relationship_type.value}, {edge.confidence:.2f})[/dim]"
            )


# =============================================================================
# link
# =============================================================================


@click.group()
def link() -> None:
    """Manage relationships between content items."""
    pass


@link.command("add")
@click.argument("source_id")
@click.argument("target_id")
@click.option(
    "--type",
    "relationship_type",
    type=click.Choice(RELATIONSHIP_TYPES),
    default=RelationshipType.REPOST.value,
    show_default=True,
    help="Relationship type",
)
@click.option("--confidence", type=click.FloatRange(0.0, 1.0), default=1.0, show_default=True)
@click.option("--by", "created_by", default="cli", show_default=True, help="Who created the link")
def add_link(source_id: str, target_id: str, relationship_type: str, confidence: float, created_by: str) -> None:
    """Link a parent (SOURCE_ID) to a derivative (TARGET_ID)."""
    try:
        edge = get_engine().create_relationship(
            source_id, target_id, relationship_type, confidence, created_by
        )
    except ReachGraphError as e:
        abort("Linking", e)

    console.print(
        f"[green]✓[/green] Linked {edge.source_id} -> {edge.target_id} "
        f"({edge.relationship_type.value})"
    )


@link.command("remove")
@click.argument("source_id")
@click.argument("target_id")
def remove_link(source_id: str, target_id: str) -> None:
    """Remove a relationship. The derivative becomes its own family."""
    try:
        get_engine().remove_relationship(source_id, target_id)
    except ReachGraphError as e:
        abort("Unlinking", e)

    console.print(f"[green]✓[/green] Removed {source_id} -> {target_id}")


@link.command("list")
@click.argument("content_id")
def list_links(content_id: str) -> None:
    """List relationships of a content item."""
    try:
        edges = get_engine().relationships(content_id)
    except ReachGraphError as e:
        abort("Listing relationships", e)

    if not edges:
        console.print("[dim]No relationships.[/dim]")
        return

    table = Table(title="Relationships", show_header=True, header_style="bold cyan")
    table.add_column("Source", no_wrap=True)
    table.add_column("Target", no_wrap=True)
    table.add_column("Type")
    table.add_column("Confidence", justify="right")
    table.add_column("By", style="dim")

    for edge in edges:
        table.add_row(
            edge.source_id,
            edge.target_id,
            edge.relationship_type.value,
            f"{edge.confidence:.2f}",
            edge.created_by,
        )

    console.print(table)


# =============================================================================
# suggest
# =============================================================================


@click.command()
@click.argument("content_id")
@click.option("--threshold", type=click.FloatRange(0.0, 1.0), default=None, help="Minimum confidence")
@click.option("--accept", type=int, default=None, help="Accept the Nth suggestion (1-based)")
@click.option("--by", "created_by", default="cli", show_default=True, help="Who accepts the link")
def suggest(content_id: str, threshold: float | None, accept: int | None, created_by: str) -> None:
    """Suggest relationships for a content item."""
    engine = get_engine()
    try:
        suggestions = engine.suggestions(content_id, confidence_threshold=threshold)
    except ReachGraphError as e:
        abort("Suggesting", e)

    if not suggestions:
        console.print("[dim]No suggestions above the confidence threshold.[/dim]")
        return

    table = Table(title="Suggested Relationships", show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right")
    table.add_column("Source", no_wrap=True)
    table.add_column("Target", no_wrap=True)
    table.add_column("Type")
    table.add_column("Confidence", justify="right")
    table.add_column("Why", style="dim")

    for i, s in enumerate(suggestions, 1):
        table.add_row(
            str(i), s.source_id, s.target_id, s.suggested_type.value, f"{s.confidence:.2f}", s.reasoning
        )

    console.print(table)

    if accept is not None:
        if not 1 <= accept <= len(suggestions):
            console.print(f"[red]✗[/red] No suggestion #{accept}")
            raise click.Abort()
        try:
            edge = engine.accept_suggestion(suggestions[accept - 1], created_by)
        except ReachGraphError as e:
            abort("Accepting suggestion", e)
        console.print(f"[green]✓[/green] Linked {edge.source_id} -> {edge.target_id}")
