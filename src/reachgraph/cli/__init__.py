"""CLI module for ReachGraph."""

from typing import NoReturn

import click
from rich.console import Console

from reachgraph.utils.logging import get_logger

console = Console()
logger = get_logger(__name__)


def abort(action: str, error: Exception) -> NoReturn:
    """Report a failed command and exit non-zero."""
    console.print(f"[red]✗[/red] {action} failed: {error}")
    logger.error(f"{action} failed: {error}")
    raise click.Abort()
