"""Utility modules for ReachGraph."""

from reachgraph.utils.formatting import format_change, format_number, format_percent
from reachgraph.utils.logging import get_logger, setup_logging
from reachgraph.utils.text import clean_text, significant_words, stable_id

__all__ = [
    "format_change",
    "format_number",
    "format_percent",
    "get_logger",
    "setup_logging",
    "clean_text",
    "stable_id",
    "significant_words",
]
