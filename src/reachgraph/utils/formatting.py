"""Display formatting for metrics in tables and reports."""

from datetime import date

_SUFFIXES = ((1_000_000_000, "B"), (1_000_000, "M"), (1_000, "K"))
_SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_number(value: int | float) -> str:
    """
    Abbreviate a metric total for display.

    Args:
        value: View, engagement or reach count.

    Returns:
        "1.4K", "2.3M" and so on; values under a thousand are rounded to
        whole numbers.
    """
    for threshold, suffix in _SUFFIXES:
        if abs(value) >= threshold:
            return f"{value / threshold:.1f}{suffix}"
    return str(int(round(value)))


def format_percent(rate: float, digits: int = 1) -> str:
    """Format a 0-1 rate as a percentage string."""
    return f"{rate * 100:.{digits}f}%"


def format_change(rate: float) -> str:
    """
    Format a growth rate with an explicit sign.

    Args:
        rate: Fractional change (0.25 = +25%).

    Returns:
        Signed percentage string, e.g. "+25.0%" or "-4.2%".
    """
    return f"{'+' if rate >= 0 else ''}{rate * 100:.1f}%"


def format_currency(value: float) -> str:
    """Format an estimated value in dollars."""
    return f"${value:,.2f}"


def format_date(value: date) -> str:
    return value.isoformat()


def truncate_text(text: str, max_length: int = 50, suffix: str = "...") -> str:
    """Shorten a title to fit a table column, marking the cut with suffix."""
    if not text or len(text) <= max_length:
        return text or ""
    return text[: max_length - len(suffix)] + suffix


def format_file_size(size_bytes: int) -> str:
    """Human-readable size of the database file."""
    size = float(size_bytes)
    unit = _SIZE_UNITS[0]
    for unit in _SIZE_UNITS:
        if size < 1024 or unit == _SIZE_UNITS[-1]:
            break
        size /= 1024
    return f"{size:.1f} {unit}"
