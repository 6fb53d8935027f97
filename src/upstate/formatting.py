"""Formatting utilities for the text report."""

SEPARATOR = " ∙ "


def format_bytes(size: float) -> str:
    """Format bytes as human-readable string in binary units."""
    if size < 1024:
        return f"{int(size)} B"
    for unit in ["KiB", "MiB", "GiB", "TiB"]:
        size = size / 1024
        if size < 1024:
            return f"{size:.1f} {unit}"
    return f"{size / 1024:.1f} PiB"


def format_elapsed(seconds: float) -> str:
    """Format a duration as days, or as HH:MM:SS below one day.

    Examples:
        >>> format_elapsed(3725)
        '01:02:05'
        >>> format_elapsed(200000)
        '2 days'
    """
    secs = int(seconds)
    mins = secs // 60
    hours = mins // 60
    days = hours // 24
    if days > 0:
        return f"{days} days"
    return f"{hours:02d}:{mins % 60:02d}:{secs % 60:02d}"


def join_detail(*parts: str) -> str:
    """Join detail fields with the report separator."""
    return SEPARATOR.join(parts)
