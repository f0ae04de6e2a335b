"""
Display helpers for addresses, timestamps and durations.
"""

from datetime import datetime


def format_address(address: str | None) -> str:
    """Shorten an account address to ``0x1234...abcd``."""
    if not address:
        return ""
    return f"{address[:6]}...{address[-4:]}"


def format_time(timestamp: int) -> str:
    """Render unix seconds as a local en-US style date/time string."""
    return datetime.fromtimestamp(int(timestamp)).strftime("%m/%d/%Y, %I:%M:%S %p")


def format_duration(seconds: int) -> str:
    """Render a duration using its largest whole unit.

    >>> format_duration(2 * 86400 + 5)
    '2 days'
    >>> format_duration(3600)
    '1 hour'
    """
    seconds = int(seconds)
    days = seconds // 86400
    hours = (seconds % 86400) // 3600
    minutes = (seconds % 3600) // 60

    if days > 0:
        return f"{days} day{'s' if days > 1 else ''}"
    if hours > 0:
        return f"{hours} hour{'s' if hours > 1 else ''}"
    return f"{minutes} minute{'s' if minutes > 1 else ''}"


def time_remaining(deadline: int, now: int) -> str:
    """Human-readable time left before ``deadline``, or ``Expired``."""
    remaining = int(deadline) - int(now)
    if remaining <= 0:
        return "Expired"
    return format_duration(remaining)
