"""Display formatting helpers."""


def format_uptime(seconds: float) -> str:
    """
    Format a duration the way the dashboard shows module uptime.

    Args:
        seconds: Duration in seconds

    Returns:
        "7d 14h 32m", "14h 32m" or "32m"

    Example:
        >>> format_uptime(7 * 86400 + 14 * 3600 + 32 * 60)
        '7d 14h 32m'
    """
    total_minutes = max(0, int(seconds)) // 60
    days, remainder = divmod(total_minutes, 24 * 60)
    hours, minutes = divmod(remainder, 60)

    if days:
        return f"{days}d {hours}h {minutes}m"
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def format_signal(dbm: int | None) -> str:
    """Format a signal strength reading, e.g. "-45 dBm"."""
    if dbm is None:
        return "unknown"
    return f"{dbm} dBm"
