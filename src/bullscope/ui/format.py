"""Human-readable formatting for timestamps, intervals and counts."""

import time
from datetime import UTC, datetime

from bullscope.broker.models import CronSchedule, IntervalSchedule, Schedule


def _now_ms() -> int:
    return int(time.time() * 1000)


def format_relative_time(timestamp: int, *, now_ms: int | None = None) -> str:
    """Age of a millisecond timestamp, e.g. "5m ago"."""
    now = _now_ms() if now_ms is None else now_ms
    seconds = (now - timestamp) // 1000
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    if days > 0:
        return f"{days}d ago"
    if hours > 0:
        return f"{hours}h ago"
    if minutes > 0:
        return f"{minutes}m ago"
    if seconds > 0:
        return f"{seconds}s ago"
    return "just now"


def format_timestamp(timestamp: int | None) -> str:
    """UTC "YYYY-MM-DD HH:MM:SS" for a millisecond timestamp."""
    if not timestamp:
        return "N/A"
    return datetime.fromtimestamp(timestamp / 1000, UTC).strftime("%Y-%m-%d %H:%M:%S")


def format_interval(ms: int | None) -> str:
    """Compact duration, e.g. "1h 30m"."""
    if not ms:
        return "N/A"
    seconds = ms // 1000
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    if days > 0:
        return f"{days}d {hours % 24}h"
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


def format_next_run(timestamp: int | None, *, now_ms: int | None = None) -> str:
    """Time until a future millisecond timestamp, e.g. "in 5m"."""
    if not timestamp:
        return "N/A"
    now = _now_ms() if now_ms is None else now_ms
    diff = timestamp - now
    if diff <= 0:
        return "now"

    seconds = diff // 1000
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    if days > 0:
        return f"in {days}d {hours % 24}h"
    if hours > 0:
        return f"in {hours}h {minutes % 60}m"
    if minutes > 0:
        return f"in {minutes}m"
    return f"in {seconds}s"


def schedule_description(schedule: Schedule | None) -> str:
    match schedule:
        case CronSchedule(pattern=pattern):
            return pattern
        case IntervalSchedule(every_ms=every_ms):
            return f"every {format_interval(every_ms)}"
        case _:
            return "N/A"


def format_number(n: int) -> str:
    """Abbreviate large counts: 1.2K, 3.4M."""
    if n >= 1_000_000:
        return f"{n / 1_000_000:.1f}M"
    if n >= 1_000:
        return f"{n / 1_000:.1f}K"
    return str(n)
