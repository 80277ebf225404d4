"""
Work timer for in-progress requests.

Elapsed time is wall time since start minus every paused interval. While
paused, the clock is frozen at `paused_at`. Timestamps without a zone
(naive datetimes, or the backend's "YYYY-MM-DD HH:MM:SS" strings) are UTC.
"""
import math
from datetime import datetime, timezone

from housing_desk.core.models import as_utc, utc_now


def parse_utc(value: datetime | str | None) -> datetime | None:
    """Parse a timestamp, treating missing zone info as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def elapsed_seconds(
    started_at: datetime | str | None,
    total_paused_seconds: int | None = 0,
    is_paused: bool = False,
    paused_at: datetime | str | None = None,
    now: datetime | None = None,
) -> int:
    """Seconds of active work; never negative, 0 before start."""
    start = parse_utc(started_at)
    if start is None:
        return 0

    if is_paused and paused_at is not None:
        end = parse_utc(paused_at)
    else:
        end = as_utc(now) if now is not None else utc_now()

    wall = math.floor((end - start).total_seconds())
    return max(0, wall - int(total_paused_seconds or 0))


def paused_interval(paused_at: datetime | str | None, now: datetime | None = None) -> int:
    """Whole seconds between pause and `now` (0 when not paused)."""
    pause = parse_utc(paused_at)
    if pause is None:
        return 0
    end = as_utc(now) if now is not None else utc_now()
    return max(0, math.floor((end - pause).total_seconds()))


def format_duration(seconds: int | float | None) -> str:
    """H:MM:SS from one hour up, M:SS below."""
    total = max(0, int(seconds or 0))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
