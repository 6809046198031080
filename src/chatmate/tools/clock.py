"""Clock tool."""

from __future__ import annotations

from datetime import datetime

TIME_FORMAT = "%A, %B %d, %Y %I:%M:%S %p"


def current_time(now: datetime | None = None) -> str:
    """Return the local date and time as a human-readable string."""
    now = now or datetime.now().astimezone()
    return now.strftime(TIME_FORMAT)
