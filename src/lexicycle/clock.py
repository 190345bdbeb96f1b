"""Calendar helpers."""
from datetime import UTC, date, datetime
from typing import Callable

Clock = Callable[[], date]


def utc_today() -> date:
    """Get the current calendar date in UTC."""
    return datetime.now(UTC).date()


def utc_now() -> datetime:
    """Get the current timezone-aware UTC timestamp."""
    return datetime.now(UTC)
