"""Engine clock helpers."""

from datetime import datetime, timezone
from typing import Callable

# Returns naive UTC, matching the DateTime columns.
Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current UTC time as a naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
