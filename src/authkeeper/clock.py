"""Time helpers for session liveness.

The session manager takes its notion of "now" from a *clock*: any
zero-argument callable returning a timezone-aware :class:`datetime`.
:func:`utcnow` is the default; tests substitute a manually advanced clock.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]

SECONDS_PER_MINUTE = 60.0


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def minutes_between(earlier: datetime, later: datetime) -> float:
    """Return the elapsed time from *earlier* to *later* in fractional minutes.

    Naive datetimes are treated as UTC so that values persisted without an
    offset still compare against the aware default clock.
    """
    delta = _as_utc(later) - _as_utc(earlier)
    return delta.total_seconds() / SECONDS_PER_MINUTE


def format_timestamp(moment: datetime) -> str:
    """Serialise *moment* for the session store."""
    return _as_utc(moment).isoformat()


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp, returning ``None`` for missing or garbled values."""
    if not value:
        return None
    try:
        return _as_utc(datetime.fromisoformat(value))
    except (TypeError, ValueError):
        return None


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)
