"""School-local time helpers.

Timestamps are stored naive, as wall-clock time at the school's fixed UTC
offset. Timezone-aware input is converted to that offset before the tzinfo
is dropped; naive input is taken to already be school-local.
"""

from __future__ import annotations

from datetime import datetime, time, timezone
from typing import NamedTuple


class TimeWindow(NamedTuple):
    """Inclusive [start, end] range of naive school-local datetimes."""

    start: datetime
    end: datetime

    def __contains__(self, value: object) -> bool:
        if not isinstance(value, datetime):
            return False
        return self.start <= value <= self.end


def to_school_time(value: datetime, school_tz: timezone) -> datetime:
    """Normalize ``value`` to naive school-local time, truncated to the second."""
    if value.tzinfo is not None:
        value = value.astimezone(school_tz).replace(tzinfo=None)
    return value.replace(microsecond=0)


def today_window(school_tz: timezone, now: datetime | None = None) -> TimeWindow:
    """Start and end of the current day at the school's offset.

    The caller's local timezone never matters: ``now`` defaults to the
    current UTC instant, converted to ``school_tz``.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        local = now
    else:
        local = now.astimezone(school_tz).replace(tzinfo=None)
    day = local.date()
    return TimeWindow(
        start=datetime.combine(day, time.min),
        end=datetime.combine(day, time.max),
    )
