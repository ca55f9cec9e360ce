from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from enum import Enum


class InvalidTimeRangeError(ValueError):
    """Raised for a time range outside the fixed enumeration."""


class TimeRange(str, Enum):
    LAST_24H = "24h"
    LAST_7D = "7d"
    LAST_30D = "30d"
    LAST_90D = "90d"
    LAST_YEAR = "1y"
    ALL = "all"


@dataclass(frozen=True)
class RangePolicy:
    """Sampling policy of a window: spacing, nominal point count, span in days."""

    interval: timedelta
    points: int
    days: int


RANGE_POLICIES: dict[TimeRange, RangePolicy] = {
    TimeRange.LAST_24H: RangePolicy(timedelta(hours=1), 24, 1),
    TimeRange.LAST_7D: RangePolicy(timedelta(days=1), 7, 7),
    TimeRange.LAST_30D: RangePolicy(timedelta(days=1), 30, 30),
    TimeRange.LAST_90D: RangePolicy(timedelta(days=3), 30, 90),
    TimeRange.LAST_YEAR: RangePolicy(timedelta(weeks=1), 52, 365),
    TimeRange.ALL: RangePolicy(timedelta(weeks=2), 52, 730),
}


def parse_time_range(value: str | TimeRange) -> TimeRange:
    try:
        return TimeRange(value)
    except ValueError:
        raise InvalidTimeRangeError(f"Invalid time range: {value!r}") from None


def policy_for(time_range: TimeRange) -> RangePolicy:
    return RANGE_POLICIES[time_range]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def start_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.min, tzinfo=moment.tzinfo)


def end_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.max, tzinfo=moment.tzinfo)


def date_range(
    time_range: TimeRange, now: datetime | None = None
) -> tuple[datetime, datetime]:
    """Return ``(start, end)``: whole days back from the end of today."""
    end = end_of_day(now or utcnow())
    start = start_of_day(end - timedelta(days=policy_for(time_range).days))
    return start, end
