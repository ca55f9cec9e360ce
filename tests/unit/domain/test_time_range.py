from datetime import datetime, timedelta, timezone

import pytest

from neuralmetrics.domain.time_range import (
    RANGE_POLICIES,
    InvalidTimeRangeError,
    TimeRange,
    date_range,
    parse_time_range,
    policy_for,
)


def test_every_window_has_a_policy():
    assert set(RANGE_POLICIES) == set(TimeRange)


def test_policy_table():
    assert policy_for(TimeRange.LAST_24H).interval == timedelta(hours=1)
    assert policy_for(TimeRange.LAST_90D).interval == timedelta(days=3)
    assert policy_for(TimeRange.ALL).points == 52


@pytest.mark.parametrize("value", ["24h", "7d", "30d", "90d", "1y", "all"])
def test_parse_known_values(value):
    assert parse_time_range(value).value == value


@pytest.mark.parametrize("value", ["", "1d", "ALL", "365d"])
def test_parse_rejects_unknown_values(value):
    with pytest.raises(InvalidTimeRangeError):
        parse_time_range(value)


def test_date_range_spans_whole_days(fixed_now):
    start, end = date_range(TimeRange.LAST_7D, fixed_now)

    assert start == datetime(2024, 3, 6, tzinfo=timezone.utc)
    assert end.date() == fixed_now.date()
    assert (end.hour, end.minute, end.second) == (23, 59, 59)
