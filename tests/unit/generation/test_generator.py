from datetime import datetime, timedelta, timezone

import pytest

from neuralmetrics.core.config import GenerationParams
from neuralmetrics.domain.time_range import InvalidTimeRangeError, TimeRange
from neuralmetrics.generation.generator import (
    generate_edge_cases,
    generate_one,
    generate_point,
    generate_series,
    stream_metrics,
)


class MidpointRandom:
    """Every draw is 0.5, so all volatility factors are exactly 1."""

    def random(self) -> float:
        return 0.5


def _values(points):
    return [(p.timestamp, p.revenue, p.active_users, p.engagement_rate) for p in points]


def test_24h_has_24_hourly_points_within_bounds(fixed_now, rng):
    points = generate_series("24h", now=fixed_now, rng=rng)

    assert len(points) == 24
    assert points[0].timestamp == datetime(2024, 3, 12, tzinfo=timezone.utc)
    for prev, cur in zip(points, points[1:]):
        assert cur.timestamp - prev.timestamp == timedelta(hours=1)
    for p in points:
        assert p.revenue >= 0
        assert p.active_users >= 0
        assert 40 <= p.engagement_rate <= 90


@pytest.mark.parametrize(
    "window,count,spacing",
    [
        ("7d", 7, timedelta(days=1)),
        ("30d", 30, timedelta(days=1)),
        ("90d", 30, timedelta(days=3)),
        ("1y", 52, timedelta(weeks=1)),
        ("all", 52, timedelta(weeks=2)),
    ],
)
def test_each_window_has_configured_count_and_spacing(
    fixed_now, rng, window, count, spacing
):
    points = generate_series(window, now=fixed_now, rng=rng)

    assert len(points) == count
    assert all(b.timestamp - a.timestamp == spacing for a, b in zip(points, points[1:]))
    assert points[-1].timestamp <= fixed_now.replace(hour=23, minute=59)


def test_accepts_enum_member(fixed_now, rng):
    assert len(generate_series(TimeRange.LAST_7D, now=fixed_now, rng=rng)) == 7


def test_unknown_window_rejected(fixed_now):
    with pytest.raises(InvalidTimeRangeError):
        generate_series("2w", now=fixed_now)


def test_same_seed_reproduces_sequence(fixed_now):
    import random

    first = generate_series("30d", now=fixed_now, rng=random.Random(7))
    second = generate_series("30d", now=fixed_now, rng=random.Random(7))

    assert _values(first) == _values(second)
    assert len({p.id for p in first + second}) == 60


def test_explicit_end_stops_at_boundary_without_gaps(fixed_now, rng):
    end = datetime(2024, 3, 12, 5, 30, tzinfo=timezone.utc)
    points = generate_series("24h", now=fixed_now, end=end, rng=rng)

    assert len(points) == 6
    assert points[-1].timestamp == datetime(2024, 3, 12, 5, tzinfo=timezone.utc)


def test_point_model_without_volatility():
    friday = datetime(2024, 3, 15, tzinfo=timezone.utc)
    saturday = datetime(2024, 3, 16, tzinfo=timezone.utc)

    weekday = generate_point(friday, 0, 1, MidpointRandom())
    weekend = generate_point(saturday, 0, 1, MidpointRandom())

    # March sits in the seasonal trough: factor 0.7
    assert weekday.revenue == 35000
    assert weekday.active_users == 7000
    assert weekday.engagement_rate == 65.0
    assert weekend.revenue == 42000
    assert weekend.active_users == 8400


def test_growth_compounds_per_metric():
    at = datetime(2024, 3, 13, tzinfo=timezone.utc)
    params = GenerationParams(seasonal_amplitude=0)

    p0 = generate_point(at, 0, 30, MidpointRandom(), params)
    p30 = generate_point(at, 30, 30, MidpointRandom(), params)

    assert p30.revenue == round(50000 * (1 + 0.15 / 30) ** 30)
    assert p30.active_users == round(10000 * (1 + 0.2 / 30) ** 30)
    assert p30.revenue > p0.revenue


def test_seasonal_peak_beats_trough():
    september = datetime(2024, 9, 11, tzinfo=timezone.utc)
    march = datetime(2024, 3, 13, tzinfo=timezone.utc)

    assert (
        generate_point(september, 0, 1, MidpointRandom()).revenue
        > generate_point(march, 0, 1, MidpointRandom()).revenue
    )


def test_engagement_is_clamped():
    at = datetime(2024, 3, 13, tzinfo=timezone.utc)
    rng = MidpointRandom()
    high = generate_point(at, 0, 1, rng, GenerationParams(base_engagement=200))
    low = generate_point(at, 0, 1, rng, GenerationParams(base_engagement=1))

    assert high.engagement_rate == 90
    assert low.engagement_rate == 40


def test_generate_one_is_anchored_to_now(fixed_now):
    point = generate_one(now=fixed_now, rng=MidpointRandom())

    assert point.timestamp == fixed_now
    assert point.engagement_rate == 65.0


@pytest.mark.asyncio
async def test_stream_metrics_yields_requested_count(rng):
    points = [p async for p in stream_metrics(3, delay_seconds=0, rng=rng)]
    assert len(points) == 3


def test_edge_cases_catalogue(fixed_now, rng):
    cases = dict(generate_edge_cases(now=fixed_now, rng=rng))

    assert list(cases) == [
        "All zeros",
        "Single data point",
        "Extreme volatility",
        "Negative growth",
        "Missing data gaps",
    ]
    assert cases["All zeros"][0].revenue == 0
    assert len(cases["Single data point"]) == 1
    assert len(cases["Extreme volatility"]) == 10
    assert cases["Negative growth"][0].revenue > cases["Negative growth"][-1].revenue
    assert len(cases["Missing data gaps"]) == 24
