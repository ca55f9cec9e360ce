"""Synthetic time-series generator.

Each point combines a yearly seasonal sinusoid, a weekend boost, a compounding
growth trend and a uniform multiplicative jitter per metric. All randomness is
drawn from an injectable source exposing ``random()``; production code uses
the process-wide ``random`` module source.
"""

from __future__ import annotations

import asyncio
import math
import random
from datetime import datetime, timedelta
from typing import AsyncIterator, Optional, Protocol

from uuid6 import uuid7

from neuralmetrics.core.config import GenerationParams, settings
from neuralmetrics.domain.models import Metric
from neuralmetrics.domain.time_range import (
    TimeRange,
    date_range,
    parse_time_range,
    policy_for,
    start_of_day,
    utcnow,
)


class RandomSource(Protocol):
    def random(self) -> float: ...


def _jitter(rng: RandomSource, magnitude: float) -> float:
    # U(-1, 1) scaled by magnitude
    return 1 + (rng.random() - 0.5) * 2 * magnitude


def generate_point(
    at: datetime,
    index: int,
    total: int,
    rng: Optional[RandomSource] = None,
    params: Optional[GenerationParams] = None,
) -> Metric:
    """Build point ``index`` of ``total`` sampled at ``at``."""
    rng = rng if rng is not None else random
    p = params or settings.generation

    progress = index / total
    month = at.month - 1  # zero-based
    seasonal = 1 + math.sin((month - 5) / 12 * math.pi * 2) * p.seasonal_amplitude
    weekend = p.weekend_boost if at.weekday() >= 5 else 1

    revenue_growth = (1 + p.revenue_growth / 30) ** index
    users_growth = (1 + p.users_growth / 30) ** index

    revenue_jitter = _jitter(rng, p.revenue_volatility)
    users_jitter = _jitter(rng, p.users_volatility)
    engagement_jitter = _jitter(rng, p.engagement_volatility)

    revenue = round(
        p.base_revenue * revenue_growth * seasonal * weekend * revenue_jitter
    )
    active_users = round(
        p.base_users * users_growth * seasonal * weekend * users_jitter
    )
    engagement = p.base_engagement * (
        1 + math.sin(progress * math.pi * 4) * 0.1
    ) * engagement_jitter
    engagement = max(40.0, min(90.0, engagement))

    return Metric(
        id=str(uuid7()),
        timestamp=at,
        revenue=max(revenue, 0),
        active_users=max(active_users, 0),
        engagement_rate=round(engagement, 2),
    )


def generate_series(
    time_range: TimeRange | str,
    *,
    now: Optional[datetime] = None,
    end: Optional[datetime] = None,
    rng: Optional[RandomSource] = None,
    params: Optional[GenerationParams] = None,
) -> list[Metric]:
    """Generate the ordered points of a window.

    Sampling starts at midnight of the window's first day and advances by the
    window's spacing. It stops at the nominal point count or at ``end``
    (defaults to the end of today), whichever comes first.
    """
    time_range = parse_time_range(time_range)
    policy = policy_for(time_range)
    start, natural_end = date_range(time_range, now)
    stop = natural_end if end is None else min(end, natural_end)

    points: list[Metric] = []
    current = start_of_day(start)
    index = 0
    while current <= stop and index < policy.points:
        points.append(generate_point(current, index, policy.points, rng, params))
        current += policy.interval
        index += 1
    return points


def generate_one(
    *,
    now: Optional[datetime] = None,
    rng: Optional[RandomSource] = None,
    params: Optional[GenerationParams] = None,
) -> Metric:
    """A single live point anchored to ``now``."""
    return generate_point(now or utcnow(), 0, 1, rng, params)


async def stream_metrics(
    count: int,
    delay_seconds: float = 1.0,
    rng: Optional[RandomSource] = None,
) -> AsyncIterator[Metric]:
    for _ in range(count):
        await asyncio.sleep(delay_seconds)
        yield generate_one(rng=rng)


def generate_edge_cases(
    now: Optional[datetime] = None, rng: Optional[RandomSource] = None
) -> list[tuple[str, list[Metric]]]:
    """Named fixtures that stress summaries and charts."""
    now = now or utcnow()
    rng = rng if rng is not None else random

    def _point(at: datetime, revenue, users, engagement) -> Metric:
        return Metric(
            id=str(uuid7()),
            timestamp=at,
            revenue=revenue,
            active_users=users,
            engagement_rate=engagement,
        )

    days = [now + timedelta(days=i) for i in range(30)]
    return [
        ("All zeros", [_point(now, 0, 0, 0)]),
        ("Single data point", [generate_point(now, 0, 1, rng)]),
        (
            "Extreme volatility",
            [
                _point(
                    days[i],
                    100_000 if rng.random() > 0.5 else 10_000,
                    50_000 if rng.random() > 0.5 else 5_000,
                    rng.random() * 100,
                )
                for i in range(10)
            ],
        ),
        (
            "Negative growth",
            [
                _point(
                    days[i],
                    100_000 * 0.95**i,
                    round(50_000 * 0.97**i),
                    80 * 0.98**i,
                )
                for i in range(30)
            ],
        ),
        (
            "Missing data gaps",
            [generate_point(days[i], i, 30, rng) for i in range(30) if i % 5 != 0],
        ),
    ]
