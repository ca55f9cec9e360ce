"""Aggregate and trend statistics over a metric sequence.

Trend values compare the mean of the first 20% of points with the mean of the
last 20%. Both segments have ``floor(len * 0.2)`` points and may overlap on
short sequences.

Division-by-zero convention:
    * fewer than 5 points (empty segments): every change is 0.0;
    * a first-segment mean of exactly 0: 100.0 when the last-segment mean is
      positive, otherwise 0.0.
Results are always finite.
"""

from __future__ import annotations

import math
from operator import attrgetter
from typing import Sequence

from neuralmetrics.domain.models import Metric, MetricCard, Summary

SEGMENT_FRACTION = 0.2
SPARKLINE_POINTS = 10


def calculate_change(old_value: float, new_value: float) -> float:
    """Percentage change from ``old_value`` to ``new_value``."""
    if old_value == 0:
        return 100.0 if new_value > 0 else 0.0
    return (new_value - old_value) / old_value * 100


def _mean(values: Sequence[float]) -> float:
    return math.fsum(values) / len(values)


def _segment_change(
    first: Sequence[Metric], last: Sequence[Metric], field: str
) -> float:
    if not first or not last:
        return 0.0
    value = attrgetter(field)
    return calculate_change(
        _mean([value(m) for m in first]), _mean([value(m) for m in last])
    )


def summarize(points: Sequence[Metric]) -> Summary:
    if not points:
        return Summary()

    split = math.floor(len(points) * SEGMENT_FRACTION)
    first = points[:split]
    last = points[len(points) - split :] if split else []

    return Summary(
        total_revenue=math.fsum(m.revenue for m in points),
        total_users=points[-1].active_users,
        avg_engagement=_mean([m.engagement_rate for m in points]),
        revenue_change_pct=_segment_change(first, last, "revenue"),
        users_change_pct=_segment_change(first, last, "active_users"),
        engagement_change_pct=_segment_change(first, last, "engagement_rate"),
    )


def _trend(change: float) -> str:
    if change > 0:
        return "up"
    if change < 0:
        return "down"
    return "neutral"


def build_metric_cards(points: Sequence[Metric]) -> list[MetricCard]:
    """Headline cards for revenue, users and engagement."""
    summary = summarize(points)
    recent = points[-SPARKLINE_POINTS:]
    return [
        MetricCard(
            id="revenue",
            title="Total Revenue",
            value=summary.total_revenue,
            change=summary.revenue_change_pct,
            trend=_trend(summary.revenue_change_pct),
            sparkline=[m.revenue for m in recent],
        ),
        MetricCard(
            id="users",
            title="Active Users",
            value=summary.total_users,
            change=summary.users_change_pct,
            trend=_trend(summary.users_change_pct),
            sparkline=[m.active_users for m in recent],
        ),
        MetricCard(
            id="engagement",
            title="Engagement Rate",
            value=f"{summary.avg_engagement:.1f}%",
            change=summary.engagement_change_pct,
            trend=_trend(summary.engagement_change_pct),
            sparkline=[m.engagement_rate for m in recent],
        ),
    ]
