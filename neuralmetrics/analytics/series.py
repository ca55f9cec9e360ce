from __future__ import annotations

from datetime import datetime
from typing import Sequence

from neuralmetrics.domain.models import Metric, TimeSeriesData, TimeSeriesDatasets
from neuralmetrics.domain.time_range import TimeRange

_LABEL_FORMATS: dict[TimeRange, str] = {
    TimeRange.LAST_24H: "%H:%M",
    TimeRange.LAST_7D: "%a",
    TimeRange.LAST_30D: "%b %d",
    TimeRange.LAST_90D: "%b %d",
    TimeRange.LAST_YEAR: "%b %Y",
    TimeRange.ALL: "%b %Y",
}


def format_label(moment: datetime, time_range: TimeRange) -> str:
    label = moment.strftime(_LABEL_FORMATS[time_range])
    if time_range in (TimeRange.LAST_30D, TimeRange.LAST_90D):
        # "Mar 05" -> "Mar 5"
        month, day = label.split(" ")
        label = f"{month} {int(day)}"
    return label


def to_time_series(points: Sequence[Metric], time_range: TimeRange) -> TimeSeriesData:
    """Project points onto chart labels and one dataset per metric."""
    return TimeSeriesData(
        labels=[format_label(m.timestamp, time_range) for m in points],
        datasets=TimeSeriesDatasets(
            revenue=[m.revenue for m in points],
            users=[m.active_users for m in points],
            engagement=[m.engagement_rate for m in points],
        ),
    )
