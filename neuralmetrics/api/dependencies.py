from typing import Callable

from neuralmetrics.core.config import settings
from neuralmetrics.domain.models import Metric
from neuralmetrics.generation.generator import generate_series
from neuralmetrics.realtime.push import SubscriberChannel


def get_series_generator() -> Callable[..., list[Metric]]:
    return generate_series


async def get_subscriber_channel() -> SubscriberChannel:
    """A fresh, isolated channel per subscriber connection."""
    return SubscriberChannel(
        update_interval=settings.stream_update_interval_seconds,
        heartbeat_interval=settings.stream_heartbeat_interval_seconds,
    )
