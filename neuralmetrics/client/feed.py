from __future__ import annotations

from enum import Enum
from typing import Callable, Optional

from neuralmetrics.core.config import settings
from neuralmetrics.domain.models import Metric, Summary
from neuralmetrics.domain.time_range import TimeRange, parse_time_range

from .consumer import ConnectionState, Scheduler, StreamConsumer, loop_scheduler
from .errors import MetricsClientError, MetricsFetchError
from .history import HistoryClient
from .transport import StreamTransport


class LoadingState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class MetricsFeed:
    """History plus live updates for one dashboard view.

    ``refetch`` replaces the points with a fresh history window; live points
    are appended and the list is cut back to the newest ``window_size``
    entries on every append.
    """

    def __init__(
        self,
        history: HistoryClient,
        transport: StreamTransport,
        time_range: TimeRange | str = "30d",
        *,
        window_size: Optional[int] = None,
        scheduler: Scheduler = loop_scheduler,
        on_error: Optional[Callable[[MetricsClientError], None]] = None,
        on_connection_change: Optional[Callable[[ConnectionState], None]] = None,
    ):
        self.history = history
        self.time_range = parse_time_range(time_range)
        self.window_size = (
            window_size if window_size is not None else settings.stream_window_size
        )
        self._on_error = on_error
        self._active = True

        self.metrics: list[Metric] = []
        self.summary: Optional[Summary] = None
        self.loading = LoadingState.IDLE
        self.error: Optional[MetricsClientError] = None

        self.consumer = StreamConsumer(
            transport,
            window_size=self.window_size,
            scheduler=scheduler,
            on_state_change=on_connection_change,
            on_error=self._report,
            on_metric=self._append_live,
        )

    @property
    def connection_state(self) -> ConnectionState:
        return self.consumer.state

    async def refetch(self) -> None:
        self.loading = LoadingState.LOADING
        self.error = None
        try:
            response = await self.history.fetch(self.time_range)
        except MetricsFetchError as exc:
            if not self._active:
                return
            self.loading = LoadingState.ERROR
            self._report(exc)
            return
        if not self._active:
            return
        self.metrics = list(response.data)
        self.summary = response.summary
        self.loading = LoadingState.SUCCESS

    def connect(self) -> None:
        self.consumer.connect()

    def disconnect(self) -> None:
        self.consumer.disconnect()

    def shutdown(self) -> None:
        self._active = False
        self.consumer.shutdown()

    def _append_live(self, point: Metric) -> None:
        self.metrics = (self.metrics + [point])[-self.window_size :]

    def _report(self, error: MetricsClientError) -> None:
        self.error = error
        if self._on_error is not None:
            self._on_error(error)
