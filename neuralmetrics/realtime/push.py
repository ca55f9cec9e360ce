"""Per-subscriber push transport.

One PushTransport lives exactly as long as one subscriber connection. It
writes a ``connection`` frame on start, then runs two independent timers: a
data timer emitting a freshly generated point and a heartbeat timer emitting a
keep-alive comment. It stops on ``cancel`` or when writing a frame fails.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Callable, Optional

from uuid6 import uuid7

from neuralmetrics.core.config import settings
from neuralmetrics.core.logger import get_logger
from neuralmetrics.core.metrics import counter, gauge
from neuralmetrics.domain.models import Metric, StreamMessage
from neuralmetrics.generation.generator import generate_one

from .framing import HEARTBEAT_FRAME, encode_message

logger = get_logger("neuralmetrics.push")

FRAMES_EMITTED = counter(
    "stream_frames_total",
    "Frames written to stream subscribers",
    labelnames=("kind",),
)
TICK_FAILURES = counter(
    "stream_tick_failures_total",
    "Data ticks skipped because generation failed",
)
WRITE_FAILURES = counter(
    "stream_write_failures_total",
    "Subscriptions closed because writing a frame failed",
)
ACTIVE_SUBSCRIBERS = gauge(
    "stream_active_subscribers",
    "Currently open stream subscriptions",
)


class PushTransport:
    def __init__(
        self,
        write: Callable[[str], None],
        *,
        generate: Callable[[], Metric] = generate_one,
        update_interval: Optional[float] = None,
        heartbeat_interval: Optional[float] = None,
        on_close: Optional[Callable[[], None]] = None,
        subscriber_id: Optional[str] = None,
    ):
        self._write = write
        self._generate = generate
        self.update_interval = (
            update_interval
            if update_interval is not None
            else settings.stream_update_interval_seconds
        )
        self.heartbeat_interval = (
            heartbeat_interval
            if heartbeat_interval is not None
            else settings.stream_heartbeat_interval_seconds
        )
        self._on_close = on_close
        self.subscriber_id = subscriber_id or str(uuid7())
        self._tasks: list[asyncio.Task] = []
        self._started = False
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def start(self) -> None:
        if self._started:
            raise RuntimeError("transport already started")
        if self._cancelled:
            return
        self._started = True
        ACTIVE_SUBSCRIBERS.inc()
        logger.info(
            "stream_subscriber_opened", extra={"subscriber_id": self.subscriber_id}
        )
        self._emit(encode_message(StreamMessage.connection("connected")), "connection")
        self._tasks = [
            asyncio.create_task(self._every(self.update_interval, self._data_tick)),
            asyncio.create_task(
                self._every(self.heartbeat_interval, self._heartbeat_tick)
            ),
        ]

    def cancel(self) -> None:
        """Stop both timers and close the channel. Safe to call repeatedly."""
        if self._cancelled:
            return
        self._cancelled = True
        for task in self._tasks:
            task.cancel()
        if self._started:
            ACTIVE_SUBSCRIBERS.dec()
        if self._on_close is not None:
            self._on_close()
        logger.info(
            "stream_subscriber_closed", extra={"subscriber_id": self.subscriber_id}
        )

    async def _every(self, interval: float, tick: Callable[[], None]) -> None:
        while not self._cancelled:
            await asyncio.sleep(interval)
            if self._cancelled:
                return
            try:
                tick()
            except Exception:
                WRITE_FAILURES.inc()
                logger.error(
                    "stream_write_failed",
                    extra={"subscriber_id": self.subscriber_id},
                    exc_info=True,
                )
                self.cancel()
                return

    def _data_tick(self) -> None:
        try:
            point = self._generate()
            frame = encode_message(StreamMessage.metric(point))
        except Exception:
            TICK_FAILURES.inc()
            logger.error(
                "stream_tick_failed",
                extra={"subscriber_id": self.subscriber_id},
                exc_info=True,
            )
            return
        self._emit(frame, "metric")

    def _heartbeat_tick(self) -> None:
        self._emit(HEARTBEAT_FRAME, "heartbeat")

    def _emit(self, frame: str, kind: str) -> None:
        if self._cancelled:
            return
        self._write(frame)
        FRAMES_EMITTED.labels(kind=kind).inc()


class SubscriberChannel:
    """Queue-backed channel between a PushTransport and an HTTP response.

    Iterating ``frames()`` starts the transport and yields frames until the
    transport is cancelled; leaving the iteration early cancels it.
    """

    def __init__(self, **transport_kwargs):
        self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue()
        self.transport = PushTransport(
            self._queue.put_nowait, on_close=self._on_close, **transport_kwargs
        )

    def _on_close(self) -> None:
        self._queue.put_nowait(None)  # end-of-stream sentinel

    async def frames(self) -> AsyncIterator[str]:
        self.transport.start()
        try:
            while True:
                frame = await self._queue.get()
                if frame is None:
                    return
                yield frame
        finally:
            self.transport.cancel()

    def close(self) -> None:
        self.transport.cancel()
