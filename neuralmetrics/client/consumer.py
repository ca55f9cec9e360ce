"""Client-side stream consumer.

State machine over a ``StreamTransport``::

    disconnected --open--> connected --fault--> disconnected
    disconnected --retries left--> reconnecting --timer--> (new attempt)
    disconnected --no retries left--> error (terminal)
    any --disconnect()--> disconnected

The n-th reconnect attempt (0-based) waits ``reconnect_interval_ms * 2**n``.
Only one underlying connection and one pending reconnect timer exist at a
time. Everything runs on the event loop thread, so no locking is needed.
After ``shutdown()`` every late callback is discarded.
"""

from __future__ import annotations

import asyncio
from collections import deque
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from pydantic import ValidationError

from neuralmetrics.core.config import settings
from neuralmetrics.core.logger import get_logger
from neuralmetrics.core.metrics import counter
from neuralmetrics.core.retry import backoff_delay
from neuralmetrics.domain.models import Metric, StreamMessage
from neuralmetrics.domain.time_range import utcnow
from neuralmetrics.realtime.framing import HEARTBEAT_MARKER

from .errors import MetricsClientError, StreamDisconnectedError, StreamOpenError
from .transport import StreamTransport

logger = get_logger("neuralmetrics.client.consumer")

MALFORMED_MESSAGES = counter(
    "stream_malformed_messages_total",
    "Stream messages dropped because they failed to parse",
)
RECONNECT_ATTEMPTS = counter(
    "stream_reconnects_scheduled_total",
    "Reconnect attempts scheduled by stream consumers",
)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    ERROR = "error"


class Cancellable(Protocol):
    def cancel(self) -> Any: ...


Scheduler = Callable[[float, Callable[[], None]], Cancellable]


def loop_scheduler(delay_seconds: float, callback: Callable[[], None]) -> Cancellable:
    return asyncio.get_running_loop().call_later(delay_seconds, callback)


class StreamConsumer:
    def __init__(
        self,
        transport: StreamTransport,
        *,
        reconnect_interval_ms: Optional[int] = None,
        max_reconnect_attempts: Optional[int] = None,
        window_size: Optional[int] = None,
        scheduler: Scheduler = loop_scheduler,
        on_state_change: Optional[Callable[[ConnectionState], None]] = None,
        on_error: Optional[Callable[[MetricsClientError], None]] = None,
        on_metric: Optional[Callable[[Metric], None]] = None,
    ):
        self._transport = transport
        self.reconnect_interval_ms = (
            reconnect_interval_ms
            if reconnect_interval_ms is not None
            else settings.stream_reconnect_interval_ms
        )
        self.max_reconnect_attempts = (
            max_reconnect_attempts
            if max_reconnect_attempts is not None
            else settings.stream_max_reconnect_attempts
        )
        if window_size is None:
            window_size = settings.stream_window_size
        self._window: deque[Metric] = deque(maxlen=window_size)
        self._scheduler = scheduler
        self._on_state_change = on_state_change
        self._on_error = on_error
        self._on_metric = on_metric

        self._handle: Any = None
        self._pending: Optional[Cancellable] = None
        self._retry_count = 0
        self._active = True

        self.state = ConnectionState.DISCONNECTED
        self.error: Optional[MetricsClientError] = None
        self.last_message_at: Optional[datetime] = None
        self.last_heartbeat_at: Optional[datetime] = None

    @property
    def points(self) -> list[Metric]:
        return list(self._window)

    @property
    def retry_count(self) -> int:
        return self._retry_count

    @property
    def reconnect_pending(self) -> bool:
        return self._pending is not None

    def reconnect_delay_ms(self, attempt: int) -> float:
        return backoff_delay(self.reconnect_interval_ms, attempt)

    def connect(self) -> None:
        """Open a new underlying connection.

        Any previous connection is closed and any pending reconnect is dropped.
        """
        if not self._active:
            return
        self._close_handle()
        self._cancel_pending()
        try:
            handle = self._transport.open()
        except Exception as exc:
            logger.error(
                "stream_open_failed", extra={"error": str(exc)}, exc_info=True
            )
            self._set_state(ConnectionState.ERROR)
            self._fail(StreamOpenError())
            return
        self._handle = handle
        self._transport.on_open(handle, lambda: self._handle_open(handle))
        self._transport.on_message(
            handle, lambda raw: self._handle_message(handle, raw)
        )
        self._transport.on_error(handle, lambda exc: self._handle_fault(handle, exc))

    def disconnect(self) -> None:
        """Caller-initiated stop: closes the connection and any pending retry."""
        self._close_handle()
        self._cancel_pending()
        self._retry_count = 0
        self._set_state(ConnectionState.DISCONNECTED)

    def shutdown(self) -> None:
        self.disconnect()
        self._active = False

    def _is_current(self, handle: Any) -> bool:
        return self._active and handle is not None and handle is self._handle

    def _handle_open(self, handle: Any) -> None:
        if not self._is_current(handle):
            return
        self._retry_count = 0
        self._set_state(ConnectionState.CONNECTED)

    def _handle_message(self, handle: Any, raw: str) -> None:
        if not self._is_current(handle):
            return
        now = utcnow()
        self.last_message_at = now
        if raw == HEARTBEAT_MARKER:
            self.last_heartbeat_at = now
            return
        try:
            message = StreamMessage.model_validate_json(raw)
        except ValidationError as exc:
            MALFORMED_MESSAGES.inc()
            logger.warning(
                "stream_message_malformed",
                extra={"error_count": exc.error_count(), "payload": raw[:200]},
            )
            return

        if message.type == "metric":
            self._window.append(message.data)
            if self._on_metric is not None:
                self._on_metric(message.data)
        elif message.type == "error":
            logger.warning(
                "stream_server_error", extra={"server_message": message.data.message}
            )

    def _handle_fault(self, handle: Any, exc: BaseException) -> None:
        if not self._is_current(handle):
            return
        self._close_handle()
        self._set_state(ConnectionState.DISCONNECTED)

        if self._retry_count < self.max_reconnect_attempts:
            delay_ms = self.reconnect_delay_ms(self._retry_count)
            self._set_state(ConnectionState.RECONNECTING)
            RECONNECT_ATTEMPTS.inc()
            logger.warning(
                "stream_reconnect_scheduled",
                extra={
                    "attempt": self._retry_count + 1,
                    "delay_ms": delay_ms,
                    "error": str(exc),
                },
            )
            self._cancel_pending()
            self._pending = self._scheduler(delay_ms / 1000, self._reconnect)
        else:
            logger.error(
                "stream_reconnect_exhausted",
                extra={"attempts": self._retry_count, "error": str(exc)},
            )
            self._set_state(ConnectionState.ERROR)
            self._fail(StreamDisconnectedError())

    def _reconnect(self) -> None:
        self._pending = None
        if not self._active:
            return
        self._retry_count += 1
        self.connect()

    def _fail(self, error: MetricsClientError) -> None:
        self.error = error
        if self._on_error is not None:
            self._on_error(error)

    def _set_state(self, state: ConnectionState) -> None:
        if state is self.state:
            return
        logger.info(
            "stream_state_changed",
            extra={"from_state": self.state.value, "to_state": state.value},
        )
        self.state = state
        if self._on_state_change is not None:
            self._on_state_change(state)

    def _close_handle(self) -> None:
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        self._transport.close(handle)

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
