"""Streaming transport capability used by the stream consumer.

The consumer only talks to the five operations of ``StreamTransport``.
``HttpxSSETransport`` implements them over an ``httpx`` streaming GET; tests
substitute an in-memory fake.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional, Protocol

import httpx

from neuralmetrics.core.logger import get_logger
from neuralmetrics.realtime.framing import SSEDecoder

logger = get_logger("neuralmetrics.client.transport")

OpenCallback = Callable[[], None]
MessageCallback = Callable[[str], None]
ErrorCallback = Callable[[BaseException], None]


class StreamTransport(Protocol):
    def open(self) -> Any: ...

    def on_open(self, handle: Any, callback: OpenCallback) -> None: ...

    def on_message(self, handle: Any, callback: MessageCallback) -> None: ...

    def on_error(self, handle: Any, callback: ErrorCallback) -> None: ...

    def close(self, handle: Any) -> None: ...


class StreamHTTPError(Exception):
    def __init__(self, status_code: int):
        super().__init__(f"stream request failed with status {status_code}")
        self.status_code = status_code


class StreamClosedError(Exception):
    """The server ended the event stream."""


class SSEConnection:
    """Handle for one streaming request."""

    def __init__(self) -> None:
        self.task: Optional[asyncio.Task] = None
        self.closed = False
        self.open_callback: Optional[OpenCallback] = None
        self.message_callback: Optional[MessageCallback] = None
        self.error_callback: Optional[ErrorCallback] = None


class HttpxSSETransport:
    def __init__(
        self,
        url: str,
        client: Optional[httpx.AsyncClient] = None,
        connect_timeout: float = 10.0,
    ):
        self.url = url
        self._client = client
        self._connect_timeout = connect_timeout

    def open(self) -> SSEConnection:
        conn = SSEConnection()
        conn.task = asyncio.get_running_loop().create_task(self._run(conn))
        return conn

    def on_open(self, handle: SSEConnection, callback: OpenCallback) -> None:
        handle.open_callback = callback

    def on_message(self, handle: SSEConnection, callback: MessageCallback) -> None:
        handle.message_callback = callback

    def on_error(self, handle: SSEConnection, callback: ErrorCallback) -> None:
        handle.error_callback = callback

    def close(self, handle: SSEConnection) -> None:
        if handle.closed:
            return
        handle.closed = True
        if handle.task is not None:
            handle.task.cancel()

    async def _run(self, conn: SSEConnection) -> None:
        owned = self._client is None
        client = self._client or httpx.AsyncClient(
            timeout=httpx.Timeout(None, connect=self._connect_timeout)
        )
        try:
            async with client.stream(
                "GET",
                self.url,
                headers={"Accept": "text/event-stream", "Cache-Control": "no-cache"},
            ) as response:
                if response.status_code != 200:
                    raise StreamHTTPError(response.status_code)
                if conn.closed:
                    return
                if conn.open_callback is not None:
                    conn.open_callback()
                decoder = SSEDecoder()
                async for line in response.aiter_lines():
                    record = decoder.feed(line)
                    if record is None or conn.closed:
                        continue
                    if conn.message_callback is not None:
                        conn.message_callback(record)
            raise StreamClosedError("server closed the event stream")
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if conn.closed:
                return
            logger.warning(
                "sse_connection_error",
                extra={"url": self.url, "error_type": type(exc).__name__},
            )
            if conn.error_callback is not None:
                conn.error_callback(exc)
        finally:
            if owned:
                await client.aclose()
