"""Text event stream framing shared by the server and the client.

Every message is one ``data:`` record terminated by a blank line. Heartbeats
are a comment record, which browsers' EventSource silently ignores.
"""

from __future__ import annotations

from typing import Optional

from neuralmetrics.domain.models import StreamMessage

HEARTBEAT_MARKER = ":heartbeat"
HEARTBEAT_FRAME = f"{HEARTBEAT_MARKER}\n\n"


def encode_message(message: StreamMessage) -> str:
    return f"data: {message.to_json()}\n\n"


class SSEDecoder:
    """Incremental line decoder.

    ``feed`` takes one line without its terminator and returns a record when
    one is complete: the joined ``data`` payload, or ``HEARTBEAT_MARKER`` for a
    heartbeat comment. Other fields (``event``, ``id``, ``retry``) are ignored.
    """

    def __init__(self) -> None:
        self._data: list[str] = []

    def feed(self, line: str) -> Optional[str]:
        if line == "":
            if not self._data:
                return None
            record = "\n".join(self._data)
            self._data = []
            return record
        if line.startswith(":"):
            return HEARTBEAT_MARKER if line == HEARTBEAT_MARKER else None
        field, _, value = line.partition(":")
        if field == "data":
            self._data.append(value[1:] if value.startswith(" ") else value)
        return None
