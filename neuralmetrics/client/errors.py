from typing import Optional


class ErrorMessages:
    """Stable user-facing messages."""

    FETCH_FAILED = "Failed to fetch data. Please try again."
    NETWORK_ERROR = "Network error. Check your connection."
    STREAM_DISCONNECTED = "Real-time connection lost. Reconnecting..."
    INVALID_DATA = "Received invalid data from server."


class MetricsClientError(Exception):
    default_message = ErrorMessages.FETCH_FAILED

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)


class MetricsFetchError(MetricsClientError):
    """History fetch failed."""


class MetricsNetworkError(MetricsFetchError):
    default_message = ErrorMessages.NETWORK_ERROR


class MetricsResponseError(MetricsFetchError):
    """The server answered with a non-2xx status."""

    def __init__(self, status_code: int, message: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code


class InvalidPayloadError(MetricsFetchError):
    default_message = ErrorMessages.INVALID_DATA


class StreamDisconnectedError(MetricsClientError):
    """Live stream is gone and no reconnect attempts remain."""

    default_message = ErrorMessages.STREAM_DISCONNECTED


class StreamOpenError(MetricsClientError):
    default_message = ErrorMessages.NETWORK_ERROR
