from __future__ import annotations

from typing import Optional

import httpx
from pydantic import ValidationError

from neuralmetrics.core.config import settings
from neuralmetrics.core.logger import get_logger
from neuralmetrics.core.retry import retry_async
from neuralmetrics.domain.models import HistoryResponse
from neuralmetrics.domain.time_range import TimeRange, parse_time_range

from .errors import (
    InvalidPayloadError,
    MetricsFetchError,
    MetricsNetworkError,
    MetricsResponseError,
)

logger = get_logger("neuralmetrics.client.history")


class HistoryClient:
    """Fetches a generated window and its summary from the history endpoint.

    Transport failures are retried with exponential backoff and surface as
    ``MetricsNetworkError``; a non-2xx answer is raised immediately as
    ``MetricsResponseError``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        retries: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self._client = client
        self.retries = (
            retries if retries is not None else settings.history_fetch_retries
        )
        self.timeout = (
            timeout if timeout is not None else settings.history_fetch_timeout_seconds
        )

    async def fetch(self, time_range: TimeRange | str = "30d") -> HistoryResponse:
        window = parse_time_range(time_range)

        async def _attempt() -> HistoryResponse:
            return await self._fetch_once(window)

        async def _on_retry(attempt: int, exc: BaseException, sleep_for: float):
            logger.warning(
                "history_fetch_retry",
                extra={
                    "attempt": attempt,
                    "error": str(exc.__cause__ or exc),
                    "sleep_for": round(sleep_for, 2),
                },
            )

        return await retry_async(
            _attempt,
            attempts=self.retries,
            base_delay=0.5,
            max_delay=4.0,
            retry_on=(MetricsNetworkError,),
            on_retry=_on_retry,
        )

    async def _fetch_once(self, window: TimeRange) -> HistoryResponse:
        url = f"{self.base_url}/metrics"
        params = {"timeRange": window.value}
        try:
            if self._client is not None:
                response = await self._client.get(url, params=params)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url, params=params)
        except httpx.TransportError as exc:
            raise MetricsNetworkError() from exc
        except httpx.RequestError as exc:
            logger.warning(
                "history_request_error",
                extra={"error_type": type(exc).__name__, "time_range": window.value},
            )
            raise MetricsFetchError() from exc

        if not response.is_success:
            logger.warning(
                "history_fetch_failed",
                extra={"status_code": response.status_code, "time_range": window.value},
            )
            raise MetricsResponseError(response.status_code)

        try:
            return HistoryResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise InvalidPayloadError() from exc
