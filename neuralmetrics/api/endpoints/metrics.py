import time
from typing import Callable

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import JSONResponse

from neuralmetrics.analytics.summary import summarize
from neuralmetrics.api.dependencies import get_series_generator
from neuralmetrics.core.config import settings
from neuralmetrics.core.logger import get_logger
from neuralmetrics.core.metrics import counter, histogram
from neuralmetrics.domain.models import HistoryResponse, Metric, TimeRangeBounds
from neuralmetrics.domain.time_range import (
    InvalidTimeRangeError,
    parse_time_range,
    utcnow,
)

router = APIRouter()
logger = get_logger("neuralmetrics.api.metrics")

HISTORY_REQUESTS = counter(
    "history_requests_total",
    "History requests by outcome",
    labelnames=("outcome",),
)
HISTORY_LATENCY = histogram(
    "history_request_latency_seconds",
    "History request latency",
)


@router.get(
    "/metrics",
    response_model=HistoryResponse,
    summary="Generated history for a time window",
    responses={400: {"description": "Unknown timeRange"}},
)
async def get_metrics(
    response: Response,
    time_range: str = Query(settings.history_default_time_range, alias="timeRange"),
    generate: Callable[..., list[Metric]] = Depends(get_series_generator),
):
    start_time = time.time()
    try:
        try:
            window = parse_time_range(time_range)
        except InvalidTimeRangeError:
            HISTORY_REQUESTS.labels(outcome="invalid").inc()
            logger.warning("history_invalid_time_range", extra={"value": time_range})
            return JSONResponse(
                status_code=400, content={"error": "Invalid time range parameter"}
            )

        try:
            points = generate(window)
            summary = summarize(points)
        except Exception as e:
            HISTORY_REQUESTS.labels(outcome="error").inc()
            logger.error(
                "history_request_failed",
                extra={"time_range": window.value, "error": str(e)},
                exc_info=True,
            )
            return JSONResponse(
                status_code=500, content={"error": "Internal server error"}
            )

        now = utcnow()
        bounds = TimeRangeBounds(
            start=points[0].timestamp if points else now,
            end=points[-1].timestamp if points else now,
        )
        HISTORY_REQUESTS.labels(outcome="ok").inc()
        response.headers["Cache-Control"] = settings.history_cache_control
        return HistoryResponse(data=points, summary=summary, time_range=bounds)
    finally:
        HISTORY_LATENCY.observe(time.time() - start_time)
