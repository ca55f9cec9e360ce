import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from prometheus_fastapi_instrumentator import Instrumentator

from neuralmetrics.api.router import api_router
from neuralmetrics.core.logger import get_logger
from neuralmetrics.startup import initialize_application

logger = get_logger("neuralmetrics.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    initialize_application()
    app.state.ready_event = asyncio.Event()
    app.state.ready_event.set()
    logger.info("neuralmetrics_service_started")
    try:
        yield
    finally:
        app.state.ready_event.clear()
        logger.info("neuralmetrics_service_stopping")


app = FastAPI(title="NeuralMetrics Data API", version="0.1.0", lifespan=lifespan)


@app.get("/prometheus", include_in_schema=False)
async def prometheus_metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


instrumentator = Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=True,
    excluded_handlers=["/docs", "/openapi.json", "/prometheus", "/stream"],
)
instrumentator.instrument(app)

app.include_router(api_router)
