from fastapi import APIRouter

from .endpoints import health, metrics, stream

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(metrics.router)
api_router.include_router(stream.router)
