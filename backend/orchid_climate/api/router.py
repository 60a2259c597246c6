"""Top-level API router aggregation."""

from fastapi import APIRouter

from . import passes, climate, alerts

api_router = APIRouter(prefix="/api")

api_router.include_router(passes.router)
api_router.include_router(climate.router)
api_router.include_router(alerts.router)
