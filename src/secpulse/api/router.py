"""Master API router mounted at /api/v1."""

from fastapi import APIRouter

from secpulse.api.routes import connectors, health, jobs

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(connectors.router)
api_router.include_router(jobs.router)
