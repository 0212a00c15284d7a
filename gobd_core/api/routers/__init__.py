"""Router registrations."""

from fastapi import APIRouter

from gobd_core.api.routers import ai, audit, health


def get_api_router() -> APIRouter:
    router = APIRouter()
    router.include_router(health.router, tags=["health"])
    router.include_router(audit.router, prefix="/api/v1/audit", tags=["audit"])
    router.include_router(ai.router, prefix="/api/v1/ai", tags=["ai"])
    return router
