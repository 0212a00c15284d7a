"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from gobd_core.api.error_handlers import register_exception_handlers
from gobd_core.api.routers import get_api_router
from gobd_core.core.config import AppSettings, get_settings
from gobd_core.core.database import engine
from gobd_core.core.logging import configure_logging
from gobd_core.models import Base

logger = logging.getLogger("gobd_core")


@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: D401
    """Application lifespan context for startup/shutdown hooks."""

    settings = get_settings()
    if settings.environment == "local":
        # Staging and production are provisioned through Alembic.
        Base.metadata.create_all(bind=engine)
    logger.info("service_started", extra={"environment": settings.environment})

    yield


def create_app(settings: AppSettings | None = None) -> FastAPI:
    """Application factory."""

    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="GoBD Governance Core",
        version="1.0.0",
        lifespan=lifespan,
    )

    register_exception_handlers(app)
    app.include_router(get_api_router())
    return app


app = create_app()
