"""Exception handlers for the FastAPI app."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from gobd_core.services.errors import GovernanceError, ImmutabilityViolation

logger = logging.getLogger("gobd_core.api")


def _render(exc: GovernanceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc), "error_code": exc.error_code})


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ImmutabilityViolation)
    async def immutability_violation_handler(request: Request, exc: ImmutabilityViolation) -> JSONResponse:  # noqa: WPS430
        logger.critical("immutability_violation", extra={"path": request.url.path, "error": str(exc)})
        return _render(exc)

    @app.exception_handler(GovernanceError)
    async def governance_error_handler(request: Request, exc: GovernanceError) -> JSONResponse:  # noqa: WPS430
        if exc.status_code >= 500:
            logger.error("governance_error", extra={"path": request.url.path, "error_code": exc.error_code})
        return _render(exc)
