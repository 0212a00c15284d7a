"""Liveness and readiness probes."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from gobd_core.api.dependencies import get_db_session
from gobd_core.services.schema_guard import get_schema_guard

router = APIRouter()


@router.get("/healthz", summary="Liveness probe")
def health_check() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz", summary="Readiness probe")
def readiness_check(session: Session = Depends(get_db_session)) -> Dict[str, Any]:
    """Database reachable; ``ai_schema`` tells dashboards whether AI reads will be degraded."""

    session.execute(text("SELECT 1"))
    return {"status": "ok", "ai_schema": get_schema_guard().ai_schema_available()}
