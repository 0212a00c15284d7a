"""Audit log export endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response

from gobd_core.api.dependencies import get_actor_user, get_audit_service
from gobd_core.schemas.insight import ActorUser
from gobd_core.services.audit import AuditService

router = APIRouter()


@router.get("/logs", summary="Export the audit trail of the caller's company")
def export_audit_logs(
    format: Literal["json", "csv"] = Query(default="json"),
    date_from: Optional[datetime] = Query(default=None),
    date_to: Optional[datetime] = Query(default=None),
    actor: ActorUser = Depends(get_actor_user),
    service: AuditService = Depends(get_audit_service),
) -> Response:
    exported = service.export_logs(
        format=format,
        date_from=date_from,
        date_to=date_to,
        company_id=actor.company_id,
    )
    if format == "csv":
        return Response(
            content=exported,
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="audit-logs.csv"'},
        )
    return JSONResponse(content=exported)
