"""Dependency injection helpers for FastAPI routes."""

from __future__ import annotations

from typing import Optional, Protocol
from uuid import uuid4

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from gobd_core.core.database import get_session
from gobd_core.schemas.automation import AutomationSnapshot
from gobd_core.schemas.insight import ActorUser
from gobd_core.services.ai_audit import AIAuditLogger
from gobd_core.services.audit import AuditService
from gobd_core.services.automation.engine import AutomationEngine
from gobd_core.services.errors import PermissionDeniedError
from gobd_core.services.insights import InsightService


class SnapshotProvider(Protocol):
    """Loads the read-only accounting data the detectors run over."""

    def __call__(self, company_id: int, prompt: Optional[str]) -> AutomationSnapshot:
        ...


def empty_snapshot_provider(company_id: int, prompt: Optional[str]) -> AutomationSnapshot:
    return AutomationSnapshot(company_id=company_id, prompt=prompt)


def get_snapshot_provider() -> SnapshotProvider:
    """Override via ``app.dependency_overrides`` to plug in the accounting data source."""

    return empty_snapshot_provider


def get_db_session() -> Session:
    yield from get_session()


def get_audit_service(session: Session = Depends(get_db_session)) -> AuditService:
    return AuditService(session)


def get_insight_service(session: Session = Depends(get_db_session)) -> InsightService:
    return InsightService(session)


def get_automation_engine(session: Session = Depends(get_db_session)) -> AutomationEngine:
    return AutomationEngine(session)


def get_ai_audit_logger(session: Session = Depends(get_db_session)) -> AIAuditLogger:
    return AIAuditLogger(session)


def get_actor_user(
    x_actor_id: Optional[int] = Header(default=None, alias="X-Actor-Id"),
    x_company_id: Optional[int] = Header(default=None, alias="X-Company-Id"),
    x_actor_role: Optional[str] = Header(default=None, alias="X-Actor-Role"),
) -> ActorUser:
    if x_actor_id is None or x_company_id is None or not x_actor_role:
        raise PermissionDeniedError("Authenticated actor and company scope are required")
    return ActorUser(id=x_actor_id, company_id=x_company_id, role=x_actor_role.lower())


def get_request_id(x_request_id: Optional[str] = Header(default=None, alias="X-Request-Id")) -> str:
    return x_request_id or uuid4().hex
