"""Logs every automation trigger, suggestion and rejection (no PII, no raw prompts)."""

from __future__ import annotations

import hashlib
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from gobd_core.models.audit_log import AuditLog
from gobd_core.services.ai_audit import AIAuditLogger

AUTOMATION_TRIGGERED = "AUTOMATION_TRIGGERED"
AUTOMATION_PRODUCED = "AUTOMATION_PRODUCED"
AUTOMATION_REJECTED = "AUTOMATION_REJECTED"


def safe_hash(value: Optional[str]) -> str:
    """Short fingerprint of an input that is safe to log."""

    return hashlib.sha256((value or "").encode("utf-8")).hexdigest()[:12]


class AutomationAuditLogger:
    def __init__(self, session: Session, ai_audit: Optional[AIAuditLogger] = None) -> None:
        self._ai_audit = ai_audit or AIAuditLogger(session)

    def log_event(
        self,
        event_type: str,
        *,
        user_id: Optional[int],
        company_id: Optional[int],
        request_id: Optional[str],
        detector: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        meta = meta or {}
        rejected = event_type == AUTOMATION_REJECTED
        return self._ai_audit.log_suggestion_event(
            event_type=event_type,
            user_id=user_id,
            company_id=company_id,
            request_id=request_id,
            reason=meta.get("error") if rejected else None,
            denied=rejected,
            detector=detector,
            severity=meta.get("severity"),
            related_entity_id=meta.get("related_entity_id"),
            summary={key: value for key, value in meta.items() if key not in ("error", "severity", "related_entity_id")}
            or None,
        )
