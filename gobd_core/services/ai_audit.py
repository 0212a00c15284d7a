"""Audit logging for AI queries and suggestions.

Raw prompts never reach the chain: they are PII-redacted and only their
SHA-256 digest is stored.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from gobd_core.models.audit_log import AuditLog
from gobd_core.schemas.audit import Actor, EventClass, EventStatus
from gobd_core.services.audit import AuditService
from gobd_core.services.governance import redact_pii

UNKNOWN_REQUEST_ID = "unknown"


def hash_prompt(prompt: Optional[str]) -> Optional[str]:
    sanitized = redact_pii(prompt if isinstance(prompt, str) else "")
    if not sanitized:
        return None
    return hashlib.sha256(sanitized.encode("utf-8")).hexdigest()


def _sanitize_meta(meta: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not meta:
        return None
    return {key: meta.get(key) for key in ("policy_version", "model_version", "prompt_version", "rule_id")}


def _actor_for(user_id: Optional[int]) -> Actor:
    return Actor.user(user_id) if user_id is not None else Actor.system()


class AIAuditLogger:
    """Writes AI query and suggestion events to the audit chain."""

    def __init__(self, session: Session, audit_service: Optional[AuditService] = None) -> None:
        self._audit = audit_service or AuditService(session)

    def log_requested(
        self,
        *,
        user_id: Optional[int],
        company_id: Optional[int],
        request_id: Optional[str],
        route: str,
        prompt: Optional[str] = None,
        query_type: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        return self._log_query(
            action="AI_QUERY_REQUESTED",
            reason="AI query requested",
            status=EventStatus.SUCCESS,
            user_id=user_id,
            company_id=company_id,
            request_id=request_id,
            route=route,
            prompt=prompt,
            query_type=query_type,
            meta=meta,
        )

    def log_responded(
        self,
        *,
        user_id: Optional[int],
        company_id: Optional[int],
        request_id: Optional[str],
        route: str,
        prompt: Optional[str] = None,
        query_type: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        return self._log_query(
            action="AI_QUERY_RESPONDED",
            reason="AI query responded",
            status=EventStatus.SUCCESS,
            user_id=user_id,
            company_id=company_id,
            request_id=request_id,
            route=route,
            prompt=prompt,
            query_type=query_type,
            meta=meta,
        )

    def log_rejected(
        self,
        *,
        user_id: Optional[int],
        company_id: Optional[int],
        request_id: Optional[str],
        route: str,
        reason: Optional[str],
        prompt: Optional[str] = None,
        query_type: Optional[str] = None,
    ) -> AuditLog:
        return self._log_query(
            action="AI_QUERY_REJECTED",
            reason=reason or "AI query rejected",
            status=EventStatus.DENIED,
            user_id=user_id,
            company_id=company_id,
            request_id=request_id,
            route=route,
            prompt=prompt,
            query_type=query_type,
        )

    def log_suggestion_event(
        self,
        *,
        event_type: str,
        user_id: Optional[int],
        company_id: Optional[int],
        request_id: Optional[str],
        route: str = "/api/v1/ai/automation/suggestions",
        prompt: Optional[str] = None,
        suggestion: Optional[Dict[str, Any]] = None,
        reason: Optional[str] = None,
        denied: bool = False,
        detector: Optional[str] = None,
        severity: Optional[str] = None,
        related_entity_id: Optional[str] = None,
        summary: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        new_values = {
            "request_id": request_id or UNKNOWN_REQUEST_ID,
            "route": route,
            "prompt_hash": hash_prompt(prompt) if prompt else None,
            "suggestion": json.dumps(suggestion, sort_keys=True, default=str) if suggestion else None,
            "reason": reason,
            "detector": detector,
            "severity": severity,
            "summary": summary,
        }
        return self._audit.record(
            action=event_type,
            resource_type="AI_SUGGESTION",
            resource_id=related_entity_id,
            actor=_actor_for(user_id),
            company_id=company_id,
            event_class=EventClass.AI_GOVERNANCE,
            status=EventStatus.DENIED if denied else EventStatus.SUCCESS,
            reason=reason or event_type,
            new_values={key: value for key, value in new_values.items() if value is not None},
            request_id=request_id,
        )

    def _log_query(
        self,
        *,
        action: str,
        reason: str,
        status: EventStatus,
        user_id: Optional[int],
        company_id: Optional[int],
        request_id: Optional[str],
        route: str,
        prompt: Optional[str],
        query_type: Optional[str],
        meta: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        new_values = {
            "request_id": request_id or UNKNOWN_REQUEST_ID,
            "route": route,
            "query_type": query_type,
            "prompt_hash": hash_prompt(prompt),
            "meta": _sanitize_meta(meta),
        }
        return self._audit.record(
            action=action,
            resource_type="AI",
            actor=_actor_for(user_id),
            company_id=company_id,
            event_class=EventClass.AI_GOVERNANCE,
            status=status,
            reason=reason,
            new_values={key: value for key, value in new_values.items() if value is not None},
            request_id=request_id,
        )
