"""Runs detectors in read-only mode and returns advisory suggestions."""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from gobd_core.schemas.automation import AutomationFinding, AutomationSnapshot, AutomationSuggestion
from gobd_core.services.automation.audit_logger import (
    AUTOMATION_PRODUCED,
    AUTOMATION_REJECTED,
    AUTOMATION_TRIGGERED,
    AutomationAuditLogger,
    safe_hash,
)
from gobd_core.services.automation.detectors import (
    detect_cash_flow_risk,
    detect_duplicate_invoices,
    detect_unmatched_bank_transactions,
)
from gobd_core.services.automation.guard import (
    assert_no_mutation_intent,
    assert_read_only_context,
    assert_suggestion_valid,
)
from gobd_core.services.automation.recommendation import build_suggestion_from_finding
from gobd_core.services.errors import (
    MutationIntentDetectedError,
    NonReadOnlyMethodError,
    SuggestionContractError,
)


def run_detectors(snapshot: AutomationSnapshot) -> List[AutomationFinding]:
    """Run every detector over the snapshot. Deterministic and side-effect free."""

    findings: List[AutomationFinding] = []
    findings.extend(detect_duplicate_invoices(snapshot.invoices))
    findings.extend(detect_unmatched_bank_transactions(snapshot.bank_transactions, snapshot.invoice_payments))
    findings.extend(
        detect_cash_flow_risk(snapshot.invoices, snapshot.bank_balance, company_id=snapshot.company_id)
    )
    return findings


class AutomationEngine:
    """Single entry point combining guard checks, detectors and audit logging."""

    def __init__(self, session: Session, audit_logger: Optional[AutomationAuditLogger] = None) -> None:
        self._audit = audit_logger or AutomationAuditLogger(session)
        self._logger = logging.getLogger("gobd_core.services.automation")

    def run_automation(
        self,
        *,
        user_id: Optional[int],
        company_id: Optional[int],
        snapshot: AutomationSnapshot,
        method: Optional[str] = "GET",
        request_id: Optional[str] = None,
    ) -> List[AutomationSuggestion]:
        try:
            assert_read_only_context(method)
            assert_no_mutation_intent(snapshot.prompt)
        except (NonReadOnlyMethodError, MutationIntentDetectedError) as exc:
            self._reject(exc, user_id=user_id, company_id=company_id, request_id=request_id)
            raise

        self._audit.log_event(
            AUTOMATION_TRIGGERED,
            user_id=user_id,
            company_id=company_id,
            request_id=request_id,
            meta={"context_hash": safe_hash(snapshot.model_dump_json())},
        )

        suggestions = [build_suggestion_from_finding(finding) for finding in run_detectors(snapshot)]

        for suggestion in suggestions:
            try:
                assert_suggestion_valid(suggestion)
            except SuggestionContractError as exc:
                self._reject(exc, user_id=user_id, company_id=company_id, request_id=request_id)
                raise
            self._audit.log_event(
                AUTOMATION_PRODUCED,
                user_id=user_id,
                company_id=company_id,
                request_id=request_id,
                detector=suggestion.type,
                meta={
                    "suggestion_id": suggestion.id,
                    "type": suggestion.type,
                    "severity": suggestion.severity,
                    "related_entity_id": (
                        suggestion.related_entities[0].entity_id if suggestion.related_entities else None
                    ),
                },
            )

        self._logger.info(
            "automation_completed",
            extra={"company_id": company_id, "request_id": request_id, "suggestions": len(suggestions)},
        )
        return suggestions

    def _reject(
        self,
        exc: Exception,
        *,
        user_id: Optional[int],
        company_id: Optional[int],
        request_id: Optional[str],
    ) -> None:
        self._logger.warning(
            "automation_rejected",
            extra={"company_id": company_id, "request_id": request_id, "error": str(exc)},
        )
        self._audit.log_event(
            AUTOMATION_REJECTED,
            user_id=user_id,
            company_id=company_id,
            request_id=request_id,
            meta={"error": str(exc)},
        )
