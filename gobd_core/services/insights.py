"""AI insight generation, reads, exports and human decisions."""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from gobd_core.core.config import AppSettings, get_settings
from gobd_core.models.ai_insight import AIInsight, AIInsightDecision, DecisionType
from gobd_core.models.company import Company
from gobd_core.schemas.audit import Actor, EventClass
from gobd_core.schemas.automation import AutomationSnapshot
from gobd_core.schemas.insight import ActorUser
from gobd_core.services.approval import REASON_REQUIRED, ApprovalState
from gobd_core.services.audit import AuditService, normalize_json_value
from gobd_core.services.errors import (
    FeatureUnavailableError,
    InvalidDecisionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from gobd_core.services.governance import enforce_purpose_limitation
from gobd_core.services.insight_rules import (
    RuleOutcome,
    compliance_risk_score,
    detect_invoice_anomaly,
    detect_missing_document,
    detect_vat_risk,
)
from gobd_core.services.schema_guard import SchemaGuard, get_schema_guard

ALLOWED_DECISIONS = tuple(decision.value for decision in DecisionType)

# Fields of a generated insight that may be copied into the audit chain.
INSIGHT_AUDIT_FIELDS = (
    "insight_id",
    "entity_type",
    "entity_id",
    "type",
    "severity",
    "confidence_score",
    "rule_id",
    "model_version",
    "feature_flag",
)

INSIGHT_EXPORT_COLUMNS = (
    "id",
    "entity_type",
    "entity_id",
    "type",
    "severity",
    "confidence_score",
    "summary",
    "why",
    "legal_context",
    "rule_id",
    "model_version",
    "feature_flag",
    "created_at",
    "decision",
    "decision_reason",
    "decision_actor_user_id",
    "decision_created_at",
)


@dataclass
class InsightReadResult:
    """Outcome of a dashboard read; ``available`` is False when AI is off or unprovisioned."""

    available: bool
    insights: List[AIInsight] = field(default_factory=list)
    reason: Optional[str] = None


class InsightService:
    """Persists explainable insights and records the decisions humans take on them."""

    def __init__(
        self,
        session: Session,
        audit_service: Optional[AuditService] = None,
        schema_guard: Optional[SchemaGuard] = None,
        settings: Optional[AppSettings] = None,
    ) -> None:
        self._session = session
        self._audit = audit_service or AuditService(session)
        self._schema_guard = schema_guard or get_schema_guard()
        self._settings = settings or get_settings()
        self._logger = logging.getLogger("gobd_core.services.insights")

    def generate_insights_for_company(
        self,
        company_id: int,
        snapshot: AutomationSnapshot,
        *,
        vat_rates: Optional[Mapping[str, float]] = None,
        check_documents: bool = False,
    ) -> List[AIInsight]:
        """Run the invoice rules over a snapshot and persist one insight per finding.

        Duplicate and outlier checks always run. VAT checks run when expected
        rates are given, keyed by country with an optional ``default``; the
        missing-document check runs when ``check_documents`` is set.
        """

        self._require_schema()
        self._require_ai_enabled(company_id)

        model_version = self._settings.ai_model_version
        insights: List[AIInsight] = []
        for invoice in snapshot.invoices:
            outcomes = [detect_invoice_anomaly(invoice, snapshot.invoices)]
            if vat_rates:
                outcomes.append(detect_vat_risk(invoice, vat_rates))
            if check_documents:
                outcomes.append(detect_missing_document(invoice))

            for outcome in outcomes:
                if outcome is not None:
                    insights.append(self._persist_outcome(company_id, invoice.id, outcome, model_version))

        risk = compliance_risk_score(insights)
        self._logger.info(
            "insights_generated",
            extra={
                "company_id": company_id,
                "count": len(insights),
                "compliance_risk": risk.label,
                "model_version": model_version,
            },
        )
        return insights

    def _persist_outcome(self, company_id: int, entity_id: str, outcome: RuleOutcome, model_version: str) -> AIInsight:
        explainability = outcome.explainability
        insight = AIInsight(
            company_id=company_id,
            entity_type="invoice",
            entity_id=entity_id,
            type=outcome.type,
            severity="medium",
            confidence_score=explainability.confidence,
            summary=explainability.why,
            why=explainability.why,
            legal_context=explainability.legal_context,
            evidence=list(explainability.data_points),
            rule_id=explainability.rule_or_model,
            model_version=model_version,
            feature_flag=self._settings.ai_feature_flag,
            disclaimer=self._settings.ai_disclaimer,
        )
        self._session.add(insight)
        self._session.flush()

        self._audit.record(
            action="AI_SUGGEST",
            resource_type="AIInsight",
            resource_id=insight.id,
            actor=Actor.ai(model_version),
            company_id=company_id,
            event_class=EventClass.AI_GOVERNANCE,
            reason=f"{outcome.label or outcome.type} detected on invoice {entity_id}",
            new_values=enforce_purpose_limitation(
                {"insight_id": str(insight.id), **self._insight_row(insight)},
                INSIGHT_AUDIT_FIELDS,
            ),
        )
        return insight

    def list_insights(self, company_id: int) -> List[AIInsight]:
        self._require_schema()
        stmt = (
            select(AIInsight)
            .where(AIInsight.company_id == company_id)
            .options(selectinload(AIInsight.decisions))
            .order_by(AIInsight.created_at.desc())
        )
        return list(self._session.scalars(stmt))

    def list_insights_for_client(self, company_id: int) -> InsightReadResult:
        try:
            self._require_schema()
            self._require_ai_enabled(company_id)
        except FeatureUnavailableError as exc:
            self._logger.warning(
                "insights_unavailable",
                extra={"company_id": company_id, "error_code": exc.error_code, "error": str(exc)},
            )
            return InsightReadResult(available=False, reason=str(exc))
        return InsightReadResult(available=True, insights=self.list_insights(company_id))

    def export_insights(self, company_id: int, format: str = "json") -> Union[List[Dict[str, Any]], str]:
        """Export insights with their latest decision; empty when AI is unavailable."""

        if format not in ("json", "csv"):
            raise ValidationError(f"Unsupported export format: {format}")

        result = self.list_insights_for_client(company_id)
        if format == "json":
            return [
                {**self._insight_row(insight), "decisions": [self._decision_row(d) for d in insight.decisions]}
                for insight in result.insights
            ]

        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=INSIGHT_EXPORT_COLUMNS, lineterminator="\n")
        writer.writeheader()
        for insight in result.insights:
            writer.writerow(self._csv_row(insight))
        return buffer.getvalue()

    def decide_insight(
        self,
        company_id: int,
        insight_id: Union[UUID, str],
        actor_user: ActorUser,
        decision: Optional[str],
        reason: Optional[str] = None,
    ) -> AIInsightDecision:
        """Record a human decision on an insight.

        Checks run in a fixed order so callers always see the same error for
        the same input: shape, reason, viewer role, schema, insight lookup,
        override role, then the company AI switch.
        """

        if decision not in ALLOWED_DECISIONS:
            raise InvalidDecisionError("Invalid decision")
        if ApprovalState(decision) in REASON_REQUIRED and not (reason and reason.strip()):
            raise InvalidDecisionError("Reason required")
        if actor_user.role == "viewer":
            raise PermissionDeniedError("Forbidden")
        self._require_schema()

        insight = self._find_insight(company_id, insight_id)
        if insight is None:
            raise NotFoundError("Insight not found")
        if decision == DecisionType.OVERRIDDEN.value and actor_user.role != "admin":
            raise PermissionDeniedError("Only admins can override AI insights")
        self._require_ai_enabled(company_id)

        record = AIInsightDecision(
            insight_id=insight.id,
            company_id=company_id,
            actor_user_id=actor_user.id,
            decision=DecisionType(decision),
            reason=reason,
        )
        self._session.add(record)
        self._session.flush()

        new_values: Dict[str, Any] = {
            "insight_id": str(insight.id),
            "decision": decision,
            "model_version": insight.model_version,
        }
        if reason:
            new_values["reason"] = reason
        self._audit.record(
            action=f"USER_{decision.upper()}",
            resource_type="AIInsight",
            resource_id=insight.id,
            actor=Actor.user(actor_user.id),
            company_id=company_id,
            event_class=EventClass.AI_GOVERNANCE,
            reason=reason or f"Insight {decision}",
            new_values=new_values,
        )
        self._logger.info(
            "insight_decided",
            extra={
                "company_id": company_id,
                "insight_id": str(insight.id),
                "decision": decision,
                "actor_user_id": actor_user.id,
            },
        )
        return record

    def _require_schema(self) -> None:
        if not self._schema_guard.ai_schema_available():
            raise FeatureUnavailableError.schema_unavailable()

    def _require_ai_enabled(self, company_id: int) -> None:
        company = self._session.get(Company, company_id)
        if company is None or not company.ai_enabled:
            raise FeatureUnavailableError.ai_disabled()

    def _find_insight(self, company_id: int, insight_id: Union[UUID, str]) -> Optional[AIInsight]:
        if not isinstance(insight_id, UUID):
            try:
                insight_id = UUID(str(insight_id))
            except ValueError:
                return None
        stmt = select(AIInsight).where(AIInsight.id == insight_id, AIInsight.company_id == company_id)
        return self._session.scalars(stmt).first()

    @staticmethod
    def _insight_row(insight: AIInsight) -> Dict[str, Any]:
        return {
            "id": str(insight.id),
            "company_id": insight.company_id,
            "entity_type": insight.entity_type,
            "entity_id": insight.entity_id,
            "type": insight.type,
            "severity": insight.severity,
            "confidence_score": insight.confidence_score,
            "summary": insight.summary,
            "why": insight.why,
            "legal_context": insight.legal_context,
            "evidence": normalize_json_value(insight.evidence),
            "rule_id": insight.rule_id,
            "model_version": insight.model_version,
            "feature_flag": insight.feature_flag,
            "disclaimer": insight.disclaimer,
            "created_at": insight.created_at.isoformat() if insight.created_at else None,
        }

    @staticmethod
    def _decision_row(decision: AIInsightDecision) -> Dict[str, Any]:
        return {
            "id": str(decision.id),
            "decision": decision.decision.value,
            "reason": decision.reason,
            "actor_user_id": decision.actor_user_id,
            "created_at": decision.created_at.isoformat(),
        }

    def _csv_row(self, insight: AIInsight) -> Dict[str, Any]:
        row = self._insight_row(insight)
        latest = insight.decisions[0] if insight.decisions else None
        values: Dict[str, Any] = {column: row.get(column) for column in INSIGHT_EXPORT_COLUMNS}
        values.update(
            decision=latest.decision.value if latest else None,
            decision_reason=latest.reason if latest else None,
            decision_actor_user_id=latest.actor_user_id if latest else None,
            decision_created_at=latest.created_at.isoformat() if latest else None,
        )
        return {
            key: "" if value is None else str(value).replace("\n", " ")
            for key, value in values.items()
        }
