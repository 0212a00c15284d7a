from __future__ import annotations

import csv
import io
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from gobd_core.core.database import session_scope
from gobd_core.models import AIInsight, AIInsightDecision, AuditLog, Company
from gobd_core.schemas.automation import AutomationSnapshot, InvoiceSnapshot
from gobd_core.schemas.insight import ActorUser
from gobd_core.services.approval import ApprovalState, current_state
from gobd_core.services.audit import AuditService
from gobd_core.services.errors import (
    FeatureUnavailableError,
    InvalidDecisionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from gobd_core.services.insights import INSIGHT_EXPORT_COLUMNS, InsightService
from gobd_core.services.schema_guard import SchemaGuard

COMPANY_ID = 1

ADMIN = ActorUser(id=1, company_id=COMPANY_ID, role="admin")
ACCOUNTANT = ActorUser(id=2, company_id=COMPANY_ID, role="accountant")
VIEWER = ActorUser(id=3, company_id=COMPANY_ID, role="viewer")


def _missing_schema() -> SchemaGuard:
    guard = MagicMock(spec=SchemaGuard)
    guard.ai_schema_available.return_value = False
    return guard


def _snapshot() -> AutomationSnapshot:
    return AutomationSnapshot(
        company_id=COMPANY_ID,
        invoices=[
            InvoiceSnapshot(id=1, invoice_number="R-2024-001", amount=100.0, client_name="Kunde A"),
            InvoiceSnapshot(id=2, invoice_number="R-2024-001", amount=100.0, client_name="Kunde A"),
            InvoiceSnapshot(id=3, invoice_number="R-2024-002", amount=120.0, client_name="Kunde B"),
        ],
    )


def _create_insight(session: Session, company_id: int = COMPANY_ID) -> AIInsight:
    insight = AIInsight(
        company_id=company_id,
        entity_type="invoice",
        entity_id="1",
        type="invoice_anomaly",
        severity="medium",
        confidence_score=1.0,
        summary="Duplicate invoice number: R-2024-001",
        why="Duplicate invoice number: R-2024-001",
        legal_context="GoBD §146",
        evidence=["invoice_number", "date", "amount"],
        rule_id="InvoiceDuplicateRuleV1",
        model_version="v1",
        feature_flag="default",
        disclaimer="Suggestion only - not binding",
    )
    session.add(insight)
    session.flush()
    return insight


def test_generate_insights_persists_and_audits(company) -> None:
    with session_scope() as session:
        insights = InsightService(session).generate_insights_for_company(COMPANY_ID, _snapshot())
        assert [insight.entity_id for insight in insights] == ["1", "2"]
        assert all(insight.confidence_score == 1.0 for insight in insights)
        assert insights[0].rule_id == "InvoiceDuplicateRuleV1"
        assert insights[0].disclaimer == "Suggestion only - not binding"

    with session_scope() as session:
        entries = session.execute(select(AuditLog).order_by(AuditLog.sequence)).scalars().all()
        assert [entry.action for entry in entries] == ["AI_SUGGEST", "AI_SUGGEST"]
        assert entries[0].actor_type == "AI"
        assert entries[0].actor_id is None
        assert entries[0].actor_model_version == "v1"
        assert entries[0].event_class == "AI_GOVERNANCE"
        assert set(entries[0].new_values) <= {
            "insight_id",
            "entity_type",
            "entity_id",
            "type",
            "severity",
            "confidence_score",
            "rule_id",
            "model_version",
            "feature_flag",
        }
        assert "summary" not in entries[0].new_values
        assert AuditService(session).validate_chain() is True


def test_generate_does_not_mutate_snapshot(company) -> None:
    snapshot = _snapshot()
    before = snapshot.model_dump()
    with session_scope() as session:
        InsightService(session).generate_insights_for_company(COMPANY_ID, snapshot)
    assert snapshot.model_dump() == before


def test_generate_runs_vat_and_document_rules_on_request(company) -> None:
    snapshot = AutomationSnapshot(
        company_id=COMPANY_ID,
        invoices=[
            InvoiceSnapshot(id=10, invoice_number="R-10", amount=107.0, country="DE", vat_rate=7.0, attachment_id="doc-1"),
            InvoiceSnapshot(
                id=11,
                invoice_number="R-11",
                amount=119.0,
                country="DE",
                vat_rate=19.0,
                net=100.0,
                vat=19.0,
                gross=119.0,
            ),
        ],
    )

    with session_scope() as session:
        service = InsightService(session)
        assert service.generate_insights_for_company(COMPANY_ID, snapshot) == []
        insights = service.generate_insights_for_company(
            COMPANY_ID, snapshot, vat_rates={"DE": 19.0}, check_documents=True
        )
        assert [(insight.entity_id, insight.type) for insight in insights] == [
            ("10", "vat_risk"),
            ("11", "missing_document"),
        ]
        assert insights[0].rule_id == "VATRiskRuleV1"
        assert insights[0].legal_context == "UStG §14, §15"
        assert insights[1].rule_id == "MissingDocumentRuleV1"

    with session_scope() as session:
        entries = session.execute(select(AuditLog).order_by(AuditLog.sequence)).scalars().all()
        assert [entry.reason for entry in entries] == [
            "rate_mismatch detected on invoice 10",
            "missing_document detected on invoice 11",
        ]


def test_generate_requires_schema(company) -> None:
    with session_scope() as session:
        service = InsightService(session, schema_guard=_missing_schema())
        with pytest.raises(FeatureUnavailableError) as exc_info:
            service.generate_insights_for_company(COMPANY_ID, _snapshot())
    assert exc_info.value.status_code == 503
    assert exc_info.value.error_code == "SCHEMA_UNAVAILABLE"


def test_generate_requires_ai_enabled(ai_disabled_company) -> None:
    with session_scope() as session:
        with pytest.raises(FeatureUnavailableError) as exc_info:
            InsightService(session).generate_insights_for_company(COMPANY_ID, _snapshot())
    assert exc_info.value.status_code == 501


def test_generate_for_unknown_company_is_unavailable() -> None:
    with session_scope() as session:
        with pytest.raises(FeatureUnavailableError, match="AI disabled"):
            InsightService(session).generate_insights_for_company(99, _snapshot())


def test_list_insights_for_client_degrades_without_schema(company) -> None:
    with session_scope() as session:
        result = InsightService(session, schema_guard=_missing_schema()).list_insights_for_client(COMPANY_ID)
    assert result.available is False
    assert result.insights == []
    assert result.reason == "AI schema unavailable"


def test_list_insights_for_client_degrades_when_ai_disabled(ai_disabled_company) -> None:
    with session_scope() as session:
        result = InsightService(session).list_insights_for_client(COMPANY_ID)
    assert result.available is False
    assert result.reason == "AI disabled"


def test_strict_list_propagates_schema_errors() -> None:
    with session_scope() as session:
        with pytest.raises(FeatureUnavailableError):
            InsightService(session, schema_guard=_missing_schema()).list_insights(COMPANY_ID)


def test_list_insights_newest_first_with_decisions(company) -> None:
    with session_scope() as session:
        first = _create_insight(session)
        second = _create_insight(session)
        InsightService(session).decide_insight(COMPANY_ID, first.id, ADMIN, "accepted")
        first_id, second_id = first.id, second.id

    with session_scope() as session:
        result = InsightService(session).list_insights_for_client(COMPANY_ID)
        assert result.available is True
        assert [insight.id for insight in result.insights] == [second_id, first_id]
        assert [decision.decision.value for decision in result.insights[1].decisions] == ["accepted"]


def test_decide_insight_persists_decision_and_audit(company) -> None:
    with session_scope() as session:
        insight = _create_insight(session)
        decision = InsightService(session).decide_insight(
            COMPANY_ID, str(insight.id), ACCOUNTANT, "rejected", "Rechnung ist korrekt"
        )
        assert decision.actor_user_id == ACCOUNTANT.id
        assert decision.reason == "Rechnung ist korrekt"
        insight_id = insight.id

    with session_scope() as session:
        entry = session.execute(select(AuditLog)).scalar_one()
        assert entry.action == "USER_REJECTED"
        assert entry.resource_type == "AIInsight"
        assert entry.resource_id == str(insight_id)
        assert entry.actor_type == "USER"
        assert entry.actor_id == ACCOUNTANT.id
        assert entry.company_id == COMPANY_ID
        assert entry.new_values == {
            "insight_id": str(insight_id),
            "decision": "rejected",
            "model_version": "v1",
            "reason": "Rechnung ist korrekt",
        }


def test_decisions_append_and_latest_wins(company) -> None:
    with session_scope() as session:
        insight = _create_insight(session)
        service = InsightService(session)
        service.decide_insight(COMPANY_ID, insight.id, ACCOUNTANT, "accepted")
        service.decide_insight(COMPANY_ID, insight.id, ADMIN, "overridden", "Manuell korrigiert")
        insight_id = insight.id

    with session_scope() as session:
        decisions = session.execute(
            select(AIInsightDecision).where(AIInsightDecision.insight_id == insight_id)
        ).scalars().all()
        assert len(decisions) == 2
        assert current_state(decisions) is ApprovalState.OVERRIDDEN
        assert current_state([]) is ApprovalState.PENDING


def test_rejected_without_reason_fails_before_any_read() -> None:
    session = MagicMock(spec=Session)
    audit = MagicMock(spec=AuditService)
    guard = MagicMock(spec=SchemaGuard)
    service = InsightService(session, audit_service=audit, schema_guard=guard)

    with pytest.raises(InvalidDecisionError, match="Reason required"):
        service.decide_insight(COMPANY_ID, uuid4(), ACCOUNTANT, "rejected", None)

    assert session.mock_calls == []
    assert audit.mock_calls == []
    guard.ai_schema_available.assert_not_called()


@pytest.mark.parametrize(
    ("actor", "decision", "reason", "error", "status_code"),
    [
        (VIEWER, "approve", "x", InvalidDecisionError, 400),
        (VIEWER, "overridden", "  ", InvalidDecisionError, 400),
        (VIEWER, "accepted", None, PermissionDeniedError, 403),
    ],
)
def test_shape_checks_precede_everything(actor, decision, reason, error, status_code) -> None:
    with session_scope() as session:
        service = InsightService(session, schema_guard=_missing_schema())
        with pytest.raises(error) as exc_info:
            service.decide_insight(COMPANY_ID, uuid4(), actor, decision, reason)
    assert exc_info.value.status_code == status_code


def test_schema_check_precedes_insight_lookup() -> None:
    with session_scope() as session:
        service = InsightService(session, schema_guard=_missing_schema())
        with pytest.raises(FeatureUnavailableError) as exc_info:
            service.decide_insight(COMPANY_ID, uuid4(), ADMIN, "accepted")
    assert exc_info.value.status_code == 503


def test_missing_insight_precedes_ai_switch(ai_disabled_company) -> None:
    with session_scope() as session:
        with pytest.raises(NotFoundError):
            InsightService(session).decide_insight(COMPANY_ID, uuid4(), ADMIN, "accepted")
        with pytest.raises(NotFoundError):
            InsightService(session).decide_insight(COMPANY_ID, "not-a-uuid", ADMIN, "accepted")


def test_insight_of_other_company_is_not_found(company) -> None:
    with session_scope() as session:
        session.add(Company(id=2, name="Andere GmbH", ai_enabled=True))
        session.flush()
        foreign = _create_insight(session, company_id=2)
        with pytest.raises(NotFoundError):
            InsightService(session).decide_insight(COMPANY_ID, foreign.id, ADMIN, "accepted")


def test_only_admin_may_override_even_when_ai_disabled(ai_disabled_company) -> None:
    with session_scope() as session:
        insight = _create_insight(session)
        with pytest.raises(PermissionDeniedError):
            InsightService(session).decide_insight(COMPANY_ID, insight.id, ACCOUNTANT, "overridden", "Korrektur")


def test_ai_switch_checked_last(ai_disabled_company) -> None:
    with session_scope() as session:
        insight = _create_insight(session)
        with pytest.raises(FeatureUnavailableError) as exc_info:
            InsightService(session).decide_insight(COMPANY_ID, insight.id, ADMIN, "overridden", "Korrektur")
        assert exc_info.value.status_code == 501
        assert session.execute(select(AIInsightDecision)).first() is None
        assert session.execute(select(AuditLog)).first() is None


def test_export_insights_json_and_csv(company) -> None:
    with session_scope() as session:
        insight = _create_insight(session)
        InsightService(session).decide_insight(COMPANY_ID, insight.id, ADMIN, "rejected", "Kein Duplikat\nsiehe Beleg")

    with session_scope() as session:
        service = InsightService(session)
        rows = service.export_insights(COMPANY_ID, format="json")
        assert len(rows) == 1
        assert rows[0]["rule_id"] == "InvoiceDuplicateRuleV1"
        assert rows[0]["decisions"][0]["decision"] == "rejected"

        document = service.export_insights(COMPANY_ID, format="csv")
        reader = csv.DictReader(io.StringIO(document))
        assert tuple(reader.fieldnames) == INSIGHT_EXPORT_COLUMNS
        (row,) = list(reader)
        assert row["decision"] == "rejected"
        assert row["decision_reason"] == "Kein Duplikat siehe Beleg"
        assert row["decision_actor_user_id"] == str(ADMIN.id)


def test_export_insights_degrades_to_empty() -> None:
    with session_scope() as session:
        service = InsightService(session, schema_guard=_missing_schema())
        assert service.export_insights(COMPANY_ID, format="json") == []
        assert service.export_insights(COMPANY_ID, format="csv") == ",".join(INSIGHT_EXPORT_COLUMNS) + "\n"
        with pytest.raises(ValidationError):
            service.export_insights(COMPANY_ID, format="pdf")
