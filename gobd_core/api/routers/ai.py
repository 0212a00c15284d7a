"""AI insight, decision and automation endpoints."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from gobd_core.api.dependencies import (
    SnapshotProvider,
    get_actor_user,
    get_ai_audit_logger,
    get_automation_engine,
    get_db_session,
    get_insight_service,
    get_request_id,
    get_snapshot_provider,
)
from gobd_core.core.config import get_settings
from gobd_core.models.ai_insight import AIInsight, AIInsightDecision
from gobd_core.schemas.insight import (
    ActorUser,
    DecisionRequest,
    DecisionResponse,
    GenerateInsightsRequest,
    InsightListResponse,
    InsightResponse,
)
from gobd_core.services.ai_audit import AIAuditLogger
from gobd_core.services.automation.engine import AutomationEngine
from gobd_core.services.errors import (
    MutationIntentDetectedError,
    NonReadOnlyMethodError,
    PermissionDeniedError,
    SuggestionContractError,
)
from gobd_core.services.governance import shape_ai_response
from gobd_core.services.insights import InsightService

router = APIRouter()

GENERATE_ROLES = frozenset({"admin", "accountant"})


@router.get("/insights", response_model=InsightListResponse)
def list_insights(
    actor: ActorUser = Depends(get_actor_user),
    service: InsightService = Depends(get_insight_service),
) -> InsightListResponse:
    result = service.list_insights_for_client(actor.company_id)
    return InsightListResponse(
        available=result.available,
        reason=result.reason,
        insights=[_to_insight_response(insight) for insight in result.insights],
    )


@router.post(
    "/insights/generate",
    response_model=List[InsightResponse],
    status_code=status.HTTP_201_CREATED,
)
def generate_insights(
    payload: GenerateInsightsRequest,
    actor: ActorUser = Depends(get_actor_user),
    service: InsightService = Depends(get_insight_service),
) -> List[InsightResponse]:
    if actor.role not in GENERATE_ROLES:
        raise PermissionDeniedError("Forbidden")
    insights = service.generate_insights_for_company(
        actor.company_id,
        payload,
        vat_rates=payload.vat_rates,
        check_documents=payload.check_documents,
    )
    return [_to_insight_response(insight) for insight in insights]


@router.post(
    "/insights/{insight_id}/decisions",
    response_model=DecisionResponse,
    status_code=status.HTTP_201_CREATED,
)
def decide_insight(
    insight_id: str,
    payload: DecisionRequest,
    actor: ActorUser = Depends(get_actor_user),
    service: InsightService = Depends(get_insight_service),
) -> DecisionResponse:
    record = service.decide_insight(actor.company_id, insight_id, actor, payload.decision, payload.reason)
    return _to_decision_response(record)


@router.get("/exports/insights.json")
def export_insights_json(
    actor: ActorUser = Depends(get_actor_user),
    service: InsightService = Depends(get_insight_service),
) -> JSONResponse:
    return JSONResponse(content=service.export_insights(actor.company_id, format="json"))


@router.get("/exports/insights.csv")
def export_insights_csv(
    actor: ActorUser = Depends(get_actor_user),
    service: InsightService = Depends(get_insight_service),
) -> Response:
    return Response(
        content=service.export_insights(actor.company_id, format="csv"),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="ai-insights.csv"'},
    )


@router.api_route("/automation/suggestions", methods=["GET", "POST"])
def automation_suggestions(
    request: Request,
    prompt: Optional[str] = Query(default=None, max_length=2000),
    actor: ActorUser = Depends(get_actor_user),
    request_id: str = Depends(get_request_id),
    snapshot_provider: SnapshotProvider = Depends(get_snapshot_provider),
    engine: AutomationEngine = Depends(get_automation_engine),
    ai_audit: AIAuditLogger = Depends(get_ai_audit_logger),
    session: Session = Depends(get_db_session),
) -> Dict[str, Any]:
    settings = get_settings()
    route = request.url.path
    ai_audit.log_requested(
        user_id=actor.id,
        company_id=actor.company_id,
        request_id=request_id,
        route=route,
        prompt=prompt,
        query_type="automation_suggestions",
    )

    snapshot = snapshot_provider(actor.company_id, prompt)
    try:
        suggestions = engine.run_automation(
            user_id=actor.id,
            company_id=actor.company_id,
            snapshot=snapshot,
            method=request.method,
            request_id=request_id,
        )
    except (MutationIntentDetectedError, NonReadOnlyMethodError, SuggestionContractError) as exc:
        ai_audit.log_rejected(
            user_id=actor.id,
            company_id=actor.company_id,
            request_id=request_id,
            route=route,
            reason=str(exc),
            prompt=prompt,
            query_type="automation_suggestions",
        )
        # Rejections stay on the chain even though the request fails.
        session.commit()
        raise

    ai_audit.log_responded(
        user_id=actor.id,
        company_id=actor.company_id,
        request_id=request_id,
        route=route,
        prompt=prompt,
        query_type="automation_suggestions",
        meta={"policy_version": settings.ai_policy_version, "model_version": settings.ai_model_version},
    )
    return shape_ai_response(
        {"suggestions": [suggestion.model_dump(mode="json") for suggestion in suggestions]},
        request_id=request_id,
        policy_version=settings.ai_policy_version,
        model_version=settings.ai_model_version,
    )


def _to_decision_response(decision: AIInsightDecision) -> DecisionResponse:
    return DecisionResponse(
        id=decision.id,
        insight_id=decision.insight_id,
        company_id=decision.company_id,
        actor_user_id=decision.actor_user_id,
        decision=decision.decision.value,
        reason=decision.reason,
        created_at=decision.created_at,
    )


def _to_insight_response(insight: AIInsight) -> InsightResponse:
    return InsightResponse(
        id=insight.id,
        company_id=insight.company_id,
        entity_type=insight.entity_type,
        entity_id=insight.entity_id,
        type=insight.type,
        severity=insight.severity,
        confidence_score=insight.confidence_score,
        summary=insight.summary,
        why=insight.why,
        legal_context=insight.legal_context,
        evidence=insight.evidence,
        rule_id=insight.rule_id,
        model_version=insight.model_version,
        feature_flag=insight.feature_flag,
        disclaimer=insight.disclaimer,
        created_at=insight.created_at,
        decisions=[_to_decision_response(decision) for decision in insight.decisions],
    )
