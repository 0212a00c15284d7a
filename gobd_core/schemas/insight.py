"""AI insight API schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from gobd_core.schemas.automation import AutomationSnapshot


class ActorUser(BaseModel):
    """Already-authenticated user handed in by the HTTP layer."""

    id: int
    company_id: int
    role: str


class DecisionRequest(BaseModel):
    decision: Optional[str] = None
    reason: Optional[str] = None


class DecisionResponse(BaseModel):
    id: UUID
    insight_id: UUID
    company_id: int
    actor_user_id: int
    decision: str
    reason: Optional[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InsightResponse(BaseModel):
    id: UUID
    company_id: int
    entity_type: str
    entity_id: str
    type: str
    severity: str
    confidence_score: float
    summary: str
    why: str
    legal_context: Optional[str]
    evidence: Any
    rule_id: str
    model_version: str
    feature_flag: str
    disclaimer: str
    created_at: datetime
    decisions: List[DecisionResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class InsightListResponse(BaseModel):
    available: bool
    reason: Optional[str] = None
    insights: List[InsightResponse] = Field(default_factory=list)


class GenerateInsightsRequest(AutomationSnapshot):
    """Snapshot to run the insight rules against."""

    vat_rates: Dict[str, float] = Field(default_factory=dict)
    check_documents: bool = False
