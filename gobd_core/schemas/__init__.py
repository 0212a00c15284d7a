"""Pydantic schemas for service inputs and API payloads."""

from gobd_core.schemas.audit import (
    Actor,
    ActorType,
    AuditEntryCreate,
    EventClass,
    EventStatus,
    ScopeType,
)
from gobd_core.schemas.automation import (
    AutomationFinding,
    AutomationSnapshot,
    AutomationSuggestion,
    EvidenceItem,
    RelatedEntity,
)
from gobd_core.schemas.insight import (
    ActorUser,
    DecisionRequest,
    DecisionResponse,
    GenerateInsightsRequest,
    InsightListResponse,
    InsightResponse,
)

__all__ = [
    "Actor",
    "ActorType",
    "ActorUser",
    "AuditEntryCreate",
    "AutomationFinding",
    "AutomationSnapshot",
    "AutomationSuggestion",
    "DecisionRequest",
    "DecisionResponse",
    "EventClass",
    "EventStatus",
    "EvidenceItem",
    "GenerateInsightsRequest",
    "InsightListResponse",
    "InsightResponse",
    "RelatedEntity",
    "ScopeType",
]
