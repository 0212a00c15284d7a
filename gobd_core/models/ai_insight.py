"""Explainable AI insights and the human decisions attached to them."""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Any, List, Optional

from sqlalchemy import Enum as SqlEnum
from sqlalchemy import Float, ForeignKey, Index, Integer, String, Text, event
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gobd_core.models.base import Base, CreatedAtMixin
from gobd_core.models.types import GUID, JSONType
from gobd_core.services.errors import ImmutabilityViolation


class DecisionType(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    OVERRIDDEN = "overridden"


class AIInsight(CreatedAtMixin, Base):
    """Detector output persisted for review; never mutated after creation."""

    __tablename__ = "ai_insights"
    __table_args__ = (
        Index("ix_ai_insights_company_created", "company_id", "created_at"),
        Index("ix_ai_insights_entity", "entity_type", "entity_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    company_id: Mapped[int] = mapped_column(Integer, ForeignKey("companies.id"), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(length=64), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(length=128), nullable=False)
    type: Mapped[str] = mapped_column(String(length=64), nullable=False)
    severity: Mapped[str] = mapped_column(String(length=16), nullable=False)
    confidence_score: Mapped[float] = mapped_column(Float, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    why: Mapped[str] = mapped_column(Text, nullable=False)
    legal_context: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    evidence: Mapped[Any] = mapped_column(JSONType, default=list, nullable=False)
    rule_id: Mapped[str] = mapped_column(String(length=120), nullable=False)
    model_version: Mapped[str] = mapped_column(String(length=64), nullable=False)
    feature_flag: Mapped[str] = mapped_column(String(length=64), nullable=False)
    disclaimer: Mapped[str] = mapped_column(String(length=255), nullable=False)

    decisions: Mapped[List["AIInsightDecision"]] = relationship(
        "AIInsightDecision",
        back_populates="insight",
        order_by=lambda: AIInsightDecision.created_at.desc(),
    )


class AIInsightDecision(CreatedAtMixin, Base):
    """A human accept/reject/override decision; one row per decision call."""

    __tablename__ = "ai_insight_decisions"
    __table_args__ = (
        Index("ix_ai_insight_decisions_company_created", "company_id", "created_at"),
        Index("ix_ai_insight_decisions_insight", "insight_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    insight_id: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("ai_insights.id"), nullable=False)
    company_id: Mapped[int] = mapped_column(Integer, ForeignKey("companies.id"), nullable=False)
    actor_user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    decision: Mapped[DecisionType] = mapped_column(
        SqlEnum(
            DecisionType,
            name="ai_insight_decision",
            native_enum=False,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    insight: Mapped["AIInsight"] = relationship("AIInsight", back_populates="decisions")


@event.listens_for(AIInsight, "before_update")
def _reject_insight_update(mapper, connection, target: AIInsight) -> None:  # noqa: ANN001
    raise ImmutabilityViolation(f"AI insight {target.id} is immutable; record a decision instead")


@event.listens_for(AIInsightDecision, "before_update")
def _reject_decision_update(mapper, connection, target: AIInsightDecision) -> None:  # noqa: ANN001
    raise ImmutabilityViolation(f"AI insight decision {target.id} is append-only")
