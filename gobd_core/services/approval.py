"""Human-in-the-loop approval states for AI insights."""

from __future__ import annotations

from enum import Enum
from typing import Iterable

from gobd_core.models.ai_insight import AIInsightDecision


class ApprovalState(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    OVERRIDDEN = "overridden"


REASON_REQUIRED = frozenset({ApprovalState.REJECTED, ApprovalState.OVERRIDDEN})


def current_state(decisions: Iterable[AIInsightDecision]) -> ApprovalState:
    """Latest decision wins; an insight nobody decided on is pending."""

    latest = max(decisions, key=lambda decision: decision.created_at, default=None)
    if latest is None:
        return ApprovalState.PENDING
    return ApprovalState(getattr(latest.decision, "value", latest.decision))
