"""Turns detector findings into advisory suggestions."""

from __future__ import annotations

import uuid

from gobd_core.schemas.automation import AutomationFinding, AutomationSuggestion


def build_suggestion_from_finding(finding: AutomationFinding) -> AutomationSuggestion:
    return AutomationSuggestion(
        id=finding.id or str(uuid.uuid4()),
        type=finding.type,
        severity=finding.severity,
        confidence=finding.confidence,
        title=finding.title,
        explanation=finding.explanation,
        evidence=[item.model_copy() for item in finding.evidence],
        related_entities=[entity.model_copy() for entity in finding.related_entities],
        recommended_next_step=f"Review the {finding.type} finding and take appropriate action.",
        requires_human_approval=True,
    )
