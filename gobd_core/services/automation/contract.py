"""Explainability contract for automation suggestions."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from gobd_core.services.errors import SuggestionContractError

REQUIRED_SUGGESTION_FIELDS = (
    "id",
    "type",
    "severity",
    "confidence",
    "title",
    "explanation",
    "evidence",
    "related_entities",
    "recommended_next_step",
    "requires_human_approval",
)


def validate_automation_suggestion(suggestion: Mapping[str, Any] | BaseModel | None) -> None:
    """Raise SuggestionContractError naming the first missing field."""

    if suggestion is None:
        raise SuggestionContractError("Suggestion missing")
    if isinstance(suggestion, BaseModel):
        suggestion = suggestion.model_dump()

    for field in REQUIRED_SUGGESTION_FIELDS:
        if suggestion.get(field) is None:
            raise SuggestionContractError(f"Suggestion missing required field: {field}")

    if suggestion["requires_human_approval"] is not True:
        raise SuggestionContractError("requires_human_approval must be true")
