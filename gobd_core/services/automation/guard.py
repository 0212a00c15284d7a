"""Gates that keep automation read-only.

Run in order before any detector result is surfaced: read-only method,
then mutation intent, then suggestion shape.
"""

from __future__ import annotations

from typing import Any, Optional

from gobd_core.services.automation.contract import validate_automation_suggestion
from gobd_core.services.errors import MutationIntentDetectedError, NonReadOnlyMethodError

MUTATION_KEYWORDS = (
    "apply",
    "update",
    "change",
    "delete",
    "remove",
    "create",
    "edit",
    "execute",
    "trigger",
    "write",
    "save",
    "submit",
)


def assert_read_only_context(method: Optional[str] = None) -> None:
    if method and method.upper() != "GET":
        raise NonReadOnlyMethodError("Only GET/read-only methods are allowed.")


def assert_no_mutation_intent(text: Optional[str]) -> None:
    if not text:
        return
    lowered = text.lower()
    if any(keyword in lowered for keyword in MUTATION_KEYWORDS):
        raise MutationIntentDetectedError("Mutation intent detected in prompt. Read-only context required.")


def assert_suggestion_valid(suggestion: Any) -> None:
    validate_automation_suggestion(suggestion)
