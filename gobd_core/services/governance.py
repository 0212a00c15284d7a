"""GDPR/GoBD helpers applied to everything that flows into or out of the AI layer."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any, Dict, Iterable, Optional

AI_RESPONSE_DISCLAIMER = (
    "AI suggestions are advisory only. No data is changed without explicit user approval. "
    "All actions are logged. GDPR/GoBD enforced."
)

# Order matters: identifiers with long digit runs go before phone numbers.
_REDACTIONS = (
    (re.compile(r"\b[A-Z]{2}\d{2}[A-Z0-9]{11,30}\b"), "[REDACTED_IBAN]"),
    (re.compile(r"\bDE\d{9,11}\b"), "[REDACTED_TAXID]"),
    (re.compile(r"(?<!\+)\b\d{11,13}\b"), "[REDACTED_TAXID]"),
    (re.compile(r"\b(?:\d[ -]*?){13,19}\b"), "[REDACTED_CREDITCARD]"),
    (re.compile(r"(?<![A-Z0-9])\+?\d[\d\s().-]{6,}\d\b"), "[REDACTED_PHONE]"),
    (re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"), "[REDACTED_EMAIL]"),
    (re.compile(r"\b[A-Za-zäöüÄÖÜß\s]{3,}\s\d{1,4}[a-zA-Z]?\b"), "[REDACTED_ADDRESS]"),
)


def redact_pii(text: Any) -> Any:
    """Redact IBANs, tax ids, card numbers, phones, emails and street addresses."""

    if not isinstance(text, str):
        return text
    for pattern, replacement in _REDACTIONS:
        text = pattern.sub(replacement, text)
    return text


def enforce_purpose_limitation(ai_input: Mapping[str, Any], allowed_fields: Iterable[str]) -> Dict[str, Any]:
    """Keep only the fields needed for the stated purpose."""

    return {field: ai_input[field] for field in allowed_fields if field in ai_input}


def shape_ai_response(
    ai_output: Mapping[str, Any],
    *,
    request_id: Optional[str],
    policy_version: Optional[str],
    model_version: Optional[str],
) -> Dict[str, Any]:
    return {
        **ai_output,
        "disclaimer": AI_RESPONSE_DISCLAIMER,
        "request_id": request_id,
        "policy_version": policy_version,
        "model_version": model_version,
        "read_only": True,
    }
