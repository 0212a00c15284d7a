"""Error taxonomy shared by the governance services.

Every error carries the HTTP status the API layer renders it with, so route
handlers never translate exceptions by hand.
"""

from __future__ import annotations


class GovernanceError(Exception):
    """Base class for all governance core errors."""

    status_code: int = 500
    error_code: str = "GOVERNANCE_ERROR"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class ValidationError(GovernanceError):
    """Malformed input. Never retried, never silently fixed."""

    status_code = 400
    error_code = "BAD_REQUEST"


class SystemContextError(ValidationError):
    """Raised when a SystemContext is missing required audit metadata."""

    error_code = "INVALID_SYSTEM_CONTEXT"


class SuggestionContractError(ValidationError):
    """Raised when an automation suggestion violates the explainability contract."""

    error_code = "INVALID_SUGGESTION"


class InvalidDecisionError(ValidationError):
    """Raised for unknown decisions or decisions missing a mandatory reason."""

    error_code = "INVALID_DECISION"


class MutationIntentDetectedError(GovernanceError):
    """Raised when an automation prompt asks for a write."""

    status_code = 400
    error_code = "MUTATION_INTENT_DETECTED"


class NonReadOnlyMethodError(GovernanceError):
    """Raised when automation is invoked from a non-GET context."""

    status_code = 405
    error_code = "METHOD_NOT_ALLOWED"


class PermissionDeniedError(GovernanceError):
    status_code = 403
    error_code = "FORBIDDEN"


class NotFoundError(GovernanceError):
    status_code = 404
    error_code = "NOT_FOUND"


class FeatureUnavailableError(GovernanceError):
    """AI disabled for the company (501) or AI schema not provisioned (503)."""

    status_code = 501
    error_code = "NOT_IMPLEMENTED"

    @classmethod
    def ai_disabled(cls) -> "FeatureUnavailableError":
        return cls("AI disabled", status_code=501)

    @classmethod
    def schema_unavailable(cls) -> "FeatureUnavailableError":
        error = cls("AI schema unavailable", status_code=503)
        error.error_code = "SCHEMA_UNAVAILABLE"
        return error


class AuditChainConflictError(GovernanceError):
    """Raised when a concurrent writer claimed the same chain position."""

    status_code = 409
    error_code = "AUDIT_CHAIN_CONFLICT"


class ImmutabilityViolation(GovernanceError):
    """Raised on any attempt to alter a committed audit record.

    Indicates a programming error upstream; never recovered from.
    """

    status_code = 500
    error_code = "IMMUTABILITY_VIOLATION"
