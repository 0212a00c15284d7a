"""SystemContext validation for GoBD-safe audit logging.

Every audit-relevant event carries a SystemContext describing who acted, in
which scope, and why. The checks run in a fixed order and the first failure
aborts the write; callers must not catch-and-ignore.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from gobd_core.services.errors import SystemContextError

VALID_ACTOR_TYPES = ("USER", "SYSTEM", "AI")
VALID_SCOPE_TYPES = ("COMPANY", "GLOBAL")
VALID_EVENT_CLASSES = ("ACCOUNTING", "SECURITY", "OPS", "AI_GOVERNANCE", "NOTIFICATION")
VALID_STATUS = ("SUCCESS", "DENIED")
TRACEABILITY_KEYS = ("request_id", "ip_address", "user_agent")


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def assert_system_context(ctx: Mapping[str, Any] | BaseModel | None) -> bool:
    """Return True for a valid context, raise SystemContextError otherwise."""

    if ctx is None:
        raise SystemContextError("SystemContext is required")
    if isinstance(ctx, BaseModel):
        ctx = ctx.model_dump()

    if _is_blank(ctx.get("reason")):
        raise SystemContextError("SystemContext.reason is required")
    if ctx.get("status") not in VALID_STATUS:
        raise SystemContextError(f"SystemContext.status must be one of: {', '.join(VALID_STATUS)}")
    if ctx.get("actor_type") not in VALID_ACTOR_TYPES:
        raise SystemContextError(f"SystemContext.actor_type must be one of: {', '.join(VALID_ACTOR_TYPES)}")
    if ctx.get("event_class") not in VALID_EVENT_CLASSES:
        raise SystemContextError(
            f"SystemContext.event_class must be one of: {', '.join(VALID_EVENT_CLASSES)}"
        )
    if ctx.get("scope_type") not in VALID_SCOPE_TYPES:
        raise SystemContextError(f"SystemContext.scope_type must be one of: {', '.join(VALID_SCOPE_TYPES)}")

    if ctx["event_class"] == "ACCOUNTING":
        if ctx["scope_type"] != "COMPANY":
            raise SystemContextError("ACCOUNTING events must have scope_type=COMPANY")
        if ctx.get("company_id") is None:
            raise SystemContextError("ACCOUNTING events must have company_id")

    if ctx["actor_type"] == "USER":
        if ctx.get("actor_id") is None:
            raise SystemContextError("USER actor_type must have actor_id")
        if ctx.get("company_id") is None:
            raise SystemContextError("USER actor_type must have company_id")

    for key in TRACEABILITY_KEYS:
        if key not in ctx:
            raise SystemContextError(f"SystemContext.{key} must exist (string or null)")

    if ctx["status"] == "DENIED" and _is_blank(ctx.get("reason")):
        raise SystemContextError("DENIED audit log must have a reason")

    return True
