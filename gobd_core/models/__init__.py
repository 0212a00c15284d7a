"""SQLAlchemy ORM models for the governance core."""

from gobd_core.models.base import Base  # noqa: F401
from gobd_core.models.company import Company  # noqa: F401
from gobd_core.models.audit_log import AuditLog  # noqa: F401
from gobd_core.models.ai_insight import AIInsight, AIInsightDecision, DecisionType  # noqa: F401
