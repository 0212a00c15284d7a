"""Append-only, hash-chained audit log entries."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Index, Integer, String, Text, event
from sqlalchemy.orm import Mapped, mapped_column

from gobd_core.models.base import Base, CreatedAtMixin
from gobd_core.models.types import GUID, JSONType, UTCDateTime
from gobd_core.services.errors import ImmutabilityViolation


class AuditLog(CreatedAtMixin, Base):
    """Immutable audit log entry; each row commits to its predecessor's hash."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_sequence", "sequence", unique=True),
        Index("ix_audit_logs_company_timestamp", "company_id", "timestamp"),
        Index("ix_audit_logs_resource", "resource_type", "resource_id"),
        Index("ix_audit_logs_action", "action"),
        CheckConstraint("immutable", name="ck_audit_logs_immutable"),
    )

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    sequence: Mapped[int] = mapped_column(BigInteger, nullable=False)
    action: Mapped[str] = mapped_column(String(length=120), nullable=False)
    resource_type: Mapped[str] = mapped_column(String(length=64), nullable=False)
    resource_id: Mapped[Optional[str]] = mapped_column(String(length=128), nullable=True)

    actor_type: Mapped[str] = mapped_column(String(length=16), nullable=False)
    actor_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    actor_model_version: Mapped[Optional[str]] = mapped_column(String(length=64), nullable=True)
    company_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    event_class: Mapped[str] = mapped_column(String(length=32), nullable=False)
    status: Mapped[str] = mapped_column(String(length=16), nullable=False, default="SUCCESS")
    reason: Mapped[str] = mapped_column(Text, nullable=False)

    old_values: Mapped[Optional[Any]] = mapped_column(JSONType, nullable=True)
    new_values: Mapped[Optional[Any]] = mapped_column(JSONType, nullable=True)

    request_id: Mapped[Optional[str]] = mapped_column(String(length=128), nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(length=64), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(length=512), nullable=True)

    timestamp: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    hash_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    hash: Mapped[str] = mapped_column(String(length=64), nullable=False)
    previous_hash: Mapped[Optional[str]] = mapped_column(String(length=64), nullable=True)
    immutable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


@event.listens_for(AuditLog, "before_update")
def _reject_audit_update(mapper, connection, target: AuditLog) -> None:  # noqa: ANN001
    raise ImmutabilityViolation(f"Audit log entry {target.id} is immutable and cannot be updated")


@event.listens_for(AuditLog, "before_delete")
def _reject_audit_delete(mapper, connection, target: AuditLog) -> None:  # noqa: ANN001
    raise ImmutabilityViolation(f"Audit log entry {target.id} is immutable and cannot be deleted")
