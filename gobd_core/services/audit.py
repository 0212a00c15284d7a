"""Append-only, hash-chained audit log service."""

from __future__ import annotations

import csv
import hashlib
import io
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gobd_core.models.audit_log import AuditLog
from gobd_core.schemas.audit import Actor, AuditEntryCreate, EventClass, EventStatus, ScopeType
from gobd_core.services.errors import AuditChainConflictError, ValidationError
from gobd_core.services.system_context import assert_system_context

HASH_VERSION = 1

EXPORT_COLUMNS = (
    "id",
    "action",
    "resource_type",
    "resource_id",
    "actor_type",
    "actor_id",
    "company_id",
    "timestamp",
    "hash",
    "previous_hash",
    "reason",
)


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return str(value)


def normalize_json_value(value: Any) -> Any:
    """Reduce a snapshot to plain JSON types so it hashes the same after a reload."""

    if value is None:
        return None
    return json.loads(json.dumps(value, default=_json_default))


def _utc_isoformat(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def canonicalize_audit_entry_payload(
    *,
    sequence: int,
    hash_version: int,
    action: str,
    resource_type: str,
    resource_id: Optional[str],
    actor_type: str,
    actor_id: Optional[int],
    company_id: Optional[int],
    old_values: Any,
    new_values: Any,
    reason: str,
    status: str,
    timestamp: datetime,
    previous_hash: Optional[str],
) -> str:
    payload = {
        "sequence": sequence,
        "hash_version": hash_version,
        "action": action,
        "resource_type": resource_type,
        "resource_id": resource_id,
        "actor_type": actor_type,
        "actor_id": actor_id,
        "company_id": company_id,
        "old_values": old_values,
        "new_values": new_values,
        "reason": reason,
        "status": status,
        "timestamp": _utc_isoformat(timestamp),
        "previous_hash": previous_hash,
    }
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)


def compute_audit_entry_hash(canonical_payload: str) -> str:
    return hashlib.sha256(canonical_payload.encode("utf-8")).hexdigest()


def hash_for_entry(entry: AuditLog, *, previous_hash: Optional[str]) -> str:
    """Recompute the hash a stored entry should carry given its predecessor."""

    payload = canonicalize_audit_entry_payload(
        sequence=entry.sequence,
        hash_version=entry.hash_version,
        action=entry.action,
        resource_type=entry.resource_type,
        resource_id=entry.resource_id,
        actor_type=entry.actor_type,
        actor_id=entry.actor_id,
        company_id=entry.company_id,
        old_values=entry.old_values,
        new_values=entry.new_values,
        reason=entry.reason,
        status=entry.status,
        timestamp=entry.timestamp,
        previous_hash=previous_hash,
    )
    return compute_audit_entry_hash(payload)


def _is_sequence_conflict(exc: IntegrityError) -> bool:
    """True when the unique chain position was taken, as reported by SQLite or PostgreSQL."""

    message = str(exc.orig)
    return "ix_audit_logs_sequence" in message or "audit_logs.sequence" in message


class AuditService:
    """Appends entries to the audit chain and mirrors them to structured logs.

    The chain is the only shared mutable state in the core. Entries are only
    ever added through :meth:`append`; corrections are new compensating
    entries, never edits.
    """

    def __init__(self, session: Session) -> None:
        self._session = session
        self._logger = logging.getLogger("gobd_core.audit")

    def append(self, entry: AuditEntryCreate, *, context: Optional[Dict[str, Any]] = None) -> AuditLog:
        """Validate, hash and persist an entry at the tail of the chain."""

        assert_system_context(context if context is not None else entry.system_context())

        previous_sequence, previous_hash = self._lock_chain_tip()
        next_sequence = previous_sequence + 1
        old_values = normalize_json_value(entry.old_values)
        new_values = normalize_json_value(entry.new_values)

        entry_hash = compute_audit_entry_hash(
            canonicalize_audit_entry_payload(
                sequence=next_sequence,
                hash_version=HASH_VERSION,
                action=entry.action,
                resource_type=entry.resource_type,
                resource_id=entry.resource_id,
                actor_type=entry.actor.type.value,
                actor_id=entry.actor.user_id,
                company_id=entry.company_id,
                old_values=old_values,
                new_values=new_values,
                reason=entry.reason,
                status=entry.status.value,
                timestamp=entry.timestamp,
                previous_hash=previous_hash,
            )
        )

        audit_entry = AuditLog(
            sequence=next_sequence,
            action=entry.action,
            resource_type=entry.resource_type,
            resource_id=entry.resource_id,
            actor_type=entry.actor.type.value,
            actor_id=entry.actor.user_id,
            actor_model_version=entry.actor.model_version,
            company_id=entry.company_id,
            event_class=entry.event_class.value,
            status=entry.status.value,
            reason=entry.reason,
            old_values=old_values,
            new_values=new_values,
            request_id=entry.request_id,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            timestamp=entry.timestamp,
            hash_version=HASH_VERSION,
            hash=entry_hash,
            previous_hash=previous_hash,
            immutable=True,
        )

        self._session.add(audit_entry)
        try:
            self._session.flush()
        except IntegrityError as exc:
            if not _is_sequence_conflict(exc):
                raise
            self._session.rollback()
            raise AuditChainConflictError(
                f"Audit chain position {next_sequence} was claimed by a concurrent writer"
            ) from exc

        self._logger.info(
            "audit_event",
            extra={
                "sequence": next_sequence,
                "entry_hash": entry_hash,
                "previous_hash": previous_hash,
                "action": entry.action,
                "resource_type": entry.resource_type,
                "resource_id": entry.resource_id,
                "actor_type": entry.actor.type.value,
                "company_id": entry.company_id,
                "status": entry.status.value,
                "request_id": entry.request_id,
            },
        )
        return audit_entry

    def record(
        self,
        *,
        action: str,
        resource_type: str,
        actor: Actor,
        event_class: EventClass,
        reason: str,
        resource_id: Any = None,
        company_id: Optional[int] = None,
        status: EventStatus = EventStatus.SUCCESS,
        scope_type: Optional[ScopeType] = None,
        old_values: Any = None,
        new_values: Any = None,
        request_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditLog:
        return self.append(
            AuditEntryCreate(
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                actor=actor,
                company_id=company_id,
                scope_type=scope_type,
                event_class=event_class,
                status=status,
                reason=reason,
                old_values=old_values,
                new_values=new_values,
                request_id=request_id,
                ip_address=ip_address,
                user_agent=user_agent,
            )
        )

    def validate_chain(self) -> bool:
        """Return True when every stored entry still matches its recomputed hash."""

        from gobd_core.services.audit_verifier import AuditVerificationError, AuditVerifier

        try:
            AuditVerifier(self._session).verify()
        except AuditVerificationError as exc:
            self._logger.warning("audit_chain_invalid", extra={"error": str(exc)})
            return False
        return True

    def list_entries(
        self,
        *,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        company_id: Optional[int] = None,
    ) -> List[AuditLog]:
        stmt = select(AuditLog).order_by(AuditLog.sequence.asc())
        if date_from is not None:
            stmt = stmt.where(AuditLog.timestamp >= date_from)
        if date_to is not None:
            stmt = stmt.where(AuditLog.timestamp <= date_to)
        if company_id is not None:
            stmt = stmt.where(AuditLog.company_id == company_id)
        return list(self._session.scalars(stmt))

    def export_logs(
        self,
        *,
        format: str = "json",
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        company_id: Optional[int] = None,
    ) -> List[Dict[str, Any]] | str:
        """Export entries in chain order as JSON-ready dicts or a CSV document."""

        if format not in ("json", "csv"):
            raise ValidationError(f"Unsupported export format: {format}")

        entries = self.list_entries(date_from=date_from, date_to=date_to, company_id=company_id)
        rows = [self._export_row(entry) for entry in entries]
        if format == "json":
            return rows

        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS, extrasaction="ignore", lineterminator="\n")
        writer.writeheader()
        for row in rows:
            writer.writerow({key: "" if row[key] is None else row[key] for key in EXPORT_COLUMNS})
        return buffer.getvalue()

    def _lock_chain_tip(self) -> tuple[int, Optional[str]]:
        stmt = select(AuditLog.sequence, AuditLog.hash).order_by(AuditLog.sequence.desc()).limit(1)
        dialect_name = self._session.get_bind().dialect.name
        if dialect_name != "sqlite":
            stmt = stmt.with_for_update(nowait=False)
        result = self._session.execute(stmt).first()
        if result is None:
            return 0, None
        sequence, entry_hash = result
        return int(sequence), str(entry_hash)

    @staticmethod
    def _export_row(entry: AuditLog) -> Dict[str, Any]:
        return {
            "id": str(entry.id),
            "sequence": entry.sequence,
            "action": entry.action,
            "resource_type": entry.resource_type,
            "resource_id": entry.resource_id,
            "actor_type": entry.actor_type,
            "actor_id": entry.actor_id,
            "actor_model_version": entry.actor_model_version,
            "company_id": entry.company_id,
            "event_class": entry.event_class,
            "status": entry.status,
            "reason": entry.reason,
            "old_values": entry.old_values,
            "new_values": entry.new_values,
            "request_id": entry.request_id,
            "timestamp": _utc_isoformat(entry.timestamp),
            "hash": entry.hash,
            "previous_hash": entry.previous_hash,
        }
