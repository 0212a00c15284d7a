"""Utilities for verifying the audit log hash chain."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from gobd_core.models.audit_log import AuditLog
from gobd_core.services.audit import hash_for_entry


class AuditVerificationError(RuntimeError):
    """Raised when audit chain verification fails."""


@dataclass
class VerificationResult:
    """Result metadata returned after verification."""

    checked: int
    start_sequence: int
    end_sequence: int


class AuditVerifier:
    """Recomputes audit hashes to detect tampering, gaps or reordering."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def verify(
        self,
        *,
        start_sequence: int | None = None,
        end_sequence: int | None = None,
    ) -> VerificationResult:
        query = select(AuditLog).order_by(AuditLog.sequence.asc())
        if start_sequence is not None:
            query = query.where(AuditLog.sequence >= start_sequence)
        if end_sequence is not None:
            query = query.where(AuditLog.sequence <= end_sequence)

        entries = list(self._session.execute(query).scalars())
        if not entries:
            return VerificationResult(checked=0, start_sequence=start_sequence or 0, end_sequence=end_sequence or 0)

        previous_hash: str | None = None
        previous_sequence = 0

        if start_sequence and start_sequence > 1:
            previous_entry = self._session.scalar(
                select(AuditLog).where(AuditLog.sequence == start_sequence - 1)
            )
            if not previous_entry:
                raise AuditVerificationError(f"Missing audit entry for sequence {start_sequence - 1}")
            previous_hash = previous_entry.hash
            previous_sequence = start_sequence - 1

        checked = 0
        for entry in entries:
            expected = previous_sequence + 1
            if entry.sequence != expected:
                raise AuditVerificationError(
                    f"Sequence gap detected. Expected {expected}, found {entry.sequence}"
                )

            if not entry.immutable:
                raise AuditVerificationError(f"Entry at sequence {entry.sequence} lost its immutable flag")

            expected_hash = hash_for_entry(entry, previous_hash=previous_hash)
            if entry.previous_hash != previous_hash or entry.hash != expected_hash:
                raise AuditVerificationError(
                    f"Hash mismatch at sequence {entry.sequence}: expected {expected_hash}, stored {entry.hash}"
                )

            previous_hash = entry.hash
            previous_sequence = entry.sequence
            checked += 1

        return VerificationResult(
            checked=checked,
            start_sequence=entries[0].sequence,
            end_sequence=entries[-1].sequence,
        )
