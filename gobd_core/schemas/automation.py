"""Automation snapshots, findings and suggestions."""

from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

Severity = Literal["low", "medium", "high"]


def _to_str(value: Any) -> Any:
    if value is None or isinstance(value, str):
        return value
    return str(value)


class InvoiceSnapshot(BaseModel):
    id: str
    invoice_number: Optional[str] = None
    amount: Optional[float] = None
    client_name: Optional[str] = None
    status: Optional[str] = None
    date: Optional[str] = None
    country: Optional[str] = None
    vat_rate: Optional[float] = None
    net: Optional[float] = None
    vat: Optional[float] = None
    gross: Optional[float] = None
    attachment_id: Optional[str] = None

    @field_validator("id", "invoice_number", "date", "attachment_id", mode="before")
    @classmethod
    def coerce_identifiers(cls, value: Any) -> Any:
        return _to_str(value)


class BankTransactionSnapshot(BaseModel):
    id: Optional[str] = None
    amount: Optional[float] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_identifiers(cls, value: Any) -> Any:
        return _to_str(value)


class InvoicePaymentSnapshot(BaseModel):
    id: Optional[str] = None
    invoice_id: Optional[str] = None
    bank_transaction_id: Optional[str] = None

    @field_validator("id", "invoice_id", "bank_transaction_id", mode="before")
    @classmethod
    def coerce_identifiers(cls, value: Any) -> Any:
        return _to_str(value)


class AutomationSnapshot(BaseModel):
    """Read-only data handed to the detectors. Detectors never fetch on their own."""

    company_id: Optional[int] = None
    prompt: Optional[str] = None
    invoices: List[InvoiceSnapshot] = Field(default_factory=list)
    bank_transactions: List[BankTransactionSnapshot] = Field(default_factory=list)
    invoice_payments: List[InvoicePaymentSnapshot] = Field(default_factory=list)
    bank_balance: Optional[float] = None


class EvidenceItem(BaseModel):
    """Non-PII pointer to a record supporting a finding."""

    id: str
    type: str
    summary: str


class RelatedEntity(BaseModel):
    entity_type: str
    entity_id: str


class AutomationFinding(BaseModel):
    """Raw detector output."""

    id: Optional[str] = None
    type: str
    severity: Severity
    confidence: float = Field(..., ge=0, le=1)
    title: str
    explanation: str
    evidence: List[EvidenceItem] = Field(default_factory=list)
    related_entities: List[RelatedEntity] = Field(default_factory=list)


class AutomationSuggestion(BaseModel):
    """User-facing, advisory-only suggestion awaiting human approval."""

    id: str
    type: str
    severity: Severity
    confidence: float = Field(..., ge=0, le=1)
    title: str
    explanation: str
    evidence: List[EvidenceItem]
    related_entities: List[RelatedEntity]
    recommended_next_step: str
    requires_human_approval: bool
