"""Compares unpaid receivables against the bank balance."""

from __future__ import annotations

from typing import List, Optional, Sequence

from gobd_core.schemas.automation import AutomationFinding, EvidenceItem, InvoiceSnapshot, RelatedEntity

EVIDENCE_LIMIT = 3
CONFIDENCE_BY_RISK = {"high": 0.95, "medium": 0.8, "low": 0.6}


def _risk_level(total_due: float, bank_balance: float) -> str:
    if total_due > bank_balance:
        return "high"
    if total_due > bank_balance * 0.5:
        return "medium"
    return "low"


def detect_cash_flow_risk(
    invoices: Sequence[InvoiceSnapshot] | None,
    bank_balance: Optional[float],
    *,
    company_id: Optional[int] = None,
) -> List[AutomationFinding]:
    if invoices is None or bank_balance is None:
        return []

    unpaid = [invoice for invoice in invoices if invoice.status != "paid"]
    total_due = sum(invoice.amount or 0 for invoice in unpaid)
    if total_due == 0:
        return []

    risk_level = _risk_level(total_due, bank_balance)
    sample = unpaid[:EVIDENCE_LIMIT]
    return [
        AutomationFinding(
            id=f"cashflow-risk-{company_id}",
            type="cash_flow_risk",
            severity=risk_level,
            confidence=CONFIDENCE_BY_RISK[risk_level],
            title="Cash flow risk detected",
            explanation=(
                f"Unpaid invoices total {total_due}, bank balance is {bank_balance}. "
                f"Risk level: {risk_level}."
            ),
            evidence=[
                EvidenceItem(
                    id=invoice.id,
                    type="invoice",
                    summary=f"Invoice #{invoice.invoice_number}, amount: {invoice.amount}",
                )
                for invoice in sample
            ],
            related_entities=[RelatedEntity(entity_type="Invoice", entity_id=invoice.id) for invoice in sample],
        )
    ]
