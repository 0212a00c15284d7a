"""Flags invoices that share number, amount and client."""

from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from gobd_core.schemas.automation import AutomationFinding, EvidenceItem, InvoiceSnapshot, RelatedEntity

DuplicateKey = Tuple[str, float, str]


def _summary(invoice: InvoiceSnapshot) -> str:
    return f"Invoice #{invoice.invoice_number}, {invoice.amount}, {invoice.client_name}"


def detect_duplicate_invoices(invoices: Sequence[InvoiceSnapshot] | None) -> List[AutomationFinding]:
    """Emit one finding per repeat occurrence, each pointing at the first-seen invoice."""

    if not invoices:
        return []

    findings: List[AutomationFinding] = []
    first_seen: Dict[DuplicateKey, InvoiceSnapshot] = {}
    for invoice in invoices:
        if not invoice.invoice_number or invoice.amount is None or not invoice.client_name:
            continue
        key = (invoice.invoice_number, invoice.amount, invoice.client_name)
        original = first_seen.get(key)
        if original is None:
            first_seen[key] = invoice
            continue

        findings.append(
            AutomationFinding(
                id=f"dup-{invoice.id}",
                type="duplicate_invoice",
                severity="medium",
                confidence=0.87,
                title="Potential duplicate invoice",
                explanation=(
                    f"Invoice #{invoice.invoice_number} for {invoice.amount} and client "
                    f"{invoice.client_name} appears more than once."
                ),
                evidence=[
                    EvidenceItem(id=invoice.id, type="invoice", summary=_summary(invoice)),
                    EvidenceItem(id=original.id, type="invoice", summary=_summary(original)),
                ],
                related_entities=[
                    RelatedEntity(entity_type="Invoice", entity_id=invoice.id),
                    RelatedEntity(entity_type="Invoice", entity_id=original.id),
                ],
            )
        )
    return findings
