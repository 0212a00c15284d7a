"""Flags bank transactions no invoice payment points at."""

from __future__ import annotations

from typing import List, Sequence

from gobd_core.schemas.automation import (
    AutomationFinding,
    BankTransactionSnapshot,
    EvidenceItem,
    InvoicePaymentSnapshot,
    RelatedEntity,
)


def detect_unmatched_bank_transactions(
    bank_transactions: Sequence[BankTransactionSnapshot] | None,
    invoice_payments: Sequence[InvoicePaymentSnapshot] | None,
) -> List[AutomationFinding]:
    matched_ids = {payment.bank_transaction_id for payment in invoice_payments or []}
    findings: List[AutomationFinding] = []

    for transaction in bank_transactions or []:
        if not transaction.id or transaction.id in matched_ids:
            continue
        findings.append(
            AutomationFinding(
                id=f"unmatched-tx-{transaction.id}",
                type="unmatched_bank_transaction",
                severity="medium",
                confidence=0.8,
                title="Unmatched bank transaction",
                explanation=f"Bank transaction {transaction.id} is not linked to any invoice/payment.",
                evidence=[
                    EvidenceItem(
                        id=transaction.id,
                        type="bank_transaction",
                        summary=f"Bank TX #{transaction.id}, amount: {transaction.amount}",
                    )
                ],
                related_entities=[RelatedEntity(entity_type="BankTransaction", entity_id=transaction.id)],
            )
        )
    return findings
