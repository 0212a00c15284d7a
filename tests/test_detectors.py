from __future__ import annotations

from gobd_core.schemas.automation import (
    AutomationSnapshot,
    BankTransactionSnapshot,
    InvoicePaymentSnapshot,
    InvoiceSnapshot,
)
from gobd_core.services.automation.detectors import (
    detect_cash_flow_risk,
    detect_duplicate_invoices,
    detect_unmatched_bank_transactions,
)
from gobd_core.services.automation.engine import run_detectors


def _invoice(invoice_id, number="R-100", amount=500.0, client="Bäckerei Schmidt", status="open") -> InvoiceSnapshot:
    return InvoiceSnapshot(
        id=invoice_id,
        invoice_number=number,
        amount=amount,
        client_name=client,
        status=status,
    )


def test_two_identical_invoices_produce_one_finding() -> None:
    findings = detect_duplicate_invoices([_invoice(1), _invoice(2)])

    assert len(findings) == 1
    finding = findings[0]
    assert finding.id == "dup-2"
    assert finding.severity == "medium"
    assert finding.confidence == 0.87
    assert {entity.entity_id for entity in finding.related_entities} == {"1", "2"}
    assert {item.id for item in finding.evidence} == {"1", "2"}


def test_three_identical_invoices_flag_each_repeat_against_first() -> None:
    findings = detect_duplicate_invoices([_invoice(1), _invoice(2), _invoice(3)])

    assert [finding.id for finding in findings] == ["dup-2", "dup-3"]
    for finding in findings:
        assert finding.related_entities[1].entity_id == "1"


def test_duplicates_need_number_amount_and_client() -> None:
    invoices = [
        _invoice(1, number=None),
        _invoice(2, number=None),
        _invoice(3, amount=None),
        _invoice(4, amount=None),
        _invoice(5, client=""),
        _invoice(6, client=""),
        _invoice(7, amount=501.0),
    ]
    assert detect_duplicate_invoices(invoices) == []
    assert detect_duplicate_invoices([]) == []
    assert detect_duplicate_invoices(None) == []


def test_unmatched_bank_transactions() -> None:
    transactions = [
        BankTransactionSnapshot(id=10, amount=120.0),
        BankTransactionSnapshot(id=11, amount=80.0),
        BankTransactionSnapshot(id=None, amount=5.0),
    ]
    payments = [InvoicePaymentSnapshot(id=1, invoice_id=1, bank_transaction_id=10)]

    findings = detect_unmatched_bank_transactions(transactions, payments)

    assert [finding.id for finding in findings] == ["unmatched-tx-11"]
    assert findings[0].severity == "medium"
    assert findings[0].confidence == 0.8
    assert findings[0].related_entities[0].entity_type == "BankTransaction"
    assert detect_unmatched_bank_transactions(None, None) == []


def test_cash_flow_risk_high_when_receivables_exceed_balance() -> None:
    invoices = [_invoice(1, amount=700.0), _invoice(2, amount=500.0), _invoice(3, amount=999.0, status="paid")]

    findings = detect_cash_flow_risk(invoices, 1000, company_id=1)

    assert len(findings) == 1
    assert findings[0].id == "cashflow-risk-1"
    assert findings[0].severity == "high"
    assert findings[0].confidence == 0.95


def test_cash_flow_risk_low_with_healthy_balance() -> None:
    invoices = [_invoice(1, amount=700.0), _invoice(2, amount=500.0)]

    findings = detect_cash_flow_risk(invoices, 3000, company_id=1)

    assert len(findings) == 1
    assert findings[0].severity == "low"
    assert findings[0].confidence == 0.6


def test_cash_flow_risk_medium_band() -> None:
    findings = detect_cash_flow_risk([_invoice(1, amount=600.0)], 1000, company_id=1)
    assert findings[0].severity == "medium"
    assert findings[0].confidence == 0.8


def test_cash_flow_risk_evidence_capped_at_three() -> None:
    invoices = [_invoice(index, number=f"R-{index}", amount=100.0) for index in range(1, 6)]

    finding = detect_cash_flow_risk(invoices, 50, company_id=1)[0]

    assert [item.id for item in finding.evidence] == ["1", "2", "3"]


def test_cash_flow_risk_skipped_without_balance_or_dues() -> None:
    assert detect_cash_flow_risk([_invoice(1)], None) == []
    assert detect_cash_flow_risk([_invoice(1, status="paid")], 100) == []
    assert detect_cash_flow_risk(None, 100) == []


def test_run_detectors_is_pure() -> None:
    snapshot = AutomationSnapshot(
        company_id=1,
        invoices=[_invoice(1), _invoice(2)],
        bank_transactions=[BankTransactionSnapshot(id=10, amount=1000.0)],
        bank_balance=100.0,
    )
    before = snapshot.model_dump()

    first = run_detectors(snapshot)
    second = run_detectors(snapshot)

    assert snapshot.model_dump() == before
    assert [finding.model_dump() for finding in first] == [finding.model_dump() for finding in second]
    assert [finding.type for finding in first] == [
        "duplicate_invoice",
        "unmatched_bank_transaction",
        "cash_flow_risk",
    ]
