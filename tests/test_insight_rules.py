from __future__ import annotations

import pytest

from gobd_core.schemas.automation import InvoiceSnapshot
from gobd_core.services.insight_rules import (
    build_explainability,
    compliance_risk_score,
    detect_invoice_anomaly,
    detect_missing_document,
    detect_vat_risk,
    suggest_expense_category,
)

VAT_RATES = {"DE": 0.19, "AT": 0.2, "default": 0.19}


def _invoice(invoice_id, number, amount, **extra) -> InvoiceSnapshot:
    return InvoiceSnapshot(id=invoice_id, invoice_number=number, amount=amount, **extra)


def test_build_explainability_copies_data_points() -> None:
    data_points = ["amount"]
    explainability = build_explainability(
        why="because",
        data_points=data_points,
        rule_or_model="RuleV1",
        confidence=0.5,
        legal_context="GoBD §146",
    )
    data_points.append("date")
    assert explainability.data_points == ["amount"]


def test_expense_category_from_vendor_rule() -> None:
    matched = suggest_expense_category({"vendor": "Deutsche Bahn", "amount": 89.9}, {"Deutsche Bahn": "Reisekosten"})
    assert matched.label == "Reisekosten"
    assert matched.explainability.confidence == 0.9

    unmatched = suggest_expense_category({"vendor": "Kiosk"}, {"Deutsche Bahn": "Reisekosten"})
    assert unmatched.label == "Uncategorized"
    assert unmatched.explainability.confidence == 0.5
    assert unmatched.explainability.legal_context == "GoBD §146, §147; HGB §238"


def test_duplicate_number_is_certain_anomaly() -> None:
    invoices = [_invoice(1, "R-1", 100.0), _invoice(2, "R-1", 250.0)]
    outcome = detect_invoice_anomaly(invoices[0], invoices)
    assert outcome.label == "duplicate"
    assert outcome.explainability.confidence == 1.0
    assert outcome.explainability.rule_or_model == "InvoiceDuplicateRuleV1"


def test_amount_outlier_detected() -> None:
    invoices = [_invoice(index, f"R-{index}", 100.0) for index in range(1, 11)]
    invoices.append(_invoice(11, "R-11", 10000.0))

    outcome = detect_invoice_anomaly(invoices[-1], invoices)

    assert outcome.label == "outlier"
    assert outcome.explainability.confidence == 0.8
    assert detect_invoice_anomaly(invoices[0], invoices) is None


def test_no_anomaly_for_uniform_invoices() -> None:
    invoices = [_invoice(1, "R-1", 100.0), _invoice(2, "R-2", 100.0)]
    assert detect_invoice_anomaly(invoices[0], invoices) is None
    unnumbered = [_invoice(1, None, 100.0), _invoice(2, None, 100.0)]
    assert detect_invoice_anomaly(unnumbered[0], unnumbered) is None


def test_vat_rate_mismatch() -> None:
    outcome = detect_vat_risk(_invoice(1, "R-1", 119.0, country="DE", vat_rate=0.07), VAT_RATES)
    assert outcome.label == "rate_mismatch"
    assert outcome.explainability.confidence == 0.95
    assert outcome.explainability.legal_context == "UStG §14, §15"


def test_vat_rounding_risk() -> None:
    invoice = _invoice(1, "R-1", 119.0, country="DE", vat_rate=0.19, net=100.0, vat=19.0, gross=119.5)
    outcome = detect_vat_risk(invoice, VAT_RATES)
    assert outcome.label == "rounding"
    assert outcome.explainability.confidence == 0.7


def test_vat_clean_invoice_and_default_rate() -> None:
    clean = _invoice(1, "R-1", 119.0, country="DE", vat_rate=0.19, net=100.0, vat=19.0, gross=119.0)
    assert detect_vat_risk(clean, VAT_RATES) is None
    foreign = _invoice(2, "R-2", 119.0, country="FR", vat_rate=0.19)
    assert detect_vat_risk(foreign, VAT_RATES) is None


def test_missing_document() -> None:
    outcome = detect_missing_document(_invoice(1, "R-1", 10.0))
    assert outcome.type == "missing_document"
    assert outcome.explainability.confidence == 0.99
    assert detect_missing_document(_invoice(2, "R-2", 10.0, attachment_id="doc-9")) is None


@pytest.mark.parametrize(
    ("count", "score", "confidence"),
    [(0, "LOW", 0.6), (5, "LOW", 0.6), (6, "MEDIUM", 0.8), (15, "MEDIUM", 0.8), (16, "HIGH", 0.95)],
)
def test_compliance_risk_bands(count, score, confidence) -> None:
    outcome = compliance_risk_score([object()] * count)
    assert outcome.label == score
    assert outcome.explainability.confidence == confidence
