"""Deterministic, explainable insight rules.

Every rule returns ``None`` when nothing is wrong, or a :class:`RuleOutcome`
whose explainability block names the data used, the rule that fired and the
legal norm behind it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from gobd_core.schemas.automation import InvoiceSnapshot

UNCATEGORIZED = "Uncategorized"


@dataclass(frozen=True)
class Explainability:
    why: str
    data_points: List[str]
    rule_or_model: str
    confidence: float
    legal_context: str


@dataclass(frozen=True)
class RuleOutcome:
    type: str
    explainability: Explainability
    label: Optional[str] = None


def build_explainability(
    *,
    why: str,
    data_points: Sequence[str],
    rule_or_model: str,
    confidence: float,
    legal_context: str,
) -> Explainability:
    return Explainability(
        why=why,
        data_points=list(data_points),
        rule_or_model=rule_or_model,
        confidence=confidence,
        legal_context=legal_context,
    )


def suggest_expense_category(expense: Mapping[str, object], rules: Mapping[str, str]) -> RuleOutcome:
    vendor = expense.get("vendor")
    category = rules.get(str(vendor), UNCATEGORIZED) if vendor is not None else UNCATEGORIZED
    return RuleOutcome(
        type="expense_categorization",
        label=category,
        explainability=build_explainability(
            why=f"Vendor matched rule: {vendor}",
            data_points=["vendor", "amount", "date"],
            rule_or_model="ExpenseCategoryRuleV1",
            confidence=0.9 if category != UNCATEGORIZED else 0.5,
            legal_context="GoBD §146, §147; HGB §238",
        ),
    )


def detect_invoice_anomaly(invoice: InvoiceSnapshot, all_invoices: Sequence[InvoiceSnapshot]) -> Optional[RuleOutcome]:
    """Flag duplicate invoice numbers first, then amount outliers (|z| > 3)."""

    if invoice.invoice_number is not None:
        duplicate = next(
            (
                other
                for other in all_invoices
                if other.invoice_number == invoice.invoice_number and other.id != invoice.id
            ),
            None,
        )
        if duplicate is not None:
            return RuleOutcome(
                type="invoice_anomaly",
                label="duplicate",
                explainability=build_explainability(
                    why=f"Duplicate invoice number: {invoice.invoice_number}",
                    data_points=["invoice_number", "date", "amount"],
                    rule_or_model="InvoiceDuplicateRuleV1",
                    confidence=1.0,
                    legal_context="GoBD §146",
                ),
            )

    amounts = [other.amount for other in all_invoices if other.amount is not None]
    if invoice.amount is None or not amounts:
        return None
    mean = sum(amounts) / len(amounts)
    std = math.sqrt(sum((amount - mean) ** 2 for amount in amounts) / len(amounts))
    if std > 0 and abs(invoice.amount - mean) / std > 3:
        return RuleOutcome(
            type="invoice_anomaly",
            label="outlier",
            explainability=build_explainability(
                why=f"Invoice amount {invoice.amount} is a statistical outlier (z > 3).",
                data_points=["amount", "date"],
                rule_or_model="InvoiceOutlierRuleV1",
                confidence=0.8,
                legal_context="GoBD §146",
            ),
        )
    return None


def detect_vat_risk(invoice: InvoiceSnapshot, vat_rates: Mapping[str, float]) -> Optional[RuleOutcome]:
    expected = vat_rates.get(invoice.country or "", vat_rates.get("default"))
    if invoice.vat_rate != expected:
        return RuleOutcome(
            type="vat_risk",
            label="rate_mismatch",
            explainability=build_explainability(
                why=f"VAT rate {invoice.vat_rate} does not match expected {expected} for {invoice.country}.",
                data_points=["vat_rate", "country", "amount"],
                rule_or_model="VATRiskRuleV1",
                confidence=0.95,
                legal_context="UStG §14, §15",
            ),
        )

    if None in (invoice.net, invoice.vat, invoice.gross):
        return None
    if abs(invoice.vat + invoice.net - invoice.gross) > 0.01:
        return RuleOutcome(
            type="vat_risk",
            label="rounding",
            explainability=build_explainability(
                why="VAT calculation rounding risk detected.",
                data_points=["net", "vat", "gross"],
                rule_or_model="VATRoundingRuleV1",
                confidence=0.7,
                legal_context="UStG §14",
            ),
        )
    return None


def detect_missing_document(entity: InvoiceSnapshot) -> Optional[RuleOutcome]:
    if entity.attachment_id:
        return None
    return RuleOutcome(
        type="missing_document",
        explainability=build_explainability(
            why="No supporting document attached.",
            data_points=["id", "date", "amount"],
            rule_or_model="MissingDocumentRuleV1",
            confidence=0.99,
            legal_context="GoBD §146, §147",
        ),
    )


def compliance_risk_score(anomalies: Sequence[object]) -> RuleOutcome:
    count = len(anomalies)
    if count > 15:
        score, confidence = "HIGH", 0.95
    elif count > 5:
        score, confidence = "MEDIUM", 0.8
    else:
        score, confidence = "LOW", 0.6
    return RuleOutcome(
        type="compliance_risk",
        label=score,
        explainability=build_explainability(
            why=f"Detected {count} anomalies in recent period.",
            data_points=["anomaly_count"],
            rule_or_model="ComplianceRiskScoreV1",
            confidence=confidence,
            legal_context="GoBD §146, §147; HGB §238",
        ),
    )
