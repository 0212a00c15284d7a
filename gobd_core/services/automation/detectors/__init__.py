"""Pure detectors over pre-fetched snapshots. No database access."""

from gobd_core.services.automation.detectors.cash_flow_risk import detect_cash_flow_risk  # noqa: F401
from gobd_core.services.automation.detectors.duplicate_invoice import detect_duplicate_invoices  # noqa: F401
from gobd_core.services.automation.detectors.unmatched_bank_transaction import (  # noqa: F401
    detect_unmatched_bank_transactions,
)
