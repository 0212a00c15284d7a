#!/usr/bin/env python
"""Recompute the GoBD audit hash chain and report the first broken link."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from gobd_core.core.database import session_scope
from gobd_core.services.audit_verifier import AuditVerificationError, AuditVerifier

logger = logging.getLogger("gobd_core.scripts.verify_audit_chain")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Verify the audit log hash chain.")
    parser.add_argument("--start-sequence", type=int, default=None, help="First sequence to check (inclusive).")
    parser.add_argument("--end-sequence", type=int, default=None, help="Last sequence to check (inclusive).")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if (
        args.start_sequence is not None
        and args.end_sequence is not None
        and args.start_sequence > args.end_sequence
    ):
        logger.error("--start-sequence must not be greater than --end-sequence")
        return 2

    try:
        with session_scope() as session:
            result = AuditVerifier(session).verify(
                start_sequence=args.start_sequence,
                end_sequence=args.end_sequence,
            )
    except AuditVerificationError as exc:
        logger.error("Audit chain broken: %s", exc)
        return 1

    if result.checked == 0:
        logger.warning("No audit entries in the requested window")
        return 0

    logger.info(
        "Audit chain intact for sequences %s..%s (%s entries)",
        result.start_sequence,
        result.end_sequence,
        result.checked,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
