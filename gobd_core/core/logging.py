"""Structured logging configuration.

Log lines leave the process, so PII is redacted from messages and ``extra``
values before they are rendered.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from gobd_core.core.config import AppSettings

_STANDARD_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime"}

# Promoted to the top level of the JSON document when present.
_CORRELATION_KEYS = ("request_id", "company_id")

# Only these extras carry user-supplied prose; hashes and identifiers pass through untouched.
_FREE_TEXT_KEYS = frozenset({"error", "reason", "prompt", "detail"})


def _record_extra(record: logging.LogRecord) -> Dict[str, Any]:
    return {key: value for key, value in record.__dict__.items() if key not in _STANDARD_RECORD_ATTRS}


class PiiRedactionFilter(logging.Filter):
    """Scrubs IBANs, tax ids, card numbers, phones, emails and addresses from log records.

    The message and the free-text extras are redacted. Structured fields such as
    ``entry_hash`` or ``request_id`` are left alone so the log mirror of the
    audit chain stays comparable with the database.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        from gobd_core.services.governance import redact_pii

        record.msg = redact_pii(record.getMessage())
        record.args = None
        for key in _FREE_TEXT_KEYS:
            value = getattr(record, key, None)
            if isinstance(value, str):
                setattr(record, key, redact_pii(value))
        return True


class JsonFormatter(logging.Formatter):
    """One JSON document per line, correlation keys first."""

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        document: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
            "service": self.service_name,
        }

        extra = _record_extra(record)
        for key in _CORRELATION_KEYS:
            if key in extra:
                document[key] = extra.pop(key)
        if extra:
            document["extra"] = extra

        if record.exc_info:
            document["exception"] = self.formatException(record.exc_info)

        return json.dumps(document, default=str)


def configure_logging(settings: AppSettings) -> None:
    """Install a single stdout handler on the root logger and route uvicorn/fastapi through it."""

    handler = logging.StreamHandler(stream=sys.stdout)
    if settings.log_json:
        handler.setFormatter(JsonFormatter(settings.service_name))
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    if settings.log_redact_pii:
        handler.addFilter(PiiRedactionFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level, logging.INFO))
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for logger_name in ("uvicorn", "uvicorn.access", "uvicorn.error", "fastapi"):
        logger = logging.getLogger(logger_name)
        logger.handlers = []
        logger.propagate = True
