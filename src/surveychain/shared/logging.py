"""
Structured JSON logging.

Every record is one JSON object carrying the ``extra=`` fields passed at the
call site (``survey_id``, ``tx_hash`` and so on) and, inside a workflow run,
the run's correlation id.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

from surveychain.config import get_settings

# Set by the submission and authoring workflows for the length of one run
correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# Chatty client libraries used by the web3 adapter
NOISY_LOGGERS = ("web3", "urllib3", "aiohttp", "asyncio")

_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class StructuredFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = correlation_id_var.get()
        if correlation_id:
            payload["correlation_id"] = correlation_id

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRIBUTES:
                continue
            # Never let a call-site field shadow the envelope.
            payload[f"extra_{key}" if key in payload else key] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """Get a module logger writing JSON to stdout.

    Args:
        name: Logger name (typically __name__).
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)

    logger.setLevel(_level(get_settings().log_level))
    return logger


def setup_logging(level: str | None = None) -> logging.Logger:
    """Route the root logger through the JSON formatter.

    For applications embedding the library. Third-party client loggers are
    held at WARNING.

    Returns:
        The configured root logger.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(_level(level or get_settings().log_level))
    root_logger.handlers = [handler]

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger
