"""
Central logging configuration for AgentMarket.

Provides:
- JSON records in production, one-line human-readable records in development
- Correlation fields carried in contextvars: the request id (set by the web
  middleware) and the identity id (set by the session context)

Usage:
    from agentmarket.logging_config import get_logger
    logger = get_logger(__name__)
    logger.info("Seller application submitted", extra={"identity_id": identity.id})
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
identity_id_var: ContextVar[Optional[str]] = ContextVar("identity_id", default=None)

# Attributes every LogRecord has; anything else arrived through extra=
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "request_id", "identity_id"}


def get_request_id() -> Optional[str]:
    """Get the current request ID from context, if set."""
    return request_id_var.get()


class CorrelationFilter(logging.Filter):
    """Stamp request_id and identity_id from context onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        # extra={"identity_id": ...} on the call wins over the context value
        if not getattr(record, "request_id", None):
            record.request_id = request_id_var.get() or "-"  # type: ignore[attr-defined]
        if not getattr(record, "identity_id", None):
            record.identity_id = identity_id_var.get() or "-"  # type: ignore[attr-defined]
        return True


class JsonFormatter(logging.Formatter):
    """Render records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in ("request_id", "identity_id"):
            value = getattr(record, field, "-")
            if value != "-":
                payload[field] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or value is None:
                continue
            try:
                json.dumps(value)
                payload[key] = value
            except (TypeError, ValueError):
                payload[key] = str(value)

        return json.dumps(payload)


def _dev_formatter() -> logging.Formatter:
    return logging.Formatter(
        "%(asctime)s %(levelname)-5s [%(name)s] req=%(request_id)s who=%(identity_id)s %(message)s",
        datefmt="%H:%M:%S",
    )


def configure_logging(
    *,
    log_level: str = "INFO",
    environment: str = "development",
    debug: bool = False,
) -> None:
    """
    Configure application-wide logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        environment: 'development' or 'production'
        debug: If True, use DEBUG level regardless of log_level
    """
    level = logging.DEBUG if debug else getattr(logging, log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    # Drop handlers from a previous configure call (uvicorn reload, tests)
    for existing in root.handlers[:]:
        root.removeHandler(existing)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.addFilter(CorrelationFilter())
    handler.setFormatter(JsonFormatter() if environment == "production" else _dev_formatter())
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for the given module name.

    Records pick up request_id and identity_id automatically once
    configure_logging() has installed the correlation filter.
    """
    return logging.getLogger(name)
