"""
asset_tracker.observability.logging

Structured logging for the auth service.

Responsibilities:
- Configure `structlog` for JSON logs tagged with the service name.
- Keep bearer tokens, secrets and private keys out of every log line.
- Quiet the chatty loggers of the Firebase SDK and its HTTP transport.
"""

from __future__ import annotations

import logging
import re
import sys
from typing import Any

import structlog

# Keys whose values are credentials, whatever their content.
_SECRET_KEYS = frozenset(
    {"token", "raw_token", "authorization", "jwt_secret", "private_key", "firebase_private_key"}
)
_BEARER_VALUE = re.compile(r"(?i)\bbearer\s+\S+")

# Third-party loggers that log at INFO per request (certificate fetches, pool checkouts).
_NOISY_LOGGERS = ("firebase_admin", "google.auth", "urllib3", "cachecontrol", "sqlalchemy.engine")

REDACTED = "[redacted]"


def configure_logging(*, service_name: str, level: str) -> None:
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _bind_service(service_name),
            redact_credentials,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _bind_service(service_name: str):
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def redact_credentials(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key, value in event_dict.items():
        if key in _SECRET_KEYS:
            event_dict[key] = REDACTED
        elif isinstance(value, str) and "bearer" in value.lower():
            # Provider error strings sometimes echo the Authorization header.
            event_dict[key] = _BEARER_VALUE.sub(f"Bearer {REDACTED}", value)
    return event_dict


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


# --- Module Notes -----------------------------------------------------------
# Request-scoped metadata is bound via contextvars in `observability.middleware`.
