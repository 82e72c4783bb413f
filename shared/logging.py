"""
Structured logging for the auth service.

Every event is rendered as one JSON object carrying the service name, the
request id of the HTTP request being served, and never a credential: fields
named like passwords or tokens are masked, and bearer tokens embedded in
free-text values are cut out.
"""

import logging
import re
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any, Dict, List, Optional

import structlog

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

REDACTED = "***"
REDACTED_KEYS = frozenset({
    "password",
    "password_hash",
    "access_token",
    "refresh_token",
    "secret",
    "access_secret",
    "refresh_secret",
    "authorization",
})
BEARER_PATTERN = re.compile(r"(Bearer\s+)[A-Za-z0-9\-_.~+/]+=*", re.IGNORECASE)


class ServiceContext:
    """Processor that stamps every event with the owning service."""

    def __init__(self, service_name: str):
        self.service_name = service_name

    def __call__(self, logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        event_dict.setdefault("service", self.service_name)
        # Logger names are "<service>.<component>"
        logger_name = event_dict.get("logger", "")
        if "." in logger_name:
            event_dict.setdefault("component", logger_name.split(".", 1)[1])
        return event_dict


def add_correlation_context(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Attach the current request id, if any."""
    request_id = request_id_var.get()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def _redact(key: str, value: Any) -> Any:
    if key.lower() in REDACTED_KEYS:
        return REDACTED
    if isinstance(value, str):
        return BEARER_PATTERN.sub(rf"\1{REDACTED}", value)
    if isinstance(value, dict):
        return {k: _redact(str(k), v) for k, v in value.items()}
    return value


def redact_sensitive_fields(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Mask credentials and tokens passed as log fields."""
    for key, value in list(event_dict.items()):
        event_dict[key] = _redact(key, value)
    return event_dict


def add_timestamp(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add high-precision timestamp to log events."""
    event_dict["timestamp"] = time.time()
    return event_dict


def build_processors(service_name: str, json_logs: bool = True) -> List[Any]:
    processors: List[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        ServiceContext(service_name),
        add_correlation_context,
        redact_sensitive_fields,
        add_timestamp,
    ]
    processors.append(structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer())
    return processors


def configure_logging(service_name: str, log_level: str = "info", json_logs: bool = True) -> None:
    """Configure structlog and the stdlib root logger for a service.

    ``json_logs=False`` switches to the human-readable console renderer for
    local development; redaction applies either way.
    """
    structlog.configure(
        processors=build_processors(service_name, json_logs),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )


def set_request_id(request_id: Optional[str] = None) -> str:
    """Set the request id for the current context, generating one if needed."""
    if not request_id:
        request_id = str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def clear_context():
    request_id_var.set(None)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
