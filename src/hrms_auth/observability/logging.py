"""
hrms_auth.observability.logging

Structured logging for the auth core (structlog over stdlib logging).

Responsibilities:
- Configure structlog once per host process: JSON lines in test/prod, console in dev.
- Stamp every event with the service name and mask credential-bearing fields.
- Mask personal data (e-mail addresses) before it reaches a log line.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from hrms_auth.settings import Settings

# Event keys whose values must never be written out.
SECRET_KEYS = frozenset({"token", "reset_token", "password", "code", "secret"})


def configure_logging(settings: Settings) -> None:
    """
    Called by the host application at startup. The library itself never configures
    logging on import.
    """

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )

    renderer: Any
    if settings.env == "dev":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _with_service(settings.service_name),
            mask_secrets,
            structlog.processors.dict_tracebacks,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _with_service(service_name: str):
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def mask_secrets(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key in SECRET_KEYS.intersection(event_dict):
        event_dict[key] = "***"
    return event_dict


def mask_email(email: str | None) -> str:
    # "jane.doe@acme.com" -> "j***@acme.com"
    if not email or "@" not in email:
        return "***"
    local, _, domain = email.partition("@")
    return f"{local[:1]}***@{domain}"


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


# --- Module Notes -----------------------------------------------------------
# Request-scoped metadata (request_id, path, method) is bound in `observability.http_hooks`.
