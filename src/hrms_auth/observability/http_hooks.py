"""
hrms_auth.observability.http_hooks

httpx event hooks for request-scoped logging context.

Responsibilities:
- Generate request IDs for outgoing auth API calls (sent as `x-request-id`).
- Bind request metadata into structlog contextvars.
- Log one line per request and per response (never bodies: they carry tokens).
"""

from __future__ import annotations

import uuid

import httpx
import structlog

from hrms_auth.observability.logging import get_logger

log = get_logger(__name__)

_CONTEXT_KEYS = ("request_id", "path", "method")


async def on_request(request: httpx.Request) -> None:
    # Prefer a caller-provided request id for trace continuity; otherwise generate one.
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.headers["x-request-id"] = request_id
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        path=request.url.path,
        method=request.method,
    )
    log.debug("auth_api_request")


async def on_response(response: httpx.Response) -> None:
    try:
        log.debug("auth_api_response", status_code=response.status_code)
    finally:
        clear_request_context()


def clear_request_context() -> None:
    # Avoid leaking request context into the next flow transition. A transport error skips
    # `on_response`, so the client calls this itself on that path.
    structlog.contextvars.unbind_contextvars(*_CONTEXT_KEYS)


def event_hooks() -> dict[str, list]:
    return {"request": [on_request], "response": [on_response]}


# --- Module Notes -----------------------------------------------------------
# These hooks complement `observability.logging.configure_logging` by ensuring request
# metadata is present on every log line emitted while a call is in flight.
