"""
Request correlation middleware.

Every request gets an id (the caller's ``X-Request-ID`` when it sends a
usable one) that is echoed on the response and bound to ``request_id_var``,
so all log lines written while handling the request carry it.
"""

import re
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from src.logging_config import get_logger, request_id_var

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
SLOW_REQUEST_MS = 1000

_VALID_ID = re.compile(r"^[A-Za-z0-9._-]{1,128}$")


def _request_id_from(request: Request) -> str:
    incoming = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    if incoming and _VALID_ID.match(incoming):
        return incoming
    return str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a request id to the request state, the response and the logs."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = _request_id_from(request)
        request.state.request_id = request_id
        token = request_id_var.set(request_id)

        try:
            start = time.perf_counter()
            response = await call_next(request)
            elapsed_ms = (time.perf_counter() - start) * 1000
            response.headers[REQUEST_ID_HEADER] = request_id

            # Event streams only return their headers here; the body runs on
            streaming = response.headers.get("content-type", "").startswith("text/event-stream")
            if elapsed_ms > SLOW_REQUEST_MS and not streaming:
                logger.warning(
                    "Slow request %s %s (%.1f ms)",
                    request.method, request.url.path, elapsed_ms,
                )
            return response
        finally:
            request_id_var.reset(token)
