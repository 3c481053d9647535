"""Request middleware for the car ledger gateway.

Propagates or generates a correlation id per request, binds it to the
structured logging context so handler and dispatcher entries of one request
share it, and logs one summary line per request.
"""

from __future__ import annotations

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .logging import bind_context, clear_context, get_logger

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

logger = get_logger(__name__)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Tag every request with correlation and request ids.

    An incoming X-Correlation-ID is reused so a client can follow one
    purchase across several calls; the request id is always fresh. Both are
    echoed in the response headers.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(CORRELATION_ID_HEADER) or str(uuid.uuid4())
        request_id = uuid.uuid4().hex[:8]

        request.state.correlation_id = correlation_id
        request.state.request_id = request_id

        bind_context(
            correlation_id=correlation_id,
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        start = time.perf_counter()
        try:
            response = await call_next(request)
            logger.info(
                "request_completed",
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_context()


def get_correlation_id(request: Request) -> str | None:
    return getattr(request.state, "correlation_id", None)


__all__ = [
    "CorrelationIdMiddleware",
    "CORRELATION_ID_HEADER",
    "REQUEST_ID_HEADER",
    "get_correlation_id",
]
