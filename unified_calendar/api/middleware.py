"""
FastAPI middleware for request logging.

Assigns a short request id to every request and logs method, path,
status and timing.
"""

import logging
import time
import uuid
from contextvars import ContextVar

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

# Context variable for request ID (available across async calls)
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")

logger = logging.getLogger(__name__)


def get_request_id() -> str:
    """Get current request ID from context."""
    return request_id_ctx.get()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log each request with a request id and its duration.

    The id is echoed back in the X-Request-ID response header.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        req_id = uuid.uuid4().hex[:8]
        token = request_id_ctx.set(req_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.error(
                f"[{req_id}] {request.method} {request.url.path} failed after {elapsed_ms:.0f}ms: {e}",
                extra={"request_id": req_id, "elapsed_ms": elapsed_ms},
                exc_info=True,
            )
            raise
        finally:
            request_id_ctx.reset(token)

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"[{req_id}] {request.method} {request.url.path} -> {response.status_code} "
            f"in {elapsed_ms:.0f}ms",
            extra={
                "request_id": req_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "elapsed_ms": elapsed_ms,
            },
        )

        response.headers["X-Request-ID"] = req_id
        return response
