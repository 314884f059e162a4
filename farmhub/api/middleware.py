"""
FastAPI middleware for request tracking.

Every request gets a short id, shared with log lines through a context
variable, and is logged with the caller identity the upstream auth layer
put on it. Responses carry the id and are marked uncacheable, since
availability and stock change under the client.
"""

import logging
import time
import uuid
from contextvars import ContextVar

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from farmhub.config import get_settings

# Context variables (available across async calls)
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")
caller_ctx: ContextVar[str] = ContextVar("caller", default="")

logger = logging.getLogger(__name__)

ANONYMOUS = "anonymous"

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def get_request_id() -> str:
    """Get current request ID from context."""
    return request_id_ctx.get()


def get_caller() -> str:
    """Caller identity of the current request, or "" outside a request."""
    return caller_ctx.get()


def caller_identity(request: Request) -> str:
    """
    Identity as sent by the upstream auth layer, for logging only.

    Uses the same sources as the `get_current_user_id` dependency but
    never rejects; authorization stays with the routes.
    """
    header = get_settings().identity_header
    user_id = request.headers.get(header) or request.cookies.get("user_id") or ""
    return user_id.strip() or ANONYMOUS


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each request with its id, caller and timing.

    The notification stream stays open for as long as the client is
    connected, so only its opening is logged here; the stream logs its
    own close.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        req_id = str(uuid.uuid4())[:8]  # Short ID for readability
        caller = caller_identity(request)
        request_id_ctx.set(req_id)
        caller_ctx.set(caller)

        logger.info(
            f"[{req_id}] {request.method} {request.url.path} as {caller}",
            extra={
                "request_id": req_id,
                "caller": caller,
                "method": request.method,
                "path": request.url.path,
                "query": str(request.query_params),
            },
        )

        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as e:
            elapsed = time.time() - start_time
            logger.error(
                f"[{req_id}] {request.method} {request.url.path} as {caller} failed after {elapsed:.2f}s: {e}",
                extra={"request_id": req_id, "caller": caller, "elapsed_ms": elapsed * 1000},
                exc_info=True,
            )
            raise

        elapsed = time.time() - start_time
        level = logging.WARNING if response.status_code in (401, 403) else logging.INFO
        streaming = response.headers.get("content-type", "").startswith("text/event-stream")

        logger.log(
            level,
            f"[{req_id}] {response.status_code} "
            + ("stream opened" if streaming else f"in {elapsed:.2f}s")
            + f" for {caller}",
            extra={
                "request_id": req_id,
                "caller": caller,
                "status_code": response.status_code,
                "elapsed_ms": elapsed * 1000,
            },
        )

        response.headers["X-Request-ID"] = req_id
        for name, value in NO_CACHE_HEADERS.items():
            response.headers.setdefault(name, value)

        return response
