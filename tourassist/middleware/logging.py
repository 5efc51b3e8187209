import time
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from structlog.contextvars import bind_contextvars, clear_contextvars

from tourassist.utils.security import get_client_ip

log = structlog.get_logger()

# Polled by load balancers; logged at debug only
QUIET_PATHS = {"/api/health"}


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    One `http_request` event per request, plus request-scoped context.

    The bound keys (request_id, path, client_ip) end up on every event logged
    while the request is served, so a provider_attempt_failed line can be tied
    back to the call that caused it. The caller gets the id in X-Request-ID.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        clear_contextvars()
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        bind_contextvars(
            request_id=request_id,
            http_method=request.method,
            path=request.url.path,
            client_ip=get_client_ip(request),
        )
        request.state.request_id = request_id
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            log.exception("http_request_failed", elapsed_ms=_elapsed_ms(started), error=str(e))
            raise

        fields = dict(status_code=response.status_code, elapsed_ms=_elapsed_ms(started))
        if response.status_code >= 500:
            log.error("http_request", **fields)
        elif response.status_code == 429:
            log.warning("http_request", **fields)
        elif request.url.path in QUIET_PATHS:
            log.debug("http_request", **fields)
        else:
            log.info("http_request", **fields)

        response.headers["X-Request-ID"] = request_id
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
