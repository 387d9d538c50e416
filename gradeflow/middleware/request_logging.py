from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)


def describe_caller(request: Request) -> str:
    actor = getattr(request.state, "actor", None)
    if actor is None:
        return "Anonymous"
    return f"User(id={actor.user_id}, role={actor.role.value})"


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    One access-log line per request.

    The caller is known only after the route's dependencies resolved the
    bearer token, so the line is written once the response is ready.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.exception(
                f"{request.method} {request.url.path} failed after {elapsed_ms:.1f}ms "
                f"caller={describe_caller(request)}"
            )
            raise
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"in {elapsed_ms:.1f}ms caller={describe_caller(request)}"
        )
        return response
