"""Metrics middleware for API."""

import time
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from core.metrics import api_request_duration


def endpoint_label(request: Request) -> str:
    """Route template (``/chat-requests/{request_id}/accept``) so ids don't explode label cardinality."""
    route = request.scope.get("route")
    return getattr(route, "path", request.url.path)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to collect API request duration per route."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()

        response = await call_next(request)

        api_request_duration.labels(
            method=request.method, endpoint=endpoint_label(request), status=response.status_code
        ).observe(time.perf_counter() - start_time)

        return response
