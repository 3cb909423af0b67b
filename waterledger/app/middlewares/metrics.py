from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from ..routes_metrics import http_errors_total, http_requests_total


def _route_label(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


class MetricsMiddleware(BaseHTTPMiddleware):
    """Count requests per route template and errors per status code."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        status = str(response.status_code)
        http_requests_total.labels(
            path=_route_label(request), method=request.method, status=status
        ).inc()
        if response.status_code >= 400:
            http_errors_total.labels(status=status).inc()
        return response
