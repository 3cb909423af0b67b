"""HTTP middlewares wired by :mod:`waterledger.app.main`."""

from .metrics import MetricsMiddleware
from .logging import LoggingMiddleware
from .request_id import RequestIdMiddleware, request_id_ctx

__all__ = [
    "LoggingMiddleware",
    "MetricsMiddleware",
    "RequestIdMiddleware",
    "request_id_ctx",
]
