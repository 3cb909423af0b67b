# routes_metrics.py

"""Prometheus metrics and /metrics endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest

# Counters
http_requests_total = Counter(
    "http_requests_total", "Total HTTP requests", ["path", "method", "status"]
)

http_errors_total = Counter("http_errors_total", "Total HTTP errors", ["status"])
http_errors_total.labels(status="0").inc(0)

ledger_operations_total = Counter(
    "ledger_operations_total",
    "Ledger mutations applied to customers and bulk orders",
    ["operation"],
)

delivery_conflicts_total = Counter(
    "delivery_conflicts_total",
    "Rejected attempts to create a second delivery for a customer and day",
)
delivery_conflicts_total.inc(0)

otp_issued_total = Counter("otp_issued_total", "Total one-time passwords issued")
otp_issued_total.inc(0)

router = APIRouter()


@router.get("/metrics")
async def metrics() -> Response:
    """Expose Prometheus metrics."""

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "delivery_conflicts_total",
    "http_errors_total",
    "http_requests_total",
    "ledger_operations_total",
    "otp_issued_total",
    "router",
]
