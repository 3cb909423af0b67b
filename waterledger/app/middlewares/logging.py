import json
import logging
import time
from datetime import datetime, timezone

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

# Fields in requests that should be redacted from logs
PII_KEYS = {"otp", "email", "phone", "token", "authorization"}

logger = logging.getLogger("api")


def _redact(obj):
    if isinstance(obj, dict):
        return {k: ("***" if k.lower() in PII_KEYS else _redact(v)) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_redact(v) for v in obj]
    return obj


class LoggingMiddleware(BaseHTTPMiddleware):
    """Emit structured inbound/outbound request logs."""

    async def dispatch(self, request: Request, call_next):
        req_id = getattr(request.state, "request_id", None)
        query = dict(request.query_params)
        inbound = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "req_id": req_id,
            "path": request.url.path,
            "method": request.method,
            "ip": request.client.host if request.client else None,
        }
        if query:
            inbound["query"] = _redact(query)
        logger.info(json.dumps(inbound))

        start = time.perf_counter()
        response = await call_next(request)
        dur_ms = int((time.perf_counter() - start) * 1000)
        outbound = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "req_id": req_id,
            "route": request.url.path,
            "status": response.status_code,
            "latency_ms": dur_ms,
        }
        log_fn = logger.error if response.status_code >= 500 else logger.info
        log_fn(json.dumps(outbound))
        return response
