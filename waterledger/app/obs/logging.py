import json
import logging
import re
from datetime import datetime, timezone
from typing import Any

from ..middlewares.request_id import request_id_ctx

EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+\.[\w.-]+", re.I)
PHONE_RE = re.compile(r"\b\d{10}\b")


def _redact_pii(text: str) -> str:
    """Replace emails and phone numbers with ***."""
    text = EMAIL_RE.sub("***", text)
    text = PHONE_RE.sub("***", text)
    return text


class RequestIdFilter(logging.Filter):
    """Attach request id from context to log records."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - trivial
        record.req_id = request_id_ctx.get(None)
        return True


class JsonFormatter(logging.Formatter):
    """Render logs as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "req_id": getattr(record, "req_id", None),
            "business": getattr(record, "business", None),
            "user": getattr(record, "user", None),
            "route": getattr(record, "route", None),
            "status": getattr(record, "status", None),
            "msg": _redact_pii(record.getMessage()),
        }
        if record.exc_info:
            data["exc"] = self.formatException(record.exc_info)
        return json.dumps(data)


def configure_logging(level: int | str = logging.INFO) -> None:
    """Configure root logger with JSON formatting."""

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    handler.addFilter(RequestIdFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
