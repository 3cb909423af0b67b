from typing import Any, Dict

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.status import HTTP_429_TOO_MANY_REQUESTS


def ok(data: Any = None, message: str | None = None, **extra: Any) -> Dict[str, Any]:
    """Return a success envelope.

    ``extra`` carries sibling fields such as ``count`` or ``totals``. When
    ``data`` is a list and no ``count`` is supplied, its length is added.
    """
    body: Dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if isinstance(data, list) and "count" not in extra:
        body["count"] = len(data)
    body.update(extra)
    if data is not None:
        body["data"] = data
    return jsonable_encoder(body)


def err(message: str) -> Dict[str, Any]:
    """Return an error envelope."""
    from ..middlewares.request_id import request_id_ctx

    return {
        "success": False,
        "message": message,
        "requestId": request_id_ctx.get(None),
    }


def rate_limited(retry_after: int) -> JSONResponse:
    """Return a standardized rate limit response."""
    retry_after = max(int(retry_after), 0)
    body = err(f"Too many requests, retry in {retry_after}s")
    return JSONResponse(
        body,
        status_code=HTTP_429_TOO_MANY_REQUESTS,
        headers={"Retry-After": str(retry_after)},
    )
