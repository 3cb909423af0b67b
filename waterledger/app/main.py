# main.py

"""FastAPI application wiring for the delivery ledger service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.asyncio import from_url
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import get_settings

from .db import create_schema
from .errors import LedgerError
from .middlewares import LoggingMiddleware, MetricsMiddleware, RequestIdMiddleware
from .obs import configure_logging
from .routes_auth import router as auth_router
from .routes_bulk_orders import router as bulk_orders_router
from .routes_customers import router as customers_router
from .routes_dashboard import router as dashboard_router
from .routes_deliveries import router as deliveries_router
from .routes_metrics import router as metrics_router
from .routes_reports import router as reports_router
from .utils.responses import err, ok

settings = get_settings()
configure_logging(settings.log_level.upper())
logger = logging.getLogger("api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.create_schema_on_boot:
        await create_schema()
        logger.info("database schema ensured")
    yield


app = FastAPI(title="Water Ledger API", version="0.1.0", lifespan=lifespan)
app.state.redis = from_url(settings.redis_url, decode_responses=True)

app.add_middleware(MetricsMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "Content-Disposition"],
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    logger.warning(exc.message, extra={"status": exc.status_code, "route": request.url.path})
    return JSONResponse(err(exc.message), status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ())[1:])
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    logger.warning(message, extra={"status": 400, "route": request.url.path})
    return JSONResponse(err(message), status_code=400)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    logger.warning(exc.detail, extra={"status": exc.status_code, "route": request.url.path})
    return JSONResponse(err(str(exc.detail)), status_code=exc.status_code)


@app.exception_handler(Exception)
async def general_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error", extra={"status": 500, "route": request.url.path})
    return JSONResponse(err("Internal Server Error"), status_code=500)


@app.get("/health")
async def health() -> dict:
    return ok({"status": "ok", "environment": settings.environment.value})


app.include_router(auth_router)
app.include_router(customers_router)
app.include_router(deliveries_router)
app.include_router(bulk_orders_router)
app.include_router(dashboard_router)
app.include_router(reports_router)
app.include_router(metrics_router)


__all__ = ["app"]
