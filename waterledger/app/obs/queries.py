from __future__ import annotations

import hashlib
import logging
import time

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger("obs")


def add_query_logger(engine: Engine | AsyncEngine, slow_ms: int = 200) -> None:
    """Log statements on ``engine`` that take longer than ``slow_ms``."""
    target = engine.sync_engine if isinstance(engine, AsyncEngine) else engine

    @event.listens_for(target, "before_cursor_execute")
    def before_cursor_execute(
        conn, cursor, statement, parameters, context, executemany
    ):  # type: ignore[no-untyped-def]
        context._query_start_time = time.perf_counter()

    @event.listens_for(target, "after_cursor_execute")
    def after_cursor_execute(
        conn, cursor, statement, parameters, context, executemany
    ):  # type: ignore[no-untyped-def]
        total_ms = (time.perf_counter() - context._query_start_time) * 1000
        if total_ms <= slow_ms:
            return
        sql = " ".join(statement.split())
        if len(sql) > 200:
            sql = sql[:197] + "..."
        params_hash = hashlib.sha256(repr(parameters).encode()).hexdigest()[:8]
        logger.warning(
            "slow query %dms sql=%s params=%s", int(total_ms), sql, params_hash
        )
