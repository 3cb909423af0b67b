# start_app.py
"""Run database migrations and launch the API server."""

from __future__ import annotations

import argparse
import os
import subprocess
import sys

import uvicorn
from dotenv import load_dotenv

import config


def migrate() -> None:
    """Apply Alembic migrations, exiting with Alembic's status on failure."""

    try:
        subprocess.run(
            [sys.executable, "-m", "alembic", "-c", "alembic.ini", "upgrade", "head"],
            check=True,
            capture_output=True,
            text=True,
        )
    except subprocess.CalledProcessError as exc:
        if exc.stdout:
            sys.stdout.write(exc.stdout)
        if exc.stderr:
            sys.stderr.write(exc.stderr)
        print(f"database migration failed (exit code {exc.returncode})", file=sys.stderr)
        raise SystemExit(exc.returncode)


def main(argv: list[str] | None = None) -> None:
    """Load settings, optionally apply migrations, then start the API."""

    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--skip-db-migrations",
        action="store_true",
        help="Start without running Alembic migrations",
    )
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    args = parser.parse_args(argv)

    load_dotenv()  # load environment variables from a .env file

    env_flag = os.getenv("SKIP_DB_MIGRATIONS")
    skip = args.skip_db_migrations or (env_flag and env_flag.lower() not in {"0", "false"})
    if not skip:
        migrate()

    config.get_settings.cache_clear()
    settings = config.get_settings()

    uvicorn.run(
        "waterledger.app.main:app",
        host="0.0.0.0",  # nosec B104: bind for local development
        port=int(os.getenv("PORT", "8000")),
        log_level=settings.log_level.lower(),
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
