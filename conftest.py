import os

# Tests run against in-memory SQLite and never touch a real Redis.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "x" * 32)
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("CREATE_SCHEMA_ON_BOOT", "false")
os.environ.setdefault("DEFAULT_TZ", "Asia/Kolkata")
