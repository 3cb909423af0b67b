"""FastAPI application, persistence and ledger logic."""
