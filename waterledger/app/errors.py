"""Typed failures raised by repositories and routes.

Each error carries the HTTP status it maps to; the exception handlers in
``main`` turn them into the standard error envelope.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for expected, user-facing failures."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """Malformed or missing input."""

    status_code = 400


class AuthError(LedgerError):
    """Missing, invalid or expired OTP or session."""

    status_code = 401


class ForbiddenError(LedgerError):
    """Caller is authenticated but lacks the required role."""

    status_code = 403


class NotFoundError(LedgerError):
    """Referenced record is absent or belongs to another business."""

    status_code = 404


class ConflictError(LedgerError):
    """A record with the same natural key already exists."""

    status_code = 409


DUPLICATE_DELIVERY = "Delivery already exists for this customer on this date"


__all__ = [
    "AuthError",
    "ConflictError",
    "DUPLICATE_DELIVERY",
    "ForbiddenError",
    "LedgerError",
    "NotFoundError",
    "ValidationError",
]
