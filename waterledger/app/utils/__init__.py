"""Response envelope helpers."""

from .responses import err, ok, rate_limited

__all__ = ["err", "ok", "rate_limited"]
