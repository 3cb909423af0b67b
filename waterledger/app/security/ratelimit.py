"""Fixed-window counters backed by Redis.

Each ``(subject, key)`` pair owns one counter. The first hit sets a TTL of
``burst / rate_per_min`` minutes; further hits within that window are
allowed until the counter exceeds ``burst``. The counter disappears when the
TTL lapses, which refills the bucket.
"""

from __future__ import annotations

from dataclasses import dataclass
from math import ceil

from redis.asyncio import Redis


@dataclass(frozen=True)
class Policy:
    """Rate limit configuration."""

    rate_per_min: float
    burst: int


OTP_SEND_IP = Policy(rate_per_min=5, burst=5)
OTP_SEND_EMAIL = Policy(rate_per_min=3 / 10, burst=3)
OTP_VERIFY_EMAIL = Policy(rate_per_min=1, burst=10)


def bucket_key(subject: str, key: str) -> str:
    return f"ratelimit:{subject}:{key}"


async def allow(redis: Redis, subject: str, key: str, policy: Policy) -> bool:
    """Return ``True`` if the request is within ``policy`` for ``subject``."""

    bucket = bucket_key(subject, key)
    count = await redis.incr(bucket)
    if count == 1:
        window = ceil(policy.burst / policy.rate_per_min * 60)
        await redis.expire(bucket, window)
    return count <= policy.burst


async def retry_after(redis: Redis, subject: str, key: str) -> int:
    """Seconds until the bucket for ``subject`` resets."""

    ttl = await redis.ttl(bucket_key(subject, key))
    return max(int(ttl or 0), 0)
