"""
Token-bucket rate limiter

Each key owns a bucket of ``max_requests`` tokens that refills
proportionally to elapsed time and is topped up completely once a full
window has passed. A request consumes one token when one is available.

Bucket state lives behind a store with an atomic read-modify-write, so two
concurrent requests for the same key never both spend the last token.
Stores are injected; ``InMemoryRateLimitStore`` serves single-process
deployments and tests, ``RedisRateLimitStore`` shares buckets between
workers.
"""

from __future__ import annotations

import json
import logging
import math
import threading
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone as dt_timezone
from typing import Callable, Dict, Optional, Protocol, Tuple, TypeVar

logger = logging.getLogger(__name__)

R = TypeVar("R")


@dataclass(frozen=True)
class RateLimitConfig:
    max_requests: int
    window_seconds: int

    @property
    def window_ms(self) -> int:
        return self.window_seconds * 1000


PRESETS: Dict[str, RateLimitConfig] = {
    "otp_request_phone": RateLimitConfig(max_requests=3, window_seconds=5 * 60),
    "otp_request_ip": RateLimitConfig(max_requests=10, window_seconds=15 * 60),
    "otp_verify_phone": RateLimitConfig(max_requests=5, window_seconds=10 * 60),
    "otp_verify_ip": RateLimitConfig(max_requests=15, window_seconds=10 * 60),
    "api_general": RateLimitConfig(max_requests=100, window_seconds=60),
    "api_strict": RateLimitConfig(max_requests=10, window_seconds=60),
    "login_attempts": RateLimitConfig(max_requests=5, window_seconds=15 * 60),
}


@dataclass
class TokenBucket:
    tokens: int
    last_refill_ms: int
    reset_at_ms: int


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at_ms: int

    @property
    def reset_at(self) -> datetime:
        return datetime.fromtimestamp(self.reset_at_ms / 1000, tz=dt_timezone.utc)

    def retry_after(self, now_ms: int) -> int:
        """Whole seconds until the bucket is full again, never below one"""
        return max(1, math.ceil((self.reset_at_ms - now_ms) / 1000))


class RateLimitStore(Protocol):
    def update(
        self,
        key: str,
        mutate: Callable[[Optional[TokenBucket]], Tuple[Optional[TokenBucket], R]],
        ttl_seconds: int,
    ) -> R:
        """Atomically apply ``mutate`` to the bucket stored under ``key``.

        ``mutate`` receives the current bucket (None when absent) and returns
        the bucket to store (None deletes it) plus a result to hand back.
        """

    def get(self, key: str) -> Optional[TokenBucket]:
        ...


class InMemoryRateLimitStore:
    """
    Process-local store

    Keys share a fixed pool of striped locks, so memory for locking does
    not grow with the number of clients seen.
    """

    LOCK_STRIPES = 64

    def __init__(self, clock: Callable[[], float] = time.time, stripes: int = LOCK_STRIPES):
        self._buckets: Dict[str, Tuple[TokenBucket, float]] = {}
        self._locks: Tuple[threading.Lock, ...] = tuple(threading.Lock() for _ in range(stripes))
        self._clock = clock

    def _lock_for(self, key: str) -> threading.Lock:
        return self._locks[hash(key) % len(self._locks)]

    def get(self, key: str) -> Optional[TokenBucket]:
        entry = self._buckets.get(key)
        if entry is None:
            return None
        bucket, expires_at = entry
        if expires_at <= self._clock():
            return None
        return TokenBucket(**asdict(bucket))

    def update(self, key, mutate, ttl_seconds):
        with self._lock_for(key):
            new_bucket, result = mutate(self.get(key))
            if new_bucket is None:
                self._buckets.pop(key, None)
            else:
                self._buckets[key] = (new_bucket, self._clock() + ttl_seconds)
            return result

    def clear(self) -> None:
        self._buckets.clear()


class RedisRateLimitStore:
    """
    Redis-backed store

    Uses WATCH/MULTI through ``redis.Redis.transaction`` so a concurrent
    writer on the same key forces a retry instead of a lost update.
    """

    def __init__(self, client, prefix: str = "ratelimit:"):
        self._client = client
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    @staticmethod
    def _decode(raw) -> Optional[TokenBucket]:
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return TokenBucket(**json.loads(raw))

    def get(self, key: str) -> Optional[TokenBucket]:
        return self._decode(self._client.get(self._key(key)))

    def update(self, key, mutate, ttl_seconds):
        redis_key = self._key(key)

        def apply(pipe):
            bucket = self._decode(pipe.get(redis_key))
            new_bucket, result = mutate(bucket)
            pipe.multi()
            if new_bucket is None:
                pipe.delete(redis_key)
            else:
                pipe.set(redis_key, json.dumps(asdict(new_bucket)), ex=ttl_seconds)
            return result

        return self._client.transaction(apply, redis_key, value_from_callable=True)


class RateLimiter:
    """
    Usage:
        limiter = RateLimiter(InMemoryRateLimitStore())
        result = limiter.check_limit("otp:+15550100", 3, 300)
        if not result.allowed:
            ...
    """

    def __init__(self, store: RateLimitStore, clock: Callable[[], float] = time.time):
        self.store = store
        self._clock = clock

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    def check_limit(self, key: str, max_requests: int, window_seconds: int) -> RateLimitResult:
        if max_requests < 1 or window_seconds < 1:
            raise ValueError("max_requests and window_seconds must be positive")

        config = RateLimitConfig(max_requests, window_seconds)
        now = self.now_ms()

        def consume(bucket: Optional[TokenBucket]):
            if bucket is None:
                bucket = TokenBucket(
                    tokens=config.max_requests - 1,
                    last_refill_ms=now,
                    reset_at_ms=now + config.window_ms,
                )
                return bucket, RateLimitResult(True, bucket.tokens, bucket.reset_at_ms)

            elapsed = max(0, now - bucket.last_refill_ms)
            refill = (elapsed * config.max_requests) // config.window_ms
            if refill > 0:
                bucket.tokens = min(config.max_requests, bucket.tokens + refill)
                bucket.last_refill_ms = now

            if now >= bucket.reset_at_ms:
                bucket.tokens = config.max_requests
                bucket.last_refill_ms = now
                bucket.reset_at_ms = now + config.window_ms

            allowed = bucket.tokens > 0
            if allowed:
                bucket.tokens -= 1
            return bucket, RateLimitResult(allowed, bucket.tokens, bucket.reset_at_ms)

        result = self.store.update(key, consume, ttl_seconds=window_seconds)
        if not result.allowed:
            logger.info("Rate limit exceeded for key %s (%d/%ds)", key, max_requests, window_seconds)
        return result

    def check_preset(self, key: str, preset: str) -> RateLimitResult:
        config = PRESETS[preset]
        return self.check_limit(f"{preset}:{key}", config.max_requests, config.window_seconds)

    def reset_limit(self, key: str) -> None:
        self.store.update(key, lambda bucket: (None, None), ttl_seconds=1)

    def get_status(self, key: str, max_requests: int, window_seconds: int) -> RateLimitResult:
        """Current bucket state without consuming a token"""
        now = self.now_ms()
        bucket = self.store.get(key)
        if bucket is None or now >= bucket.reset_at_ms:
            return RateLimitResult(True, max_requests, now + window_seconds * 1000)
        return RateLimitResult(bucket.tokens > 0, bucket.tokens, bucket.reset_at_ms)


def client_ip(meta: dict) -> str:
    """Best-effort client address from proxy headers, then the socket peer"""
    forwarded = meta.get("HTTP_X_FORWARDED_FOR")
    if forwarded:
        return forwarded.split(",")[0].strip()
    for header in ("HTTP_X_REAL_IP", "HTTP_CF_CONNECTING_IP"):
        if meta.get(header):
            return meta[header].strip()
    return meta.get("REMOTE_ADDR") or "unknown"
