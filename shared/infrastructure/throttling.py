"""DRF throttles backed by the token-bucket rate limiter."""

from __future__ import annotations

from functools import lru_cache

from django.conf import settings
from rest_framework.throttling import BaseThrottle

from .rate_limiter import (
    PRESETS,
    InMemoryRateLimitStore,
    RateLimiter,
    RedisRateLimitStore,
    client_ip,
)


@lru_cache(maxsize=1)
def get_rate_limiter() -> RateLimiter:
    """Process-wide limiter built from RATE_LIMIT_STORE / RATE_LIMIT_REDIS_URL."""
    backend = getattr(settings, "RATE_LIMIT_STORE", "memory")
    if backend == "redis":
        import redis

        client = redis.Redis.from_url(settings.RATE_LIMIT_REDIS_URL)
        return RateLimiter(RedisRateLimitStore(client))
    return RateLimiter(InMemoryRateLimitStore())


class TokenBucketThrottle(BaseThrottle):
    """
    Throttle keyed by user id (or client IP for anonymous requests).

    Subclasses pick a preset name; the view's ``throttle_scope`` separates
    buckets of different endpoints sharing one preset.
    """

    preset = "api_general"

    def __init__(self):
        self.result = None
        self.now_ms = 0

    def get_limiter(self) -> RateLimiter:
        return get_rate_limiter()

    def get_cache_key(self, request, view) -> str:
        scope = getattr(view, "throttle_scope", None) or view.__class__.__name__
        if request.user and request.user.is_authenticated:
            ident = f"user:{request.user.pk}"
        else:
            ident = f"ip:{client_ip(request.META)}"
        return f"{self.preset}:{scope}:{ident}"

    def allow_request(self, request, view) -> bool:
        config = PRESETS[self.preset]
        limiter = self.get_limiter()
        self.now_ms = limiter.now_ms()
        self.result = limiter.check_limit(
            self.get_cache_key(request, view), config.max_requests, config.window_seconds
        )
        return self.result.allowed

    def wait(self):
        if self.result is None or self.result.allowed:
            return None
        return self.result.retry_after(self.now_ms)


class StrictTokenBucketThrottle(TokenBucketThrottle):
    preset = "api_strict"
