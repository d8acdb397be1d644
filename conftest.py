import pytest

from shared.infrastructure.throttling import get_rate_limiter


@pytest.fixture(autouse=True)
def _fresh_rate_limiter():
    """Token buckets live in a cached limiter; every test starts with full buckets."""
    get_rate_limiter.cache_clear()
    yield
    get_rate_limiter.cache_clear()
