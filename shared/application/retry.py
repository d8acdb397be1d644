"""Bounded retry of whole transactions on transient database failures."""

from __future__ import annotations

import functools
import logging
import time
from typing import Callable, TypeVar

from django.conf import settings
from django.db import OperationalError, connection

from shared.domain.errors import TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# deadlock_detected, lock_not_available, serialization_failure
TRANSIENT_SQLSTATES = {"40P01", "55P03", "40001"}
TRANSIENT_MESSAGES = ("deadlock", "lock timeout", "could not obtain lock", "database is locked")


def is_transient_error(exc: OperationalError) -> bool:
    cause = getattr(exc, "__cause__", None)
    pgcode = getattr(cause, "pgcode", None) or getattr(cause, "sqlstate", None)
    if pgcode in TRANSIENT_SQLSTATES:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in TRANSIENT_MESSAGES)


def retry_on_transient_error(
    func: Callable[..., T] | None = None,
    *,
    attempts: int | None = None,
    base_delay: float | None = None,
    sleep: Callable[[float], None] = time.sleep,
):
    """
    Re-run a transactional callable when the database reports a deadlock
    or lock timeout.

    Only the outermost call retries: inside an already open transaction the
    error propagates, since the enclosing transaction is aborted anyway.
    Delays grow as base_delay * 2**attempt. Exhaustion raises
    TransientStoreError.
    """

    def decorator(inner: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(inner)
        def wrapper(*args, **kwargs) -> T:
            max_attempts = attempts or getattr(settings, "LEDGER_RETRY_ATTEMPTS", 3)
            delay = base_delay if base_delay is not None else getattr(settings, "LEDGER_RETRY_BASE_DELAY", 0.05)
            for attempt in range(max_attempts):
                try:
                    return inner(*args, **kwargs)
                except OperationalError as exc:
                    if connection.in_atomic_block or not is_transient_error(exc):
                        raise
                    if attempt + 1 >= max_attempts:
                        logger.error(
                            "Transient store error persisted after %d attempts in %s: %s",
                            max_attempts, inner.__qualname__, exc,
                        )
                        raise TransientStoreError(
                            "The booking store is busy, please retry.",
                            details={"attempts": max_attempts},
                        ) from exc
                    wait = delay * (2 ** attempt)
                    logger.warning(
                        "Transient store error in %s (attempt %d/%d), retrying in %.3fs: %s",
                        inner.__qualname__, attempt + 1, max_attempts, wait, exc,
                    )
                    sleep(wait)
            raise AssertionError("unreachable")

        return wrapper

    if func is not None:
        return decorator(func)
    return decorator
