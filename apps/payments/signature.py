"""HMAC verification of provider webhook deliveries."""

from __future__ import annotations

import hashlib
import hmac
import time

from django.conf import settings  # type: ignore

SIGNATURE_HEADER = "X-Payment-Signature"
TIMESTAMP_HEADER = "X-Payment-Timestamp"
SIGNATURE_PREFIX = "sha256="


class InvalidSignature(Exception):
    """The delivery is not signed with the shared webhook secret."""


def compute_signature(secret: str, body: bytes, timestamp: str | None = None) -> str:
    message = body if not timestamp else timestamp.encode("utf-8") + b"." + body
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, signature: str | None, timestamp: str | None = None, *, now: float | None = None) -> None:
    """
    Check ``sha256=<hex>`` over the raw body.

    When a timestamp header is present it is part of the signed message
    (``<timestamp>.<body>``) and must be within
    PAYMENT_WEBHOOK_TOLERANCE_SECONDS of the current time.
    """
    secret = getattr(settings, "PAYMENT_WEBHOOK_SECRET", "")
    if not secret:
        raise InvalidSignature("Webhook secret is not configured")
    if not signature or not signature.startswith(SIGNATURE_PREFIX):
        raise InvalidSignature("Missing or malformed signature header")

    if timestamp:
        try:
            sent_at = int(timestamp)
        except ValueError as exc:
            raise InvalidSignature("Malformed timestamp header") from exc
        tolerance = getattr(settings, "PAYMENT_WEBHOOK_TOLERANCE_SECONDS", 300)
        current = time.time() if now is None else now
        if abs(current - sent_at) > tolerance:
            raise InvalidSignature("Timestamp outside the allowed tolerance")

    expected = compute_signature(secret, body, timestamp)
    if not hmac.compare_digest(expected, signature[len(SIGNATURE_PREFIX):]):
        raise InvalidSignature("Signature mismatch")
