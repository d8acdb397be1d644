"""
Domain Errors

Every failure the engine reports carries a stable machine-readable code
and the HTTP status the API layer renders it with.
"""

from datetime import date
from enum import Enum
from typing import Iterable, Optional


class ErrorCode(str, Enum):
    VALIDATION_ERROR = 'VALIDATION_ERROR'
    RULE_VIOLATION = 'RULE_VIOLATION'
    NO_AVAILABILITY = 'NO_AVAILABILITY'
    CONFLICT = 'CONFLICT'
    IDEMPOTENT_NOOP = 'IDEMPOTENT_NOOP'
    NOT_FOUND = 'NOT_FOUND'
    TRANSIENT_STORE_ERROR = 'TRANSIENT_STORE_ERROR'
    EXTERNAL_SERVICE_ERROR = 'EXTERNAL_SERVICE_ERROR'


class DomainError(Exception):
    """Base class for all engine errors"""

    code: ErrorCode = ErrorCode.VALIDATION_ERROR
    http_status: int = 400

    def __init__(self, message: str, *, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {'code': self.code.value, 'detail': self.message}
        if self.details:
            payload['details'] = self.details
        return payload


class ValidationFailed(DomainError):
    """Malformed input: bad dates, non-positive room counts"""
    code = ErrorCode.VALIDATION_ERROR
    http_status = 400


class RuleViolation(DomainError):
    """Business rule rejected the request (booking window, blocked night)"""
    code = ErrorCode.RULE_VIOLATION
    http_status = 422


class NoAvailability(DomainError):
    """At least one night cannot supply the requested rooms"""
    code = ErrorCode.NO_AVAILABILITY
    http_status = 409

    def __init__(self, message: str, *, blocking_dates: Iterable[date] = (), details: Optional[dict] = None):
        self.blocking_dates = sorted(blocking_dates)
        details = dict(details or {})
        if self.blocking_dates:
            details.setdefault('blocking_dates', [d.isoformat() for d in self.blocking_dates])
        super().__init__(message, details=details)


class InvalidTransition(DomainError):
    """Booking status change not allowed from the current status"""
    code = ErrorCode.CONFLICT
    http_status = 409


class NotFound(DomainError):
    code = ErrorCode.NOT_FOUND
    http_status = 404


class TransientStoreError(DomainError):
    """Deadlock or lock timeout that persisted after retries"""
    code = ErrorCode.TRANSIENT_STORE_ERROR
    http_status = 503


class ExternalServiceError(DomainError):
    """Notification gateway or payment provider call failed"""
    code = ErrorCode.EXTERNAL_SERVICE_ERROR
    http_status = 502
