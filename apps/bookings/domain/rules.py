"""
Booking Rule Validator

Checks a requested stay against the date sanity rules, the guest type's
booking window, and the group-deposit policies.

Booking window: with ``days_from_now`` = calendar days between today and
the arrival date, a request is rejected when
    days_from_now > max_days_advance   (too far in advance)
    days_from_now < min_days_notice    (insufficient notice)
Both limits are inclusive.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, List, Optional

from shared.domain.errors import RuleViolation, ValidationFailed
from shared.domain.value_objects import DateRange, as_date, round_half_up

from .pricing import SpecialDayRule

MAX_STAY_NIGHTS = 365


class GuestType(str, Enum):
    REGULAR = 'REGULAR'
    VIP = 'VIP'
    CORPORATE = 'CORPORATE'


@dataclass(frozen=True)
class BookingWindow:
    max_days_advance: int
    min_days_notice: int


DEFAULT_BOOKING_RULES: Dict[GuestType, BookingWindow] = {
    GuestType.REGULAR: BookingWindow(max_days_advance=90, min_days_notice=3),
    GuestType.VIP: BookingWindow(max_days_advance=365, min_days_notice=2),
    GuestType.CORPORATE: BookingWindow(max_days_advance=180, min_days_notice=1),
}


class DepositType(str, Enum):
    PERCENT = 'percent'
    FIXED = 'fixed'


@dataclass(frozen=True)
class DepositTerms:
    """Deposit owed by bookings whose room count is within [min_rooms, max_rooms]"""
    min_rooms: int
    max_rooms: int
    deposit_type: DepositType
    value: Decimal

    def covers(self, rooms: int) -> bool:
        return self.min_rooms <= rooms <= self.max_rooms

    def amount_for(self, total_price: int) -> int:
        """Deposit for a stay costing ``total_price``, never more than the total."""
        if self.deposit_type == DepositType.PERCENT:
            amount = round_half_up(Decimal(total_price) * Decimal(self.value) / Decimal(100))
        else:
            amount = round_half_up(self.value)
        return min(amount, total_price)

    def overlaps(self, other: 'DepositTerms') -> bool:
        return self.min_rooms <= other.max_rooms and other.min_rooms <= self.max_rooms


class BookingRuleValidator:
    """
    Usage:
        validator = BookingRuleValidator(windows, deposit_terms)
        warnings = validator.validate(dates, rooms, total_rooms, GuestType.REGULAR, today)
        deposit = validator.deposit_for(rooms, total_price)
    """

    def __init__(
        self,
        windows: Optional[Dict[GuestType, BookingWindow]] = None,
        deposit_terms: Iterable[DepositTerms] = (),
        max_nights: int = MAX_STAY_NIGHTS,
    ):
        self.windows = dict(DEFAULT_BOOKING_RULES)
        self.windows.update(windows or {})
        self.deposit_terms = list(deposit_terms)
        self.max_nights = max_nights

    def window_for(self, guest_type) -> BookingWindow:
        return self.windows[GuestType(guest_type)]

    @staticmethod
    def days_from_now(start_date, today) -> int:
        return (as_date(start_date) - as_date(today)).days

    def validate_dates(self, dates: DateRange, today) -> None:
        if dates.start_date < as_date(today):
            raise ValidationFailed("Arrival date cannot be in the past.")
        if len(dates) > self.max_nights:
            raise ValidationFailed(
                f"Stays are limited to {self.max_nights} nights.",
                details={'nights': len(dates)},
            )

    @staticmethod
    def validate_rooms(rooms: int, total_rooms: int) -> None:
        if rooms < 1:
            raise ValidationFailed("Number of rooms must be at least 1.", details={'rooms': rooms})
        if rooms > total_rooms:
            raise ValidationFailed(
                f"This room type has only {total_rooms} room(s).",
                details={'rooms': rooms, 'total_rooms': total_rooms},
            )

    def validate_window(self, start_date, guest_type, today) -> None:
        window = self.window_for(guest_type)
        days = self.days_from_now(start_date, today)
        if days > window.max_days_advance:
            raise RuleViolation(
                f"Booking too far in advance: {GuestType(guest_type).value} guests can book "
                f"at most {window.max_days_advance} days ahead.",
                details={'days_from_now': days, 'max_days_advance': window.max_days_advance},
            )
        if days < window.min_days_notice:
            raise RuleViolation(
                f"Insufficient notice: {GuestType(guest_type).value} guests must book "
                f"at least {window.min_days_notice} days ahead.",
                details={'days_from_now': days, 'min_days_notice': window.min_days_notice},
            )

    def validate(
        self,
        dates: DateRange,
        rooms: int,
        total_rooms: int,
        guest_type,
        today,
        special_days: Optional[Dict[date, SpecialDayRule]] = None,
    ) -> List[str]:
        """
        Run every check; raise on the first failure.

        Returns informational warnings (special rates inside the stay).
        """
        self.validate_dates(dates, today)
        self.validate_rooms(rooms, total_rooms)
        self.validate_window(dates.start_date, guest_type, today)

        warnings = []
        for night in dates.nights():
            rule = (special_days or {}).get(night)
            if rule is None:
                continue
            if rule.is_blocked:
                raise RuleViolation(
                    f"{night.isoformat()} is not available for booking"
                    + (f": {rule.description}" if rule.description else "."),
                    details={'blocked_dates': [night.isoformat()]},
                )
            warnings.append(
                f"Special rate applies on {night.isoformat()}"
                + (f": {rule.description}" if rule.description else "")
            )
        return warnings

    def deposit_terms_for(self, rooms: int) -> Optional[DepositTerms]:
        return next((terms for terms in self.deposit_terms if terms.covers(rooms)), None)

    def deposit_for(self, rooms: int, total_price: int) -> Optional[int]:
        terms = self.deposit_terms_for(rooms)
        if terms is None:
            return None
        return terms.amount_for(total_price)
