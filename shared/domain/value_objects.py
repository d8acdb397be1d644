"""
Common Value Objects

- round_half_up: integer rounding for amounts kept in minor currency units
- DateRange: stay period, start inclusive and end exclusive
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import List

from shared.domain.base import ValueObject

SUPPORTED_CURRENCIES = ('USD', 'EUR', 'GBP', 'KZT')


def round_half_up(value) -> int:
    """Round a numeric value to the nearest integer, halves away from zero."""
    return int(Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def as_date(value) -> date:
    """Normalize a date or datetime to a calendar date."""
    if isinstance(value, datetime):
        return value.date()
    return value


@dataclass(frozen=True)
class DateRange(ValueObject):
    """
    Date range value object

    Represents [start_date, end_date). Datetimes are truncated to their
    calendar date, so a stay is always a whole number of nights.
    """
    start_date: date
    end_date: date

    def __post_init__(self):
        object.__setattr__(self, 'start_date', as_date(self.start_date))
        object.__setattr__(self, 'end_date', as_date(self.end_date))
        if self.start_date >= self.end_date:
            raise ValueError(f"Start date ({self.start_date}) must be before end date ({self.end_date})")

    def nights(self) -> List[date]:
        """
        Every night of the stay, in ascending order

        The checkout date is never included:
            DateRange(2024-03-10, 2024-03-13).nights() -> [10th, 11th, 12th]
        """
        return [self.start_date + timedelta(days=offset) for offset in range(len(self))]

    def __len__(self) -> int:
        return (self.end_date - self.start_date).days

    def __str__(self):
        return f"{self.start_date.isoformat()} - {self.end_date.isoformat()}"

    def __repr__(self):
        return f"DateRange({self.start_date}, {self.end_date})"
