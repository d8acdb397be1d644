"""
Inventory Ledger Aggregate

All room-night accounting for one room type over one stay goes through
this aggregate. The service layer loads it from row-locked inventory
records, applies a single adjustment, and writes the nights back in the
same transaction.

Invariant: for every night, 0 <= remaining <= total_rooms. Stored counts
above the total (left behind when a room type shrinks) are read as the
total.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, FrozenSet, List

from shared.domain.base import Aggregate
from shared.domain.errors import NoAvailability, ValidationFailed
from shared.domain.value_objects import DateRange


class InventoryDirection(str, Enum):
    DECREMENT = 'decrement'
    INCREMENT = 'increment'


@dataclass(frozen=True)
class AvailabilityResult:
    is_available: bool
    min_availability: int
    blocking_dates: List[date]
    blocked_dates: List[date] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'is_available': self.is_available,
            'min_availability': self.min_availability,
            'blocking_dates': [d.isoformat() for d in self.blocking_dates],
            'blocked_dates': [d.isoformat() for d in self.blocked_dates],
        }


@dataclass(kw_only=True, eq=False)
class InventoryLedger(Aggregate):
    """
    Remaining rooms per night for a single room type.

    ``remaining`` may omit nights; an omitted night has the full
    ``total_rooms``. ``blocked`` lists nights closed by a special-day rule,
    which are never sellable regardless of remaining count.
    """
    room_type_id: int
    total_rooms: int
    dates: DateRange
    remaining: Dict[date, int] = field(default_factory=dict)
    blocked: FrozenSet[date] = frozenset()

    def __post_init__(self):
        if self.total_rooms < 1:
            raise ValidationFailed("A room type needs at least one room.")
        if self.id is None or not isinstance(self.id, int):
            self.id = self.room_type_id
        for night, value in self.remaining.items():
            if value < 0:
                raise ValueError(f"Inventory for {night} is negative: {value}")
            if value > self.total_rooms:
                self.remaining[night] = self.total_rooms

    def remaining_on(self, night: date) -> int:
        return self.remaining.get(night, self.total_rooms)

    def blocking_nights(self, rooms: int) -> List[date]:
        """Nights that cannot supply ``rooms`` rooms"""
        return [
            night for night in self.dates.nights()
            if night in self.blocked or self.remaining_on(night) < rooms
        ]

    def availability(self, rooms: int) -> AvailabilityResult:
        _require_positive(rooms)
        nights = self.dates.nights()
        blocking = self.blocking_nights(rooms)
        return AvailabilityResult(
            is_available=not blocking,
            min_availability=min(
                0 if night in self.blocked else self.remaining_on(night) for night in nights
            ),
            blocking_dates=blocking,
            blocked_dates=sorted(night for night in nights if night in self.blocked),
        )

    def decrement(self, rooms: int) -> None:
        """
        Take ``rooms`` from every night of the stay.

        All-or-nothing: every night is checked before any is changed, and
        NoAvailability lists each night that falls short.
        """
        _require_positive(rooms)
        short = [night for night in self.dates.nights() if self.remaining_on(night) < rooms]
        if short:
            raise NoAvailability(
                f"Only {min(self.remaining_on(n) for n in short)} room(s) left on "
                f"{len(short)} night(s), {rooms} requested.",
                blocking_dates=short,
            )
        for night in self.dates.nights():
            self.remaining[night] = self.remaining_on(night) - rooms
        self._record(rooms, InventoryDirection.DECREMENT)

    def increment(self, rooms: int) -> None:
        """Return ``rooms`` to every night, never exceeding total_rooms."""
        _require_positive(rooms)
        for night in self.dates.nights():
            self.remaining[night] = min(self.total_rooms, self.remaining_on(night) + rooms)
        self._record(rooms, InventoryDirection.INCREMENT)

    def apply(self, rooms: int, direction: InventoryDirection) -> None:
        if InventoryDirection(direction) == InventoryDirection.DECREMENT:
            self.decrement(rooms)
        else:
            self.increment(rooms)

    def _record(self, rooms: int, direction: InventoryDirection):
        from apps.bookings.domain.events import InventoryAdjusted

        self.add_event(InventoryAdjusted(
            aggregate_id=self.room_type_id,
            room_type_id=self.room_type_id,
            start_date=self.dates.start_date,
            end_date=self.dates.end_date,
            rooms=rooms,
            direction=direction.value,
        ))

    def __repr__(self):
        return (
            f"InventoryLedger(room_type_id={self.room_type_id}, total_rooms={self.total_rooms}, "
            f"dates={self.dates!r})"
        )


def _require_positive(rooms: int) -> None:
    if rooms < 1:
        raise ValidationFailed("Number of rooms must be at least 1.", details={'rooms': rooms})
