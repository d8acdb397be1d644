"""
Pricing Engine

Prices a stay night by night. For each night the applicable special-day
rule is the room-type rule if one exists, otherwise the global rule:

    no rule                  -> base price
    special_rate/multiplier  -> round_half_up(base * rate_value)
    special_rate/fixed       -> round_half_up(rate_value)
    blocked                  -> the stay cannot be priced (RuleViolation)

All amounts are integer minor units.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, List, Optional

from shared.domain.errors import RuleViolation, ValidationFailed
from shared.domain.value_objects import DateRange, round_half_up


class RuleType(str, Enum):
    BLOCKED = 'blocked'
    SPECIAL_RATE = 'special_rate'


class RateType(str, Enum):
    MULTIPLIER = 'multiplier'
    FIXED = 'fixed'


@dataclass(frozen=True)
class SpecialDayRule:
    date: date
    rule_type: RuleType
    room_type_id: Optional[int] = None
    rate_type: Optional[RateType] = None
    rate_value: Optional[Decimal] = None
    description: str = ''

    @property
    def is_blocked(self) -> bool:
        return self.rule_type == RuleType.BLOCKED

    def nightly_price(self, base_price: int) -> int:
        if self.rule_type != RuleType.SPECIAL_RATE or self.rate_type is None or self.rate_value is None:
            return base_price
        if self.rate_type == RateType.MULTIPLIER:
            return round_half_up(Decimal(base_price) * Decimal(self.rate_value))
        return round_half_up(self.rate_value)


def index_rules(rules: Iterable[SpecialDayRule], room_type_id: int) -> Dict[date, SpecialDayRule]:
    """
    Resolve the applicable rule per date for one room type.

    Room-type rules win over global ones; rules for other room types are
    ignored.
    """
    applicable: Dict[date, SpecialDayRule] = {}
    for rule in rules:
        if rule.room_type_id is None:
            applicable.setdefault(rule.date, rule)
        elif rule.room_type_id == room_type_id:
            applicable[rule.date] = rule
    return applicable


@dataclass(frozen=True)
class NightPrice:
    date: date
    original_price: int
    price: int
    rule_type: Optional[str] = None
    rate_type: Optional[str] = None
    rate_value: Optional[Decimal] = None
    description: str = ''

    @property
    def is_adjusted(self) -> bool:
        return self.rule_type is not None


@dataclass(frozen=True)
class PriceBreakdown:
    base_price: int
    adjusted_total: int
    rooms_booked: int
    currency: str
    nights: List[NightPrice] = field(default_factory=list)

    @property
    def difference(self) -> int:
        return self.adjusted_total - self.base_price

    @property
    def percentage_change(self) -> float:
        if not self.base_price:
            return 0.0
        return round(self.difference / self.base_price * 100, 2)

    @property
    def has_special_rates(self) -> bool:
        return any(night.is_adjusted for night in self.nights)

    def to_dict(self) -> dict:
        return {
            'base_price': self.base_price,
            'adjusted_total': self.adjusted_total,
            'difference': self.difference,
            'percentage_change': self.percentage_change,
            'has_special_rates': self.has_special_rates,
            'rooms_booked': self.rooms_booked,
            'currency': self.currency,
            'nights': [
                {
                    'date': night.date.isoformat(),
                    'original_price': night.original_price,
                    'price': night.price,
                    'rule_type': night.rule_type,
                    'rate_type': night.rate_type,
                    'rate_value': str(night.rate_value) if night.rate_value is not None else None,
                    'description': night.description,
                }
                for night in self.nights
            ],
        }


class PricingEngine:
    """Pure nightly pricing over already-loaded special-day rules"""

    def __init__(self, base_price: int, currency: str, rules: Dict[date, SpecialDayRule]):
        self.base_price = base_price
        self.currency = currency
        self.rules = rules

    def price(self, dates: DateRange, rooms: int) -> PriceBreakdown:
        if rooms < 1:
            raise ValidationFailed("Number of rooms must be at least 1.", details={'rooms': rooms})

        blocked = [night for night in dates.nights() if night in self.rules and self.rules[night].is_blocked]
        if blocked:
            raise RuleViolation(
                "The stay includes nights that are closed for booking.",
                details={'blocked_dates': [night.isoformat() for night in blocked]},
            )

        nights = []
        for night in dates.nights():
            rule = self.rules.get(night)
            if rule is None:
                nights.append(NightPrice(night, self.base_price, self.base_price))
                continue
            nights.append(NightPrice(
                date=night,
                original_price=self.base_price,
                price=rule.nightly_price(self.base_price),
                rule_type=rule.rule_type.value,
                rate_type=rule.rate_type.value if rule.rate_type else None,
                rate_value=rule.rate_value,
                description=rule.description,
            ))

        return PriceBreakdown(
            base_price=self.base_price * len(nights) * rooms,
            adjusted_total=sum(night.price for night in nights) * rooms,
            rooms_booked=rooms,
            currency=self.currency,
            nights=nights,
        )
