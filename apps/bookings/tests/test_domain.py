"""Pure domain tests: ledger, pricing and booking rules."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from apps.bookings.domain.entities import BookingStatus, can_transition, ensure_transition
from apps.bookings.domain.events import InventoryAdjusted
from apps.bookings.domain.inventory import InventoryDirection, InventoryLedger
from apps.bookings.domain.pricing import PricingEngine, RateType, RuleType, SpecialDayRule, index_rules
from apps.bookings.domain.rules import (
    BookingRuleValidator,
    DepositTerms,
    DepositType,
    GuestType,
)
from shared.domain.errors import InvalidTransition, NoAvailability, RuleViolation, ValidationFailed
from shared.domain.value_objects import DateRange

TODAY = date(2024, 3, 1)
STAY = DateRange(date(2024, 3, 10), date(2024, 3, 13))


def ledger(total=5, remaining=None, blocked=frozenset()):
    return InventoryLedger(
        room_type_id=1,
        total_rooms=total,
        dates=STAY,
        remaining=dict(remaining or {}),
        blocked=blocked,
    )


# ----- inventory ledger -----

def test_missing_nights_count_as_full_capacity():
    result = ledger(total=5).availability(5)

    assert result.is_available
    assert result.min_availability == 5


def test_availability_reports_every_short_night():
    result = ledger(total=5, remaining={date(2024, 3, 11): 1, date(2024, 3, 12): 0}).availability(2)

    assert not result.is_available
    assert result.blocking_dates == [date(2024, 3, 11), date(2024, 3, 12)]
    assert result.min_availability == 0


def test_blocked_night_is_unavailable_regardless_of_count():
    result = ledger(blocked=frozenset({date(2024, 3, 11)})).availability(1)

    assert not result.is_available
    assert result.blocked_dates == [date(2024, 3, 11)]


def test_decrement_is_all_or_nothing():
    book = ledger(total=5, remaining={date(2024, 3, 12): 1})

    with pytest.raises(NoAvailability) as excinfo:
        book.decrement(2)

    assert excinfo.value.blocking_dates == [date(2024, 3, 12)]
    assert book.remaining_on(date(2024, 3, 10)) == 5
    assert book.events == []


def test_sequential_decrements_never_go_below_zero():
    book = ledger(total=5)
    confirmed = 0
    for _ in range(7):
        try:
            book.decrement(2)
            confirmed += 1
        except NoAvailability:
            pass

    assert confirmed == 2
    assert all(book.remaining_on(night) == 1 for night in STAY.nights())


def test_increment_is_clamped_to_total():
    book = ledger(total=5, remaining={night: 4 for night in STAY.nights()})

    book.increment(3)

    assert all(book.remaining_on(night) == 5 for night in STAY.nights())


def test_adjustments_record_events():
    book = ledger(total=5)

    book.apply(2, InventoryDirection.DECREMENT)

    [event] = book.events
    assert isinstance(event, InventoryAdjusted)
    assert event.rooms == 2
    assert event.direction == "decrement"


def test_negative_counts_are_rejected():
    with pytest.raises(ValueError):
        ledger(total=2, remaining={date(2024, 3, 10): -1})


def test_counts_above_a_reduced_total_are_capped():
    shrunk = ledger(total=2, remaining={date(2024, 3, 10): 4, date(2024, 3, 11): 1})

    assert shrunk.remaining_on(date(2024, 3, 10)) == 2
    assert shrunk.availability(2).blocking_dates == [date(2024, 3, 11)]

    shrunk.decrement(1)

    assert shrunk.remaining_on(date(2024, 3, 10)) == 1


def test_rooms_must_be_positive():
    with pytest.raises(ValidationFailed):
        ledger().decrement(0)


# ----- pricing -----

def test_price_without_rules_is_base_times_nights_times_rooms():
    breakdown = PricingEngine(10000, "USD", {}).price(STAY, 2)

    assert breakdown.adjusted_total == 60000
    assert breakdown.base_price == 60000
    assert not breakdown.has_special_rates


def test_multiplier_rule_applies_to_its_night_only():
    rule = SpecialDayRule(
        date=date(2024, 3, 11),
        rule_type=RuleType.SPECIAL_RATE,
        rate_type=RateType.MULTIPLIER,
        rate_value=Decimal("1.5"),
    )
    breakdown = PricingEngine(10000, "USD", {rule.date: rule}).price(STAY, 1)

    assert [night.price for night in breakdown.nights] == [10000, 15000, 10000]
    assert breakdown.adjusted_total == 35000
    assert breakdown.difference == 5000
    assert breakdown.has_special_rates


def test_fixed_rate_rounds_half_up():
    rule = SpecialDayRule(
        date=date(2024, 3, 10),
        rule_type=RuleType.SPECIAL_RATE,
        rate_type=RateType.FIXED,
        rate_value=Decimal("12345.5"),
    )
    breakdown = PricingEngine(10000, "USD", {rule.date: rule}).price(DateRange(date(2024, 3, 10), date(2024, 3, 11)), 1)

    assert breakdown.adjusted_total == 12346


def test_blocked_night_makes_the_stay_unpriceable():
    rule = SpecialDayRule(date=date(2024, 3, 12), rule_type=RuleType.BLOCKED)

    with pytest.raises(RuleViolation):
        PricingEngine(10000, "USD", {rule.date: rule}).price(STAY, 1)


def test_room_type_rule_beats_global_rule():
    global_rule = SpecialDayRule(
        date=date(2024, 3, 10), rule_type=RuleType.SPECIAL_RATE,
        rate_type=RateType.MULTIPLIER, rate_value=Decimal("2"),
    )
    specific = SpecialDayRule(
        date=date(2024, 3, 10), rule_type=RuleType.SPECIAL_RATE, room_type_id=1,
        rate_type=RateType.MULTIPLIER, rate_value=Decimal("1.1"),
    )
    other_room = SpecialDayRule(date=date(2024, 3, 11), rule_type=RuleType.BLOCKED, room_type_id=2)

    rules = index_rules([specific, global_rule, other_room], room_type_id=1)

    assert rules == {date(2024, 3, 10): specific}


# ----- booking rules -----

@pytest.mark.parametrize("days_ahead,allowed", [
    (2, False),
    (3, True),
    (90, True),
    (91, False),
])
def test_regular_guest_window_boundaries(days_ahead, allowed):
    validator = BookingRuleValidator()
    start = TODAY + timedelta(days=days_ahead)
    dates = DateRange(start, start + timedelta(days=2))

    if allowed:
        assert validator.validate(dates, 1, 5, GuestType.REGULAR, TODAY) == []
    else:
        with pytest.raises(RuleViolation):
            validator.validate(dates, 1, 5, GuestType.REGULAR, TODAY)


def test_vip_may_book_further_ahead():
    validator = BookingRuleValidator()
    start = TODAY + timedelta(days=200)

    validator.validate_window(start, GuestType.VIP, TODAY)
    with pytest.raises(RuleViolation):
        validator.validate_window(start, GuestType.REGULAR, TODAY)


def test_arrival_in_the_past_is_invalid():
    with pytest.raises(ValidationFailed):
        BookingRuleValidator().validate_dates(DateRange(TODAY - timedelta(days=1), TODAY + timedelta(days=1)), TODAY)


def test_more_rooms_than_the_room_type_has_is_invalid():
    with pytest.raises(ValidationFailed):
        BookingRuleValidator.validate_rooms(6, 5)


def test_special_rate_nights_produce_warnings():
    start = TODAY + timedelta(days=10)
    rule = SpecialDayRule(
        date=start, rule_type=RuleType.SPECIAL_RATE,
        rate_type=RateType.MULTIPLIER, rate_value=Decimal("1.5"), description="Festival",
    )
    warnings = BookingRuleValidator().validate(
        DateRange(start, start + timedelta(days=1)), 1, 5, GuestType.REGULAR, TODAY, {start: rule}
    )

    assert warnings == [f"Special rate applies on {start.isoformat()}: Festival"]


def test_group_deposit_is_a_percentage_of_the_total():
    terms = DepositTerms(min_rooms=3, max_rooms=10, deposit_type=DepositType.PERCENT, value=Decimal("20"))
    validator = BookingRuleValidator(deposit_terms=[terms])

    assert validator.deposit_for(3, 90000) == 18000
    assert validator.deposit_for(2, 90000) is None


def test_fixed_deposit_never_exceeds_the_total():
    terms = DepositTerms(min_rooms=2, max_rooms=5, deposit_type=DepositType.FIXED, value=Decimal("50000"))

    assert terms.amount_for(40000) == 40000
    assert terms.amount_for(80000) == 50000


def test_deposit_terms_overlap_on_shared_room_counts():
    small = DepositTerms(min_rooms=2, max_rooms=3, deposit_type=DepositType.PERCENT, value=Decimal("25"))

    assert small.overlaps(DepositTerms(min_rooms=3, max_rooms=6, deposit_type=DepositType.FIXED, value=Decimal("1")))
    assert not small.overlaps(DepositTerms(min_rooms=4, max_rooms=6, deposit_type=DepositType.FIXED, value=Decimal("1")))


# ----- status transitions -----

def test_terminal_states_cannot_transition():
    assert can_transition(BookingStatus.PROVISIONAL, BookingStatus.CONFIRMED)
    assert not can_transition(BookingStatus.CANCELLED, BookingStatus.CONFIRMED)
    with pytest.raises(InvalidTransition):
        ensure_transition(BookingStatus.EXPIRED, BookingStatus.CANCELLED)
