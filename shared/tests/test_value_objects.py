from datetime import date, datetime
from decimal import Decimal

import pytest

from shared.domain.value_objects import DateRange, round_half_up


def test_nights_excludes_checkout_date():
    stay = DateRange(date(2024, 3, 10), date(2024, 3, 13))

    assert stay.nights() == [date(2024, 3, 10), date(2024, 3, 11), date(2024, 3, 12)]
    assert len(stay) == 3


def test_nights_is_repeatable():
    stay = DateRange(date(2024, 12, 30), date(2025, 1, 2))

    assert stay.nights() == stay.nights()
    assert stay.nights()[-1] == date(2025, 1, 1)


def test_datetimes_are_truncated_to_dates():
    stay = DateRange(datetime(2024, 3, 10, 23, 59), datetime(2024, 3, 11, 0, 1))

    assert stay.start_date == date(2024, 3, 10)
    assert len(stay) == 1


@pytest.mark.parametrize("start,end", [
    (date(2024, 3, 10), date(2024, 3, 10)),
    (date(2024, 3, 11), date(2024, 3, 10)),
])
def test_empty_or_inverted_range_is_rejected(start, end):
    with pytest.raises(ValueError):
        DateRange(start, end)


def test_round_half_up_rounds_halves_away_from_zero():
    assert round_half_up(Decimal("2.5")) == 3
    assert round_half_up(Decimal("3.5")) == 4
    assert round_half_up(Decimal("2.49")) == 2
