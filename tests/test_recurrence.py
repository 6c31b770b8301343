from datetime import date

import pytest

from finance_ledger.models import Frequency
from finance_ledger.services.recurrence import next_payment_date


@pytest.mark.parametrize("current, frequency, expected", [
    (date(2024, 3, 1), Frequency.WEEKLY, date(2024, 3, 8)),
    (date(2024, 12, 25), Frequency.BIWEEKLY, date(2025, 1, 8)),
    (date(2024, 1, 15), Frequency.MONTHLY, date(2024, 2, 15)),
    (date(2024, 11, 30), Frequency.QUARTERLY, date(2025, 2, 28)),
    (date(2024, 8, 31), Frequency.SEMI_ANNUALLY, date(2025, 2, 28)),
    (date(2023, 6, 10), Frequency.YEARLY, date(2024, 6, 10)),
])
def test_next_payment_date(current, frequency, expected):
    assert next_payment_date(current, frequency) == expected


def test_month_end_is_clamped():
    assert next_payment_date(date(2024, 1, 31), Frequency.MONTHLY) == date(2024, 2, 29)
    assert next_payment_date(date(2023, 1, 31), Frequency.MONTHLY) == date(2023, 2, 28)
    assert next_payment_date(date(2024, 2, 29), Frequency.YEARLY) == date(2025, 2, 28)


def test_accepts_plain_strings():
    assert next_payment_date(date(2024, 3, 1), "WEEKLY") == date(2024, 3, 8)


def test_unknown_frequency_advances_one_month():
    assert next_payment_date(date(2024, 3, 31), "DAILY") == date(2024, 4, 30)
