"""
Tests for the month and year boundary helpers.
"""
from datetime import datetime

from utils.dates import days_between, month_bounds, year_bounds


class TestBounds:
    def test_month_bounds(self):
        assert month_bounds(datetime(2024, 2, 29, 17, 45)) == (datetime(2024, 2, 1), datetime(2024, 3, 1))

    def test_december_rolls_into_next_year(self):
        assert month_bounds(datetime(2024, 12, 31, 23, 59)) == (datetime(2024, 12, 1), datetime(2025, 1, 1))

    def test_year_bounds(self):
        assert year_bounds(2024) == (datetime(2024, 1, 1), datetime(2025, 1, 1))


def test_days_between_is_symmetric():
    a, b = datetime(2024, 1, 1), datetime(2024, 1, 3, 12)
    assert days_between(a, b) == days_between(b, a) == 2.5
