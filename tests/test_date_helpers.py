from datetime import date, datetime

import pytest

from pocketledger.utils.date_helpers import (
    add_months, add_years, day_range, month_range, parse_datetime,
    recent_months, to_storage, validate_month,
)


class TestParsing:
    @pytest.mark.parametrize("value,expected", [
        ("2024-03-05", datetime(2024, 3, 5)),
        ("2024-03-05 10:11:12", datetime(2024, 3, 5, 10, 11, 12)),
        ("2024-03-05T10:11:12", datetime(2024, 3, 5, 10, 11, 12)),
        (date(2024, 3, 5), datetime(2024, 3, 5)),
        ("", None),
        ("yesterday", None),
    ])
    def test_parse(self, value, expected):
        assert parse_datetime(value) == expected

    def test_to_storage_rejects_garbage(self):
        with pytest.raises(ValueError):
            to_storage("31/12/2024")


class TestRanges:
    def test_month_range_leap_february(self):
        assert month_range(2, 2024) == ("2024-02-01 00:00:00", "2024-02-29 23:59:59")

    def test_day_range_is_half_open(self):
        assert day_range(date(2024, 12, 31)) == ("2024-12-31 00:00:00", "2025-01-01 00:00:00")

    def test_validate_month(self):
        with pytest.raises(ValueError):
            validate_month(13, 2024)


class TestArithmetic:
    @pytest.mark.parametrize("start,n,expected", [
        (date(2024, 1, 31), 1, date(2024, 2, 29)),
        (date(2023, 1, 31), 1, date(2023, 2, 28)),
        (date(2024, 12, 15), 1, date(2025, 1, 15)),
        (date(2024, 3, 31), -1, date(2024, 2, 29)),
    ])
    def test_add_months_clamps(self, start, n, expected):
        assert add_months(start, n) == expected

    def test_add_years_from_leap_day(self):
        assert add_years(date(2024, 2, 29), 1) == date(2025, 2, 28)

    def test_recent_months_oldest_first(self):
        assert recent_months(date(2024, 2, 10), 4) == [(11, 2023), (12, 2023), (1, 2024), (2, 2024)]
