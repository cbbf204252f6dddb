"""Tests for date and time-of-day helpers."""
from datetime import date, datetime, time, timezone

import pytest

from timeledger.exceptions import ValidationError
from timeledger.time_utils import (
    current_week_range,
    parse_iso_date,
    parse_time_of_day,
    shift_duration_minutes,
    validate_date_range,
)


class TestParsing:

    def test_time_of_day(self):
        assert parse_time_of_day("07:05") == time(7, 5)
        assert parse_time_of_day(time(23, 59)) == time(23, 59)

    @pytest.mark.parametrize("value", ["24:00", "7h30", "", None, "08:00:30"])
    def test_bad_time_of_day(self, value):
        with pytest.raises(ValidationError):
            parse_time_of_day(value)

    def test_seconds_rejected_on_time_objects(self):
        with pytest.raises(ValidationError):
            parse_time_of_day(time(8, 0, 1))

    def test_iso_date(self):
        assert parse_iso_date("2024-02-29") == date(2024, 2, 29)
        with pytest.raises(ValidationError):
            parse_iso_date("2023-02-29")

    def test_inverted_range(self):
        with pytest.raises(ValidationError):
            validate_date_range(date(2024, 3, 2), date(2024, 3, 1))


class TestDurations:

    def test_same_day(self):
        assert shift_duration_minutes(time(8, 0), time(17, 30)) == 570

    def test_across_midnight(self):
        assert shift_duration_minutes(time(22, 0), time(6, 0)) == 480


class TestCurrentWeek:

    def test_uses_local_date(self):
        """02:00 UTC on a Monday is still Sunday evening in Sao Paulo."""
        now = datetime(2024, 3, 4, 2, 0, tzinfo=timezone.utc)
        assert current_week_range("America/Sao_Paulo", now) == (date(2024, 2, 26), date(2024, 3, 3))

    def test_monday_to_sunday(self):
        now = datetime(2024, 3, 6, 15, 0, tzinfo=timezone.utc)
        assert current_week_range("America/Sao_Paulo", now) == (date(2024, 3, 4), date(2024, 3, 10))
