from datetime import date, datetime, timezone

import pytest

from hourly_logs.exceptions import InvalidArgument
from hourly_logs.time_anchor import (
    UTC, format_local_hour, local_date_range_to_utc, local_date_span, local_period_to_utc,
    local_today, parse_local_date, parse_local_date_or_today, to_storage_hour, utc_to_local_display,
)


class TestStorageHour:
    """Local date + hour to UTC storage instant and back."""

    @pytest.mark.parametrize('local_date', [date(2026, 1, 15), date(2024, 2, 29), date(2025, 12, 31)])
    def test_round_trip_every_hour(self, local_date):
        """Every hour of a local day maps back to the same local date and hour."""
        for hour in range(24):
            assert utc_to_local_display(to_storage_hour(local_date, hour)) == (local_date, hour)

    def test_local_midnight_is_previous_utc_day(self):
        """Local 00:00 is 17:00 UTC on the previous calendar day."""
        assert to_storage_hour(date(2026, 1, 15), 0) == datetime(2026, 1, 14, 17, 0, tzinfo=UTC)

    def test_result_is_whole_utc_hour(self):
        stored = to_storage_hour('2026-01-15', 8)
        assert stored == datetime(2026, 1, 15, 1, 0, tzinfo=UTC)
        assert stored.utcoffset().total_seconds() == 0
        assert (stored.minute, stored.second, stored.microsecond) == (0, 0, 0)

    @pytest.mark.parametrize('hour', [-1, 24, 100, True, '5', 7.0, None])
    def test_rejects_invalid_hour(self, hour):
        with pytest.raises(InvalidArgument):
            to_storage_hour(date(2026, 1, 15), hour)


class TestDayRange:
    """Local calendar day to inclusive UTC bounds."""

    def test_day_boundaries(self):
        """2026-01-15 local runs from 17:00 UTC on the 14th to 16:59:59 UTC on the 15th."""
        start, end = local_date_range_to_utc('2026-01-15')
        assert start == datetime(2026, 1, 14, 17, 0, 0, tzinfo=UTC)
        assert end == datetime(2026, 1, 15, 16, 59, 59, tzinfo=UTC)

    def test_period_spans_both_days(self):
        start, end = local_period_to_utc('2026-01-14', '2026-01-15')
        assert start == datetime(2026, 1, 13, 17, 0, tzinfo=UTC)
        assert end == datetime(2026, 1, 15, 16, 59, 59, tzinfo=UTC)

    def test_period_must_be_ordered(self):
        with pytest.raises(InvalidArgument):
            local_period_to_utc('2026-01-16', '2026-01-15')

    def test_date_span_is_inclusive(self):
        assert local_date_span(date(2026, 1, 14), date(2026, 1, 16)) == [
            date(2026, 1, 14), date(2026, 1, 15), date(2026, 1, 16),
        ]


class TestLocalDates:
    """Parsing dates and reading 'today' from an injected clock."""

    def test_parse_iso_date(self):
        assert parse_local_date('2026-01-15') == date(2026, 1, 15)
        assert parse_local_date(date(2026, 1, 15)) == date(2026, 1, 15)

    @pytest.mark.parametrize('value', ['15/01/2026', '2026-13-01', 'yesterday', ''])
    def test_parse_rejects_other_formats(self, value):
        with pytest.raises(InvalidArgument):
            parse_local_date(value)

    def test_today_follows_local_calendar(self):
        """18:30 UTC is already the next day in local time."""
        clock = lambda: datetime(2026, 1, 15, 18, 30, tzinfo=timezone.utc)  # noqa: E731
        assert local_today(clock) == date(2026, 1, 16)

    @pytest.mark.parametrize('value', [None, '', 'undefined', 'null'])
    def test_missing_date_means_today(self, value, clock):
        assert parse_local_date_or_today(value, clock) == date(2026, 1, 15)

    def test_naive_clock_is_rejected(self):
        with pytest.raises(InvalidArgument):
            local_today(lambda: datetime(2026, 1, 15, 3, 0))

    def test_format_local_hour(self):
        assert format_local_hour(datetime(2026, 1, 14, 23, 0, tzinfo=UTC)) == '2026-01-15 06:00'
