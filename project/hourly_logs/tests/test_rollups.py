from datetime import date
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from hourly_logs import rollups
from hourly_logs.models import DailyRollup
from hourly_logs.rollups import run_daily_snapshot, snapshot_date
from hourly_logs.store import create_hourly_log


@pytest.mark.django_db
class TestSnapshotDate:
    """One DailyRollup row per local date, recomputed from hourly logs."""

    def test_sums_targets_and_output(self, assignment, qty_assignment, day):
        create_hourly_log(assignment, day, 8, {'qty_normal': 50, 'qty_reject': 2})
        create_hourly_log(qty_assignment, day, 23, {'qty': 15})
        create_hourly_log(qty_assignment, '2026-01-16', 0, {'qty': 99})

        rollup = snapshot_date(day)
        assert rollup.actual_value == 67
        assert rollup.target_value == 11 + 20

    def test_rerun_is_idempotent(self, assignment, day):
        create_hourly_log(assignment, day, 8, {'qty_normal': 50})
        first = snapshot_date(day)
        second = snapshot_date(day)

        assert DailyRollup.objects.count() == 1
        assert (first.target_value, first.actual_value) == (second.target_value, second.actual_value)

    def test_picks_up_later_changes(self, assignment, day):
        snapshot_date(day)
        create_hourly_log(assignment, day, 8, {'qty_normal': 50})
        assert snapshot_date(day).actual_value == 50

    def test_empty_day_gets_zero_row(self, db, day):
        rollup = snapshot_date(day)
        assert (rollup.date, rollup.target_value, rollup.actual_value) == (day, 0, 0)


@pytest.mark.django_db
class TestRunDailySnapshot:

    def test_processes_lookback_window(self, db, clock):
        result = run_daily_snapshot(lookback_days=2, clock=clock)
        assert result.processed == [date(2026, 1, 13), date(2026, 1, 14), date(2026, 1, 15)]
        assert result.failed == []
        assert DailyRollup.objects.count() == 3

    def test_failure_on_one_date_does_not_stop_others(self, db, monkeypatch):
        real_snapshot = rollups.snapshot_date

        def flaky(day):
            if day == date(2026, 1, 14):
                raise RuntimeError('database went away')
            return real_snapshot(day)

        monkeypatch.setattr('hourly_logs.rollups.snapshot_date', flaky)
        result = run_daily_snapshot(as_of='2026-01-15', lookback_days=2)

        assert result.failed == [date(2026, 1, 14)]
        assert result.processed == [date(2026, 1, 13), date(2026, 1, 15)]
        assert set(DailyRollup.objects.values_list('date', flat=True)) == {date(2026, 1, 13), date(2026, 1, 15)}


@pytest.mark.django_db
class TestAggregateDailyLogsCommand:

    def test_command_output(self, assignment, day):
        create_hourly_log(assignment, day, 8, {'qty_normal': 50})
        out = StringIO()

        call_command('aggregate_daily_logs', date='2026-01-15', lookback_days=1, stdout=out)

        assert 'Aggregated 2026-01-15' in out.getvalue()
        assert 'Successfully aggregated 2 days' in out.getvalue()
        assert DailyRollup.objects.get(date=day).actual_value == 50

    def test_bad_date(self, db):
        with pytest.raises(CommandError):
            call_command('aggregate_daily_logs', date='15-01-2026', stdout=StringIO())

    def test_failed_dates_fail_the_command(self, db, monkeypatch):
        def broken(day):
            raise RuntimeError('boom')

        monkeypatch.setattr('hourly_logs.rollups.snapshot_date', broken)
        with pytest.raises(CommandError):
            call_command('aggregate_daily_logs', date='2026-01-15', lookback_days=0, stdout=StringIO())
