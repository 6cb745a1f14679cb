"""
Daily rollup snapshots.

Each local date's DailyRollup holds the summed snapshotted targets and summed
output of every hourly log recorded that day. A run always recomputes from the
hourly logs, so repeated or overlapping runs converge to the same values.
"""
# Standard library imports
import logging
from datetime import timedelta
from typing import NamedTuple

# Django imports
from django.conf import settings
from django.db import transaction

# Local application imports
from .aggregation import summed, output_expression, target_expression
from .models import DailyRollup, HourlyLog
from .time_anchor import local_date_range_to_utc, local_date_span, local_today, parse_local_date

logger = logging.getLogger(__name__)


class SnapshotResult(NamedTuple):
    processed: list
    failed: list


def snapshot_date(day):
    """
    Recompute the DailyRollup row for one local date.

    Returns:
        the refreshed DailyRollup
    """
    utc_start, utc_end = local_date_range_to_utc(day)
    with transaction.atomic():
        DailyRollup.objects.upsert(
            [DailyRollup(date=day)], unique_fields=['date'], update_fields=['updated_at']
        )
        totals = HourlyLog.objects.filter(recorded_at__range=(utc_start, utc_end)).aggregate(
            target=summed(target_expression()),
            actual=summed(output_expression()),
        )
        DailyRollup.objects.filter(date=day).update(
            target_value=totals['target'],
            actual_value=totals['actual'],
        )
    return DailyRollup.objects.get(date=day)


def run_daily_snapshot(as_of=None, lookback_days=None, clock=None):
    """
    Refresh DailyRollup for every local date in [as_of - lookback_days, as_of].

    A failure on one date is logged and reported; the other dates still run.

    Parameters:
        as_of: last local date to process, today (local) by default
        lookback_days: days before ``as_of`` to include, DAILY_ROLLUP_LOOKBACK_DAYS by default
        clock: callable returning the current aware datetime

    Returns:
        SnapshotResult(processed, failed), both lists of dates
    """
    as_of = parse_local_date(as_of) if as_of is not None else local_today(clock)
    if lookback_days is None:
        lookback_days = settings.DAILY_ROLLUP_LOOKBACK_DAYS
    lookback_days = max(int(lookback_days), 0)

    processed, failed = [], []
    for day in local_date_span(as_of - timedelta(days=lookback_days), as_of):
        try:
            rollup = snapshot_date(day)
        except Exception:
            logger.exception("Daily rollup failed for %s", day)
            failed.append(day)
            continue
        logger.info("Daily rollup for %s: target=%s actual=%s", day, rollup.target_value, rollup.actual_value)
        processed.append(day)
    return SnapshotResult(processed, failed)
