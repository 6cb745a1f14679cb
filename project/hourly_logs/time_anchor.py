"""
Conversion between the plant's civil time zone and UTC storage.

Reporting days and hours are defined in local civil time (PRODUCTION_TIME_ZONE,
Asia/Jakarta by default, UTC+7 without DST) while every timestamp is stored in
UTC. Every query boundary goes through this module: local midnight is 17:00 UTC
on the previous calendar day.

Functions that need "now" take an optional ``clock``: a callable returning an
aware datetime. It defaults to ``django.utils.timezone.now``.
"""
# Standard library imports
from datetime import date, datetime, time, timedelta, timezone as dt_timezone
from functools import lru_cache
from zoneinfo import ZoneInfo

# Django imports
from django.conf import settings
from django.utils import timezone

# Local application imports
from .constants import HOUR_LABEL_FORMAT
from .exceptions import InvalidArgument

UTC = dt_timezone.utc

END_OF_DAY = time(23, 59, 59)


@lru_cache(maxsize=None)
def _zone(name):
    return ZoneInfo(name)


def local_tz():
    """The plant's civil time zone."""
    return _zone(settings.PRODUCTION_TIME_ZONE)


def local_now(clock=None):
    now = (clock or timezone.now)()
    if timezone.is_naive(now):
        raise InvalidArgument("Clock returned a naive datetime")
    return now.astimezone(local_tz())


def local_today(clock=None):
    return local_now(clock).date()


def parse_local_date(value):
    """
    Parse a local calendar date given as a date or a 'YYYY-MM-DD' string.

    Other external formats (dd/mm/yyyy and friends) must be normalized by the
    caller before they get here.
    """
    if isinstance(value, datetime):
        raise InvalidArgument(f"Expected a date, got a datetime: {value!r}")
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), '%Y-%m-%d').date()
    except ValueError:
        raise InvalidArgument(f"Invalid date '{value}'. Use YYYY-MM-DD") from None


def parse_local_date_or_today(value, clock=None):
    """Like parse_local_date, but a missing value means today (local)."""
    if value is None or str(value).strip() in ('', 'undefined', 'null'):
        return local_today(clock)
    return parse_local_date(value)


def to_storage_hour(local_date, hour):
    """
    Interpret ``local_date`` at ``hour``:00:00 in local time and return the UTC instant.

    Raises InvalidArgument when hour is not an integer in [0, 23].
    """
    local_date = parse_local_date(local_date)
    if isinstance(hour, bool) or not isinstance(hour, int) or not 0 <= hour <= 23:
        raise InvalidArgument(f"Hour must be an integer between 0 and 23, got {hour!r}")
    local_dt = datetime.combine(local_date, time(hour=hour), tzinfo=local_tz())
    return local_dt.astimezone(UTC)


def local_date_range_to_utc(local_date):
    """
    Return the UTC instants of 00:00:00 and 23:59:59 local time on ``local_date``.

    Both bounds are inclusive, suitable for a ``__range`` lookup.
    """
    local_date = parse_local_date(local_date)
    tz = local_tz()
    start = datetime.combine(local_date, time.min, tzinfo=tz)
    end = datetime.combine(local_date, END_OF_DAY, tzinfo=tz)
    return start.astimezone(UTC), end.astimezone(UTC)


def local_period_to_utc(date_from, date_to):
    """UTC bounds covering every local day from ``date_from`` to ``date_to`` inclusive."""
    date_from = parse_local_date(date_from)
    date_to = parse_local_date(date_to)
    if date_from > date_to:
        raise InvalidArgument(f"date_from {date_from} is after date_to {date_to}")
    return local_date_range_to_utc(date_from)[0], local_date_range_to_utc(date_to)[1]


def utc_to_local_display(ts):
    """Map a stored UTC timestamp back to its local (date, hour)."""
    if timezone.is_naive(ts):
        raise InvalidArgument(f"Expected an aware timestamp, got {ts!r}")
    local = ts.astimezone(local_tz())
    return local.date(), local.hour


def format_local_hour(ts):
    return ts.astimezone(local_tz()).strftime(HOUR_LABEL_FORMAT)


def local_date_span(start, end):
    """Every local date from ``start`` to ``end`` inclusive."""
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]
