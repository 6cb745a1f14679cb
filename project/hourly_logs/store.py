"""
Hourly log persistence.

At most one HourlyLog exists per (assignment, recorded hour). Every write path
checks for an existing row first and the unique constraint catches the rest;
both surface as DuplicateEntry.
"""
# Standard library imports
import logging

# Django imports
from django.db import IntegrityError, transaction
from django.db.models import Q

# Local application imports
from .constants import HOURLY_LOG_SORTS, OUTPUT_FIELDS, QUANTITY_FIELDS
from .exceptions import DuplicateEntry, InvalidArgument, NotFound
from .models import HourlyLog
from .targets import TargetResolver, get_assignment
from .time_anchor import parse_local_date, to_storage_hour, utc_to_local_display

logger = logging.getLogger(__name__)


def choose_sort(sort, allowed):
    """Return ``sort`` if it is in the allow-list, else the list's default (first) entry."""
    return sort if sort in allowed else allowed[0]


def is_descending(direction):
    return str(direction).lower() == 'desc'


def _actor(user):
    if user is not None and getattr(user, 'is_authenticated', False):
        return user
    return None


def _check_quantity(name, value):
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidArgument(f"{name} must be a non-negative integer")
    return value


def clean_output_fields(config, fields):
    """
    Validate output values against a machine group's input config.

    Parameters:
        config: InputConfig of the machine group
        fields: dict of output field name to value; missing names are stored as null

    Returns:
        dict with a value (possibly None) for every output field
    """
    unknown = sorted(set(fields) - set(OUTPUT_FIELDS))
    if unknown:
        raise InvalidArgument(f"Unknown output fields: {', '.join(unknown)}")

    cleaned = {name: None for name in OUTPUT_FIELDS}
    for name, value in fields.items():
        if value is None:
            continue
        if not config.accepts(name):
            raise InvalidArgument(f"This machine group does not record '{name}'")
        if name in QUANTITY_FIELDS:
            cleaned[name] = _check_quantity(name, value)
        elif name == 'grades':
            if not isinstance(value, dict):
                raise InvalidArgument("grades must map grade labels to quantities")
            for label, quantity in value.items():
                if not config.is_valid_grade(label):
                    raise InvalidArgument(f"Unknown grade '{label}'")
                _check_quantity(f"Quantity for grade '{label}'", quantity)
            cleaned[name] = dict(value)
        elif name == 'grade':
            if not config.is_valid_grade(value):
                raise InvalidArgument(f"Unknown grade '{value}'")
            cleaned[name] = str(value)
        else:
            cleaned[name] = str(value)
    return cleaned


def _ensure_free(assignment_id, recorded_at, exclude_pk=None):
    existing = HourlyLog.objects.filter(assignment_id=assignment_id, recorded_at=recorded_at)
    if exclude_pk is not None:
        existing = existing.exclude(pk=exclude_pk)
    if existing.exists():
        raise DuplicateEntry(assignment_id, recorded_at)


def _save(log, update_fields=None):
    """Save inside a savepoint; a lost race on the unique hour becomes DuplicateEntry."""
    try:
        with transaction.atomic():
            log.save(update_fields=update_fields)
    except IntegrityError:
        taken = HourlyLog.objects.filter(assignment_id=log.assignment_id, recorded_at=log.recorded_at)
        if log.pk is not None:
            taken = taken.exclude(pk=log.pk)
        if taken.exists():
            raise DuplicateEntry(log.assignment_id, log.recorded_at) from None
        raise


def get_hourly_log(pk):
    try:
        return HourlyLog.objects.select_related(
            'assignment__production', 'assignment__machine_group'
        ).get(pk=pk)
    except (HourlyLog.DoesNotExist, TypeError, ValueError):
        raise NotFound(f"Hourly log {pk} not found") from None


def find_hourly_log(assignment, local_date, hour):
    """The log recorded for (assignment, local date, hour), or None."""
    assignment = get_assignment(assignment)
    recorded_at = to_storage_hour(parse_local_date(local_date), hour)
    return HourlyLog.objects.filter(assignment=assignment, recorded_at=recorded_at).first()


def create_hourly_log(assignment, local_date, hour, fields=None, notes=None, user=None, resolver=None):
    """
    Record output for one machine group and local hour.

    Hourly targets in effect on ``local_date`` are snapshotted onto the row.

    Raises:
        InvalidArgument: bad hour or output values
        NotFound: unknown assignment
        DuplicateEntry: a log already exists for that hour
    """
    assignment = get_assignment(assignment)
    local_date = parse_local_date(local_date)
    recorded_at = to_storage_hour(local_date, hour)
    values = clean_output_fields(assignment.machine_group.config, fields or {})

    _ensure_free(assignment.pk, recorded_at)

    resolver = resolver or TargetResolver()
    actor = _actor(user)
    log = HourlyLog(
        assignment=assignment,
        recorded_at=recorded_at,
        notes=notes,
        created_by=actor,
        modified_by=actor,
        **values,
        **resolver.snapshot(assignment, local_date),
    )
    _save(log)
    logger.info("Created hourly log %s for assignment %s at %s", log.pk, assignment.pk, recorded_at)
    return log


def update_hourly_log(log, fields=None, notes=None, local_date=None, hour=None, user=None):
    """
    Update an hourly log, optionally moving it to another local date/hour.

    ``fields`` replaces every output field when given. Targets are snapshotted
    again for the (possibly new) date.
    """
    if not isinstance(log, HourlyLog):
        log = get_hourly_log(log)
    assignment = log.assignment
    current_date, current_hour = utc_to_local_display(log.recorded_at)
    new_date = parse_local_date(local_date) if local_date is not None else current_date
    new_hour = hour if hour is not None else current_hour
    recorded_at = to_storage_hour(new_date, new_hour)

    if fields is not None:
        for name, value in clean_output_fields(assignment.machine_group.config, fields).items():
            setattr(log, name, value)

    if recorded_at != log.recorded_at:
        _ensure_free(assignment.pk, recorded_at, exclude_pk=log.pk)
        log.recorded_at = recorded_at

    if notes is not None:
        log.notes = notes
    for column, value in TargetResolver().snapshot(assignment, new_date).items():
        setattr(log, column, value)
    actor = _actor(user)
    if actor is not None:
        log.modified_by = actor

    _save(log)
    logger.info("Updated hourly log %s", log.pk)
    return log


def delete_hourly_log(log):
    if not isinstance(log, HourlyLog):
        log = get_hourly_log(log)
    pk = log.pk
    log.delete()
    logger.info("Deleted hourly log %s", pk)


def bulk_delete_hourly_logs(ids):
    """
    Delete several hourly logs; nothing is deleted if any id is unknown.

    Returns:
        number of deleted logs
    """
    ids = set(ids)
    if not ids:
        raise InvalidArgument("No hourly log ids given")
    found = set(HourlyLog.objects.filter(pk__in=ids).values_list('pk', flat=True))
    missing = sorted(ids - found)
    if missing:
        raise NotFound(f"Hourly logs not found: {', '.join(str(pk) for pk in missing)}")
    with transaction.atomic():
        deleted, _ = HourlyLog.objects.filter(pk__in=found).delete()
    logger.info("Bulk deleted %d hourly logs", deleted)
    return deleted


def hourly_log_ordering(sort=None, direction=None):
    """Ordering for hourly log listings; ties broken by id."""
    column = choose_sort(sort, HOURLY_LOG_SORTS)
    prefix = '-' if is_descending(direction) else ''
    return (f'{prefix}{column}', f'{prefix}id')


def query_range(assignment_id, utc_start, utc_end, q=None, production_id=None, sort=None, direction=None):
    """
    Hourly logs recorded between two UTC instants (inclusive).

    The result is an unevaluated QuerySet, so it can be iterated, sliced or
    paginated any number of times.

    Parameters:
        assignment_id: restrict to one assignment, or None for all
        q: substring of the production or machine group name
        sort: one of HOURLY_LOG_SORTS; anything else sorts by recorded_at
        direction: 'asc' or 'desc'
    """
    logs = HourlyLog.objects.select_related(
        'assignment__production', 'assignment__machine_group'
    ).filter(recorded_at__range=(utc_start, utc_end))
    if assignment_id is not None:
        logs = logs.filter(assignment_id=assignment_id)
    if production_id is not None:
        logs = logs.filter(assignment__production_id=production_id)
    if q:
        logs = logs.filter(
            Q(assignment__production__name__icontains=q) |
            Q(assignment__machine_group__name__icontains=q)
        )
    return logs.order_by(*hourly_log_ordering(sort, direction))
