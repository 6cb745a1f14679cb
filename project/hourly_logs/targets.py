"""
Target resolution.

A daily target for (assignment, date, field) comes from the first of:
  1. a DailyTargetValue override with a non-null target_value
  2. the assignment's default_targets[field]
  3. zero
Hourly targets spread a daily target over HOURS_PER_SHIFT hours, rounded up.
"""
# Standard library imports
import logging
import math
from enum import Enum
from typing import NamedTuple

# Django imports
from django.conf import settings
from django.db import transaction

# Local application imports
from .constants import QUANTITY_FIELDS, TARGET_SNAPSHOT_FIELDS
from .exceptions import InvalidArgument, NotFound
from .models import DailyTargetValue, ProductionMachineGroup
from .time_anchor import parse_local_date

logger = logging.getLogger(__name__)


class TargetSource(str, Enum):
    OVERRIDE = 'override'
    DEFAULT = 'default'
    NONE = 'none'


class ResolvedTarget(NamedTuple):
    target: int
    source: TargetSource


def non_negative(value):
    """Coerce a stored target to an int >= 0; missing or malformed values are 0."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        number = int(value)
    except (TypeError, ValueError):
        return 0
    return max(number, 0)


def hourly_from_daily(daily_target, hours=None):
    """
    Spread a daily target over the reference shift.

    Rounded up so that the hourly targets of a full shift never add up to less
    than the daily target: 80 -> 10, 81 -> 11 with an 8 hour shift.
    """
    hours = hours or settings.HOURS_PER_SHIFT
    return math.ceil(non_negative(daily_target) / hours)


def get_assignment(assignment):
    """Accept an assignment instance or its primary key."""
    if isinstance(assignment, ProductionMachineGroup):
        return assignment
    try:
        return ProductionMachineGroup.objects.select_related('machine_group', 'production').get(pk=assignment)
    except (ProductionMachineGroup.DoesNotExist, TypeError, ValueError):
        raise NotFound(f"Production machine group {assignment} not found") from None


class TargetResolver:
    """
    Resolves daily and hourly targets.

    Without preloaded overrides every lookup is one query. ``for_range`` loads
    all overrides for a set of assignments and dates up front so range
    aggregations resolve in memory.
    """

    def __init__(self, overrides=None):
        self._overrides = overrides

    @classmethod
    def for_range(cls, assignment_ids, date_from, date_to):
        rows = DailyTargetValue.objects.filter(
            assignment_id__in=list(assignment_ids),
            date__range=(date_from, date_to),
            target_value__isnull=False,
        ).values_list('assignment_id', 'date', 'field_name', 'target_value')
        return cls({(assignment_id, day, field_name): value
                    for assignment_id, day, field_name, value in rows})

    def _override(self, assignment, day, field_name):
        if self._overrides is not None:
            return self._overrides.get((assignment.pk, day, field_name))
        return (
            DailyTargetValue.objects
            .filter(assignment=assignment, date=day, field_name=field_name, target_value__isnull=False)
            .values_list('target_value', flat=True)
            .first()
        )

    def resolve(self, assignment, day, field_name):
        """
        Resolve the daily target for one field.

        Parameters:
            assignment: ProductionMachineGroup
            day: local date
            field_name: e.g. 'qty_normal'

        Returns:
            ResolvedTarget(target, source)
        """
        override = self._override(assignment, day, field_name)
        if override is not None:
            return ResolvedTarget(non_negative(override), TargetSource.OVERRIDE)
        defaults = assignment.default_targets if isinstance(assignment.default_targets, dict) else {}
        if defaults.get(field_name) is not None:
            return ResolvedTarget(non_negative(defaults[field_name]), TargetSource.DEFAULT)
        return ResolvedTarget(0, TargetSource.NONE)

    def resolve_normal_reject(self, assignment, day):
        """
        Daily (normal, reject) targets for summaries.

        Groups that only record 'qty' have no qty_normal target, so the normal
        target falls back to the qty target.
        """
        normal = self.resolve(assignment, day, 'qty_normal')
        if normal.source is TargetSource.NONE:
            normal = self.resolve(assignment, day, 'qty')
        reject = self.resolve(assignment, day, 'qty_reject')
        return normal.target, reject.target

    def snapshot(self, assignment, day):
        """Hourly target columns to store on an hourly log written for ``day``."""
        recorded = assignment.machine_group.config.quantity_fields
        return {
            column: hourly_from_daily(self.resolve(assignment, day, field_name).target)
            if field_name in recorded else None
            for field_name, column in TARGET_SNAPSHOT_FIELDS.items()
        }


def resolve_field(assignment, day, field_name):
    return TargetResolver().resolve(get_assignment(assignment), parse_local_date(day), field_name)


def resolve_normal_reject(assignment, day):
    return TargetResolver().resolve_normal_reject(get_assignment(assignment), parse_local_date(day))


def snapshot_hourly_targets(assignment, day):
    return TargetResolver().snapshot(get_assignment(assignment), parse_local_date(day))


def daily_target_values(assignment, day):
    """
    Rows for the daily target editor: one per quantity field the group records.

    ``target_value`` shows the override when there is one, the default otherwise.
    """
    assignment = get_assignment(assignment)
    day = parse_local_date(day)
    existing = {
        value.field_name: value
        for value in DailyTargetValue.objects.filter(assignment=assignment, date=day)
    }
    resolver = TargetResolver()
    rows = []
    for field_name in assignment.machine_group.config.quantity_fields:
        stored = existing.get(field_name)
        resolved = resolver.resolve(assignment, day, field_name)
        rows.append({
            'field_name': field_name,
            'target_value': resolved.target if resolved.source is not TargetSource.NONE else None,
            'source': resolved.source.value,
            'actual_value': stored.actual_value if stored else None,
            'notes': stored.notes if stored else '',
        })
    return rows


def upsert_daily_values(assignment, day, values):
    """
    Create or overwrite DailyTargetValue rows for one assignment and date.

    Parameters:
        values: list of dicts with field_name and optional target_value,
                actual_value and notes

    Each (assignment, date, field_name) row is written with a single
    INSERT ... ON CONFLICT DO UPDATE.
    """
    assignment = get_assignment(assignment)
    day = parse_local_date(day)
    objs = []
    for value in values:
        field_name = value.get('field_name')
        if field_name not in QUANTITY_FIELDS:
            raise InvalidArgument(f"Unknown target field '{field_name}'")
        if any(obj.field_name == field_name for obj in objs):
            raise InvalidArgument(f"Target field '{field_name}' given more than once")
        for key in ('target_value', 'actual_value'):
            number = value.get(key)
            if number is not None and (isinstance(number, bool) or not isinstance(number, int) or number < 0):
                raise InvalidArgument(f"{key} for {field_name} must be a non-negative integer")
        objs.append(DailyTargetValue(
            assignment=assignment,
            date=day,
            field_name=field_name,
            target_value=value.get('target_value'),
            actual_value=value.get('actual_value'),
            notes=value.get('notes') or '',
        ))

    with transaction.atomic():
        DailyTargetValue.objects.upsert(
            objs,
            unique_fields=['assignment', 'date', 'field_name'],
            update_fields=['target_value', 'actual_value', 'notes', 'updated_at'],
        )
    logger.info("Saved %d daily target values for assignment %s on %s", len(objs), assignment.pk, day)
    return list(DailyTargetValue.objects.filter(assignment=assignment, date=day,
                                                field_name__in=[obj.field_name for obj in objs]))
