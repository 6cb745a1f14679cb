"""
Rollups of hourly logs.

Day boundaries and hour buckets are local civil time; every range is turned
into UTC bounds by time_anchor before it reaches the database.

Totals are derived from their parts and never stored:
    total_output = qty + qty_normal + qty_reject
    total_target = target_qty + target_qty_normal + target_qty_reject
with missing values counted as 0.
"""
# Standard library imports
import logging
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal

# Django imports
from django.db.models import Count, F, IntegerField, Q, Sum, Value
from django.db.models.functions import Coalesce, TruncHour

# Local application imports
from .constants import (
    DAILY_SUMMARY_SORTS, GROUP_LOG_SORTS, HOUR_LABEL_FORMAT, MACHINE_GROUP_SORTS,
    PRODUCTION_LOG_SORTS, PRODUCTION_SORTS, STATUS_ACHIEVED, STATUS_ACTIVE, STATUS_BELOW,
)
from .input_config import display_name
from .models import DailyRollup, HourlyLog, MachineGroup, Production, ProductionMachineGroup
from .store import choose_sort, is_descending
from .targets import TargetResolver
from .time_anchor import (
    local_date_range_to_utc, local_date_span, local_now, local_period_to_utc, local_tz,
    parse_local_date,
)

logger = logging.getLogger(__name__)

OUTPUT_COLUMNS = ('qty', 'qty_normal', 'qty_reject')
TARGET_COLUMNS = ('target_qty', 'target_qty_normal', 'target_qty_reject')


def _zero(column):
    return Coalesce(F(column), Value(0), output_field=IntegerField())


def _sum_of(columns, prefix=''):
    expression = _zero(prefix + columns[0])
    for column in columns[1:]:
        expression = expression + _zero(prefix + column)
    return expression


def output_expression(prefix=''):
    """SQL total_output of an hourly log; ``prefix`` reaches it through a relation."""
    return _sum_of(OUTPUT_COLUMNS, prefix)


def target_expression(prefix=''):
    """SQL total_target (sum of the snapshotted hourly targets) of an hourly log."""
    return _sum_of(TARGET_COLUMNS, prefix)


def summed(expression, filter=None):
    return Coalesce(Sum(expression, filter=filter), Value(0), output_field=IntegerField())


def contextual_variance(actual_normal, target_normal, actual_reject, target_reject):
    """
    Normal output above target counts in favour, reject output above target
    counts against: (actual_normal - target_normal) + (target_reject - actual_reject).
    """
    return (actual_normal - target_normal) + (target_reject - actual_reject)


def achievement_percentage(actual_total, target_total):
    """actual / target * 100 rounded half up to one decimal; 0 when there is no target."""
    if target_total <= 0:
        return 0
    ratio = Decimal(actual_total * 100) / Decimal(target_total)
    return float(ratio.quantize(Decimal('0.1'), rounding=ROUND_HALF_UP))


def summary_figures(target_normal, target_reject, actual_normal, actual_reject):
    """Totals, variance, achievement and status for one daily summary row."""
    target_total = target_normal + target_reject
    actual_total = actual_normal + actual_reject
    variance = contextual_variance(actual_normal, target_normal, actual_reject, target_reject)
    return {
        'target_qty_normal': target_normal,
        'target_qty_reject': target_reject,
        'target_total': target_total,
        'actual_qty_normal': actual_normal,
        'actual_qty_reject': actual_reject,
        'actual_total': actual_total,
        'variance': variance,
        'achievement_percentage': achievement_percentage(actual_total, target_total),
        'status': STATUS_ACHIEVED if variance >= 0 else STATUS_BELOW,
    }


def _sort_value(value):
    if isinstance(value, str):
        return value.lower()
    return value


def sort_rows(rows, sort, direction, allowed, tie_breaker):
    """Sort aggregate rows in full by an allow-listed key before they are paged."""
    column = choose_sort(sort, allowed)
    return sorted(
        rows,
        key=lambda row: (_sort_value(row[column]), row[tie_breaker]),
        reverse=is_descending(direction),
    )


def _active_assignments(q=None, production_id=None):
    assignments = ProductionMachineGroup.objects.select_related('production', 'machine_group').filter(
        production__status=STATUS_ACTIVE
    )
    if production_id is not None:
        assignments = assignments.filter(production_id=production_id)
    if q:
        assignments = assignments.filter(
            Q(production__name__icontains=q) | Q(machine_group__name__icontains=q)
        )
    return assignments


def _assignment_totals(assignments, date_from, date_to):
    """
    One row per assignment with outputs summed over the local period and
    targets resolved per local day. Assignments without logs get zeros.
    """
    utc_start, utc_end = local_period_to_utc(date_from, date_to)
    in_range = Q(hourly_logs__recorded_at__range=(utc_start, utc_end))
    assignments = list(assignments.annotate(
        output_qty=summed('hourly_logs__qty', filter=in_range),
        output_qty_normal=summed('hourly_logs__qty_normal', filter=in_range),
        output_qty_reject=summed('hourly_logs__qty_reject', filter=in_range),
        log_count=Count('hourly_logs', filter=in_range),
    ))
    resolver = TargetResolver.for_range([assignment.pk for assignment in assignments], date_from, date_to)
    days = local_date_span(date_from, date_to)

    rows = []
    for assignment in assignments:
        target_normal = target_reject = 0
        for day in days:
            normal, reject = resolver.resolve_normal_reject(assignment, day)
            target_normal += normal
            target_reject += reject
        total_output = assignment.output_qty + assignment.output_qty_normal + assignment.output_qty_reject
        total_target = target_normal + target_reject
        rows.append({
            'assignment_id': assignment.pk,
            'production_id': assignment.production_id,
            'production_name': assignment.production.name,
            'machine_group_id': assignment.machine_group_id,
            'machine_group_name': assignment.machine_group.display_name,
            'machine_count': assignment.machine_count,
            'log_count': assignment.log_count,
            'output_qty': assignment.output_qty,
            'output_qty_normal': assignment.output_qty_normal,
            'output_qty_reject': assignment.output_qty_reject,
            'total_output': total_output,
            'target_qty_normal': target_normal,
            'target_qty_reject': target_reject,
            'total_target': total_target,
            'variance': total_output - total_target,
            'contextual_variance': contextual_variance(
                assignment.output_qty + assignment.output_qty_normal, target_normal,
                assignment.output_qty_reject, target_reject,
            ),
        })
    return rows


def aggregate_by_group(date_from, date_to, q=None, production_id=None, sort=None, direction=None):
    """
    Output and target per machine group assignment over a local date range.

    Parameters:
        date_from, date_to: local dates, inclusive
        q: substring of the production or machine group name
        production_id: restrict to one production
        sort: one of MACHINE_GROUP_SORTS
        direction: 'asc' or 'desc'

    Returns:
        list of dicts, every active assignment included
    """
    date_from, date_to = parse_local_date(date_from), parse_local_date(date_to)
    rows = _assignment_totals(_active_assignments(q, production_id), date_from, date_to)
    return sort_rows(rows, sort, direction, MACHINE_GROUP_SORTS, 'assignment_id')


def aggregate_by_production(date_from, date_to, q=None, production_id=None, sort=None, direction=None):
    """Same as aggregate_by_group, summed per production; q matches the production name."""
    date_from, date_to = parse_local_date(date_from), parse_local_date(date_to)
    productions = Production.objects.filter(status=STATUS_ACTIVE)
    if production_id is not None:
        productions = productions.filter(pk=production_id)
    if q:
        productions = productions.filter(name__icontains=q)

    totals = {
        production.pk: {
            'production_id': production.pk,
            'production_name': production.name,
            'group_count': 0,
            'log_count': 0,
            'output_qty': 0,
            'output_qty_normal': 0,
            'output_qty_reject': 0,
            'total_output': 0,
            'target_qty_normal': 0,
            'target_qty_reject': 0,
            'total_target': 0,
            'contextual_variance': 0,
        }
        for production in productions
    }
    assignments = ProductionMachineGroup.objects.select_related('production', 'machine_group').filter(
        production_id__in=list(totals)
    )
    for row in _assignment_totals(assignments, date_from, date_to):
        production = totals[row['production_id']]
        production['group_count'] += 1
        for key in ('log_count', 'output_qty', 'output_qty_normal', 'output_qty_reject', 'total_output',
                    'target_qty_normal', 'target_qty_reject', 'total_target', 'contextual_variance'):
            production[key] += row[key]

    rows = list(totals.values())
    for row in rows:
        row['variance'] = row['total_output'] - row['total_target']
    return sort_rows(rows, sort, direction, PRODUCTION_SORTS, 'production_id')


def _hourly_logs_in(date_from, date_to, q=None, production_id=None):
    utc_start, utc_end = local_period_to_utc(date_from, date_to)
    logs = HourlyLog.objects.filter(
        recorded_at__range=(utc_start, utc_end),
        assignment__production__status=STATUS_ACTIVE,
    )
    if production_id is not None:
        logs = logs.filter(assignment__production_id=production_id)
    if q:
        logs = logs.filter(
            Q(assignment__production__name__icontains=q) |
            Q(assignment__machine_group__name__icontains=q)
        )
    return logs


def _hourly_totals():
    totals = {
        'total_qty': summed('qty'),
        'total_qty_normal': summed('qty_normal'),
        'total_qty_reject': summed('qty_reject'),
        'total_output': summed(output_expression()),
        'total_target': summed(target_expression()),
    }
    totals['variance'] = summed(output_expression()) - summed(target_expression())
    return totals


def _hourly_rows(rows, names):
    tz = local_tz()
    result = []
    for row in rows:
        hour = row.pop('recorded_hour').astimezone(tz)
        for key, target in names.items():
            row[target] = row.pop(key)
        row['recorded_hour'] = hour.strftime(HOUR_LABEL_FORMAT)
        row['date'] = hour.date()
        row['hour'] = hour.hour
        result.append(row)
    return result


def _hourly_ordering(sort, direction, allowed, totals, names):
    column = choose_sort(sort, allowed)
    if column in totals or column == 'recorded_hour':
        expression = F(column)
    else:
        expression = F(names[column])
    descending = is_descending(direction)
    ordering = expression.desc() if descending else expression.asc()
    return [ordering, '-recorded_hour' if descending else 'recorded_hour']


def aggregate_hourly_by_group(date_from, date_to, q=None, production_id=None, sort=None, direction=None):
    """
    Totals per machine group assignment and local hour.

    Buckets are local civil hours; ``recorded_hour`` is labelled
    'YYYY-MM-DD HH:00' in local time. Sorting happens in SQL on the annotated
    totals.
    """
    date_from, date_to = parse_local_date(date_from), parse_local_date(date_to)
    totals = _hourly_totals()
    names = {
        'production_name': 'assignment__production__name',
        'machine_group_name': 'assignment__machine_group__name',
    }
    rows = (
        _hourly_logs_in(date_from, date_to, q, production_id)
        .annotate(recorded_hour=TruncHour('recorded_at', tzinfo=local_tz()))
        .values('recorded_hour', 'assignment_id', *names.values())
        .annotate(log_count=Count('id'), **totals)
        .order_by(*_hourly_ordering(sort, direction, GROUP_LOG_SORTS, totals, names), 'assignment_id')
    )
    result = _hourly_rows(rows, {value: key for key, value in names.items()})
    for row in result:
        row['machine_group_name'] = display_name(row['machine_group_name'])
    return result


def aggregate_hourly_by_production(date_from, date_to, q=None, production_id=None, sort=None, direction=None):
    """Totals per production and local hour, across all of its machine groups."""
    date_from, date_to = parse_local_date(date_from), parse_local_date(date_to)
    totals = _hourly_totals()
    names = {'production_name': 'assignment__production__name'}
    rows = (
        _hourly_logs_in(date_from, date_to, q, production_id)
        .annotate(recorded_hour=TruncHour('recorded_at', tzinfo=local_tz()))
        .values('recorded_hour', 'assignment__production_id', *names.values())
        .annotate(log_count=Count('id'), group_count=Count('assignment', distinct=True), **totals)
        .order_by(*_hourly_ordering(sort, direction, PRODUCTION_LOG_SORTS, totals, names),
                  'assignment__production_id')
    )
    mapping = {value: key for key, value in names.items()}
    mapping['assignment__production_id'] = 'production_id'
    return _hourly_rows(rows, mapping)


def daily_summary(local_date, production_id=None, sort=None, direction=None):
    """
    Target against actual per active assignment for one local date.

    Targets: qty_normal (falling back to qty) and qty_reject, resolved through
    overrides and defaults. Actuals: logs recorded during the local day, with a
    plain qty counted as normal output.
    """
    day = parse_local_date(local_date)
    utc_start, utc_end = local_date_range_to_utc(day)
    in_day = Q(hourly_logs__recorded_at__range=(utc_start, utc_end))
    assignments = list(_active_assignments(production_id=production_id).annotate(
        actual_qty=summed('hourly_logs__qty', filter=in_day),
        actual_normal=summed('hourly_logs__qty_normal', filter=in_day),
        actual_reject=summed('hourly_logs__qty_reject', filter=in_day),
    ))
    resolver = TargetResolver.for_range([assignment.pk for assignment in assignments], day, day)

    rows = []
    for assignment in assignments:
        target_normal, target_reject = resolver.resolve_normal_reject(assignment, day)
        row = {
            'assignment_id': assignment.pk,
            'production_id': assignment.production_id,
            'production_name': assignment.production.name,
            'machine_group_name': assignment.machine_group.display_name,
            'machine_count': assignment.machine_count,
        }
        row.update(summary_figures(
            target_normal, target_reject,
            assignment.actual_qty + assignment.actual_normal, assignment.actual_reject,
        ))
        rows.append(row)

    if sort is None:
        rows.sort(key=lambda row: (row['production_name'].lower(), row['machine_group_name'].lower(),
                                   row['assignment_id']))
        return rows
    return sort_rows(rows, sort, direction, DAILY_SUMMARY_SORTS, 'assignment_id')


def _live_output(utc_start, utc_end):
    return HourlyLog.objects.filter(recorded_at__range=(utc_start, utc_end)).aggregate(
        total=summed(output_expression())
    )['total']


def dashboard_overview(clock=None, trend_days=7, recent_count=10):
    """
    Figures for the landing dashboard.

    The daily trend is read from DailyRollup snapshots; today, yesterday, the
    recent logs and the last 24 hours per machine group are live.
    """
    now = local_now(clock)
    today = now.date()
    trend_dates = [today - timedelta(days=offset) for offset in range(trend_days - 1, -1, -1)]
    snapshots = {
        rollup.date: rollup
        for rollup in DailyRollup.objects.filter(date__range=(trend_dates[0], today))
    }
    trend = [
        {
            'date': day,
            'target': snapshots[day].target_value if day in snapshots else 0,
            'actual': snapshots[day].actual_value if day in snapshots else 0,
        }
        for day in trend_dates
    ]

    recent_logs = [
        {
            'id': log.pk,
            'production_name': log.assignment.production.name,
            'machine_group_name': log.assignment.machine_group.display_name,
            'recorded_hour': log.recorded_at.astimezone(local_tz()).strftime(HOUR_LABEL_FORMAT),
            'qty_normal': log.qty_normal or 0,
            'qty_reject': log.qty_reject or 0,
            'total_output': log.total_output,
        }
        for log in HourlyLog.objects.select_related(
            'assignment__production', 'assignment__machine_group'
        ).order_by('-recorded_at', '-id')[:recent_count]
    ]

    since = now - timedelta(hours=24)
    group_output = [
        {'machine_group_name': display_name(row['assignment__machine_group__name']),
         'total_output': row['total_output']}
        for row in HourlyLog.objects.filter(recorded_at__gte=since)
        .values('assignment__machine_group__name')
        .annotate(total_output=summed(output_expression()))
        .order_by('-total_output', 'assignment__machine_group__name')
    ]

    return {
        'date': today,
        'total_productions': Production.objects.count(),
        'active_productions': Production.objects.filter(status=STATUS_ACTIVE).count(),
        'total_machine_groups': MachineGroup.objects.count(),
        'today_actual': _live_output(*local_date_range_to_utc(today)),
        'yesterday_actual': _live_output(*local_date_range_to_utc(today - timedelta(days=1))),
        'daily_trend': trend,
        'recent_logs': recent_logs,
        'group_output_24h': group_output,
    }
