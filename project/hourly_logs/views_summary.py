"""
Read-only reporting endpoints: daily summary, machine group and production
rollups, hourly log buckets and the dashboard.
"""
# Standard library imports
import logging

# Django REST framework imports
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

# Local application imports
from .aggregation import (
    aggregate_by_group, aggregate_by_production, aggregate_hourly_by_group,
    aggregate_hourly_by_production, daily_summary, dashboard_overview,
)
from .exceptions import InvalidArgument
from .exports import (
    daily_summary_dataset, group_logs_dataset, machine_groups_dataset,
    production_logs_dataset, productions_dataset, xlsx_response,
)
from .pagination import AggregatePagination
from .time_anchor import local_today, parse_local_date
from .views import EMPTY_PARAMS, int_param

logger = logging.getLogger(__name__)


def _period(request):
    """
    Local date range from date_from/date_to; either one defaults to the other,
    both default to today.
    """
    params = request.query_params
    raw_from = params.get('date_from', '').strip()
    raw_to = params.get('date_to', '').strip()
    date_from = parse_local_date(raw_from) if raw_from not in EMPTY_PARAMS else None
    date_to = parse_local_date(raw_to) if raw_to not in EMPTY_PARAMS else None
    if date_from is None and date_to is None:
        date_from = date_to = local_today()
    date_from = date_from or date_to
    date_to = date_to or date_from
    if date_from > date_to:
        raise InvalidArgument("date_from must not be after date_to")
    return date_from, date_to


def _filters(request, default_direction='desc'):
    return {
        'q': request.query_params.get('q'),
        'production_id': int_param(request, 'production_id'),
        'sort': request.query_params.get('sort'),
        'direction': request.query_params.get('direction', default_direction),
    }


def _paginated(request, rows, **extra):
    paginator = AggregatePagination()
    page = paginator.paginate_queryset(rows, request)
    response = paginator.get_paginated_response(page)
    response.data.update(extra)
    return response


def _daily_summary_rows(request):
    date_param = request.query_params.get('date', '').strip()
    day = parse_local_date(date_param) if date_param not in EMPTY_PARAMS else local_today()
    rows = daily_summary(
        day,
        production_id=int_param(request, 'production_id'),
        sort=request.query_params.get('sort'),
        direction=request.query_params.get('direction'),
    )
    return day, rows


@api_view(['GET'])
def daily_summary_view(request):
    """
    Target against actual per machine group for one local date.

    Query parameters:
        date: YYYY-MM-DD, today by default
        production_id: optional
        sort, direction: optional, production then machine group by default
    """
    try:
        day, rows = _daily_summary_rows(request)
    except InvalidArgument as exc:
        return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    return Response({"date": day, "results": rows})


@api_view(['GET'])
def daily_summary_export(request):
    try:
        day, rows = _daily_summary_rows(request)
    except InvalidArgument as exc:
        return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    return xlsx_response(daily_summary_dataset(rows, day), f'daily-summary-{day}.xlsx')


@api_view(['GET'])
def machine_group_summary(request):
    """Totals per machine group over date_from..date_to (page numbers)."""
    try:
        date_from, date_to = _period(request)
        rows = aggregate_by_group(date_from, date_to, **_filters(request))
    except InvalidArgument as exc:
        return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    return _paginated(request, rows, date_from=date_from, date_to=date_to)


@api_view(['GET'])
def machine_group_summary_export(request):
    try:
        date_from, date_to = _period(request)
        rows = aggregate_by_group(date_from, date_to, **_filters(request))
    except InvalidArgument as exc:
        return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    return xlsx_response(machine_groups_dataset(rows), f'machine-groups-{date_from}-{date_to}.xlsx')


@api_view(['GET'])
def production_summary(request):
    """Totals per production over date_from..date_to (page numbers)."""
    try:
        date_from, date_to = _period(request)
        rows = aggregate_by_production(date_from, date_to, **_filters(request))
    except InvalidArgument as exc:
        return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    return _paginated(request, rows, date_from=date_from, date_to=date_to)


@api_view(['GET'])
def production_summary_export(request):
    try:
        date_from, date_to = _period(request)
        rows = aggregate_by_production(date_from, date_to, **_filters(request))
    except InvalidArgument as exc:
        return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    return xlsx_response(productions_dataset(rows), f'productions-{date_from}-{date_to}.xlsx')


@api_view(['GET'])
def group_logs(request):
    """Hourly totals per machine group, newest hour first by default."""
    try:
        date_from, date_to = _period(request)
        rows = aggregate_hourly_by_group(date_from, date_to, **_filters(request))
    except InvalidArgument as exc:
        return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    return _paginated(request, rows, date_from=date_from, date_to=date_to)


@api_view(['GET'])
def group_logs_export(request):
    try:
        date_from, date_to = _period(request)
        rows = aggregate_hourly_by_group(date_from, date_to, **_filters(request))
    except InvalidArgument as exc:
        return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    return xlsx_response(group_logs_dataset(rows), f'machine-group-logs-{date_from}-{date_to}.xlsx')


@api_view(['GET'])
def production_logs(request):
    """Hourly totals per production, newest hour first by default."""
    try:
        date_from, date_to = _period(request)
        rows = aggregate_hourly_by_production(date_from, date_to, **_filters(request))
    except InvalidArgument as exc:
        return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    return _paginated(request, rows, date_from=date_from, date_to=date_to)


@api_view(['GET'])
def production_logs_export(request):
    try:
        date_from, date_to = _period(request)
        rows = aggregate_hourly_by_production(date_from, date_to, **_filters(request))
    except InvalidArgument as exc:
        return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    return xlsx_response(production_logs_dataset(rows), f'production-logs-{date_from}-{date_to}.xlsx')


@api_view(['GET'])
def dashboard(request):
    return Response(dashboard_overview())
