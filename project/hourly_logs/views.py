# Standard library imports
import logging

# Django REST framework imports
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

# Local application imports
from .exceptions import DuplicateEntry, InvalidArgument, NotFound
from .exports import hourly_logs_dataset, xlsx_response
from .pagination import HourlyLogCursorPagination
from .serializers import (
    BulkDeleteSerializer, DuplicateCheckSerializer, HourlyInputSerializer,
    HourlyLogSerializer, HourlyUpdateSerializer,
)
from .store import (
    bulk_delete_hourly_logs, create_hourly_log, delete_hourly_log, find_hourly_log,
    get_hourly_log, query_range, update_hourly_log,
)
from .time_anchor import local_date_range_to_utc, parse_local_date_or_today

logger = logging.getLogger(__name__)

EMPTY_PARAMS = ('', 'undefined', 'null')


def int_param(request, name):
    """
    Read an optional integer query parameter.

    Returns None when absent or blank; raises InvalidArgument when not an integer.
    """
    value = request.query_params.get(name)
    if value is None or value.strip() in EMPTY_PARAMS:
        return None
    try:
        return int(value)
    except ValueError:
        raise InvalidArgument(f"{name} must be an integer") from None


def validation_error(serializer):
    return Response({
        "message": "Validation failed",
        "errors": serializer.errors
    }, status=status.HTTP_400_BAD_REQUEST)


def _logs_for_day(request):
    day = parse_local_date_or_today(request.query_params.get('date'))
    utc_start, utc_end = local_date_range_to_utc(day)
    logs = query_range(
        int_param(request, 'assignment_id'),
        utc_start,
        utc_end,
        q=request.query_params.get('q'),
        production_id=int_param(request, 'production_id'),
        sort=request.query_params.get('sort'),
        direction=request.query_params.get('direction'),
    )
    return day, logs


@api_view(['GET', 'POST'])
def hourly_input_list(request):
    """
    GET: hourly logs recorded on a local date (cursor paginated).
    POST: record output for one machine group and hour.

    Query parameters (GET):
        date: YYYY-MM-DD, today by default
        q, production_id, assignment_id, sort, direction

    Returns:
        201 with the new log, 400 on invalid input, 404 for an unknown
        assignment, 409 when the hour already has a log
    """
    if request.method == 'GET':
        try:
            day, logs = _logs_for_day(request)
        except InvalidArgument as exc:
            return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        paginator = HourlyLogCursorPagination()
        page = paginator.paginate_queryset(logs, request)
        response = paginator.get_paginated_response(HourlyLogSerializer(page, many=True).data)
        response.data['date'] = day
        return response

    serializer = HourlyInputSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error(serializer)
    data = serializer.validated_data

    try:
        log = create_hourly_log(
            data['assignment_id'],
            data['date'],
            data['hour'],
            fields=serializer.output_fields(),
            notes=data.get('notes'),
            user=request.user,
        )
    except InvalidArgument as exc:
        return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    except NotFound as exc:
        return Response({"error": str(exc)}, status=status.HTTP_404_NOT_FOUND)
    except DuplicateEntry as exc:
        return Response({"error": str(exc)}, status=status.HTTP_409_CONFLICT)

    return Response({
        "message": "Hourly output saved successfully",
        "data": HourlyLogSerializer(log).data
    }, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
def hourly_input_detail(request, pk):
    """Show, update or delete one hourly log."""
    try:
        log = get_hourly_log(pk)
    except NotFound as exc:
        return Response({"error": str(exc)}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        return Response(HourlyLogSerializer(log).data)

    if request.method == 'DELETE':
        delete_hourly_log(log)
        return Response({"message": "Hourly output deleted successfully"}, status=status.HTTP_200_OK)

    serializer = HourlyUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error(serializer)
    data = serializer.validated_data

    try:
        log = update_hourly_log(
            log,
            fields=serializer.output_fields(),
            notes=data.get('notes'),
            local_date=data.get('date'),
            hour=data.get('hour'),
            user=request.user,
        )
    except InvalidArgument as exc:
        return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    except DuplicateEntry as exc:
        return Response({"error": str(exc)}, status=status.HTTP_409_CONFLICT)

    return Response({
        "message": "Hourly output updated successfully",
        "data": HourlyLogSerializer(log).data
    }, status=status.HTTP_200_OK)


@api_view(['POST'])
def check_duplicate(request):
    """Tell the entry form whether an hour is already taken before it submits."""
    serializer = DuplicateCheckSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error(serializer)
    data = serializer.validated_data

    try:
        existing = find_hourly_log(data['assignment_id'], data['date'], data['hour'])
    except NotFound as exc:
        return Response({"error": str(exc)}, status=status.HTTP_404_NOT_FOUND)

    if existing is None:
        return Response({"exists": False})
    return Response({
        "exists": True,
        "message": str(DuplicateEntry(existing.assignment_id, existing.recorded_at)),
        "data": HourlyLogSerializer(existing).data
    })


@api_view(['POST'])
def bulk_delete(request):
    serializer = BulkDeleteSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error(serializer)

    try:
        deleted = bulk_delete_hourly_logs(serializer.validated_data['ids'])
    except InvalidArgument as exc:
        return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    except NotFound as exc:
        return Response({"error": str(exc)}, status=status.HTTP_404_NOT_FOUND)

    return Response({
        "message": f"{deleted} hourly outputs deleted successfully",
        "deleted": deleted
    }, status=status.HTTP_200_OK)


@api_view(['GET'])
def export_hourly_input(request):
    """Download the hourly logs of a local date as .xlsx (same filters as the list)."""
    try:
        day, logs = _logs_for_day(request)
    except InvalidArgument as exc:
        return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

    return xlsx_response(hourly_logs_dataset(logs), f'hourly-input-{day}.xlsx')
