"""
Daily target overrides and per-assignment default targets.
"""
# Django imports
from django.db import transaction

# Django REST framework imports
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

# Local application imports
from .constants import STATUS_ACTIVE
from .exceptions import InvalidArgument, NotFound
from .models import ProductionMachineGroup
from .serializers import (
    AssignmentSerializer, DailyTargetUpdateSerializer, DailyTargetValueSerializer,
    ProductionDefaultsSerializer,
)
from .targets import daily_target_values, get_assignment, upsert_daily_values
from .time_anchor import parse_local_date_or_today
from .views import int_param, validation_error


@api_view(['GET'])
def daily_targets(request):
    """
    Targets of every machine group of a production on one local date.

    Query parameters:
        production_id: required
        date: YYYY-MM-DD, today by default
    """
    try:
        production_id = int_param(request, 'production_id')
        day = parse_local_date_or_today(request.query_params.get('date'))
    except InvalidArgument as exc:
        return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    if production_id is None:
        return Response({"error": "production_id is required"}, status=status.HTTP_400_BAD_REQUEST)

    assignments = ProductionMachineGroup.objects.select_related('production', 'machine_group').filter(
        production_id=production_id, production__status=STATUS_ACTIVE
    ).order_by('machine_group__name')

    machine_groups = []
    for assignment in assignments:
        data = AssignmentSerializer(assignment).data
        data['values'] = daily_target_values(assignment, day)
        machine_groups.append(data)

    return Response({
        "date": day,
        "production_id": production_id,
        "machine_groups": machine_groups
    })


@api_view(['PUT'])
def update_daily_targets(request, assignment_id):
    """Create or overwrite the daily target values of one assignment."""
    serializer = DailyTargetUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error(serializer)
    data = serializer.validated_data

    try:
        saved = upsert_daily_values(assignment_id, data['date'], data['values'])
    except NotFound as exc:
        return Response({"error": str(exc)}, status=status.HTTP_404_NOT_FOUND)
    except InvalidArgument as exc:
        return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

    return Response({
        "message": "Daily targets saved successfully",
        "date": data['date'],
        "values": DailyTargetValueSerializer(saved, many=True).data
    }, status=status.HTTP_200_OK)


@api_view(['GET'])
def production_defaults(request):
    """Assignments with their machine count and default targets, optionally for one production."""
    try:
        production_id = int_param(request, 'production_id')
    except InvalidArgument as exc:
        return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

    assignments = ProductionMachineGroup.objects.select_related('production', 'machine_group').order_by(
        'production__name', 'machine_group__name'
    )
    if production_id is not None:
        assignments = assignments.filter(production_id=production_id)
    return Response(AssignmentSerializer(assignments, many=True).data)


@api_view(['PUT'])
def update_production_defaults(request, assignment_id):
    """
    Update machine_count and default_targets of an assignment.

    Hourly logs already written keep the targets they were recorded with.
    """
    try:
        assignment = get_assignment(assignment_id)
    except NotFound as exc:
        return Response({"error": str(exc)}, status=status.HTTP_404_NOT_FOUND)

    serializer = ProductionDefaultsSerializer(assignment, data=request.data, partial=True)
    if not serializer.is_valid():
        return validation_error(serializer)

    with transaction.atomic():
        assignment = serializer.save(modified_by=request.user if request.user.is_authenticated else None)

    return Response({
        "message": "Production defaults updated successfully",
        "data": AssignmentSerializer(assignment).data
    }, status=status.HTTP_200_OK)
