"""
Bulk import endpoints: template download, validation preview and execution.
"""
# Standard library imports
import logging

# Django REST framework imports
from rest_framework import status
from rest_framework.decorators import api_view, parser_classes
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response

# Local application imports
from .exceptions import InvalidArgument, ValidationFailed
from .exports import xlsx_response
from .imports import ImportValidator, commit, import_template, read_spreadsheet
from .serializers import ImportRowsSerializer
from .views import validation_error

logger = logging.getLogger(__name__)


def _rows_from_request(request):
    """
    Rows from an uploaded 'file' or from a JSON body {"rows": [...]}.

    Returns:
        (rows, None) or (None, error Response)
    """
    upload = request.FILES.get('file')
    if upload is not None:
        try:
            return read_spreadsheet(upload), None
        except InvalidArgument as exc:
            return None, Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

    serializer = ImportRowsSerializer(data=request.data)
    if not serializer.is_valid():
        return None, validation_error(serializer)
    return serializer.validated_data['rows'], None


@api_view(['GET'])
def download_import_template(request):
    return xlsx_response(import_template(), 'hourly-input-template.xlsx')


@api_view(['POST'])
@parser_classes([MultiPartParser, FormParser, JSONParser])
def import_preview(request):
    """Validate rows without writing anything and return the per-row report."""
    rows, error = _rows_from_request(request)
    if error is not None:
        return error

    report = ImportValidator().validate_rows(rows)
    return Response(report.to_dict(), status=status.HTTP_200_OK)


@api_view(['POST'])
@parser_classes([MultiPartParser, FormParser, JSONParser])
def import_execute(request):
    """
    Validate the rows again and commit them if every row is valid.

    Returns:
        200 with {imported, skipped}; 422 with the full report when any row is
        invalid (nothing is written)
    """
    rows, error = _rows_from_request(request)
    if error is not None:
        return error

    report = ImportValidator().validate_rows(rows)
    try:
        result = commit(report, user=request.user)
    except ValidationFailed as exc:
        return Response({
            "message": str(exc),
            **exc.report.to_dict()
        }, status=status.HTTP_422_UNPROCESSABLE_ENTITY)

    return Response({
        "message": f"Imported {result.imported} rows, skipped {result.skipped}",
        "imported": result.imported,
        "skipped": result.skipped
    }, status=status.HTTP_200_OK)
