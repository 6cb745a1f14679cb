from django.conf import settings
from rest_framework.pagination import CursorPagination, PageNumberPagination

from .store import hourly_log_ordering


class HourlyLogCursorPagination(CursorPagination):
    """
    Cursor pagination for raw hourly log listings.

    The ordering follows the ``sort``/``direction`` query parameters, limited
    to the hourly log sort allow-list, with id as tie-breaker.
    """
    page_size = settings.HOURLY_LOG_PAGE_SIZE
    page_size_query_param = 'per_page'
    max_page_size = 100
    ordering = ('recorded_at', 'id')

    def get_ordering(self, request, queryset, view):
        return hourly_log_ordering(request.query_params.get('sort'), request.query_params.get('direction'))


class AggregatePagination(PageNumberPagination):
    """Page numbers over aggregate rows that were already sorted in full."""
    page_size = settings.AGGREGATE_PAGE_SIZE
    page_size_query_param = 'per_page'
    max_page_size = 200
