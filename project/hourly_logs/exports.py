"""
Spreadsheet exports.

Hourly logs go through an import_export ModelResource (also used by the
admin); the aggregate listings are plain tablib datasets.
"""
# Django imports
from django.http import HttpResponse

# Third-party imports
import tablib
from import_export import fields, resources

# Local application imports
from .models import HourlyLog, MachineGroup, Production
from .time_anchor import format_local_hour

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


class HourlyLogResource(resources.ModelResource):
    hour = fields.Field(column_name='Hour', readonly=True)
    production = fields.Field(column_name='Production', readonly=True)
    machine_group = fields.Field(column_name='Machine Group', readonly=True)
    total_output = fields.Field(column_name='Total Qty', readonly=True)
    qty = fields.Field(attribute='qty', column_name='Qty')
    qty_normal = fields.Field(attribute='qty_normal', column_name='Qty Normal')
    qty_reject = fields.Field(attribute='qty_reject', column_name='Qty Reject')
    total_target = fields.Field(column_name='Total Target', readonly=True)
    target_qty_normal = fields.Field(attribute='target_qty_normal', column_name='Target Normal')
    target_qty_reject = fields.Field(attribute='target_qty_reject', column_name='Target Reject')
    variance = fields.Field(column_name='Variance', readonly=True)
    notes = fields.Field(attribute='notes', column_name='Notes')

    class Meta:
        model = HourlyLog
        fields = ('hour', 'production', 'machine_group', 'total_output', 'qty', 'qty_normal', 'qty_reject',
                  'total_target', 'target_qty_normal', 'target_qty_reject', 'variance', 'notes')
        export_order = fields

    def dehydrate_hour(self, log):
        return format_local_hour(log.recorded_at)

    def dehydrate_production(self, log):
        return log.assignment.production.name

    def dehydrate_machine_group(self, log):
        return log.assignment.machine_group.display_name

    def dehydrate_total_output(self, log):
        return log.total_output

    def dehydrate_total_target(self, log):
        return log.total_target

    def dehydrate_variance(self, log):
        return log.total_output - log.total_target


class ProductionResource(resources.ModelResource):
    class Meta:
        model = Production
        fields = ('id', 'name', 'status')


class MachineGroupResource(resources.ModelResource):
    class Meta:
        model = MachineGroup
        fields = ('id', 'name', 'description', 'input_config')


def hourly_logs_dataset(queryset, title='Hourly Input'):
    dataset = HourlyLogResource().export(queryset=queryset)
    dataset.title = title
    return dataset


def _dataset(title, columns, rows):
    """
    Build a dataset from dict rows.

    Parameters:
        columns: list of (heading, key) pairs
    """
    dataset = tablib.Dataset(title=title, headers=[heading for heading, _ in columns])
    for row in rows:
        dataset.append([row[key] for _, key in columns])
    return dataset


def daily_summary_dataset(rows, day):
    return _dataset(f'Daily Summary {day}', [
        ('Production', 'production_name'),
        ('Machine Group', 'machine_group_name'),
        ('Machine Count', 'machine_count'),
        ('Target Normal', 'target_qty_normal'),
        ('Target Reject', 'target_qty_reject'),
        ('Target Total', 'target_total'),
        ('Output Normal', 'actual_qty_normal'),
        ('Output Reject', 'actual_qty_reject'),
        ('Output Total', 'actual_total'),
        ('Variance', 'variance'),
        ('Achievement %', 'achievement_percentage'),
        ('Status', 'status'),
    ], rows)


def machine_groups_dataset(rows):
    return _dataset('Machine Groups', [
        ('Production', 'production_name'),
        ('Machine Group', 'machine_group_name'),
        ('Machine Count', 'machine_count'),
        ('Total Output', 'total_output'),
        ('Total Target', 'total_target'),
        ('Variance', 'variance'),
    ], rows)


def productions_dataset(rows):
    return _dataset('Productions', [
        ('Production', 'production_name'),
        ('Machine Groups', 'group_count'),
        ('Total Output', 'total_output'),
        ('Total Target', 'total_target'),
        ('Variance', 'variance'),
    ], rows)


def group_logs_dataset(rows):
    return _dataset('Machine Group Logs', [
        ('Hour', 'recorded_hour'),
        ('Production', 'production_name'),
        ('Machine Group', 'machine_group_name'),
        ('Total Output', 'total_output'),
        ('Total Target', 'total_target'),
        ('Variance', 'variance'),
    ], rows)


def production_logs_dataset(rows):
    return _dataset('Production Logs', [
        ('Hour', 'recorded_hour'),
        ('Production', 'production_name'),
        ('Total Output', 'total_output'),
        ('Total Target', 'total_target'),
        ('Variance', 'variance'),
    ], rows)


def xlsx_response(book, filename):
    """Attachment response for a tablib Dataset or Databook."""
    response = HttpResponse(book.export('xlsx'), content_type=XLSX_CONTENT_TYPE)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response
