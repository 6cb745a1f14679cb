from django.contrib import admin
from import_export.admin import ExportMixin, ImportExportModelAdmin

from .exports import HourlyLogResource, MachineGroupResource, ProductionResource
from .models import DailyRollup, DailyTargetValue, HourlyLog, MachineGroup, Production, ProductionMachineGroup


@admin.register(Production)
class ProductionAdmin(ImportExportModelAdmin, admin.ModelAdmin):
    resource_classes = [ProductionResource]
    list_display = ('name', 'status', 'created_at')
    search_fields = ('name',)
    list_filter = ('status',)


@admin.register(MachineGroup)
class MachineGroupAdmin(ImportExportModelAdmin, admin.ModelAdmin):
    resource_classes = [MachineGroupResource]
    list_display = ('name', 'description', 'created_at')
    search_fields = ('name',)


@admin.register(ProductionMachineGroup)
class ProductionMachineGroupAdmin(admin.ModelAdmin):
    list_display = ['production', 'machine_group', 'machine_count', 'default_targets']
    search_fields = ['production__name', 'machine_group__name']
    list_filter = ['production']


@admin.register(DailyTargetValue)
class DailyTargetValueAdmin(admin.ModelAdmin):
    list_display = ['assignment', 'date', 'field_name', 'target_value', 'actual_value']
    list_filter = ['date', 'field_name']


# Export only; hourly logs are imported through the bulk import validator
@admin.register(HourlyLog)
class HourlyLogAdmin(ExportMixin, admin.ModelAdmin):
    resource_classes = [HourlyLogResource]
    list_display = ('assignment', 'recorded_at', 'qty', 'qty_normal', 'qty_reject', 'created_at')
    search_fields = ('assignment__production__name', 'assignment__machine_group__name')
    list_filter = ('recorded_at', 'assignment__production')
    list_select_related = ('assignment__production', 'assignment__machine_group')


@admin.register(DailyRollup)
class DailyRollupAdmin(admin.ModelAdmin):
    list_display = ['date', 'target_value', 'actual_value', 'updated_at']
    readonly_fields = ['date', 'target_value', 'actual_value']
