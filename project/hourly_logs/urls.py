from django.urls import path

from . import views, views_import, views_summary, views_targets

urlpatterns = [
    # Hourly input
    path('input/', views.hourly_input_list, name='hourly-input-list'),
    path('input/<int:pk>/', views.hourly_input_detail, name='hourly-input-detail'),
    path('input/check-duplicate/', views.check_duplicate, name='hourly-input-check-duplicate'),
    path('input/bulk-delete/', views.bulk_delete, name='hourly-input-bulk-delete'),
    path('input/export/', views.export_hourly_input, name='hourly-input-export'),

    # Bulk import
    path('input/import/template/', views_import.download_import_template, name='hourly-input-import-template'),
    path('input/import/preview/', views_import.import_preview, name='hourly-input-import-preview'),
    path('input/import/execute/', views_import.import_execute, name='hourly-input-import-execute'),

    # Targets
    path('targets/', views_targets.daily_targets, name='daily-targets'),
    path('targets/<int:assignment_id>/', views_targets.update_daily_targets, name='daily-targets-update'),
    path('productions/defaults/', views_targets.production_defaults, name='production-defaults'),
    path('productions/<int:assignment_id>/defaults/', views_targets.update_production_defaults,
         name='production-defaults-update'),

    # Reports
    path('summary/daily/', views_summary.daily_summary_view, name='summary-daily'),
    path('summary/daily/export/', views_summary.daily_summary_export, name='summary-daily-export'),
    path('summary/machine-groups/', views_summary.machine_group_summary, name='summary-machine-groups'),
    path('summary/machine-groups/export/', views_summary.machine_group_summary_export,
         name='summary-machine-groups-export'),
    path('summary/productions/', views_summary.production_summary, name='summary-productions'),
    path('summary/productions/export/', views_summary.production_summary_export,
         name='summary-productions-export'),
    path('logs/group/', views_summary.group_logs, name='logs-group'),
    path('logs/group/export/', views_summary.group_logs_export, name='logs-group-export'),
    path('logs/production/', views_summary.production_logs, name='logs-production'),
    path('logs/production/export/', views_summary.production_logs_export, name='logs-production-export'),
    path('dashboard/', views_summary.dashboard, name='dashboard'),
]
