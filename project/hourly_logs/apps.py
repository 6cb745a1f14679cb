from django.apps import AppConfig


class HourlyLogsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'hourly_logs'
    verbose_name = 'Hourly production logs'
