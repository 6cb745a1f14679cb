from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import connections, models

from .constants import PRODUCTION_STATUSES, STATUS_ACTIVE
from .input_config import InputConfig, canonical_name, default_input_config, display_name


class UpsertQuerySet(models.QuerySet):

    def upsert(self, objs, unique_fields, update_fields):
        """
        INSERT ... ON CONFLICT DO UPDATE in a single statement.

        Backends that cannot name the conflict target (MySQL) use the table's
        unique keys instead.
        """
        kwargs = {'update_conflicts': True, 'update_fields': update_fields}
        if connections[self.db].features.supports_update_conflicts_with_target:
            kwargs['unique_fields'] = unique_fields
        return self.bulk_create(objs, **kwargs)


class Production(models.Model):
    """
    A production line (e.g. Plywood) that owns machine groups.

    Names are matched exactly, so case is preserved as entered.
    """
    name = models.CharField(max_length=100, unique=True, help_text="Production line name, case-sensitive")
    status = models.CharField(max_length=10, choices=PRODUCTION_STATUSES, default=STATUS_ACTIVE,
                              db_index=True, help_text="Only active productions show up in summaries and imports")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name


class MachineGroup(models.Model):
    """
    A set of physical machines that report output together.

    The name is stored lowercased; use ``display_name`` for presentation.
    """
    name = models.CharField(max_length=100, unique=True, help_text="Canonical (lowercase) machine group name")
    description = models.TextField(blank=True, default='')
    input_config = models.JSONField(default=default_input_config,
                                    help_text="Fields recorded by this group and the allowed grade labels")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def save(self, *args, **kwargs):
        self.name = canonical_name(self.name)
        super().save(*args, **kwargs)

    @property
    def config(self):
        return InputConfig.from_dict(self.input_config)

    @property
    def display_name(self):
        return display_name(self.name)

    def __str__(self):
        return self.display_name


class ProductionMachineGroup(models.Model):
    """
    Assignment of a machine group to a production.

    A machine group belongs to at most one production. ``default_targets`` maps
    a field name (qty, qty_normal, qty_reject) to its default daily target.
    """
    production = models.ForeignKey(Production, on_delete=models.CASCADE, related_name='assignments')
    machine_group = models.ForeignKey(MachineGroup, on_delete=models.CASCADE, related_name='assignments')
    machine_count = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)],
                                                help_text="Number of physical machines in the group")
    default_targets = models.JSONField(default=dict, blank=True,
                                       help_text="Default daily target per field, e.g. {\"qty_normal\": 80}")
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True,
                                   on_delete=models.SET_NULL, related_name='+')
    modified_by = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True,
                                    on_delete=models.SET_NULL, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['machine_group'], name='production_machine_group_unique'),
        ]

    def __str__(self):
        return f"{self.production} / {self.machine_group}"


class DailyTargetValue(models.Model):
    """
    Daily override of a target (and optionally a recorded actual) for one field.
    """
    assignment = models.ForeignKey(ProductionMachineGroup, on_delete=models.CASCADE,
                                   related_name='daily_target_values')
    date = models.DateField(help_text="Local calendar date")
    field_name = models.CharField(max_length=20)
    target_value = models.IntegerField(null=True, blank=True)
    actual_value = models.IntegerField(null=True, blank=True)
    notes = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UpsertQuerySet.as_manager()

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['assignment', 'date', 'field_name'],
                                    name='daily_target_value_unique'),
        ]
        indexes = [
            models.Index(fields=['date'], name='daily_target_value_date_idx'),
        ]

    def __str__(self):
        return f"{self.assignment} {self.date} {self.field_name}={self.target_value}"


class HourlyLog(models.Model):
    """
    Output observed for one machine group in one hour.

    ``recorded_at`` is the UTC instant of the local hour start. The target_*
    columns hold the hourly targets in effect when the row was written and are
    not recomputed when defaults or overrides change later.
    """
    assignment = models.ForeignKey(ProductionMachineGroup, on_delete=models.CASCADE, related_name='hourly_logs')
    recorded_at = models.DateTimeField(help_text="UTC start of the recorded hour")

    qty = models.PositiveIntegerField(null=True, blank=True)
    qty_normal = models.PositiveIntegerField(null=True, blank=True)
    qty_reject = models.PositiveIntegerField(null=True, blank=True)
    grades = models.JSONField(null=True, blank=True, help_text="Grade label to quantity")
    grade = models.CharField(max_length=50, null=True, blank=True)
    ukuran = models.CharField(max_length=50, null=True, blank=True, help_text="Size/dimension label")
    notes = models.TextField(null=True, blank=True)

    target_qty = models.PositiveIntegerField(null=True, blank=True)
    target_qty_normal = models.PositiveIntegerField(null=True, blank=True)
    target_qty_reject = models.PositiveIntegerField(null=True, blank=True)

    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True,
                                   on_delete=models.SET_NULL, related_name='+')
    modified_by = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True,
                                    on_delete=models.SET_NULL, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['assignment', 'recorded_at'], name='hourly_logs_group_hour_unique'),
        ]
        indexes = [
            models.Index(fields=['recorded_at'], name='hourly_log_recorded_at_idx'),
        ]

    @property
    def total_output(self):
        total = (self.qty or 0) + (self.qty_normal or 0) + (self.qty_reject or 0)
        if isinstance(self.grades, dict):
            total += sum(int(value or 0) for value in self.grades.values())
        return total

    @property
    def total_target(self):
        return (self.target_qty or 0) + (self.target_qty_normal or 0) + (self.target_qty_reject or 0)

    def __str__(self):
        return f"{self.assignment} @ {self.recorded_at:%Y-%m-%d %H:00} UTC"


class DailyRollup(models.Model):
    """Materialized daily totals; always recomputable from HourlyLog."""
    date = models.DateField(unique=True, help_text="Local calendar date")
    target_value = models.BigIntegerField(default=0)
    actual_value = models.BigIntegerField(default=0)
    notes = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UpsertQuerySet.as_manager()

    class Meta:
        ordering = ['-date']

    def __str__(self):
        return f"{self.date}: {self.actual_value}/{self.target_value}"
