import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import hourly_logs.input_config


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='DailyRollup',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField(help_text='Local calendar date', unique=True)),
                ('target_value', models.BigIntegerField(default=0)),
                ('actual_value', models.BigIntegerField(default=0)),
                ('notes', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['-date'],
            },
        ),
        migrations.CreateModel(
            name='MachineGroup',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text='Canonical (lowercase) machine group name', max_length=100, unique=True)),
                ('description', models.TextField(blank=True, default='')),
                ('input_config', models.JSONField(default=hourly_logs.input_config.default_input_config, help_text='Fields recorded by this group and the allowed grade labels')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Production',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text='Production line name, case-sensitive', max_length=100, unique=True)),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive')], db_index=True, default='active', help_text='Only active productions show up in summaries and imports', max_length=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='ProductionMachineGroup',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('machine_count', models.PositiveIntegerField(default=1, help_text='Number of physical machines in the group', validators=[django.core.validators.MinValueValidator(1)])),
                ('default_targets', models.JSONField(blank=True, default=dict, help_text='Default daily target per field, e.g. {"qty_normal": 80}')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('machine_group', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='assignments', to='hourly_logs.machinegroup')),
                ('modified_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('production', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='assignments', to='hourly_logs.production')),
            ],
        ),
        migrations.CreateModel(
            name='HourlyLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('recorded_at', models.DateTimeField(help_text='UTC start of the recorded hour')),
                ('qty', models.PositiveIntegerField(blank=True, null=True)),
                ('qty_normal', models.PositiveIntegerField(blank=True, null=True)),
                ('qty_reject', models.PositiveIntegerField(blank=True, null=True)),
                ('grades', models.JSONField(blank=True, help_text='Grade label to quantity', null=True)),
                ('grade', models.CharField(blank=True, max_length=50, null=True)),
                ('ukuran', models.CharField(blank=True, help_text='Size/dimension label', max_length=50, null=True)),
                ('notes', models.TextField(blank=True, null=True)),
                ('target_qty', models.PositiveIntegerField(blank=True, null=True)),
                ('target_qty_normal', models.PositiveIntegerField(blank=True, null=True)),
                ('target_qty_reject', models.PositiveIntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assignment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='hourly_logs', to='hourly_logs.productionmachinegroup')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('modified_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'indexes': [models.Index(fields=['recorded_at'], name='hourly_log_recorded_at_idx')],
            },
        ),
        migrations.CreateModel(
            name='DailyTargetValue',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField(help_text='Local calendar date')),
                ('field_name', models.CharField(max_length=20)),
                ('target_value', models.IntegerField(blank=True, null=True)),
                ('actual_value', models.IntegerField(blank=True, null=True)),
                ('notes', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assignment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='daily_target_values', to='hourly_logs.productionmachinegroup')),
            ],
            options={
                'indexes': [models.Index(fields=['date'], name='daily_target_value_date_idx')],
            },
        ),
        migrations.AddConstraint(
            model_name='productionmachinegroup',
            constraint=models.UniqueConstraint(fields=('machine_group',), name='production_machine_group_unique'),
        ),
        migrations.AddConstraint(
            model_name='hourlylog',
            constraint=models.UniqueConstraint(fields=('assignment', 'recorded_at'), name='hourly_logs_group_hour_unique'),
        ),
        migrations.AddConstraint(
            model_name='dailytargetvalue',
            constraint=models.UniqueConstraint(fields=('assignment', 'date', 'field_name'), name='daily_target_value_unique'),
        ),
    ]
