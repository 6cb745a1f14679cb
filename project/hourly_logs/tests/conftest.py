"""
Shared fixtures for the hourly log tests.

Local time is Asia/Jakarta (UTC+7): local 08:00 on 2026-01-15 is 01:00 UTC.
"""
from datetime import date, datetime, timezone

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from hourly_logs.models import MachineGroup, Production, ProductionMachineGroup

DAY = date(2026, 1, 15)


@pytest.fixture
def day():
    return DAY


@pytest.fixture
def user(db):
    return get_user_model().objects.create_user(username='operator', password='operator-pass-123')


@pytest.fixture
def api_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def production(db):
    return Production.objects.create(name='Plywood')


@pytest.fixture
def machine_group(db):
    return MachineGroup.objects.create(
        name='Hot Press',
        input_config={'fields': ['qty_normal', 'qty_reject', 'keterangan'], 'grade_types': []},
    )


@pytest.fixture
def assignment(production, machine_group):
    """Normal/reject group with default daily targets 80 normal, 8 reject."""
    return ProductionMachineGroup.objects.create(
        production=production,
        machine_group=machine_group,
        machine_count=3,
        default_targets={'qty_normal': 80, 'qty_reject': 8},
    )


@pytest.fixture
def qty_assignment(production):
    """Quantity-only group with a default daily target of 160."""
    group = MachineGroup.objects.create(name='Sander')
    return ProductionMachineGroup.objects.create(
        production=production,
        machine_group=group,
        default_targets={'qty': 160},
    )


@pytest.fixture
def bare_assignment(production):
    """Assignment without any default targets."""
    group = MachineGroup.objects.create(
        name='Dryer',
        input_config={'fields': ['qty_normal', 'qty_reject'], 'grade_types': []},
    )
    return ProductionMachineGroup.objects.create(production=production, machine_group=group)


@pytest.fixture
def clock():
    """10:00 local time on 2026-01-15."""
    return lambda: datetime(2026, 1, 15, 3, 0, tzinfo=timezone.utc)
