from datetime import date

import pytest

from hourly_logs.exceptions import InvalidArgument, NotFound
from hourly_logs.models import DailyTargetValue
from hourly_logs.targets import (
    TargetResolver, TargetSource, daily_target_values, hourly_from_daily, resolve_field,
    resolve_normal_reject, snapshot_hourly_targets, upsert_daily_values,
)


class TestHourlySplit:
    """A daily target is spread over an 8 hour shift, rounded up."""

    @pytest.mark.parametrize('daily, hourly', [(80, 10), (81, 11), (0, 0), (7, 1), (-5, 0), (None, 0), ('x', 0)])
    def test_hourly_from_daily(self, daily, hourly):
        assert hourly_from_daily(daily) == hourly

    def test_full_shift_covers_daily_target(self):
        for daily in range(0, 200):
            assert hourly_from_daily(daily) * 8 >= daily


@pytest.mark.django_db
class TestResolveField:
    """Override, then default, then zero."""

    def test_fallback_order(self, assignment, day):
        """Default first, an override wins once it exists, unknown fields resolve to zero."""
        assert resolve_field(assignment, day, 'qty_normal') == (80, TargetSource.DEFAULT)

        DailyTargetValue.objects.create(assignment=assignment, date=day, field_name='qty_normal', target_value=120)
        assert resolve_field(assignment, day, 'qty_normal') == (120, TargetSource.OVERRIDE)

        assert resolve_field(assignment, day, 'qty') == (0, TargetSource.NONE)

    def test_null_override_falls_back_to_default(self, assignment, day):
        DailyTargetValue.objects.create(assignment=assignment, date=day, field_name='qty_normal',
                                        target_value=None, actual_value=50)
        assert resolve_field(assignment, day, 'qty_normal') == (80, TargetSource.DEFAULT)

    def test_override_only_applies_to_its_date(self, assignment, day):
        DailyTargetValue.objects.create(assignment=assignment, date=day, field_name='qty_normal', target_value=120)
        assert resolve_field(assignment, date(2026, 1, 16), 'qty_normal') == (80, TargetSource.DEFAULT)

    def test_negative_values_resolve_to_zero(self, assignment, day):
        assignment.default_targets = {'qty_reject': -4}
        assignment.save()
        assert resolve_field(assignment, day, 'qty_reject') == (0, TargetSource.DEFAULT)

        DailyTargetValue.objects.create(assignment=assignment, date=day, field_name='qty_reject', target_value=-3)
        assert resolve_field(assignment, day, 'qty_reject') == (0, TargetSource.OVERRIDE)

    def test_accepts_assignment_id(self, assignment, day):
        assert resolve_field(assignment.pk, day, 'qty_reject') == (8, TargetSource.DEFAULT)

    def test_unknown_assignment(self, db, day):
        with pytest.raises(NotFound):
            resolve_field(999999, day, 'qty')


@pytest.mark.django_db
class TestResolverHelpers:
    """Normal/reject pairs, preloading and write-time snapshots."""

    def test_normal_falls_back_to_qty(self, qty_assignment, day):
        assert resolve_normal_reject(qty_assignment, day) == (160, 0)

    def test_normal_reject_from_defaults(self, assignment, day):
        assert resolve_normal_reject(assignment, day) == (80, 8)

    def test_preloaded_resolver_matches_direct_lookup(self, assignment, qty_assignment, day):
        DailyTargetValue.objects.create(assignment=assignment, date=day, field_name='qty_reject', target_value=12)
        preloaded = TargetResolver.for_range([assignment.pk, qty_assignment.pk], day, day)
        direct = TargetResolver()
        for current in (assignment, qty_assignment):
            for field_name in ('qty', 'qty_normal', 'qty_reject'):
                assert preloaded.resolve(current, day, field_name) == direct.resolve(current, day, field_name)

    def test_snapshot_covers_recorded_fields_only(self, assignment, qty_assignment, day):
        assert snapshot_hourly_targets(assignment, day) == {
            'target_qty': None, 'target_qty_normal': 10, 'target_qty_reject': 1,
        }
        assert snapshot_hourly_targets(qty_assignment, day) == {
            'target_qty': 20, 'target_qty_normal': None, 'target_qty_reject': None,
        }

    def test_daily_target_values_rows(self, assignment, day):
        DailyTargetValue.objects.create(assignment=assignment, date=day, field_name='qty_reject',
                                        target_value=12, notes='short shift')
        rows = {row['field_name']: row for row in daily_target_values(assignment, day)}
        assert rows['qty_normal']['target_value'] == 80
        assert rows['qty_normal']['source'] == 'default'
        assert rows['qty_reject']['target_value'] == 12
        assert rows['qty_reject']['notes'] == 'short shift'


@pytest.mark.django_db
class TestUpsertDailyValues:
    """One row per (assignment, date, field), overwritten in place."""

    def test_creates_then_overwrites(self, assignment, day):
        upsert_daily_values(assignment, day, [{'field_name': 'qty_normal', 'target_value': 100}])
        saved = upsert_daily_values(assignment, day, [
            {'field_name': 'qty_normal', 'target_value': 120, 'notes': 'rush order'},
            {'field_name': 'qty_reject', 'target_value': 5},
        ])

        assert DailyTargetValue.objects.filter(assignment=assignment, date=day).count() == 2
        values = {value.field_name: value for value in saved}
        assert values['qty_normal'].target_value == 120
        assert values['qty_normal'].notes == 'rush order'
        assert resolve_field(assignment, day, 'qty_normal') == (120, TargetSource.OVERRIDE)

    def test_clearing_target_restores_default(self, assignment, day):
        upsert_daily_values(assignment, day, [{'field_name': 'qty_normal', 'target_value': 100}])
        upsert_daily_values(assignment, day, [{'field_name': 'qty_normal', 'target_value': None}])
        assert resolve_field(assignment, day, 'qty_normal') == (80, TargetSource.DEFAULT)

    @pytest.mark.parametrize('values', [
        [{'field_name': 'speed', 'target_value': 1}],
        [{'field_name': 'qty', 'target_value': -1}],
        [{'field_name': 'qty', 'target_value': 1}, {'field_name': 'qty', 'target_value': 2}],
    ])
    def test_rejects_bad_values(self, assignment, day, values):
        with pytest.raises(InvalidArgument):
            upsert_daily_values(assignment, day, values)
        assert not DailyTargetValue.objects.exists()
