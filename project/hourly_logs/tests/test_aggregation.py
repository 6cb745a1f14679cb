from datetime import date

import pytest

from hourly_logs.aggregation import (
    achievement_percentage, aggregate_by_group, aggregate_by_production, aggregate_hourly_by_group,
    aggregate_hourly_by_production, contextual_variance, daily_summary, dashboard_overview, summary_figures,
)
from hourly_logs.constants import STATUS_INACTIVE
from hourly_logs.exceptions import InvalidArgument
from hourly_logs.models import DailyRollup, DailyTargetValue, Production
from hourly_logs.store import create_hourly_log


class TestFigures:
    """Variance, achievement and status of a summary row."""

    def test_below_target(self):
        """Normal short by 10, reject under target by 5: variance -5."""
        figures = summary_figures(target_normal=100, target_reject=10, actual_normal=90, actual_reject=5)
        assert figures['variance'] == -5
        assert figures['status'] == 'below'
        assert figures['target_total'] == 110
        assert figures['actual_total'] == 95
        assert figures['achievement_percentage'] == 86.4

    def test_achieved(self):
        figures = summary_figures(target_normal=80, target_reject=8, actual_normal=85, actual_reject=3)
        assert figures['variance'] == 10
        assert figures['status'] == 'achieved'

    def test_exactly_on_target_is_achieved(self):
        assert summary_figures(50, 0, 50, 0)['status'] == 'achieved'

    @pytest.mark.parametrize('actual, target, expected', [(75, 100, 75.0), (10, 0, 0), (2, 3, 66.7), (1, 8, 12.5)])
    def test_achievement_percentage(self, actual, target, expected):
        assert achievement_percentage(actual, target) == expected

    def test_reject_over_target_counts_against(self):
        assert contextual_variance(actual_normal=80, target_normal=80, actual_reject=12, target_reject=8) == -4


@pytest.mark.django_db
class TestAggregateByGroup:
    """Per assignment totals over a local date range."""

    def test_assignment_without_logs_is_zero(self, bare_assignment, day):
        rows = aggregate_by_group(day, day)
        assert len(rows) == 1
        row = rows[0]
        assert row['machine_group_name'] == 'Dryer'
        assert (row['total_output'], row['total_target'], row['variance']) == (0, 0, 0)
        assert row['log_count'] == 0

    def test_assignment_without_logs_keeps_default_targets(self, assignment, day):
        """Defaults of 80 normal and 8 reject per day over two days, with no output."""
        row = aggregate_by_group(day, '2026-01-16')[0]
        assert (row['total_output'], row['total_target'], row['variance']) == (0, 176, -176)
        assert row['log_count'] == 0

    def test_local_day_boundaries(self, assignment, day):
        """Local 23:00 belongs to the day, the next local midnight does not."""
        create_hourly_log(assignment, day, 23, {'qty_normal': 30, 'qty_reject': 2})
        create_hourly_log(assignment, '2026-01-16', 0, {'qty_normal': 99})

        row = aggregate_by_group(day, day)[0]
        assert row['total_output'] == 32
        assert row['total_target'] == 88
        assert row['variance'] == 32 - 88
        assert row['log_count'] == 1

    def test_targets_summed_per_day(self, assignment, day):
        DailyTargetValue.objects.create(assignment=assignment, date=date(2026, 1, 16),
                                        field_name='qty_normal', target_value=100)
        row = aggregate_by_group(day, '2026-01-16')[0]
        assert row['target_qty_normal'] == 80 + 100
        assert row['target_qty_reject'] == 8 + 8

    def test_sorted_and_filtered(self, assignment, qty_assignment, day):
        create_hourly_log(assignment, day, 8, {'qty_normal': 10})
        create_hourly_log(qty_assignment, day, 8, {'qty': 40})

        rows = aggregate_by_group(day, day, sort='total_output', direction='desc')
        assert [row['assignment_id'] for row in rows] == [qty_assignment.pk, assignment.pk]

        rows = aggregate_by_group(day, day, sort='bogus', direction='asc')
        assert [row['total_output'] for row in rows] == [10, 40]

        assert [row['assignment_id'] for row in aggregate_by_group(day, day, q='hot')] == [assignment.pk]

    def test_inactive_production_is_excluded(self, assignment, production, day):
        production.status = STATUS_INACTIVE
        production.save()
        assert aggregate_by_group(day, day) == []

    def test_reversed_range_rejected(self, db):
        with pytest.raises(InvalidArgument):
            aggregate_by_group('2026-01-16', '2026-01-15')


@pytest.mark.django_db
class TestAggregateByProduction:

    def test_rolls_up_groups(self, assignment, qty_assignment, day):
        Production.objects.create(name='Veneer')
        create_hourly_log(assignment, day, 8, {'qty_normal': 50, 'qty_reject': 2})
        create_hourly_log(qty_assignment, day, 8, {'qty': 20})

        rows = {row['production_name']: row for row in aggregate_by_production(day, day)}
        plywood = rows['Plywood']
        assert plywood['group_count'] == 2
        assert plywood['total_output'] == 72
        assert plywood['total_target'] == 88 + 160
        assert plywood['variance'] == 72 - 248
        assert rows['Veneer']['group_count'] == 0
        assert rows['Veneer']['total_output'] == 0


@pytest.mark.django_db
class TestHourlyAggregation:
    """Local hour buckets."""

    def test_bucket_label_is_local(self, assignment, day):
        create_hourly_log(assignment, day, 6, {'qty_normal': 12, 'qty_reject': 1})

        rows = aggregate_hourly_by_group(day, day)
        assert len(rows) == 1
        row = rows[0]
        assert row['recorded_hour'] == '2026-01-15 06:00'
        assert (row['date'], row['hour']) == (day, 6)
        assert row['machine_group_name'] == 'Hot press'
        assert row['total_output'] == 13
        assert row['total_target'] == 11
        assert row['variance'] == 2

    def test_default_order_is_by_hour(self, assignment, day):
        create_hourly_log(assignment, day, 9, {'qty_normal': 1})
        create_hourly_log(assignment, day, 7, {'qty_normal': 50})

        assert [row['hour'] for row in aggregate_hourly_by_group(day, day)] == [7, 9]
        assert [row['hour'] for row in aggregate_hourly_by_group(day, day, direction='desc')] == [9, 7]
        ordered = aggregate_hourly_by_group(day, day, sort='total_output', direction='asc')
        assert [row['total_output'] for row in ordered] == [1, 50]

    @pytest.fixture
    def spread(self, assignment, qty_assignment, day):
        """Hour 7 far above target, hour 8 on the qty group below its higher target, hour 9 slightly below."""
        create_hourly_log(assignment, day, 7, {'qty_normal': 50})
        create_hourly_log(qty_assignment, day, 8, {'qty': 5})
        create_hourly_log(assignment, day, 9, {'qty_normal': 1})

    @pytest.mark.parametrize('aggregate', [aggregate_hourly_by_group, aggregate_hourly_by_production])
    def test_sort_by_variance(self, spread, day, aggregate):
        rows = aggregate(day, day, sort='variance', direction='asc')
        assert [(row['hour'], row['variance']) for row in rows] == [(8, -15), (9, -10), (7, 39)]

    @pytest.mark.parametrize('aggregate', [aggregate_hourly_by_group, aggregate_hourly_by_production])
    def test_sort_by_total_target(self, spread, day, aggregate):
        """Equal targets fall back to the newest hour first."""
        rows = aggregate(day, day, sort='total_target', direction='desc')
        assert [(row['hour'], row['total_target']) for row in rows] == [(8, 20), (9, 11), (7, 11)]

    def test_production_buckets_combine_groups(self, assignment, qty_assignment, day):
        create_hourly_log(assignment, day, 8, {'qty_normal': 50})
        create_hourly_log(qty_assignment, day, 8, {'qty': 20})
        create_hourly_log(qty_assignment, day, 9, {'qty': 5})

        rows = aggregate_hourly_by_production(day, day)
        assert [(row['recorded_hour'], row['total_output'], row['group_count']) for row in rows] == [
            ('2026-01-15 08:00', 70, 2),
            ('2026-01-15 09:00', 5, 1),
        ]
        assert rows[0]['production_name'] == 'Plywood'


@pytest.mark.django_db
class TestDailySummary:
    """Target against actual per assignment for one day."""

    def test_override_targets(self, assignment, day):
        DailyTargetValue.objects.create(assignment=assignment, date=day, field_name='qty_normal', target_value=100)
        DailyTargetValue.objects.create(assignment=assignment, date=day, field_name='qty_reject', target_value=10)
        create_hourly_log(assignment, day, 8, {'qty_normal': 50, 'qty_reject': 3})
        create_hourly_log(assignment, day, 9, {'qty_normal': 40, 'qty_reject': 2})

        row = daily_summary(day)[0]
        assert (row['target_qty_normal'], row['target_qty_reject']) == (100, 10)
        assert (row['actual_qty_normal'], row['actual_qty_reject']) == (90, 5)
        assert row['variance'] == -5
        assert row['status'] == 'below'
        assert row['achievement_percentage'] == 86.4

    def test_qty_only_group(self, qty_assignment, day):
        create_hourly_log(qty_assignment, day, 8, {'qty': 20})

        row = daily_summary(day)[0]
        assert row['target_qty_normal'] == 160
        assert row['actual_qty_normal'] == 20
        assert row['achievement_percentage'] == 12.5

    def test_default_order_is_by_name(self, assignment, qty_assignment, bare_assignment, day):
        names = [row['machine_group_name'] for row in daily_summary(day)]
        assert names == ['Dryer', 'Hot press', 'Sander']

    def test_production_filter(self, assignment, day):
        other = Production.objects.create(name='Veneer')
        assert daily_summary(day, production_id=other.pk) == []
        assert len(daily_summary(day, production_id=assignment.production_id)) == 1


@pytest.mark.django_db
class TestDashboard:

    def test_overview(self, assignment, day, clock):
        DailyRollup.objects.create(date=date(2026, 1, 14), target_value=88, actual_value=70)
        create_hourly_log(assignment, day, 8, {'qty_normal': 50, 'qty_reject': 2})
        create_hourly_log(assignment, '2026-01-14', 12, {'qty_normal': 30})

        overview = dashboard_overview(clock=clock)

        assert overview['date'] == day
        assert overview['today_actual'] == 52
        assert overview['yesterday_actual'] == 30
        assert overview['total_productions'] == 1
        assert overview['active_productions'] == 1
        assert len(overview['daily_trend']) == 7
        assert overview['daily_trend'][-1] == {'date': day, 'target': 0, 'actual': 0}
        assert overview['daily_trend'][-2] == {'date': date(2026, 1, 14), 'target': 88, 'actual': 70}
        assert overview['recent_logs'][0]['recorded_hour'] == '2026-01-15 08:00'
        assert overview['group_output_24h'] == [{'machine_group_name': 'Hot press', 'total_output': 82}]
