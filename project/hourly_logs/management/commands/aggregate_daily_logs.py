from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from hourly_logs.exceptions import InvalidArgument
from hourly_logs.rollups import run_daily_snapshot
from hourly_logs.time_anchor import parse_local_date


class Command(BaseCommand):
    help = 'Recompute daily rollup snapshots from hourly logs for a window of local dates'

    def add_arguments(self, parser):
        parser.add_argument('--date', help='Last local date to process (YYYY-MM-DD), defaults to today')
        parser.add_argument('--lookback-days', type=int, default=settings.DAILY_ROLLUP_LOOKBACK_DAYS,
                            help='Number of days before --date to include')

    def handle(self, *args, **options):
        try:
            as_of = parse_local_date(options['date']) if options['date'] else None
        except InvalidArgument as exc:
            raise CommandError(str(exc))

        result = run_daily_snapshot(as_of=as_of, lookback_days=options['lookback_days'])

        for day in result.processed:
            self.stdout.write(self.style.SUCCESS(f'Aggregated {day}'))
        for day in result.failed:
            self.stdout.write(self.style.ERROR(f'Failed to aggregate {day}'))

        # Print summary
        self.stdout.write(self.style.SUCCESS(f'Successfully aggregated {len(result.processed)} days'))
        if result.failed:
            raise CommandError(f'{len(result.failed)} days failed: '
                               f'{", ".join(str(day) for day in result.failed)}')
