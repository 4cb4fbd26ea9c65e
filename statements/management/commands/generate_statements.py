"""
Management command to generate owner statements.

Usage:
    python manage.py generate_statements --month 2025-06
    python manage.py generate_statements --month 2025-06 --tag "Weekly Owners"
    python manage.py generate_statements --start 2025-06-01 --end 2025-06-07 --property 42 --property 43
    python manage.py generate_statements --month 2025-06 --property 42 --property 43 --combined
"""

from datetime import date

from dateutil.relativedelta import relativedelta
from django.core.management.base import BaseCommand, CommandError

from statements.domain import CALCULATION_TYPES, CHECKOUT
from statements.exceptions import StatementError


class Command(BaseCommand):
    help = 'Generate owner statements (one per listing, or one combined statement)'

    def add_arguments(self, parser):
        parser.add_argument('--month', type=str, help='Calendar month as YYYY-MM')
        parser.add_argument('--start', type=str, help='Period start (YYYY-MM-DD)')
        parser.add_argument('--end', type=str, help='Period end (YYYY-MM-DD)')
        parser.add_argument(
            '--property',
            type=int,
            action='append',
            dest='property_ids',
            help='Listing id (repeatable; default: all active listings)'
        )
        parser.add_argument('--tag', type=str, help='Only active listings carrying this tag')
        parser.add_argument(
            '--calculation-type',
            choices=CALCULATION_TYPES,
            default=CHECKOUT,
            help='checkout (default) or calendar'
        )
        parser.add_argument(
            '--combined',
            action='store_true',
            help='One combined statement over all selected listings'
        )

    def _period(self, options):
        if options['month']:
            try:
                year, month = (int(part) for part in options['month'].split('-'))
                start = date(year, month, 1)
            except ValueError:
                raise CommandError(f"Invalid month: {options['month']} (expected YYYY-MM)")
            return start, start + relativedelta(months=1, days=-1)
        if options['start'] and options['end']:
            return options['start'], options['end']
        raise CommandError('Give --month, or both --start and --end')

    def handle(self, *args, **options):
        from statements.models import GenerationJob
        from statements.services import DatabaseDataSource, StatementGenerationService
        from statements.services.generation_service import bulk_property_ids

        start, end = self._period(options)
        calculation_type = options['calculation_type']
        property_ids = options['property_ids'] or bulk_property_ids(options['tag'])
        if not property_ids:
            raise CommandError('No listings selected')

        service = StatementGenerationService(DatabaseDataSource())

        try:
            if options['combined']:
                statement = service.generate_combined(property_ids, start, end, calculation_type)
                self.stdout.write(self.style.SUCCESS(
                    f"Combined statement {statement.pk}: {statement.property_name} "
                    f"owner payout {statement.owner_payout}"
                ))
                return

            service.validate_period(start, end, calculation_type)
            job = GenerationJob.objects.create(params={
                'property_ids': property_ids, 'tag': options['tag'],
                'start_date': str(start), 'end_date': str(end), 'calculation_type': calculation_type,
            })
            result = service.generate_bulk(property_ids, start, end, calculation_type, job=job)
        except StatementError as e:
            raise CommandError(str(e))

        summary = result['summary']
        self.stdout.write(self.style.SUCCESS(f"Generated: {summary['generated']}"))
        self.stdout.write(f"Skipped (draft exists): {summary['skipped']}")
        if result['errors']:
            self.stdout.write(self.style.WARNING(f"Errors ({summary['errors']}):"))
            for error in result['errors']:
                self.stdout.write(f"  Listing {error['property_id']}: {error['message']}")
        self.stdout.write(f"Job ID: {job.pk}")
