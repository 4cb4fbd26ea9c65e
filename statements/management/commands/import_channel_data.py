"""
Management command to import reservations or expenses from Excel/CSV files.

Usage:
    python manage.py import_channel_data path/to/reservations.xlsx
    python manage.py import_channel_data path/to/expenses.csv --kind expenses
    python manage.py import_channel_data path/to/file.csv --verbose
"""

from pathlib import Path

from django.core.management.base import BaseCommand, CommandError


class Command(BaseCommand):
    help = 'Import channel reservations or expenses from an Excel or CSV file'

    def add_arguments(self, parser):
        parser.add_argument(
            'file_path',
            type=str,
            help='Path to the Excel or CSV file to import'
        )
        parser.add_argument(
            '--kind',
            choices=['reservations', 'expenses'],
            default='reservations',
            help='What the file contains (default: reservations)'
        )
        parser.add_argument(
            '--verbose',
            action='store_true',
            help='Show every row error'
        )

    def handle(self, *args, **options):
        from statements.services import ChannelImportService

        file_path = Path(options['file_path'])

        if not file_path.exists():
            raise CommandError(f'File not found: {file_path}')
        if file_path.suffix.lower() not in ['.xlsx', '.xls', '.csv']:
            raise CommandError(f'Unsupported file format: {file_path.suffix}')

        self.stdout.write(f"Importing {options['kind']} from {file_path.name}")

        result = ChannelImportService().import_file(str(file_path), kind=options['kind'])

        if result['success']:
            self.stdout.write(self.style.SUCCESS('Import completed'))
        else:
            self.stdout.write(self.style.ERROR('Import failed'))

        self.stdout.write('')
        self.stdout.write('Results:')
        self.stdout.write(f"  Total rows:    {result['rows_total']}")
        self.stdout.write(self.style.SUCCESS(f"  Created:       {result['rows_created']}"))
        self.stdout.write(f"  Updated:       {result['rows_updated']}")
        self.stdout.write(f"  Skipped:       {result['rows_skipped']}")
        self.stdout.write(f"  Success rate:  {result['success_rate']:.1f}%")

        errors = result['errors']
        if errors and (options['verbose'] or len(errors) <= 10):
            self.stdout.write('')
            self.stdout.write(self.style.WARNING(f"Errors ({len(errors)}):"))
            for error in errors if options['verbose'] else errors[:10]:
                self.stdout.write(f"  Row {error.get('row', '?')}: {error.get('message')}")
        elif errors:
            self.stdout.write(self.style.WARNING(f"{len(errors)} errors (use --verbose to see details)"))

        if not result['success']:
            raise CommandError('Import failed: ' + '; '.join(e['message'] for e in errors if e['row'] == 0))
