from datetime import date
from decimal import Decimal
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from statements.models import ChannelReservation, GenerationJob, Listing, Statement

pytestmark = pytest.mark.django_db


@pytest.fixture
def listing():
    listing = Listing.objects.create(id=1, name='Beach House', tags='weekly')
    ChannelReservation.objects.create(
        external_id='HA-1', listing=listing, guest_name='Ada',
        check_in_date=date(2025, 6, 10), check_out_date=date(2025, 6, 14),
        source='Direct', status='confirmed', gross_amount=Decimal('1000.00'),
    )
    return listing


def test_generate_month(listing):
    out = StringIO()

    call_command('generate_statements', '--month', '2025-06', '--tag', 'weekly', stdout=out)

    statement = Statement.objects.get()
    assert (statement.week_start_date, statement.week_end_date) == (date(2025, 6, 1), date(2025, 6, 30))
    assert statement.owner_payout == Decimal('850.00')
    assert 'Generated: 1' in out.getvalue()
    assert GenerationJob.objects.get().status == 'completed'


def test_generate_requires_a_period(listing):
    with pytest.raises(CommandError, match='--month'):
        call_command('generate_statements', stdout=StringIO())


def test_generate_rejects_bad_month(listing):
    with pytest.raises(CommandError, match='Invalid month'):
        call_command('generate_statements', '--month', 'June', stdout=StringIO())


def test_generate_combined_unknown_single_listing(listing):
    with pytest.raises(CommandError):
        call_command(
            'generate_statements', '--start', '2025-06-01', '--end', '2025-06-30',
            '--property', '7', '--combined', stdout=StringIO(),
        )


def test_import_command(tmp_path, listing):
    path = tmp_path / 'expenses.csv'
    path.write_text("Expense ID,Listing ID,Date,Description,Amount\nEXP-1,1,2025-06-15,Plumber,100\n")
    out = StringIO()

    call_command('import_channel_data', str(path), '--kind', 'expenses', stdout=out)

    assert 'Import completed' in out.getvalue()
    assert 'Created:       1' in out.getvalue()


def test_import_command_missing_file(tmp_path):
    with pytest.raises(CommandError, match='File not found'):
        call_command('import_channel_data', str(tmp_path / 'nope.csv'), stdout=StringIO())
