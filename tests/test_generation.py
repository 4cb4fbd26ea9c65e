from datetime import date
from decimal import Decimal

import pytest

from statements.exceptions import InvalidPeriodError, ListingNotFoundError, StatementValidationError
from statements.models import GenerationJob, Listing, Statement
from statements.services import StatementGenerationService
from statements.services.generation_service import bulk_property_ids, display_names

pytestmark = pytest.mark.django_db

START = date(2025, 6, 1)
END = date(2025, 6, 30)


@pytest.fixture
def source(fake_source_class, make_config, make_reservation, make_expense):
    return fake_source_class(
        configs=[
            make_config(1, name='Beach', internal_notes='Owner prefers email'),
            make_config(2, name='Loft', pm_fee_percentage=Decimal('20')),
            make_config(3, name='Cabin'),
        ],
        reservations=[
            make_reservation(1, client_revenue=Decimal('1000.00')),
            make_reservation(2, client_revenue=Decimal('500.00')),
            make_reservation(3, client_revenue=Decimal('300.00')),
        ],
        expenses=[
            make_expense(1, description='Lawn care', amount='50.00'),
            make_expense(1, description='Lawn care', amount='50.00'),
        ],
    )


def test_validate_period():
    assert StatementGenerationService.validate_period('2025-06-01', '2025-06-30') == (START, END)
    with pytest.raises(InvalidPeriodError):
        StatementGenerationService.validate_period(END, START)
    with pytest.raises(InvalidPeriodError):
        StatementGenerationService.validate_period('June', END)
    with pytest.raises(StatementValidationError):
        StatementGenerationService.validate_period(START, END, 'weekly')


def test_display_names():
    assert display_names(['A', 'B', 'C']) == ('A, B, C', 'A, B, C')
    assert display_names(['A', 'B', 'C', 'D']) == ('A, B, C, D', 'A, B +2 more')


def test_generate_single(source):
    statement = StatementGenerationService(source).generate(1, START, END)

    assert statement.pk is not None
    assert statement.property_id == 1
    assert statement.property_name == 'Beach'
    assert not statement.is_combined_statement
    assert statement.owner_payout == Decimal('750.00')
    assert statement.internal_notes == 'Owner prefers email'
    assert statement.listing_settings_snapshot['1']['pm_fee_percentage'] == '15'
    assert len(statement.duplicate_warnings) == 1
    assert statement.tech_fees == Decimal('50.00')
    assert statement.insurance_fees == Decimal('25.00')


def test_generate_unknown_listing_fails(source):
    with pytest.raises(ListingNotFoundError):
        StatementGenerationService(source).generate(42, START, END)
    assert Statement.objects.count() == 0


def test_generate_without_saving(source):
    statement = StatementGenerationService(source).generate(1, START, END, save=False)

    assert statement.pk is None
    assert Statement.objects.count() == 0


def test_generate_combined(source):
    statement = StatementGenerationService(source).generate_combined([2, 1, 99], START, END)

    assert statement.is_combined_statement
    assert statement.property_id is None
    assert statement.property_ids == [1, 2, 99]
    assert statement.property_names == 'Beach, Loft, Property 99'
    # 850 - 100 (listing 1) + 400 (listing 2, 20%)
    assert statement.owner_payout == Decimal('1150.00')
    assert statement.internal_notes == '[Beach]: Owner prefers email'
    assert statement.listing_settings_snapshot['99']['pm_fee_percentage'] == '15.00'
    assert source.closed == 3


def test_combined_fetch_failure_fails_the_statement(fake_source_class, make_config):
    source = fake_source_class(configs=[make_config(1), make_config(2)], failing=[2])

    with pytest.raises(RuntimeError):
        StatementGenerationService(source).generate_combined([1, 2], START, END)
    assert Statement.objects.count() == 0


def test_bulk_isolates_failures(source):
    source.failing.add(3)
    job = GenerationJob.objects.create()

    result = StatementGenerationService(source, max_workers=2).generate_bulk(
        [1, 2, 3, 42], START, END, job=job, batch_size=2
    )

    assert result['summary'] == {'total': 4, 'generated': 2, 'skipped': 0, 'errors': 2}
    assert sorted(e['property_id'] for e in result['errors']) == [3, 42]
    assert Statement.objects.count() == 2

    job.refresh_from_db()
    assert job.status == 'completed_with_errors'
    assert job.progress == job.total == 4
    assert len(job.errors) == 2
    assert job.completed_at is not None


def test_bulk_skips_existing_drafts(source):
    service = StatementGenerationService(source)
    existing = service.generate(1, START, END)

    result = service.generate_bulk([1, 2], START, END)

    assert result['skipped'] == [{'property_id': 1, 'statement_id': existing.pk, 'reason': 'draft already exists'}]
    assert len(result['generated']) == 1
    assert Statement.objects.filter(property_id=1).count() == 1


def test_bulk_regenerates_when_previous_statement_is_final(source):
    service = StatementGenerationService(source)
    existing = service.generate(1, START, END)
    Statement.objects.filter(pk=existing.pk).update(status='final')

    result = service.generate_bulk([1], START, END)

    assert result['summary']['generated'] == 1


def test_bulk_rejects_invalid_period_before_starting_job(source):
    job = GenerationJob.objects.create()

    with pytest.raises(InvalidPeriodError):
        StatementGenerationService(source).generate_bulk([1], END, START, job=job)

    job.refresh_from_db()
    assert job.status == 'queued'


def test_bulk_property_ids_by_tag():
    Listing.objects.create(id=1, name='Beach', tags='Weekly, Coast')
    Listing.objects.create(id=2, name='Loft', tags='monthly')
    Listing.objects.create(id=3, name='Cabin', tags='weekly', is_active=False)

    assert bulk_property_ids('weekly') == [1]
    assert bulk_property_ids() == [1, 2]


def test_bulk_skip_matches_calculation_type(source):
    service = StatementGenerationService(source)
    calendar = service.generate(1, START, END, calculation_type='calendar')

    checkout_run = service.generate_bulk([1], START, END, calculation_type='checkout')
    calendar_run = service.generate_bulk([1], START, END, calculation_type='calendar')

    assert checkout_run['summary']['generated'] == 1
    assert calendar_run['skipped'][0]['statement_id'] == calendar.pk
    assert StatementGenerationService.find_existing_draft(1, START, END, 'calendar') == calendar
