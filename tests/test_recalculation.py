from datetime import date
from decimal import Decimal

import pytest

from statements.models import Statement
from statements.services import StatementGenerationService, StatementRecalculator
from statements.services.rules import RuleResolver

pytestmark = pytest.mark.django_db

START = date(2025, 6, 1)
END = date(2025, 6, 30)


@pytest.fixture
def source(fake_source_class, make_config, make_reservation):
    return fake_source_class(
        configs=[make_config(1, pm_fee_percentage=Decimal('15'))],
        reservations=[make_reservation(1, client_revenue=Decimal('1000.00'))],
    )


@pytest.fixture
def statement(source):
    return StatementGenerationService(source).generate(1, START, END)


def test_unchanged_settings_do_not_write(statement, source):
    before = Statement.objects.get(pk=statement.pk).updated_at

    rewritten = StatementRecalculator(RuleResolver(source.get_listing_config)).refresh(statement)

    assert rewritten is False
    assert Statement.objects.get(pk=statement.pk).updated_at == before


def test_changed_pm_fee_is_written_back(statement, source, make_config, caplog):
    source.configs[1] = make_config(1, pm_fee_percentage=Decimal('20'))

    rewritten = StatementRecalculator(RuleResolver(source.get_listing_config)).refresh(statement)

    assert rewritten is True
    assert statement.owner_payout == Decimal('800.00')
    stored = Statement.objects.get(pk=statement.pk)
    assert stored.owner_payout == Decimal('800.00')
    assert stored.pm_commission == Decimal('200.00')
    assert 'drifted' in caplog.text


def test_waiver_enabled_after_generation(statement, source, make_config):
    source.configs[1] = make_config(1, waive_commission=True, waive_commission_until=date(2025, 6, 30))

    StatementRecalculator(RuleResolver(source.get_listing_config)).refresh(statement)

    assert Statement.objects.get(pk=statement.pk).owner_payout == Decimal('1000.00')


def test_drift_within_tolerance_is_not_persisted(statement, source):
    Statement.objects.filter(pk=statement.pk).update(owner_payout=Decimal('850.01'))
    stored = Statement.objects.get(pk=statement.pk)

    rewritten = StatementRecalculator(RuleResolver(source.get_listing_config)).refresh(stored)

    assert rewritten is False
    assert stored.owner_payout == Decimal('850.00')
    assert Statement.objects.get(pk=statement.pk).owner_payout == Decimal('850.01')


def test_deleted_listing_falls_back_to_defaults(statement, source):
    del source.configs[1]

    StatementRecalculator(RuleResolver(source.get_listing_config)).refresh(statement)

    assert statement.owner_payout == Decimal('850.00')
