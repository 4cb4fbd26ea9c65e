from datetime import date
from decimal import Decimal

import pytest

from statements.exceptions import ListingNotFoundError
from statements.services.rules import RuleResolver, is_waiver_active


def test_waiver_requires_flag():
    assert not is_waiver_active(False, None, date(2025, 6, 30))
    assert not is_waiver_active(False, date(2030, 1, 1), date(2025, 6, 30))


def test_waiver_without_end_date_is_indefinite():
    assert is_waiver_active(True, None, date(2099, 12, 31))


@pytest.mark.parametrize('period_end, active', [
    (date(2025, 6, 29), True),
    (date(2025, 6, 30), True),
    (date(2025, 7, 1), False),
])
def test_waiver_last_day_is_inclusive(period_end, active):
    assert is_waiver_active(True, date(2025, 6, 30), period_end) is active


def test_resolve_known_listing(make_config, fake_source_class):
    source = fake_source_class(configs=[make_config(7, pm_fee_percentage=Decimal('18'), name='Beach House')])
    rules = RuleResolver(source.get_listing_config).resolve(7, date(2025, 6, 30))

    assert rules.property_id == 7
    assert rules.name == 'Beach House'
    assert rules.pm_fee_percentage == Decimal('18')
    assert not rules.is_default


def test_resolve_unknown_listing_is_strict_by_default(fake_source_class):
    resolver = RuleResolver(fake_source_class().get_listing_config)

    with pytest.raises(ListingNotFoundError):
        resolver.resolve(99, date(2025, 6, 30))


def test_resolve_many_substitutes_defaults(make_config, fake_source_class, caplog):
    source = fake_source_class(configs=[make_config(1, cleaning_fee_pass_through=True)])
    rules = RuleResolver(source.get_listing_config).resolve_many([1, 99], date(2025, 6, 30))

    assert rules[1].cleaning_fee_pass_through
    assert rules[99].is_default
    assert rules[99].pm_fee_percentage == Decimal('15.00')
    assert not rules[99].cleaning_fee_pass_through
    assert not rules[99].waiver_active
    assert 'Listing 99 not found' in caplog.text


def test_resolver_accepts_plain_dict_configs():
    configs = {3: {'property_id': 3, 'name': 'Loft', 'pm_fee_percentage': '20', 'unknown_key': 'x'}}
    rules = RuleResolver(configs.__getitem__).resolve(3, date(2025, 6, 30))

    assert rules.pm_fee_percentage == Decimal('20')


def test_snapshot_is_json_friendly(make_config, fake_source_class):
    source = fake_source_class(configs=[make_config(1, new_pm_fee_start_date=date(2025, 1, 1))])
    snapshot = RuleResolver(source.get_listing_config).resolve(1, date(2025, 6, 30)).snapshot()

    assert snapshot['pm_fee_percentage'] == '15'
    assert snapshot['new_pm_fee_start_date'] == '2025-01-01'
