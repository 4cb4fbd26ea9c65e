from datetime import date
from decimal import Decimal

import pytest

from statements.domain import EXPENSE, UPSELL, LineItem
from statements.services.calculation_service import (
    aggregate_totals, calculate_reservation_payout, cleaning_fee_deduction, quantize_money,
    reverse_cleaning_fee,
)
from statements.services.rules import resolve_rules

PERIOD_END = date(2025, 6, 30)


def rules_of(make_config, **overrides):
    return resolve_rules(make_config(**overrides), PERIOD_END)


def expense_line(item_id, amount, category='maintenance', item_type=EXPENSE, hidden=False, property_id=1):
    return LineItem(
        id=item_id, type=item_type, description=category.title(), amount=Decimal(amount),
        date=date(2025, 6, 15), category=category, property_id=property_id, hidden=hidden,
    )


# =============================================================================
# PER-RESERVATION PAYOUT
# =============================================================================

def test_quantize_money_rounds_half_up():
    assert quantize_money(Decimal('1.005')) == Decimal('1.01')
    assert quantize_money(Decimal('-1.005')) == Decimal('-1.01')


def test_cleaning_fee_reverse_calculation():
    assert reverse_cleaning_fee(Decimal('172.50'), Decimal('15')) == Decimal('150')


def test_cleaning_fee_rounds_up_to_next_five():
    # 180 / 1.15 = 156.52 -> 160
    assert reverse_cleaning_fee(Decimal('180'), Decimal('15')) == Decimal('160')


def test_direct_booking_payout(make_config, make_reservation):
    rules = rules_of(make_config, pm_fee_percentage=Decimal('10'))
    reservation = make_reservation(
        client_revenue=Decimal('2000'), client_tax_responsibility=Decimal('100'), source='Direct'
    )

    breakdown = calculate_reservation_payout(reservation, rules, PERIOD_END)

    assert breakdown.pm_commission == Decimal('200')
    assert breakdown.commission_deducted == Decimal('200')
    assert breakdown.tax_added == Decimal('100')
    assert breakdown.gross_payout == Decimal('1900')


def test_revenue_falls_back_to_gross_amount_without_detailed_finance(make_config, make_reservation):
    rules = rules_of(make_config)
    reservation = make_reservation(
        has_detailed_finance=False, gross_amount=Decimal('800'),
        client_revenue=Decimal('0'), client_tax_responsibility=Decimal('50'),
    )

    breakdown = calculate_reservation_payout(reservation, rules, PERIOD_END)

    assert breakdown.client_revenue == Decimal('800')
    assert breakdown.tax_added == Decimal('0')
    assert breakdown.gross_payout == Decimal('680')


def test_indefinite_waiver_never_deducts(make_config, make_reservation):
    rules = resolve_rules(make_config(waive_commission=True, waive_commission_until=None), date(2031, 1, 1))
    breakdown = calculate_reservation_payout(make_reservation(), rules, date(2031, 1, 1))

    assert breakdown.pm_commission == Decimal('150')
    assert breakdown.commission_deducted == Decimal('0')
    assert breakdown.gross_payout == Decimal('1000')


@pytest.mark.parametrize('period_end, deducted', [
    (date(2025, 6, 30), Decimal('0')),
    (date(2025, 7, 1), Decimal('150')),
])
def test_waiver_expiry_boundary(make_config, make_reservation, period_end, deducted):
    config = make_config(waive_commission=True, waive_commission_until=date(2025, 6, 30))
    breakdown = calculate_reservation_payout(make_reservation(), resolve_rules(config, period_end), period_end)

    assert breakdown.commission_deducted == deducted


def test_cohost_airbnb_booking_only_debits_commission(make_config, make_reservation):
    rules = rules_of(make_config, is_cohost_on_airbnb=True, cleaning_fee_pass_through=False)
    reservation = make_reservation(source='Airbnb', client_revenue=Decimal('1000'))

    breakdown = calculate_reservation_payout(reservation, rules, PERIOD_END)

    assert breakdown.is_cohost_excluded
    assert breakdown.client_revenue == Decimal('0')
    assert breakdown.gross_payout == Decimal('-150')


def test_cohost_flag_ignored_for_other_channels(make_config, make_reservation):
    rules = rules_of(make_config, is_cohost_on_airbnb=True)
    breakdown = calculate_reservation_payout(make_reservation(source='VRBO'), rules, PERIOD_END)

    assert not breakdown.is_cohost_excluded
    assert breakdown.gross_payout == Decimal('850')


@pytest.mark.parametrize('source, disregard_tax, airbnb_pass_through, tax_added', [
    ('Airbnb', True, True, Decimal('0')),
    ('VRBO', True, False, Decimal('0')),
    ('Airbnb', False, False, Decimal('0')),
    ('Airbnb', False, True, Decimal('100')),
    ('VRBO', False, False, Decimal('100')),
])
def test_tax_inclusion_matrix(make_config, make_reservation, source, disregard_tax, airbnb_pass_through, tax_added):
    rules = rules_of(make_config, disregard_tax=disregard_tax, airbnb_pass_through_tax=airbnb_pass_through)
    reservation = make_reservation(source=source, client_tax_responsibility=Decimal('100'))

    assert calculate_reservation_payout(reservation, rules, PERIOD_END).tax_added == tax_added


def test_custom_reservation_uses_entered_gross_payout(make_config, make_reservation):
    rules = rules_of(make_config, cleaning_fee_pass_through=True, cleaning_fee=Decimal('172.50'))
    reservation = make_reservation(
        is_custom=True, source='custom', gross_amount=Decimal('500'),
        client_revenue=Decimal('450'), luxury_lodging_fee=Decimal('50'),
        client_tax_responsibility=Decimal('40'),
    )

    breakdown = calculate_reservation_payout(reservation, rules, PERIOD_END)

    assert breakdown.pm_commission == Decimal('50')
    assert breakdown.cleaning_fee_deducted == Decimal('0')
    assert breakdown.gross_payout == Decimal('500')


def test_cleaning_pass_through_uses_reservation_fee_first(make_config, make_reservation):
    rules = rules_of(make_config, cleaning_fee_pass_through=True, cleaning_fee=Decimal('115'))

    default_fee = calculate_reservation_payout(make_reservation(), rules, PERIOD_END)
    override = calculate_reservation_payout(make_reservation(cleaning_fee=Decimal('172.50')), rules, PERIOD_END)

    assert default_fee.cleaning_fee_deducted == Decimal('100')
    assert override.cleaning_fee_deducted == Decimal('150')
    assert override.gross_payout == Decimal('1000') - Decimal('150') - Decimal('150')


def test_calendar_mode_skips_cleaning_for_checkout_after_period(make_config, make_reservation):
    rules = rules_of(make_config, cleaning_fee_pass_through=True, cleaning_fee=Decimal('172.50'))
    reservation = make_reservation(check_in=date(2025, 6, 28), check_out=date(2025, 7, 3))

    calendar = calculate_reservation_payout(reservation, rules, PERIOD_END, 'calendar')
    checkout = calculate_reservation_payout(reservation, rules, PERIOD_END, 'checkout')

    assert calendar.cleaning_fee_deducted == Decimal('0')
    assert checkout.cleaning_fee_deducted == Decimal('150')


@pytest.mark.parametrize('calculation_type', ['checkout', 'calendar'])
def test_cleaning_line_and_payout_share_one_deduction(make_config, make_reservation, calculation_type):
    rules = rules_of(make_config, cleaning_fee_pass_through=True, cleaning_fee=Decimal('115'))
    reservations = [
        make_reservation(),
        make_reservation(cleaning_fee=Decimal('172.50')),
        make_reservation(cleaning_fee=Decimal('0')),
        make_reservation(check_in=date(2025, 6, 28), check_out=date(2025, 7, 3)),
        make_reservation(is_custom=True, gross_amount=Decimal('500')),
    ]

    for reservation in reservations:
        breakdown = calculate_reservation_payout(reservation, rules, PERIOD_END, calculation_type)
        assert breakdown.cleaning_fee_deducted == cleaning_fee_deduction(
            reservation, rules, PERIOD_END, calculation_type
        )

    assert [cleaning_fee_deduction(r, rules, PERIOD_END, calculation_type) for r in reservations] == [
        Decimal('100'), Decimal('150'), Decimal('0'),
        Decimal('0') if calculation_type == 'calendar' else Decimal('100'), Decimal('0'),
    ]


def test_no_cleaning_deduction_without_pass_through(make_config, make_reservation):
    rules = rules_of(make_config, cleaning_fee=Decimal('172.50'))

    assert cleaning_fee_deduction(make_reservation(), rules, PERIOD_END) == Decimal('0')
    assert cleaning_fee_deduction(make_reservation(), None, PERIOD_END) == Decimal('0')


def test_new_pm_fee_applies_to_bookings_created_after_start(make_config, make_reservation):
    rules = rules_of(
        make_config, new_pm_fee_enabled=True, new_pm_fee_percentage=Decimal('20'),
        new_pm_fee_start_date=date(2025, 5, 1),
    )

    old = calculate_reservation_payout(make_reservation(created_at=date(2025, 4, 30)), rules, PERIOD_END)
    new = calculate_reservation_payout(make_reservation(created_at=date(2025, 5, 1)), rules, PERIOD_END)
    unknown = calculate_reservation_payout(make_reservation(), rules, PERIOD_END)

    assert old.pm_commission == Decimal('150')
    assert new.pm_commission == Decimal('200')
    assert unknown.pm_commission == Decimal('150')


# =============================================================================
# TOTALS
# =============================================================================

def test_scenario_totals(make_config, make_reservation):
    rules = rules_of(make_config, pm_fee_percentage=Decimal('10'))
    reservation = make_reservation(
        client_revenue=Decimal('2000'), client_tax_responsibility=Decimal('100'), source='Direct'
    )
    items = [expense_line('expense:1', '150', category='supplies')]

    totals = aggregate_totals([reservation], items, {1: rules}, PERIOD_END)

    assert totals.pm_commission == Decimal('200.00')
    assert totals.gross_payout_sum == Decimal('1900.00')
    assert totals.total_expenses == Decimal('150.00')
    assert totals.owner_payout == Decimal('1750.00')
    assert totals.pm_percentage == Decimal('10.00')


def test_totals_are_idempotent(make_config, make_reservation):
    rules = {1: rules_of(make_config, pm_fee_percentage=Decimal('12.5'))}
    reservations = [
        make_reservation(client_revenue=Decimal('333.33')),
        make_reservation(client_revenue=Decimal('0.01'), source='Airbnb'),
    ]
    items = [expense_line('expense:1', '10.005'), expense_line('upsell:2', '20', item_type=UPSELL)]

    first = aggregate_totals(reservations, items, rules, PERIOD_END)
    second = aggregate_totals(reservations, items, rules, PERIOD_END)

    assert first.as_fields() == second.as_fields()


def test_rounding_happens_once_at_the_end(make_config, make_reservation):
    rules = {1: rules_of(make_config, pm_fee_percentage=Decimal('15'))}
    # Commission 0.015 and payout 0.085 per booking; rounding each line would give 0.06 / 0.27
    reservations = [make_reservation(client_revenue=Decimal('0.10')) for _ in range(3)]

    totals = aggregate_totals(reservations, [], rules, PERIOD_END)

    assert totals.pm_commission == Decimal('0.05')
    assert totals.owner_payout == Decimal('0.26')


def test_out_of_scope_reservations_and_hidden_items_are_ignored(make_config, make_reservation):
    rules = {1: rules_of(make_config)}
    reservations = [make_reservation(), make_reservation(status='cancelled'), make_reservation(status='inquiry')]
    items = [
        expense_line('expense:1', '100'),
        expense_line('expense:2', '999', hidden=True),
        expense_line('upsell:3', '50', item_type=UPSELL),
        expense_line('upsell:4', '999', item_type=UPSELL, hidden=True),
    ]

    totals = aggregate_totals(reservations, items, rules, PERIOD_END)

    assert totals.total_revenue == Decimal('1000.00')
    assert totals.owner_payout == Decimal('850') + Decimal('50') - Decimal('100')


def test_pass_through_listing_does_not_double_charge_cleaning(make_config, make_reservation):
    rules = {1: rules_of(make_config, cleaning_fee_pass_through=True, cleaning_fee=Decimal('172.50'))}
    items = [
        expense_line('expense:1', '150', category='cleaning'),
        expense_line('expense:2', '30', category='supplies'),
        expense_line('expense:3', '80', category='repairs'),
    ]

    totals = aggregate_totals([make_reservation()], items, rules, PERIOD_END)

    assert totals.total_cleaning_fee == Decimal('150.00')
    assert totals.total_expenses == Decimal('80.00')
    assert totals.owner_payout == Decimal('1000') - Decimal('150') - Decimal('150') - Decimal('80')


def test_negative_payout_is_computed_not_rejected(make_config, make_reservation):
    rules = {1: rules_of(make_config)}
    totals = aggregate_totals([make_reservation()], [expense_line('expense:1', '2000')], rules, PERIOD_END)

    assert totals.owner_payout == Decimal('-1150.00')


def test_informational_fees_do_not_touch_payout(make_config, make_reservation):
    rules = {1: rules_of(make_config), 2: rules_of(make_config, property_id=2)}
    totals = aggregate_totals([make_reservation()], [], rules, PERIOD_END, property_ids=[1, 2])

    assert totals.tech_fees == Decimal('100.00')
    assert totals.insurance_fees == Decimal('50.00')
    assert totals.owner_payout == Decimal('850.00')


def test_pm_percentage_defaults_without_revenue(make_config):
    totals = aggregate_totals([], [], {1: rules_of(make_config)}, PERIOD_END)

    assert totals.pm_percentage == Decimal('15.00')
    assert totals.owner_payout == Decimal('0.00')
