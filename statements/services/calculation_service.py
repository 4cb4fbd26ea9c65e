"""
Statement Calculation Services
==============================

The single place where owner payouts are calculated. Every path that
produces or changes statement totals (generation, combined generation,
editing, view-time recalculation) calls into this module.

Per-reservation flow (calculate_reservation_payout):
1. Client revenue = detailed-finance client revenue, else gross amount
2. Co-hosted Airbnb booking → revenue contribution is zero
3. PM commission = custom fee, else revenue × PM% (deducted unless waived)
4. Cleaning pass-through = guest-paid fee with PM markup removed,
   rounded up to the next $5
5. Tax added unless disregarded, or Airbnb without tax pass-through
6. Gross payout (custom bookings use their entered gross payout)

Statement flow (aggregate_totals):
    owner payout = Σ gross payout + Σ visible upsells − Σ visible expenses

Sums are carried at full precision and rounded once, at the end.
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP

from statements.conf import get_setting
from statements.domain import CALENDAR, CHECKOUT, EXPENSE, UPSELL, ZERO
from statements.services.rules import default_rules

HUNDRED = Decimal('100')
CENT = Decimal('0.01')


def quantize_money(value):
    """Round to cents, half up."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def reverse_cleaning_fee(guest_paid, pm_fee_percentage, increment=None):
    """
    Remove the PM markup from a guest-paid cleaning fee.

    fee = ceil((guest_paid / (1 + PM% / 100)) / increment) × increment

    Example:
        >>> reverse_cleaning_fee(Decimal('172.50'), Decimal('15'))
        Decimal('150')
    """
    if increment is None:
        increment = get_setting('CLEANING_ROUNDING_INCREMENT')
    net = guest_paid / (Decimal('1') + pm_fee_percentage / HUNDRED)
    return (net / increment).to_integral_value(rounding=ROUND_CEILING) * increment


# =============================================================================
# PER-RESERVATION PAYOUT
# =============================================================================

@dataclass
class PayoutBreakdown:
    """Payout figures for one reservation (unrounded)."""
    reservation_id: str
    client_revenue: Decimal
    raw_client_revenue: Decimal
    pm_fee_percentage: Decimal
    pm_commission: Decimal
    commission_deducted: Decimal
    tax_added: Decimal
    cleaning_fee_deducted: Decimal
    gross_payout: Decimal
    is_cohost_excluded: bool = False
    waiver_active: bool = False

    def as_dict(self):
        """Rounded figures for display."""
        return {
            'reservation_id': self.reservation_id,
            'client_revenue': quantize_money(self.client_revenue),
            'raw_client_revenue': quantize_money(self.raw_client_revenue),
            'pm_fee_percentage': self.pm_fee_percentage,
            'pm_commission': quantize_money(self.pm_commission),
            'commission_deducted': quantize_money(self.commission_deducted),
            'tax_added': quantize_money(self.tax_added),
            'cleaning_fee_deducted': quantize_money(self.cleaning_fee_deducted),
            'gross_payout': quantize_money(self.gross_payout),
            'is_cohost_excluded': self.is_cohost_excluded,
            'waiver_active': self.waiver_active,
        }


def cleaning_fee_deduction(reservation, rules, period_end, calculation_type=CHECKOUT):
    """
    Cleaning amount a pass-through listing deducts for one reservation.

    The reservation's guest-paid fee overrides the listing default. In
    calendar mode only a checkout inside the period is charged. Custom
    bookings carry their own gross payout and are never charged.

    Returns:
        Decimal (ZERO when nothing is deducted)
    """
    if rules is None or not rules.cleaning_fee_pass_through or reservation.is_custom:
        return ZERO
    if calculation_type == CALENDAR and reservation.check_out_date > period_end:
        return ZERO
    guest_paid = reservation.cleaning_fee if reservation.cleaning_fee is not None else rules.cleaning_fee
    if not guest_paid or guest_paid <= ZERO:
        return ZERO
    return reverse_cleaning_fee(guest_paid, rules.pm_fee_for(reservation))


def calculate_reservation_payout(reservation, rules, period_end, calculation_type=CHECKOUT):
    """
    Calculate the owner payout of one reservation.

    Pure function: no I/O, no rounding.

    Args:
        reservation: domain.Reservation
        rules: rules.ResolvedRules of the reservation's listing
        period_end: statement end date
        calculation_type: 'checkout' or 'calendar'

    Returns:
        PayoutBreakdown
    """
    # STEP 1: revenue
    raw_revenue = (
        reservation.client_revenue if reservation.has_detailed_finance
        else reservation.gross_amount
    )

    # STEP 2: co-host exclusion
    is_cohost = reservation.is_airbnb and rules.is_cohost_on_airbnb
    client_revenue = ZERO if is_cohost else raw_revenue

    # STEP 3: commission
    pm_fee = rules.pm_fee_for(reservation)
    if reservation.is_custom and reservation.luxury_lodging_fee is not None:
        commission = reservation.luxury_lodging_fee
    else:
        commission = raw_revenue * pm_fee / HUNDRED
    deducted = ZERO if rules.waiver_active else commission

    if reservation.is_custom:
        # Entered gross payout overrides every derived figure
        return PayoutBreakdown(
            reservation_id=reservation.id,
            client_revenue=client_revenue,
            raw_client_revenue=raw_revenue,
            pm_fee_percentage=pm_fee,
            pm_commission=commission,
            commission_deducted=deducted,
            tax_added=ZERO,
            cleaning_fee_deducted=ZERO,
            gross_payout=reservation.gross_amount,
            waiver_active=rules.waiver_active,
        )

    # STEP 4: cleaning pass-through
    cleaning = cleaning_fee_deduction(reservation, rules, period_end, calculation_type)

    # STEP 5: tax
    include_tax = not rules.disregard_tax and (
        not reservation.is_airbnb or rules.airbnb_pass_through_tax
    )
    tax_amount = reservation.client_tax_responsibility if reservation.has_detailed_finance else ZERO
    tax_added = tax_amount if include_tax and not is_cohost else ZERO

    # STEP 6: gross payout
    if is_cohost:
        gross_payout = -deducted - cleaning
    else:
        gross_payout = raw_revenue - deducted + tax_added - cleaning

    return PayoutBreakdown(
        reservation_id=reservation.id,
        client_revenue=client_revenue,
        raw_client_revenue=raw_revenue,
        pm_fee_percentage=pm_fee,
        pm_commission=commission,
        commission_deducted=deducted,
        tax_added=tax_added,
        cleaning_fee_deducted=cleaning,
        gross_payout=gross_payout,
        is_cohost_excluded=is_cohost,
        waiver_active=rules.waiver_active,
    )


# =============================================================================
# STATEMENT TOTALS
# =============================================================================

@dataclass
class StatementTotals:
    """Rounded statement-level totals plus the per-reservation breakdowns."""
    total_revenue: Decimal
    total_expenses: Decimal
    total_upsells: Decimal
    pm_commission: Decimal
    pm_percentage: Decimal
    gross_payout_sum: Decimal
    total_cleaning_fee: Decimal
    tech_fees: Decimal
    insurance_fees: Decimal
    owner_payout: Decimal
    breakdowns: dict = field(default_factory=dict)

    MODEL_FIELDS = (
        'total_revenue', 'total_expenses', 'total_upsells', 'pm_commission',
        'pm_percentage', 'total_cleaning_fee', 'tech_fees', 'insurance_fees',
        'owner_payout',
    )

    def as_fields(self):
        """Values keyed by Statement model field name."""
        return {name: getattr(self, name) for name in self.MODEL_FIELDS}


def expense_property(item, property_ids):
    """
    Property an expense line belongs to.

    Lines without a property were pre-filtered by the expense source; on a
    single-property statement they belong to that property.
    """
    if item.property_id is not None:
        return item.property_id
    if property_ids and len(property_ids) == 1:
        return property_ids[0]
    return None


def is_chargeable_expense(item, rules_by_property, property_ids):
    """Cleaning/supplies costs of pass-through listings are already in the cleaning deduction."""
    rules = rules_by_property.get(expense_property(item, property_ids))
    if rules is not None and rules.cleaning_fee_pass_through and item.is_cleaning_or_supplies:
        return False
    return True


def aggregate_totals(reservations, items, rules_by_property, period_end,
                     calculation_type=CHECKOUT, property_ids=None):
    """
    Fold reservations and line items into statement totals.

    Args:
        reservations: list of domain.Reservation (status filter applied here)
        items: list of domain.LineItem (hidden lines are skipped)
        rules_by_property: {property_id: ResolvedRules}
        period_end: statement end date
        calculation_type: 'checkout' or 'calendar'
        property_ids: statement property ids (defaults to the rules keys)

    Returns:
        StatementTotals
    """
    if property_ids is None:
        property_ids = list(rules_by_property)

    total_revenue = ZERO
    pm_commission = ZERO
    gross_payout_sum = ZERO
    total_cleaning_fee = ZERO
    breakdowns = {}

    for reservation in reservations:
        if not reservation.is_in_scope:
            continue
        rules = rules_by_property.get(reservation.property_id) or default_rules(reservation.property_id)
        breakdown = calculate_reservation_payout(reservation, rules, period_end, calculation_type)
        breakdowns[reservation.id] = breakdown

        total_revenue += breakdown.client_revenue
        pm_commission += breakdown.commission_deducted
        gross_payout_sum += breakdown.gross_payout
        total_cleaning_fee += breakdown.cleaning_fee_deducted

    total_upsells = ZERO
    total_expenses = ZERO
    for item in items:
        if item.hidden:
            continue
        if item.type == UPSELL:
            total_upsells += item.amount
        elif item.type == EXPENSE and is_chargeable_expense(item, rules_by_property, property_ids):
            total_expenses += abs(item.amount)

    owner_payout = gross_payout_sum + total_upsells - total_expenses

    if total_revenue > ZERO:
        pm_percentage = pm_commission / total_revenue * HUNDRED
    else:
        pm_percentage = get_setting('DEFAULT_PM_FEE_PERCENTAGE')

    property_count = len(property_ids)

    return StatementTotals(
        total_revenue=quantize_money(total_revenue),
        total_expenses=quantize_money(total_expenses),
        total_upsells=quantize_money(total_upsells),
        pm_commission=quantize_money(pm_commission),
        pm_percentage=quantize_money(pm_percentage),
        gross_payout_sum=quantize_money(gross_payout_sum),
        total_cleaning_fee=quantize_money(total_cleaning_fee),
        tech_fees=quantize_money(get_setting('TECH_FEE_PER_PROPERTY') * property_count),
        insurance_fees=quantize_money(get_setting('INSURANCE_FEE_PER_PROPERTY') * property_count),
        owner_payout=quantize_money(owner_payout),
        breakdowns=breakdowns,
    )
