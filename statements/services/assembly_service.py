"""
Statement Assembler.

Builds the canonical line-item list of a statement and the warnings that
are attached for human review:

- revenue line per in-scope reservation
- expense / upsell line per expense record in the period
  (LL Cover records are kept, hidden, with reason 'll_cover')
- hidden auto-generated cleaning lines for pass-through listings
- cleaning mismatch and calendar-conversion recommendation
"""

from dataclasses import dataclass, field
from typing import Optional

from statements.conf import get_setting
from statements.domain import (
    AUTO_CLEANING_PREFIX, CALENDAR, CHECKOUT, EXPENSE, HIDDEN_LL_COVER, REVENUE, ZERO,
    LineItem,
)
from statements.services.calculation_service import (
    StatementTotals, aggregate_totals, cleaning_fee_deduction, expense_property,
)


# =============================================================================
# RESERVATION SCOPE
# =============================================================================

def select_period_reservations(reservations, property_ids, period_start, period_end, calculation_type):
    """
    Reservations that belong on the statement.

    Checkout mode keeps bookings checking out inside the period; calendar
    mode keeps everything the source returned (already prorated).
    """
    wanted = set(property_ids)
    selected = []
    for reservation in reservations:
        if reservation.property_id not in wanted:
            continue
        if calculation_type != CALENDAR:
            if not (period_start <= reservation.check_out_date <= period_end):
                continue
        if not reservation.is_in_scope:
            continue
        selected.append(reservation)
    return sorted(selected, key=lambda r: (r.check_in_date, r.id))


def find_overlapping_reservations(reservations, property_ids, period_start, period_end):
    """Bookings with guest activity in the period: check-in ≤ end and check-out > start."""
    wanted = set(property_ids)
    return sorted(
        (r for r in reservations
         if r.property_id in wanted and r.is_in_scope and r.overlaps(period_start, period_end)),
        key=lambda r: (r.check_in_date, r.id),
    )


def should_convert_to_calendar(calculation_type, period_reservations, overlapping,
                               period_start, period_end, long_stay_nights=None):
    """
    Checkout mode: guests stayed in the period but nobody checked out, so
    revenue would read $0.
    Calendar mode: a long stay (≥ long_stay_nights) runs past a period boundary.
    """
    if calculation_type == CHECKOUT:
        return bool(overlapping) and not period_reservations

    if long_stay_nights is None:
        long_stay_nights = get_setting('LONG_STAY_NIGHTS')
    return any(
        (r.check_in_date < period_start or r.check_out_date > period_end)
        and r.stay_nights >= long_stay_nights
        for r in overlapping
    )


# =============================================================================
# LINE ITEMS
# =============================================================================

def _label_prefix(property_id, labels):
    if not labels:
        return ''
    label = labels.get(property_id) or (f"Property {property_id}" if property_id is not None else 'General')
    return f"[{label}] "


def revenue_item_id(reservation_id):
    return f"revenue:{reservation_id}"


def cleaning_item_id(reservation_id):
    return f"auto-cleaning:{reservation_id}"


def build_revenue_item(reservation, labels=None):
    revenue = reservation.client_revenue if reservation.has_detailed_finance else reservation.gross_amount
    stay = f"{reservation.check_in_date.isoformat()} to {reservation.check_out_date.isoformat()}"
    if reservation.is_custom:
        extra = f" - {reservation.description}" if reservation.description else ''
        description = f"{reservation.guest_name}{extra} ({stay})"
        category = 'custom-booking'
    else:
        description = f"{reservation.guest_name} - {stay}"
        category = 'booking'
    return LineItem(
        id=revenue_item_id(reservation.id),
        type=REVENUE,
        description=_label_prefix(reservation.property_id, labels) + description,
        amount=revenue,
        date=reservation.check_out_date,
        category=category,
        property_id=reservation.property_id,
        reservation_id=reservation.id,
    )


def build_expense_item(expense, labels=None):
    hidden = expense.hidden
    hidden_reason = expense.hidden_reason if expense.hidden else None
    if expense.is_ll_cover:
        hidden = True
        hidden_reason = HIDDEN_LL_COVER
    prefix = _label_prefix(expense.property_id, labels) if expense.property_id is not None else ''
    return LineItem(
        id=f"{expense.type}:{expense.id}",
        type=expense.type,
        description=prefix + (expense.description or ''),
        amount=expense.amount,
        date=expense.date,
        category=expense.category or 'expense',
        vendor=expense.vendor or '',
        property_id=expense.property_id,
        expense_id=expense.id,
        hidden=hidden,
        hidden_reason=hidden_reason,
    )


def sync_cleaning_items(items, reservations, rules_by_property, period_end, calculation_type, labels=None):
    """
    Add or refresh the hidden auto-generated cleaning lines.

    Idempotent: an existing line is found by reservation id plus the fixed
    description prefix and is updated in place, keeping its hidden state.
    """
    existing = {
        item.reservation_id: item for item in items
        if item.auto_generated and item.reservation_id
        and AUTO_CLEANING_PREFIX in item.description
    }
    for reservation in reservations:
        if not reservation.is_in_scope:
            continue
        amount = cleaning_fee_deduction(
            reservation, rules_by_property.get(reservation.property_id), period_end, calculation_type
        )
        current = existing.get(reservation.id)
        if current is not None:
            if amount > ZERO:
                current.amount = amount
            continue
        if amount <= ZERO:
            continue
        item = LineItem(
            id=cleaning_item_id(reservation.id),
            type=EXPENSE,
            description=(
                _label_prefix(reservation.property_id, labels)
                + f"{AUTO_CLEANING_PREFIX}{reservation.guest_name}"
            ),
            amount=amount,
            date=reservation.check_out_date,
            category='cleaning',
            property_id=reservation.property_id,
            reservation_id=reservation.id,
            hidden=True,
            auto_generated=True,
        )
        items.append(item)
        existing[reservation.id] = item
    return items


# =============================================================================
# WARNINGS
# =============================================================================

def check_cleaning_mismatch(reservations, items, rules_by_property, property_ids):
    """
    Compare cleaning expense lines with reservations on pass-through listings.

    Returns:
        dict describing the mismatch, or None
    """
    pass_through = {
        pid for pid in property_ids
        if rules_by_property.get(pid) is not None and rules_by_property[pid].cleaning_fee_pass_through
    }
    if not pass_through:
        return None

    reservation_count = sum(
        1 for r in reservations if r.is_in_scope and r.property_id in pass_through
    )
    cleaning_count = sum(
        1 for item in items
        if item.type == EXPENSE and not item.hidden and not item.auto_generated
        and item.is_cleaning and expense_property(item, property_ids) in pass_through
    )
    if reservation_count == cleaning_count:
        return None

    return {
        'type': 'cleaning_mismatch',
        'message': (
            f"Cleaning expense count ({cleaning_count}) does not match "
            f"reservation count ({reservation_count})"
        ),
        'reservation_count': reservation_count,
        'cleaning_expense_count': cleaning_count,
        'difference': reservation_count - cleaning_count,
    }


# =============================================================================
# ASSEMBLER
# =============================================================================

@dataclass
class StatementEvaluation:
    totals: StatementTotals
    cleaning_mismatch_warning: Optional[dict]


@dataclass
class AssembledStatement:
    reservations: list
    items: list
    totals: StatementTotals
    cleaning_mismatch_warning: Optional[dict]
    should_convert_to_calendar: bool
    overlapping_reservations: list = field(default_factory=list)


class StatementAssembler:
    """
    Usage:
        assembler = StatementAssembler()
        assembled = assembler.assemble(
            reservations=reservations,
            expenses=expenses,
            rules_by_property={42: rules},
            property_ids=[42],
            period_start=date(2025, 6, 1),
            period_end=date(2025, 6, 30),
            calculation_type='checkout',
        )
        assembled.totals.owner_payout
    """

    def __init__(self, long_stay_nights=None):
        self.long_stay_nights = long_stay_nights

    def assemble(self, reservations, expenses, rules_by_property, property_ids,
                 period_start, period_end, calculation_type=CHECKOUT):
        labels = self.labels_for(rules_by_property, property_ids)

        period_reservations = select_period_reservations(
            reservations, property_ids, period_start, period_end, calculation_type
        )
        overlapping = find_overlapping_reservations(reservations, property_ids, period_start, period_end)

        wanted = set(property_ids)
        period_expenses = [
            e for e in expenses
            if (e.property_id is None or e.property_id in wanted)
            and e.date is not None and period_start <= e.date <= period_end
        ]

        items = [build_revenue_item(r, labels) for r in period_reservations]
        items.extend(build_expense_item(e, labels) for e in period_expenses)
        sync_cleaning_items(items, period_reservations, rules_by_property, period_end, calculation_type, labels)

        evaluation = self.evaluate(
            period_reservations, items, rules_by_property, property_ids, period_end, calculation_type
        )

        return AssembledStatement(
            reservations=period_reservations,
            items=items,
            totals=evaluation.totals,
            cleaning_mismatch_warning=evaluation.cleaning_mismatch_warning,
            should_convert_to_calendar=should_convert_to_calendar(
                calculation_type, period_reservations, overlapping,
                period_start, period_end, self.long_stay_nights,
            ),
            overlapping_reservations=[r.summary() for r in overlapping],
        )

    def evaluate(self, reservations, items, rules_by_property, property_ids, period_end,
                 calculation_type=CHECKOUT):
        """Totals and cleaning mismatch for the current reservations/items."""
        totals = aggregate_totals(
            reservations, items, rules_by_property, period_end,
            calculation_type=calculation_type, property_ids=list(property_ids),
        )
        return StatementEvaluation(
            totals=totals,
            cleaning_mismatch_warning=check_cleaning_mismatch(
                reservations, items, rules_by_property, property_ids
            ),
        )

    @staticmethod
    def labels_for(rules_by_property, property_ids):
        """Property labels for line descriptions; only combined statements get them."""
        if len(property_ids) <= 1:
            return None
        return {
            pid: (rules_by_property[pid].name if pid in rules_by_property else '') or f"Property {pid}"
            for pid in property_ids
        }
