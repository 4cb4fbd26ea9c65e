"""
Data-source collaborators.

The engine never talks to the channel manager or the expense ledger
directly; it asks a ``StatementDataSource``. Contract:

- get_reservations(start, end, property_id, calculation_type)
    checkout mode: every booking that checks out in, or overlaps, the period
    calendar mode: overlapping bookings, already prorated to the period
    Bookings of every status are returned; the engine applies scope rules.
- get_expenses(start, end, property_id) -> ExpenseFetch
    Expenses without a property id are guaranteed to belong to
    ``property_id`` already (the engine does not re-check).
- get_listing_config(property_id) -> ListingFinancialConfig
    raises ListingNotFoundError for unknown ids.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal

from django.db import connection
from django.db.models import Q

from statements.domain import CALENDAR
from statements.exceptions import ListingNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class ExpenseFetch:
    expenses: list = field(default_factory=list)
    duplicate_warnings: list = field(default_factory=list)


class StatementDataSource:
    """Interface of the fetch collaborator."""

    def get_reservations(self, start_date, end_date, property_id, calculation_type):
        raise NotImplementedError

    def get_expenses(self, start_date, end_date, property_id):
        raise NotImplementedError

    def get_listing_config(self, property_id):
        raise NotImplementedError

    def close(self):
        """Release per-thread resources after a fetch in a worker thread."""


def find_duplicate_expenses(expenses):
    """Warn about expenses sharing date, amount and description."""
    groups = defaultdict(list)
    for expense in expenses:
        key = (expense.date, expense.amount, (expense.description or '').strip().lower())
        groups[key].append(expense)

    warnings = []
    for (day, amount, _), group in groups.items():
        if len(group) > 1:
            warnings.append({
                'type': 'duplicate_expense',
                'message': f"{len(group)} expenses on {day} for {amount}: {group[0].description}",
                'expense_ids': [e.id for e in group],
            })
    return warnings


def prorate_to_period(reservation, period_start, period_end):
    """
    Scale a booking's money to the nights inside the period (nightly split).

    The last night of the period is the night of ``period_end``.
    """
    nights = reservation.stay_nights
    if nights <= 0:
        return reservation
    first = max(reservation.check_in_date, period_start)
    last = min(reservation.check_out_date, period_end + timedelta(days=1))
    nights_in_period = max((last - first).days, 0)
    if nights_in_period >= nights:
        return reservation

    ratio = Decimal(nights_in_period) / Decimal(nights)
    reservation.gross_amount = reservation.gross_amount * ratio
    reservation.client_revenue = reservation.client_revenue * ratio
    reservation.client_tax_responsibility = reservation.client_tax_responsibility * ratio
    reservation.base_rate = reservation.base_rate * ratio
    return reservation


class DatabaseDataSource(StatementDataSource):
    """Reads imported channel data from the local database."""

    def get_reservations(self, start_date, end_date, property_id, calculation_type):
        from statements.models import ChannelReservation

        overlapping = Q(check_in_date__lte=end_date, check_out_date__gt=start_date)
        if calculation_type == CALENDAR:
            query = overlapping
        else:
            query = overlapping | Q(check_out_date__gte=start_date, check_out_date__lte=end_date)

        records = ChannelReservation.objects.filter(query, listing_id=property_id).order_by('check_in_date')
        reservations = [record.to_domain() for record in records]

        if calculation_type == CALENDAR:
            reservations = [prorate_to_period(r, start_date, end_date) for r in reservations]
        return reservations

    def get_expenses(self, start_date, end_date, property_id):
        from statements.models import ExpenseRecord

        records = ExpenseRecord.objects.filter(
            listing_id=property_id,
            date__gte=start_date,
            date__lte=end_date,
        )
        expenses = [record.to_domain() for record in records]
        duplicates = find_duplicate_expenses(expenses)
        if duplicates:
            logger.warning("Found %d potential duplicate expenses for listing %s", len(duplicates), property_id)
        return ExpenseFetch(expenses=expenses, duplicate_warnings=duplicates)

    def get_listing_config(self, property_id):
        from statements.models import Listing

        try:
            return Listing.objects.get(pk=property_id).financial_config()
        except Listing.DoesNotExist:
            raise ListingNotFoundError(property_id)

    def close(self):
        connection.close()
