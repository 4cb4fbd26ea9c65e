import copy
import threading
from datetime import date
from decimal import Decimal

import pytest

from statements.domain import ExpenseItem, ListingFinancialConfig, Reservation
from statements.exceptions import ListingNotFoundError
from statements.services.sources import ExpenseFetch, StatementDataSource, find_duplicate_expenses

JUNE_START = date(2025, 6, 1)
JUNE_END = date(2025, 6, 30)


class FakeDataSource(StatementDataSource):
    """In-memory data source; listing ids in ``failing`` raise on fetch."""

    def __init__(self, configs=(), reservations=(), expenses=(), failing=()):
        self.configs = {config.property_id: config for config in configs}
        self.reservations = list(reservations)
        self.expenses = list(expenses)
        self.failing = set(failing)
        self.closed = 0
        self._lock = threading.Lock()

    def get_reservations(self, start_date, end_date, property_id, calculation_type):
        if property_id in self.failing:
            raise RuntimeError(f"Channel API unavailable for listing {property_id}")
        return [
            copy.deepcopy(r) for r in self.reservations
            if r.property_id == property_id
            and (r.overlaps(start_date, end_date) or start_date <= r.check_out_date <= end_date)
        ]

    def get_expenses(self, start_date, end_date, property_id):
        expenses = [
            copy.deepcopy(e) for e in self.expenses
            if e.property_id == property_id and start_date <= e.date <= end_date
        ]
        return ExpenseFetch(expenses=expenses, duplicate_warnings=find_duplicate_expenses(expenses))

    def get_listing_config(self, property_id):
        property_id = int(property_id)
        if property_id not in self.configs:
            raise ListingNotFoundError(property_id)
        return self.configs[property_id]

    def close(self):
        with self._lock:
            self.closed += 1


@pytest.fixture
def make_config():
    def factory(property_id=1, **overrides):
        values = {'name': f"Listing {property_id}", 'pm_fee_percentage': Decimal('15')}
        values.update(overrides)
        return ListingFinancialConfig(property_id=property_id, **values)
    return factory


@pytest.fixture
def make_reservation():
    counter = {'n': 0}

    def factory(property_id=1, check_in=date(2025, 6, 10), check_out=date(2025, 6, 14), **overrides):
        counter['n'] += 1
        values = {
            'id': f"R{counter['n']}",
            'guest_name': f"Guest {counter['n']}",
            'source': 'Direct',
            'status': 'confirmed',
            'has_detailed_finance': True,
            'client_revenue': Decimal('1000.00'),
            'gross_amount': Decimal('1000.00'),
        }
        values.update(overrides)
        return Reservation(property_id=property_id, check_in_date=check_in, check_out_date=check_out, **values)
    return factory


@pytest.fixture
def make_expense():
    counter = {'n': 0}

    def factory(property_id=1, expense_date=date(2025, 6, 15), amount='100.00', **overrides):
        counter['n'] += 1
        values = {
            'id': f"E{counter['n']}",
            'description': f"Expense {counter['n']}",
            'category': 'maintenance',
            'type': 'expense',
        }
        values.update(overrides)
        return ExpenseItem(property_id=property_id, date=expense_date, amount=Decimal(amount), **values)
    return factory


@pytest.fixture
def fake_source_class():
    return FakeDataSource


@pytest.fixture(autouse=True)
def clear_cache():
    from django.core.cache import cache

    cache.clear()
    yield
    cache.clear()
