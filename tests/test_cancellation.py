from datetime import date
from decimal import Decimal

import pytest
from django.core.cache import cache

from statements.models import ChannelReservation, Listing
from statements.services import (
    CancelledCountCache, CancelledReservationService, NullCountCache, StatementGenerationService,
)

pytestmark = pytest.mark.django_db

START = date(2025, 6, 1)
END = date(2025, 6, 30)


class CountingSource:
    """Wraps a data source and counts reservation fetches."""

    def __init__(self, source):
        self.source = source
        self.fetches = 0

    def get_reservations(self, *args):
        self.fetches += 1
        return self.source.get_reservations(*args)


@pytest.fixture
def source(fake_source_class, make_config, make_reservation):
    return fake_source_class(
        configs=[make_config(1), make_config(2)],
        reservations=[
            make_reservation(1, guest_name='Ada'),
            make_reservation(1, guest_name='Bob', status='cancelled'),
            make_reservation(2, guest_name='Cy', status='cancelled'),
            make_reservation(2, guest_name='Di', status='cancelled', check_in=date(2025, 7, 2),
                             check_out=date(2025, 7, 5)),
        ],
    )


@pytest.fixture
def statement(source):
    return StatementGenerationService(source).generate_combined([1, 2], START, END)


def test_cancelled_reservations_for_statement(source, statement):
    cancelled = CancelledReservationService(source).for_statement(statement)

    assert [r['guest_name'] for r in cancelled] == ['Bob', 'Cy']
    assert not any(r['already_in_statement'] for r in cancelled)
    assert len(statement.reservations) == 1


def test_count_is_cached_per_property(source, statement):
    counting = CountingSource(source)
    service = CancelledReservationService(counting)

    assert service.count_for_statement(statement) == 2
    assert counting.fetches == 2
    assert service.count_for_statement(statement) == 2
    assert counting.fetches == 2


def test_listing_fetch_primes_the_count(source, statement):
    counting = CountingSource(source)
    service = CancelledReservationService(counting)

    service.for_statement(statement)
    service.count_for_statement(statement)

    assert counting.fetches == 2


def test_null_cache_always_fetches(source, statement):
    counting = CountingSource(source)
    service = CancelledReservationService(counting, cache=NullCountCache())

    service.count_for_statement(statement)
    service.count_for_statement(statement)

    assert counting.fetches == 4


def test_invalidate_property_only_affects_that_property():
    counts = CancelledCountCache()
    counts.set(1, START, END, 3)
    counts.set(2, START, END, 5)

    counts.invalidate_property(1)

    assert counts.get(1, START, END) is None
    assert counts.get(2, START, END) == 5


def test_key_includes_generation_and_period():
    counts = CancelledCountCache()

    assert counts.key(7, START, END) == 'statements:cancelled:7:g0:2025-06-01:2025-06-30'
    counts.invalidate_property(7)
    assert counts.key(7, START, END) == 'statements:cancelled:7:g1:2025-06-01:2025-06-30'


def test_saving_a_reservation_invalidates_counts():
    listing = Listing.objects.create(id=1, name='Beach House')
    counts = CancelledCountCache()
    counts.set(1, START, END, 0)

    reservation = ChannelReservation.objects.create(
        external_id='HA-9', listing=listing, guest_name='Eve',
        check_in_date=date(2025, 6, 3), check_out_date=date(2025, 6, 5),
        status='cancelled', gross_amount=Decimal('300.00'),
    )
    assert counts.get(1, START, END) is None

    counts.set(1, START, END, 1)
    reservation.delete()
    assert counts.get(1, START, END) is None
    assert cache.get('statements:cancelled:1:generation') == 2
