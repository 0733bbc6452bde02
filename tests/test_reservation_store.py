"""Unit tests for ReservationStore."""
from datetime import date

import pytest

from sync.exceptions import DuplicateReservationError
from sync.models import Reservation, ReservationCandidate


@pytest.fixture
def candidate():
    return ReservationCandidate(
        property_id='prop-a',
        guest_name='Jane Doe',
        check_in=date(2024, 6, 10),
        check_out=date(2024, 6, 14),
        external_id='uid-1@airbnb.com'
    )


def test_feed_reservation_id_is_deterministic(reservation_store):
    first = reservation_store.feed_reservation_id('prop-a', 'uid-1')

    assert first == reservation_store.feed_reservation_id('prop-a', 'uid-1')
    assert first != reservation_store.feed_reservation_id('prop-b', 'uid-1')
    assert len(first) == 64


def test_find_by_external_id_missing(reservation_store):
    assert reservation_store.find_by_external_id('prop-a', 'nope') is None


def test_insert_and_find_by_external_id(reservation_store, candidate):
    inserted = reservation_store.insert_from_feed(candidate)

    found = reservation_store.find_by_external_id('prop-a', 'uid-1@airbnb.com')

    assert found == inserted
    assert found.status == 'confirmed'
    assert found.source == 'ical'
    assert found.check_in == date(2024, 6, 10)


def test_insert_same_external_id_twice_fails_loudly(reservation_store, candidate):
    reservation_store.insert_from_feed(candidate)

    with pytest.raises(DuplicateReservationError):
        reservation_store.insert_from_feed(candidate)

    assert len(reservation_store.list_for_property('prop-a')) == 1


def test_update_from_feed(reservation_store, candidate):
    inserted = reservation_store.insert_from_feed(candidate)
    changed = ReservationCandidate(
        property_id='prop-a',
        guest_name='Jane D.',
        check_in=date(2024, 6, 11),
        check_out=date(2024, 6, 15),
        external_id='uid-1@airbnb.com'
    )

    reservation_store.update_from_feed(inserted.reservation_id, changed)

    found = reservation_store.find_by_external_id('prop-a', 'uid-1@airbnb.com')
    assert found.guest_name == 'Jane D.'
    assert found.check_in == date(2024, 6, 11)
    assert found.check_out == date(2024, 6, 15)
    assert found.reservation_id == inserted.reservation_id


@pytest.mark.parametrize('check_in, check_out, overlaps', [
    (date(2024, 6, 3), date(2024, 6, 7), True),
    (date(2024, 5, 28), date(2024, 6, 2), True),
    (date(2024, 6, 2), date(2024, 6, 3), True),
    (date(2024, 5, 25), date(2024, 6, 10), True),
    (date(2024, 6, 5), date(2024, 6, 9), False),
    (date(2024, 5, 25), date(2024, 6, 1), False),
    (date(2024, 7, 1), date(2024, 7, 5), False),
])
def test_find_overlapping_uses_half_open_ranges(
    reservation_store, manual_reservation, check_in, check_out, overlaps
):
    reservation_store.put_reservation(manual_reservation)

    conflicts = reservation_store.find_overlapping('prop-a', check_in, check_out)

    assert bool(conflicts) is overlaps
    if overlaps:
        assert conflicts[0].reservation_id == 'manual-1'


def test_find_overlapping_is_scoped_to_property(reservation_store, manual_reservation):
    reservation_store.put_reservation(manual_reservation)

    assert reservation_store.find_overlapping(
        'prop-b', date(2024, 6, 1), date(2024, 6, 5)
    ) == []


def test_list_for_property(reservation_store, manual_reservation, candidate):
    reservation_store.put_reservation(manual_reservation)
    reservation_store.insert_from_feed(candidate)
    reservation_store.put_reservation(Reservation(
        reservation_id='other-prop',
        property_id='prop-b',
        guest_name='Someone',
        check_in=date(2024, 6, 1),
        check_out=date(2024, 6, 2),
        status='confirmed',
        source='manual'
    ))

    reservations = reservation_store.list_for_property('prop-a')

    assert [r.check_in for r in reservations] == [date(2024, 6, 1), date(2024, 6, 10)]
    assert reservations[0].external_id is None
    assert reservations[1].external_id == 'uid-1@airbnb.com'


def test_find_overlapping_reads_rows_without_source(reservation_store, dynamodb):
    dynamodb.Table('test-reservations').put_item(Item={
        'reservation_id': 'legacy-1',
        'property_id': 'prop-a',
        'guest_name': 'Phone Booking',
        'check_in': '2024-06-01',
        'check_out': '2024-06-05',
        'status': 'confirmed',
    })

    overlapping = reservation_store.find_overlapping('prop-a', date(2024, 6, 4), date(2024, 6, 6))

    assert [reservation.reservation_id for reservation in overlapping] == ['legacy-1']
    assert overlapping[0].source is None
