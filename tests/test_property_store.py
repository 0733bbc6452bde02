"""Unit tests for PropertyStore."""
from unittest.mock import patch

from sync.models import Property


def test_list_sync_enabled_filters_properties(property_store, beach_house):
    property_store.put_property(beach_house)
    property_store.put_property(Property(
        property_id='prop-b',
        name='Mountain Cabin',
        ical_url='https://calendar.example.com/b.ics',
        ical_sync_enabled=False
    ))
    property_store.put_property(Property(
        property_id='prop-c',
        name='City Loft',
        ical_url=None,
        ical_sync_enabled=True
    ))

    properties = property_store.list_sync_enabled()

    assert [prop.property_id for prop in properties] == ['prop-a']
    assert properties[0].name == 'Beach House'


def test_list_sync_enabled_empty(property_store):
    assert property_store.list_sync_enabled() == []


def test_get_property(property_store, beach_house):
    property_store.put_property(beach_house)

    assert property_store.get_property('prop-a') == beach_house
    assert property_store.get_property('missing') is None


def test_mark_synced(property_store, beach_house):
    property_store.put_property(beach_house)

    property_store.mark_synced('prop-a', '2024-06-01T03:00:00+00:00')

    assert property_store.get_property('prop-a').last_ical_sync == '2024-06-01T03:00:00+00:00'


class TestSyncLease:
    """Test cases for the per-property sync lease."""

    def test_acquire_and_release(self, property_store, beach_house):
        property_store.put_property(beach_house)

        assert property_store.acquire_sync_lease('prop-a', 'run-1', 900) is True
        assert property_store.acquire_sync_lease('prop-a', 'run-2', 900) is False

        property_store.release_sync_lease('prop-a', 'run-1')

        assert property_store.acquire_sync_lease('prop-a', 'run-2', 900) is True

    def test_same_owner_can_reacquire(self, property_store, beach_house):
        property_store.put_property(beach_house)

        assert property_store.acquire_sync_lease('prop-a', 'run-1', 900) is True
        assert property_store.acquire_sync_lease('prop-a', 'run-1', 900) is True

    def test_expired_lease_can_be_taken_over(self, property_store, beach_house):
        property_store.put_property(beach_house)

        with patch('storage.property_store.time') as mock_time:
            mock_time.time.return_value = 1_000_000
            assert property_store.acquire_sync_lease('prop-a', 'run-1', 60) is True

        with patch('storage.property_store.time') as mock_time:
            mock_time.time.return_value = 1_000_061
            assert property_store.acquire_sync_lease('prop-a', 'run-2', 60) is True

    def test_release_by_non_owner_keeps_lease(self, property_store, beach_house):
        property_store.put_property(beach_house)
        property_store.acquire_sync_lease('prop-a', 'run-1', 900)

        property_store.release_sync_lease('prop-a', 'run-2')

        assert property_store.acquire_sync_lease('prop-a', 'run-3', 900) is False

    def test_lease_does_not_create_missing_property(self, property_store):
        assert property_store.acquire_sync_lease('ghost', 'run-1', 900) is False
        assert property_store.get_property('ghost') is None
