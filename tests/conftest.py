"""Shared fixtures for DynamoDB-backed tests."""
from datetime import date

import boto3
import pytest
from moto import mock_aws

from storage.property_store import PropertyStore
from storage.reservation_store import ReservationStore
from storage.sync_log_store import SyncLogStore
from sync.models import Property, Reservation


PROPERTIES_TABLE = 'test-properties'
RESERVATIONS_TABLE = 'test-reservations'
SYNC_LOGS_TABLE = 'test-sync-logs'


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Point boto3 at fake credentials so nothing reaches AWS."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


@pytest.fixture
def dynamodb():
    """Create mock properties, reservations and sync log tables."""
    with mock_aws():
        resource = boto3.resource('dynamodb', region_name='us-east-1')

        resource.create_table(
            TableName=PROPERTIES_TABLE,
            KeySchema=[
                {'AttributeName': 'property_id', 'KeyType': 'HASH'}
            ],
            AttributeDefinitions=[
                {'AttributeName': 'property_id', 'AttributeType': 'S'}
            ],
            BillingMode='PAY_PER_REQUEST'
        )

        resource.create_table(
            TableName=RESERVATIONS_TABLE,
            KeySchema=[
                {'AttributeName': 'reservation_id', 'KeyType': 'HASH'}
            ],
            AttributeDefinitions=[
                {'AttributeName': 'reservation_id', 'AttributeType': 'S'},
                {'AttributeName': 'property_id', 'AttributeType': 'S'},
                {'AttributeName': 'check_in', 'AttributeType': 'S'}
            ],
            GlobalSecondaryIndexes=[
                {
                    'IndexName': 'property-checkin-index',
                    'KeySchema': [
                        {'AttributeName': 'property_id', 'KeyType': 'HASH'},
                        {'AttributeName': 'check_in', 'KeyType': 'RANGE'}
                    ],
                    'Projection': {'ProjectionType': 'ALL'}
                }
            ],
            BillingMode='PAY_PER_REQUEST'
        )

        resource.create_table(
            TableName=SYNC_LOGS_TABLE,
            KeySchema=[
                {'AttributeName': 'log_id', 'KeyType': 'HASH'}
            ],
            AttributeDefinitions=[
                {'AttributeName': 'log_id', 'AttributeType': 'S'}
            ],
            BillingMode='PAY_PER_REQUEST'
        )

        yield resource


@pytest.fixture
def property_store(dynamodb):
    return PropertyStore(PROPERTIES_TABLE)


@pytest.fixture
def reservation_store(dynamodb):
    return ReservationStore(RESERVATIONS_TABLE)


@pytest.fixture
def sync_log_store(dynamodb):
    return SyncLogStore(SYNC_LOGS_TABLE)


@pytest.fixture
def beach_house():
    """A property with sync enabled."""
    return Property(
        property_id='prop-a',
        name='Beach House',
        ical_url='https://calendar.example.com/a.ics',
        ical_sync_enabled=True
    )


@pytest.fixture
def manual_reservation():
    """A manually entered reservation on prop-a for 2024-06-01 to 2024-06-05."""
    return Reservation(
        reservation_id='manual-1',
        property_id='prop-a',
        guest_name='Walk-in Guest',
        check_in=date(2024, 6, 1),
        check_out=date(2024, 6, 5),
        status='confirmed',
        source='manual'
    )


@pytest.fixture
def make_feed():
    """Build feed text: wraps VEVENT bodies in a VCALENDAR with CRLF endings."""
    def _make_feed(*events: str) -> str:
        lines = ['BEGIN:VCALENDAR', 'VERSION:2.0', 'PRODID:-//Test//Feed//EN']
        for body in events:
            lines.append('BEGIN:VEVENT')
            lines.extend(body.strip('\n').split('\n'))
            lines.append('END:VEVENT')
        lines.append('END:VCALENDAR')
        return '\r\n'.join(lines) + '\r\n'

    return _make_feed
