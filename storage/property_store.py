"""DynamoDB storage for properties and their sync leases."""
import logging
import time
from typing import List, Optional

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from sync.models import Property

logger = logging.getLogger(__name__)


class PropertyStore:
    """Manager for property table operations."""

    def __init__(self, table_name: str):
        """
        Initialize DynamoDB client and table reference.

        Args:
            table_name: Name of the properties table
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized PropertyStore for table: {table_name}")

    def list_sync_enabled(self) -> List[Property]:
        """
        Retrieve properties with calendar sync enabled and a feed URL set.

        Returns:
            List of Property objects ordered by property_id
        """
        scan_kwargs = {
            'FilterExpression': (
                Attr('ical_sync_enabled').eq(True) &
                Attr('ical_url').exists()
            ),
        }

        try:
            response = self.table.scan(**scan_kwargs)
            items = response.get('Items', [])

            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey'],
                    **scan_kwargs
                )
                items.extend(response.get('Items', []))
        except ClientError as e:
            logger.error(f"Error scanning properties table: {e}")
            raise

        properties = [
            prop for prop in map(self._item_to_property, items)
            if prop and prop.ical_url
        ]
        properties.sort(key=lambda prop: prop.property_id)

        logger.info(f"Found {len(properties)} properties with calendar sync enabled")
        return properties

    def get_property(self, property_id: str) -> Optional[Property]:
        """
        Retrieve a single property.

        Args:
            property_id: Property identifier

        Returns:
            Property or None if it does not exist
        """
        try:
            response = self.table.get_item(Key={'property_id': property_id})
        except ClientError as e:
            logger.error(f"Error reading property {property_id}: {e}")
            raise

        item = response.get('Item')
        if not item:
            return None
        return self._item_to_property(item)

    def mark_synced(self, property_id: str, synced_at: str) -> None:
        """
        Record a successful feed synchronization.

        Args:
            property_id: Property identifier
            synced_at: ISO 8601 timestamp of the sync
        """
        try:
            self.table.update_item(
                Key={'property_id': property_id},
                UpdateExpression='SET last_ical_sync = :synced_at',
                ExpressionAttributeValues={':synced_at': synced_at},
            )
        except ClientError as e:
            logger.error(f"Error updating last sync for property {property_id}: {e}")
            raise

    def acquire_sync_lease(self, property_id: str, owner: str, lease_seconds: int) -> bool:
        """
        Claim the property for one run until the lease expires.

        Args:
            property_id: Property identifier
            owner: Identifier of the claiming run
            lease_seconds: Lease duration

        Returns:
            True if the lease was acquired, False if another run holds it
        """
        now = int(time.time())
        try:
            self.table.update_item(
                Key={'property_id': property_id},
                UpdateExpression='SET sync_lease_owner = :owner, sync_lease_until = :until',
                ConditionExpression=(
                    'attribute_exists(property_id) AND '
                    '(attribute_not_exists(sync_lease_until) OR sync_lease_until < :now '
                    'OR sync_lease_owner = :owner)'
                ),
                ExpressionAttributeValues={
                    ':owner': owner,
                    ':until': now + lease_seconds,
                    ':now': now,
                },
            )
            return True
        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                logger.warning(f"Sync lease for property {property_id} is held by another run")
                return False
            logger.error(f"Error acquiring sync lease for property {property_id}: {e}")
            raise

    def release_sync_lease(self, property_id: str, owner: str) -> None:
        """
        Release a lease held by ``owner``; a lease taken over by another run is kept.

        Args:
            property_id: Property identifier
            owner: Identifier of the run releasing the lease
        """
        try:
            self.table.update_item(
                Key={'property_id': property_id},
                UpdateExpression='REMOVE sync_lease_owner, sync_lease_until',
                ConditionExpression='sync_lease_owner = :owner',
                ExpressionAttributeValues={':owner': owner},
            )
        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                logger.warning(f"Sync lease for property {property_id} was no longer held")
                return
            logger.error(f"Error releasing sync lease for property {property_id}: {e}")
            raise

    def put_property(self, prop: Property) -> None:
        """
        Store a property record.

        Args:
            prop: Property to write
        """
        item = {
            'property_id': prop.property_id,
            'name': prop.name,
            'ical_sync_enabled': prop.ical_sync_enabled,
        }
        if prop.ical_url:
            item['ical_url'] = prop.ical_url
        if prop.last_ical_sync:
            item['last_ical_sync'] = prop.last_ical_sync

        try:
            self.table.put_item(Item=item)
        except ClientError as e:
            logger.error(f"Error writing property {prop.property_id}: {e}")
            raise

    def _item_to_property(self, item: dict) -> Optional[Property]:
        """
        Convert DynamoDB item to Property object.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Property object or None if conversion fails
        """
        try:
            return Property(
                property_id=item['property_id'],
                name=item.get('name', ''),
                ical_url=item.get('ical_url') or None,
                ical_sync_enabled=bool(item.get('ical_sync_enabled', False)),
                last_ical_sync=item.get('last_ical_sync'),
            )
        except KeyError as e:
            logger.warning(f"Failed to convert item to Property: {e}")
            return None
