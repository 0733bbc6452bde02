"""DynamoDB storage for property reservations."""
import hashlib
import logging
from datetime import date
from typing import List, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from sync.exceptions import DuplicateReservationError
from sync.models import SOURCE_ICAL, Reservation, ReservationCandidate

logger = logging.getLogger(__name__)


class ReservationStore:
    """Manager for reservation table operations."""

    PROPERTY_INDEX = 'property-checkin-index'

    def __init__(self, table_name: str):
        """
        Initialize DynamoDB client and table reference.

        Args:
            table_name: Name of the reservations table
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized ReservationStore for table: {table_name}")

    @staticmethod
    def feed_reservation_id(property_id: str, external_id: str) -> str:
        """
        Derive the identifier of a feed-sourced reservation.

        One (property, external identifier) pair always maps to the same
        item key, so a second insert for the pair is rejected by DynamoDB.

        Args:
            property_id: Owning property
            external_id: Feed event UID

        Returns:
            Reservation ID (SHA256 hash)
        """
        composite = f"{SOURCE_ICAL}|{property_id}|{external_id}"
        return hashlib.sha256(composite.encode('utf-8')).hexdigest()

    def find_by_external_id(self, property_id: str, external_id: str) -> Optional[Reservation]:
        """
        Look up the feed-sourced reservation for an external identifier.

        Args:
            property_id: Owning property
            external_id: Feed event UID

        Returns:
            Reservation or None if the pair has not been imported
        """
        reservation_id = self.feed_reservation_id(property_id, external_id)
        try:
            response = self.table.get_item(Key={'reservation_id': reservation_id})
        except ClientError as e:
            logger.error(f"Error reading reservation {reservation_id}: {e}")
            raise

        item = response.get('Item')
        if not item:
            return None
        return self._item_to_reservation(item)

    def find_overlapping(self, property_id: str, check_in: date, check_out: date) -> List[Reservation]:
        """
        Find reservations of a property whose stay intersects [check_in, check_out).

        Args:
            property_id: Property to search
            check_in: First night of the range
            check_out: Departure day (exclusive)

        Returns:
            List of overlapping reservations of any source and status
        """
        query_kwargs = {
            'IndexName': self.PROPERTY_INDEX,
            'KeyConditionExpression': (
                Key('property_id').eq(property_id) &
                Key('check_in').lt(check_out.isoformat())
            ),
            'FilterExpression': Attr('check_out').gt(check_in.isoformat()),
        }

        try:
            response = self.table.query(**query_kwargs)
            items = response.get('Items', [])

            while 'LastEvaluatedKey' in response:
                response = self.table.query(
                    ExclusiveStartKey=response['LastEvaluatedKey'],
                    **query_kwargs
                )
                items.extend(response.get('Items', []))
        except ClientError as e:
            logger.error(f"Error querying reservations for property {property_id}: {e}")
            raise

        return [
            reservation for reservation in map(self._item_to_reservation, items)
            if reservation
        ]

    def list_for_property(self, property_id: str) -> List[Reservation]:
        """
        Retrieve every reservation of a property ordered by check-in.

        Args:
            property_id: Property to list

        Returns:
            List of reservations
        """
        query_kwargs = {
            'IndexName': self.PROPERTY_INDEX,
            'KeyConditionExpression': Key('property_id').eq(property_id),
        }

        try:
            response = self.table.query(**query_kwargs)
            items = response.get('Items', [])

            while 'LastEvaluatedKey' in response:
                response = self.table.query(
                    ExclusiveStartKey=response['LastEvaluatedKey'],
                    **query_kwargs
                )
                items.extend(response.get('Items', []))
        except ClientError as e:
            logger.error(f"Error listing reservations for property {property_id}: {e}")
            raise

        return [
            reservation for reservation in map(self._item_to_reservation, items)
            if reservation
        ]

    def insert_from_feed(self, candidate: ReservationCandidate) -> Reservation:
        """
        Insert a new feed-sourced reservation.

        Args:
            candidate: Reservation candidate from the mapper

        Returns:
            The stored Reservation

        Raises:
            DuplicateReservationError: If the external identifier was already imported
        """
        reservation = Reservation(
            reservation_id=self.feed_reservation_id(candidate.property_id, candidate.external_id),
            property_id=candidate.property_id,
            guest_name=candidate.guest_name,
            check_in=candidate.check_in,
            check_out=candidate.check_out,
            status=candidate.status,
            source=candidate.source,
            external_id=candidate.external_id,
        )

        try:
            self.table.put_item(
                Item=self._reservation_to_item(reservation),
                ConditionExpression='attribute_not_exists(reservation_id)'
            )
        except ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                raise DuplicateReservationError(
                    f"Reservation for external id {candidate.external_id} "
                    f"already exists on property {candidate.property_id}"
                ) from e
            logger.error(f"Error inserting reservation {reservation.reservation_id}: {e}")
            raise

        return reservation

    def update_from_feed(self, reservation_id: str, candidate: ReservationCandidate) -> None:
        """
        Refresh dates and guest name of an imported reservation.

        Args:
            reservation_id: Reservation to update
            candidate: Latest values from the feed
        """
        try:
            self.table.update_item(
                Key={'reservation_id': reservation_id},
                UpdateExpression=(
                    'SET check_in = :check_in, check_out = :check_out, '
                    'guest_name = :guest_name, #source = :source'
                ),
                ExpressionAttributeNames={'#source': 'source'},
                ExpressionAttributeValues={
                    ':check_in': candidate.check_in.isoformat(),
                    ':check_out': candidate.check_out.isoformat(),
                    ':guest_name': candidate.guest_name,
                    ':source': SOURCE_ICAL,
                },
            )
        except ClientError as e:
            logger.error(f"Error updating reservation {reservation_id}: {e}")
            raise

    def put_reservation(self, reservation: Reservation) -> None:
        """
        Store a reservation as-is (used for manually entered bookings).

        Args:
            reservation: Reservation to write
        """
        try:
            self.table.put_item(Item=self._reservation_to_item(reservation))
        except ClientError as e:
            logger.error(f"Error writing reservation {reservation.reservation_id}: {e}")
            raise

    def _item_to_reservation(self, item: dict) -> Optional[Reservation]:
        """
        Convert DynamoDB item to Reservation object.

        Only the key and the stay dates are required; rows entered by other
        tools may lack guest name, status or source and still occupy dates.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Reservation object or None if conversion fails
        """
        try:
            return Reservation(
                reservation_id=item['reservation_id'],
                property_id=item['property_id'],
                guest_name=item.get('guest_name', ''),
                check_in=date.fromisoformat(item['check_in']),
                check_out=date.fromisoformat(item['check_out']),
                status=item.get('status'),
                source=item.get('source'),
                external_id=item.get('external_id'),
            )
        except (KeyError, ValueError) as e:
            logger.warning(f"Failed to convert item to Reservation: {e}")
            return None

    def _reservation_to_item(self, reservation: Reservation) -> dict:
        item = {
            'reservation_id': reservation.reservation_id,
            'property_id': reservation.property_id,
            'guest_name': reservation.guest_name,
            'check_in': reservation.check_in.isoformat(),
            'check_out': reservation.check_out.isoformat(),
        }

        for key in ('status', 'source'):
            if getattr(reservation, key):
                item[key] = getattr(reservation, key)

        if reservation.external_id:
            item['external_id'] = reservation.external_id

        return item
