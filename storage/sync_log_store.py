"""DynamoDB storage for sync run records."""
import logging
import time
import uuid
from typing import List, Optional

import boto3
from botocore.exceptions import ClientError

from sync.models import RUN_COMPLETED, RUN_FAILED, RUN_RUNNING, SyncRun

logger = logging.getLogger(__name__)


class SyncLogStore:
    """Manager for the sync run log table."""

    def __init__(self, table_name: str, retention_days: int = 0):
        """
        Initialize DynamoDB client and table reference.

        Args:
            table_name: Name of the sync log table
            retention_days: Days before a run record expires through the
                table TTL on ``expires_at``; 0 keeps records forever
        """
        self.table_name = table_name
        self.retention_days = retention_days
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized SyncLogStore for table: {table_name}")

    def create_run(self, started_at: str) -> SyncRun:
        """
        Insert a new run record in the RUNNING state.

        Args:
            started_at: ISO 8601 start timestamp

        Returns:
            The created SyncRun
        """
        run = SyncRun(
            log_id=str(uuid.uuid4()),
            started_at=started_at,
            status=RUN_RUNNING,
        )

        item = self._run_to_item(run)
        if self.retention_days > 0:
            item['expires_at'] = int(time.time()) + self.retention_days * 86400

        try:
            self.table.put_item(
                Item=item,
                ConditionExpression='attribute_not_exists(log_id)'
            )
        except ClientError as e:
            logger.error(f"Error creating sync run record: {e}")
            raise

        return run

    def complete_run(
        self,
        log_id: str,
        finished_at: str,
        properties_synced: int,
        reservations_created: int,
        errors: List[dict]
    ) -> None:
        """
        Move a RUNNING record to COMPLETED.

        Args:
            log_id: Run identifier
            finished_at: ISO 8601 end timestamp
            properties_synced: Number of properties attempted
            reservations_created: Number of reservations inserted
            errors: Per-property error entries
        """
        self._finish_run(log_id, RUN_COMPLETED, finished_at, errors, {
            ':properties_synced': properties_synced,
            ':reservations_created': reservations_created,
        })

    def fail_run(self, log_id: str, finished_at: str, error: str) -> None:
        """
        Move a RUNNING record to FAILED.

        Args:
            log_id: Run identifier
            finished_at: ISO 8601 end timestamp
            error: Message of the run-wide failure
        """
        self._finish_run(log_id, RUN_FAILED, finished_at, [{'error': error}])

    def get_run(self, log_id: str) -> Optional[SyncRun]:
        """
        Retrieve one run record.

        Args:
            log_id: Run identifier

        Returns:
            SyncRun or None if it does not exist
        """
        try:
            response = self.table.get_item(Key={'log_id': log_id})
        except ClientError as e:
            logger.error(f"Error reading sync run {log_id}: {e}")
            raise

        item = response.get('Item')
        if not item:
            return None
        return self._item_to_run(item)

    def list_recent(self, limit: int = 20) -> List[SyncRun]:
        """
        Retrieve the most recent run records, newest first.

        Scans the whole table; with ``retention_days`` set the table TTL
        keeps it bounded.

        Args:
            limit: Maximum number of records to return

        Returns:
            List of SyncRun objects
        """
        try:
            response = self.table.scan()
            items = response.get('Items', [])

            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey']
                )
                items.extend(response.get('Items', []))
        except ClientError as e:
            logger.error(f"Error scanning sync log table: {e}")
            raise

        runs = [run for run in map(self._item_to_run, items) if run]
        runs.sort(key=lambda run: run.started_at, reverse=True)
        return runs[:limit]

    def _finish_run(
        self,
        log_id: str,
        status: str,
        finished_at: str,
        errors: List[dict],
        counters: Optional[dict] = None
    ) -> None:
        """
        Write the terminal state of a run.

        The update is conditional on the record still being RUNNING, so a
        finished run is never modified again.
        """
        update_expression = 'SET #status = :status, finished_at = :finished_at, errors = :errors'
        values = {
            ':status': status,
            ':finished_at': finished_at,
            ':errors': errors,
            ':running': RUN_RUNNING,
        }
        if counters:
            update_expression += (
                ', properties_synced = :properties_synced'
                ', reservations_created = :reservations_created'
            )
            values.update(counters)

        try:
            self.table.update_item(
                Key={'log_id': log_id},
                UpdateExpression=update_expression,
                ConditionExpression='#status = :running',
                ExpressionAttributeNames={'#status': 'status'},
                ExpressionAttributeValues=values,
            )
        except ClientError as e:
            logger.error(f"Error finishing sync run {log_id} as {status}: {e}")
            raise

    def _item_to_run(self, item: dict) -> Optional[SyncRun]:
        """
        Convert DynamoDB item to SyncRun object.

        Args:
            item: DynamoDB item dictionary

        Returns:
            SyncRun object or None if conversion fails
        """
        try:
            return SyncRun(
                log_id=item['log_id'],
                started_at=item['started_at'],
                status=item['status'],
                finished_at=item.get('finished_at'),
                properties_synced=int(item.get('properties_synced', 0)),
                reservations_created=int(item.get('reservations_created', 0)),
                errors=list(item.get('errors') or []),
            )
        except (KeyError, ValueError) as e:
            logger.warning(f"Failed to convert item to SyncRun: {e}")
            return None

    def _run_to_item(self, run: SyncRun) -> dict:
        item = {
            'log_id': run.log_id,
            'started_at': run.started_at,
            'status': run.status,
            'properties_synced': run.properties_synced,
            'reservations_created': run.reservations_created,
            'errors': run.errors,
        }
        if run.finished_at:
            item['finished_at'] = run.finished_at
        return item
