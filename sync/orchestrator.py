"""Orchestration of calendar feed synchronization across properties."""
import logging
import uuid
from datetime import datetime, timezone
from typing import List

from feed.ical_parser import ICalParser
from sync.exceptions import (
    FeedNotConfiguredError,
    PropertyNotFoundError,
    SyncInProgressError,
)
from sync.mapper import DEFAULT_GUEST_NAME, to_candidate
from sync.models import BatchResult, Property, PropertySyncResult
from sync.reconciler import Reconciler

logger = logging.getLogger(__name__)


def utc_now() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


class SyncOrchestrator:
    """Runs fetch, parse, map and reconcile for a set of properties."""

    def __init__(
        self,
        property_store,
        reservation_store,
        fetcher,
        parser: ICalParser = None,
        lease_seconds: int = 0,
        default_guest_name: str = DEFAULT_GUEST_NAME
    ):
        """
        Initialize the orchestrator.

        Args:
            property_store: PropertyStore used to list properties and record syncs
            reservation_store: ReservationStore the reconciler writes to
            fetcher: FeedFetcher used to download feeds
            parser: Feed parser (default: ICalParser)
            lease_seconds: Per-property sync lease length, 0 disables leasing
            default_guest_name: Guest label for events without a summary
        """
        self.property_store = property_store
        self.fetcher = fetcher
        self.parser = parser or ICalParser()
        self.reconciler = Reconciler(reservation_store)
        self.lease_seconds = lease_seconds
        self.default_guest_name = default_guest_name

    def sync_all(self) -> BatchResult:
        """
        Synchronize every property with calendar sync enabled.

        The property list is queried on every call. A failure to list
        properties propagates to the caller.

        Returns:
            BatchResult for all enabled properties
        """
        properties = self.property_store.list_sync_enabled()
        return self.sync_properties(properties)

    def load_property(self, property_id: str) -> Property:
        """
        Load a property for a single-property sync.

        Args:
            property_id: Property identifier

        Returns:
            Property with a feed URL configured

        Raises:
            PropertyNotFoundError: If the property does not exist
            FeedNotConfiguredError: If the property has no feed URL
        """
        prop = self.property_store.get_property(property_id)
        if prop is None:
            raise PropertyNotFoundError(f"Property not found: {property_id}")
        if not prop.ical_url:
            raise FeedNotConfiguredError(
                f"No calendar URL configured for property {property_id}"
            )
        return prop

    def sync_properties(self, properties: List[Property]) -> BatchResult:
        """
        Synchronize properties one after another.

        Args:
            properties: Properties to process

        Returns:
            BatchResult with one entry per property
        """
        owner = str(uuid.uuid4())
        batch = BatchResult()

        logger.info(f"Synchronizing {len(properties)} properties", extra={'lease_owner': owner})
        for prop in properties:
            batch.results.append(self.sync_property(prop, owner))

        logger.info(
            f"Batch complete: {batch.properties_synced} properties, "
            f"{batch.reservations_created} reservations created, "
            f"{len(batch.errors)} errors"
        )
        return batch

    def sync_property(self, prop: Property, owner: str = None) -> PropertySyncResult:
        """
        Synchronize one property's feed.

        Any error is captured in the returned result; the property's last
        sync timestamp is only written on success.

        Args:
            prop: Property to synchronize
            owner: Lease owner identifier of the current run

        Returns:
            PropertySyncResult for the property
        """
        owner = owner or str(uuid.uuid4())
        leased = False

        try:
            if self.lease_seconds > 0:
                leased = self.property_store.acquire_sync_lease(
                    prop.property_id, owner, self.lease_seconds
                )
                if not leased:
                    raise SyncInProgressError("Sync already in progress")

            raw_text = self.fetcher.fetch(prop.ical_url)
            events = self.parser.parse(raw_text)
            candidates = [
                to_candidate(event, prop.property_id, self.default_guest_name)
                for event in events
            ]
            counts = self.reconciler.reconcile(prop.property_id, candidates)

            self.property_store.mark_synced(prop.property_id, utc_now())

            return PropertySyncResult(
                property_id=prop.property_id,
                property_name=prop.name,
                success=True,
                imported=counts.created,
                updated=counts.updated,
                skipped=counts.skipped,
                total=counts.total,
            )

        except Exception as e:
            logger.error(
                f"Failed to synchronize property {prop.property_id}: {e}",
                extra={'property_id': prop.property_id, 'error_type': type(e).__name__},
                exc_info=True
            )
            return PropertySyncResult(
                property_id=prop.property_id,
                property_name=prop.name,
                success=False,
                error=str(e),
            )

        finally:
            if leased:
                try:
                    self.property_store.release_sync_lease(prop.property_id, owner)
                except Exception as e:
                    logger.warning(
                        f"Failed to release sync lease for property {prop.property_id}: {e}"
                    )
