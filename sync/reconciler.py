"""Reconciliation of feed candidates against stored reservations."""
import logging
from typing import List

from sync.models import ReconcileResult, ReservationCandidate

logger = logging.getLogger(__name__)


class Reconciler:
    """Decides insert, update or skip for each candidate of a property."""

    def __init__(self, reservation_store):
        """
        Initialize the reconciler.

        Args:
            reservation_store: ReservationStore (or compatible) for the reservations table
        """
        self.reservation_store = reservation_store

    def reconcile(self, property_id: str, candidates: List[ReservationCandidate]) -> ReconcileResult:
        """
        Apply feed candidates to a property's reservations in feed order.

        A known external identifier updates its reservation. An unknown one
        is inserted unless its stay overlaps any existing reservation of the
        property, in which case it is skipped and nothing is written.

        Args:
            property_id: Property being synchronized
            candidates: Candidates produced by the mapper

        Returns:
            ReconcileResult with created, updated, skipped and total counts
        """
        result = ReconcileResult(total=len(candidates))

        for candidate in candidates:
            existing = self.reservation_store.find_by_external_id(
                property_id, candidate.external_id
            )

            if existing:
                self.reservation_store.update_from_feed(existing.reservation_id, candidate)
                result.updated += 1
                continue

            conflicts = self.reservation_store.find_overlapping(
                property_id, candidate.check_in, candidate.check_out
            )
            if conflicts:
                logger.info(
                    f"Skipping feed event {candidate.external_id}: overlaps "
                    f"reservation {conflicts[0].reservation_id}",
                    extra={'property_id': property_id}
                )
                result.skipped += 1
                continue

            self.reservation_store.insert_from_feed(candidate)
            result.created += 1

        logger.info(
            f"Reconciled {result.total} candidates: {result.created} created, "
            f"{result.updated} updated, {result.skipped} skipped",
            extra={'property_id': property_id}
        )
        return result
