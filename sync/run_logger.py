"""Persisted lifecycle of sync runs."""
import logging
from dataclasses import replace
from typing import Callable, Optional, Tuple

from sync.exceptions import SyncRunFailed
from sync.models import RUN_COMPLETED, RUN_FAILED, BatchResult, SyncRun
from sync.orchestrator import utc_now

logger = logging.getLogger(__name__)


class RunLogger:
    """Wraps an orchestrator invocation in a RUNNING -> COMPLETED/FAILED record."""

    def __init__(self, sync_log_store):
        """
        Initialize the run logger.

        Args:
            sync_log_store: SyncLogStore holding run records
        """
        self.sync_log_store = sync_log_store

    def run(self, operation: Callable[[], BatchResult]) -> Tuple[Optional[SyncRun], BatchResult]:
        """
        Execute an orchestrator operation inside a run record.

        If the RUNNING record cannot be created the operation still runs and
        no run is returned.

        Args:
            operation: Callable returning the BatchResult of the invocation

        Returns:
            Tuple of (finished SyncRun or None, BatchResult)

        Raises:
            SyncRunFailed: If the operation raised; the run is recorded as FAILED
        """
        started_at = utc_now()
        run = self._start(started_at)

        try:
            batch = operation()
        except Exception as e:
            logger.error(
                f"Sync run failed: {e}",
                extra={'log_id': run.log_id if run else None, 'error_type': type(e).__name__},
                exc_info=True
            )
            if run:
                finished_at = utc_now()
                errors = [{'error': str(e)}]
                self.sync_log_store.fail_run(run.log_id, finished_at, str(e))
                run = replace(run, status=RUN_FAILED, finished_at=finished_at, errors=errors)
            raise SyncRunFailed(run, e) from e

        if run:
            finished_at = utc_now()
            self.sync_log_store.complete_run(
                run.log_id,
                finished_at,
                batch.properties_synced,
                batch.reservations_created,
                batch.errors,
            )
            run = replace(
                run,
                status=RUN_COMPLETED,
                finished_at=finished_at,
                properties_synced=batch.properties_synced,
                reservations_created=batch.reservations_created,
                errors=batch.errors,
            )
            logger.info("Sync log updated", extra={'log_id': run.log_id})

        return run, batch

    def _start(self, started_at: str) -> Optional[SyncRun]:
        try:
            run = self.sync_log_store.create_run(started_at)
        except Exception as e:
            logger.error(f"Failed to create sync log: {e}", exc_info=True)
            return None

        logger.info("Sync log created", extra={'log_id': run.log_id})
        return run
