"""Exceptions raised by the calendar sync pipeline."""


class SyncError(Exception):
    """Base class for sync errors."""


class FeedDownloadError(SyncError):
    """The calendar feed could not be downloaded."""


class PropertyNotFoundError(SyncError):
    """No property exists with the requested identifier."""


class FeedNotConfiguredError(SyncError):
    """The property has no calendar feed URL."""


class SyncInProgressError(SyncError):
    """Another run holds the property's sync lease."""


class DuplicateReservationError(SyncError):
    """A feed reservation with the same external identifier already exists."""


class SyncRunFailed(SyncError):
    """A run-wide failure; the run has been recorded as FAILED."""

    def __init__(self, run, cause: Exception):
        super().__init__(str(cause))
        self.run = run
        self.cause = cause
