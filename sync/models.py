"""Data models for calendar feed synchronization."""
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional


SOURCE_ICAL = 'ical'
STATUS_CONFIRMED = 'confirmed'

RUN_RUNNING = 'RUNNING'
RUN_COMPLETED = 'COMPLETED'
RUN_FAILED = 'FAILED'


@dataclass
class CalendarEvent:
    """Event parsed from a calendar feed."""
    uid: str
    summary: str
    start: date
    end: date
    description: Optional[str] = None


@dataclass
class ReservationCandidate:
    """Reservation derived from a feed event, not yet reconciled."""
    property_id: str
    guest_name: str
    check_in: date
    check_out: date
    external_id: str
    status: str = STATUS_CONFIRMED
    source: str = SOURCE_ICAL


@dataclass
class Reservation:
    """Reservation stored for a property."""
    reservation_id: str
    property_id: str
    guest_name: str
    check_in: date
    check_out: date
    status: Optional[str]
    source: Optional[str]
    external_id: Optional[str] = None


@dataclass
class Property:
    """Property whose external calendar feed is synchronized."""
    property_id: str
    name: str
    ical_url: Optional[str]
    ical_sync_enabled: bool
    last_ical_sync: Optional[str] = None


@dataclass
class ReconcileResult:
    """Counters produced by reconciling one property's candidates."""
    created: int = 0
    updated: int = 0
    skipped: int = 0
    total: int = 0


@dataclass
class PropertySyncResult:
    """Outcome of synchronizing a single property."""
    property_id: str
    property_name: str
    success: bool
    imported: int = 0
    updated: int = 0
    skipped: int = 0
    total: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            'propertyId': self.property_id,
            'propertyName': self.property_name,
            'success': self.success,
            'imported': self.imported,
            'updated': self.updated,
            'skipped': self.skipped,
            'total': self.total,
        }
        if self.error is not None:
            data['error'] = self.error
        return data


@dataclass
class BatchResult:
    """Aggregate of one orchestrator invocation."""
    results: List[PropertySyncResult] = field(default_factory=list)

    @property
    def properties_synced(self) -> int:
        return len(self.results)

    @property
    def reservations_created(self) -> int:
        return sum(result.imported for result in self.results)

    @property
    def errors(self) -> List[dict]:
        """Error entries for the properties that failed."""
        return [
            {
                'property_id': result.property_id,
                'property_name': result.property_name,
                'error': result.error,
            }
            for result in self.results
            if not result.success
        ]


@dataclass
class SyncRun:
    """Persisted record of one orchestrator invocation."""
    log_id: str
    started_at: str
    status: str
    finished_at: Optional[str] = None
    properties_synced: int = 0
    reservations_created: int = 0
    errors: List[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'log_id': self.log_id,
            'started_at': self.started_at,
            'finished_at': self.finished_at,
            'status': self.status,
            'properties_synced': self.properties_synced,
            'reservations_created': self.reservations_created,
            'errors': self.errors,
        }
