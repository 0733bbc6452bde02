"""Conversion of feed events into reservation candidates."""
from sync.models import (
    SOURCE_ICAL,
    STATUS_CONFIRMED,
    CalendarEvent,
    ReservationCandidate,
)

DEFAULT_GUEST_NAME = 'Airbnb Reservation'


def to_candidate(
    event: CalendarEvent,
    property_id: str,
    default_guest_name: str = DEFAULT_GUEST_NAME
) -> ReservationCandidate:
    """
    Map a feed event to a confirmed, feed-sourced reservation candidate.

    Args:
        event: Parsed calendar event
        property_id: Property the feed belongs to
        default_guest_name: Guest label used when the summary is empty

    Returns:
        ReservationCandidate for the reconciler
    """
    guest_name = event.summary
    if not guest_name or not guest_name.strip():
        guest_name = default_guest_name

    return ReservationCandidate(
        property_id=property_id,
        guest_name=guest_name,
        check_in=event.start,
        check_out=event.end,
        external_id=event.uid,
        status=STATUS_CONFIRMED,
        source=SOURCE_ICAL,
    )
