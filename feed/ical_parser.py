"""Parser for iCalendar feeds exported by booking platforms."""
import logging
from datetime import date
from typing import Dict, List, Optional

from sync.models import CalendarEvent

logger = logging.getLogger(__name__)


BEGIN_EVENT = 'BEGIN:VEVENT'
END_EVENT = 'END:VEVENT'

# Event properties kept by the parser
RECOGNISED_FIELDS = {'UID', 'SUMMARY', 'DTSTART', 'DTEND', 'DESCRIPTION'}


def decode_date(value: str) -> Optional[date]:
    """
    Decode a compact iCalendar date.

    Only the leading YYYYMMDD is used; a time or zone suffix such as
    ``T150000Z`` is ignored.

    Args:
        value: Raw DTSTART/DTEND value

    Returns:
        Calendar date or None if the value cannot be decoded
    """
    value = (value or '').strip()
    if len(value) < 8:
        return None

    try:
        return date(int(value[0:4]), int(value[4:6]), int(value[6:8]))
    except ValueError:
        return None


class ICalParser:
    """Line-oriented parser for the VEVENT fields used by reservation sync."""

    def parse(self, raw_text: str) -> List[CalendarEvent]:
        """
        Parse calendar feed text into events.

        Malformed or incomplete event blocks are dropped; this method never
        raises for bad input.

        Args:
            raw_text: iCalendar text as downloaded from the feed URL

        Returns:
            List of CalendarEvent objects in feed order
        """
        events = []
        current: Optional[Dict[str, str]] = None
        field_name = ''
        field_value = ''

        # Only CR/LF end a line; other Unicode separators belong to the value
        for line in (raw_text or '').split('\n'):
            line = line.rstrip('\r')

            # Folded continuation of the previous line
            if line[:1] in (' ', '\t'):
                field_value += line[1:]
                continue

            if current is not None and field_name in RECOGNISED_FIELDS:
                current[field_name] = field_value
            field_name = ''
            field_value = ''

            line = line.strip()

            if line == BEGIN_EVENT:
                current = {}
            elif line == END_EVENT:
                if current is not None:
                    event = self._build_event(current)
                    if event:
                        events.append(event)
                current = None
            elif current is not None and ':' in line:
                key, value = line.split(':', 1)
                field_name = key.split(';', 1)[0].upper()
                field_value = value

        logger.debug(f"Parsed {len(events)} events from feed")
        return events

    def _build_event(self, fields: Dict[str, str]) -> Optional[CalendarEvent]:
        """
        Build an event from the fields captured in one VEVENT block.

        Args:
            fields: Raw values keyed by property name

        Returns:
            CalendarEvent or None if UID, DTSTART or DTEND is missing
        """
        uid = fields.get('UID')
        start = decode_date(fields.get('DTSTART', ''))
        end = decode_date(fields.get('DTEND', ''))

        if not uid or start is None or end is None:
            logger.debug(f"Dropping incomplete event block (uid={uid!r})")
            return None

        return CalendarEvent(
            uid=uid,
            summary=fields.get('SUMMARY', ''),
            start=start,
            end=end,
            description=fields.get('DESCRIPTION'),
        )
