"""
ICS calendar generation module.

Provides CalendarGenerator, the event sink of a crawl: every screening handed
to ``add_event`` becomes one VEVENT of the calendar written at the end of the
run.
"""

from __future__ import annotations

import hashlib
import logging
from datetime import datetime
from datetime import timezone
from pathlib import Path

from icalendar import Calendar
from icalendar import Event

from bfi_calendar.models import EventCandidate
from bfi_calendar.settings import Settings
from bfi_calendar.settings import get_settings

logger = logging.getLogger(__name__)


class CalendarGenerator:
    """Collect screenings into an ICS calendar.

    Start and end times are written as floating local times, exactly as the
    box office lists them. UIDs are derived from the film URL, start and
    venue, so re-running a crawl yields the same UIDs for the same screenings.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.calendar = Calendar()
        self.calendar.add('prodid', '-//BFI Screenings//bfi-calendar//EN')
        self.calendar.add('version', '2.0')
        self.calendar.add('calscale', 'GREGORIAN')
        self.calendar.add('method', 'PUBLISH')
        self.calendar.add('x-wr-calname', self.settings.calendar_name)
        self.calendar.add('x-wr-caldesc', self.settings.calendar_description)
        self.count = 0

    def add_event(self, event: EventCandidate) -> None:
        """Append one screening to the calendar."""
        ev = Event()
        ev.add('uid', self._uid(event))
        ev.add('dtstamp', datetime.now(timezone.utc))
        ev.add('dtstart', event.start)
        ev.add('dtend', event.end)
        ev.add('summary', event.title)
        ev.add('description', event.calendar_description)
        if event.location:
            ev.add('location', event.location)
        if event.url:
            ev.add('url', event.url)
        if event.sold_out:
            ev.add('categories', ['sold-out'])
        self.calendar.add_component(ev)
        self.count += 1

    def to_ical(self) -> bytes:
        return self.calendar.to_ical()

    def write(self, dest: Path | str) -> int:
        """Write the calendar to ``dest`` and return the number of events."""
        path = Path(dest)
        if path.parent != Path('.'):
            path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.to_ical())
        logger.info(f"Wrote {self.count} events to {path}")
        return self.count

    @staticmethod
    def _uid(event: EventCandidate) -> str:
        key = f"{event.url or event.title}|{event.start.isoformat()}|{event.location}"
        digest = hashlib.sha1(key.encode('utf-8')).hexdigest()[:16]
        return f"{digest}@bfi-calendar"
