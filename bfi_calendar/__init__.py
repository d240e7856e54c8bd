"""
BFI screenings calendar.

Crawls the BFI box office website for film screenings and turns them into an
ICS calendar that can be subscribed to from any calendar application.

Main Components:
- Gate: FIFO concurrency gate bounding the films crawled at once
- Extractor: reads title, runtime and the embedded search results of a film page
- Worker: follows one film's result pages in order
- Orchestrator: discovers films on the index and runs one worker per film
- Calendar: ICS generation following RFC 5545

Usage:
    # Crawl everything into out.ics
    python -m bfi_calendar.main out.ics

    # Crawl programmatically
    from bfi_calendar.calendar_generator import CalendarGenerator
    from bfi_calendar.scraper import CrawlOrchestrator, RecordExtractor

    calendar = CalendarGenerator()
    orchestrator = CrawlOrchestrator(renderer, RecordExtractor(base_url), calendar.add_event)
    report = await orchestrator.run(seeds)
"""

__version__ = "1.0.0"
__license__ = "MIT"

# Public API for external usage
from bfi_calendar.calendar_generator import CalendarGenerator
from bfi_calendar.models import CrawlOutcome
from bfi_calendar.models import CrawlReport
from bfi_calendar.models import EventCandidate
from bfi_calendar.scraper.orchestrator import CrawlOrchestrator

__all__ = [
    "CalendarGenerator",
    "CrawlOrchestrator",
    "CrawlOutcome",
    "CrawlReport",
    "EventCandidate",
]
