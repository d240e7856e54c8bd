"""
Crawling components for the BFI calendar.

This package contains all scraping-related functionality including:
- Bounded concurrency for page fetches
- HTTP page fetching with retries
- Extraction of screenings from embedded page state
- Per-film pagination and the run-wide orchestration
"""

from bfi_calendar.scraper.extractor import RecordExtractor
from bfi_calendar.scraper.gate import ConcurrencyGate
from bfi_calendar.scraper.http_client import HttpPageRenderer
from bfi_calendar.scraper.orchestrator import CrawlOrchestrator
from bfi_calendar.scraper.worker import CrawlWorker

__all__ = [
    "ConcurrencyGate",
    "CrawlOrchestrator",
    "CrawlWorker",
    "HttpPageRenderer",
    "RecordExtractor",
]
