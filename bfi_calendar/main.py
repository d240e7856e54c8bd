"""
Command line entry point: crawl the BFI listings and write an ICS file.

Usage:
    python -m bfi_calendar.main out.ics
    python -m bfi_calendar.main --concurrency 4 --max-pages 20 bfi.ics
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List
from typing import Optional

import structlog

from bfi_calendar.calendar_generator import CalendarGenerator
from bfi_calendar.exceptions import FetchError
from bfi_calendar.exceptions import NoSeedsError
from bfi_calendar.exceptions import SeedCrawlFailed
from bfi_calendar.models import CrawlReport
from bfi_calendar.scraper.extractor import RecordExtractor
from bfi_calendar.scraper.http_client import HttpPageRenderer
from bfi_calendar.scraper.http_client import PageRenderer
from bfi_calendar.scraper.http_client import create_session
from bfi_calendar.scraper.orchestrator import CrawlOrchestrator
from bfi_calendar.scraper.orchestrator import discover_seeds
from bfi_calendar.settings import Settings
from bfi_calendar.settings import get_settings

log = structlog.get_logger("bfi_calendar.main")


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bfi-calendar",
        description="Harvest BFI screenings into an iCalendar file.",
    )
    parser.add_argument(
        "dest",
        nargs="?",
        type=Path,
        default=settings.output_path,
        help=f"Output file (default: {settings.output_path})",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=settings.max_concurrent_requests,
        help="Films crawled at the same time",
    )
    parser.add_argument(
        "--max-pages",
        type=int,
        default=settings.max_pages_per_seed,
        help="Result pages followed per film at most",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override the configured log level",
    )
    return parser


async def crawl(
    renderer: PageRenderer,
    calendar: CalendarGenerator,
    settings: Settings,
    concurrency: int,
    max_pages: int,
) -> CrawlReport:
    """Discover every film on the index and crawl them into ``calendar``."""
    seeds = await discover_seeds(renderer, settings.index_url)
    orchestrator = CrawlOrchestrator(
        renderer,
        RecordExtractor(settings.base_url),
        calendar.add_event,
        capacity=concurrency,
        max_pages=max_pages,
    )
    return await orchestrator.run(seeds)


async def run(dest: Path, settings: Settings, concurrency: int, max_pages: int) -> int:
    calendar = CalendarGenerator(settings)
    async with create_session(settings) as session:
        renderer = HttpPageRenderer(session, settings)
        try:
            report = await crawl(renderer, calendar, settings, concurrency, max_pages)
        except NoSeedsError as e:
            log.error("no films found", error=str(e))
            return 1
        except FetchError as e:
            log.error("films index unavailable", url=e.url, error=str(e.original))
            return 1

    # Screenings from films that failed part-way are written too.
    written = calendar.write(dest)
    log.info("crawl finished", dest=str(dest), events=written, **report.model_dump_metrics())

    try:
        report.raise_for_failure()
    except SeedCrawlFailed as e:
        for line in report.errors:
            log.error("film failed", detail=line)
        log.error("crawl incomplete", seed=e.seed, locator=e.locator, cause=e.cause)
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    settings = get_settings()
    args = build_parser(settings).parse_args(argv)
    if args.log_level:
        settings = settings.model_copy(update={"log_level": args.log_level.upper()})
    settings.setup_logging()
    return asyncio.run(run(args.dest, settings, args.concurrency, args.max_pages))


if __name__ == "__main__":
    sys.exit(main())
