"""
Running one ``CrawlWorker`` per film under a shared ``ConcurrencyGate``.

Failure policy: a failing film does not cancel the others. Every worker runs
to completion, the report keeps all outcomes and ``first_failure`` names the
earliest failed film in seed order.
"""

import asyncio
import logging
from datetime import datetime
from typing import List
from typing import Sequence
from urllib.parse import urljoin

from bfi_calendar.exceptions import NoSeedsError
from bfi_calendar.models import CrawlOutcome
from bfi_calendar.models import CrawlReport
from bfi_calendar.models import WorkerState
from bfi_calendar.scraper.extractor import RecordExtractor
from bfi_calendar.scraper.gate import ConcurrencyGate
from bfi_calendar.scraper.http_client import PageRenderer
from bfi_calendar.scraper.worker import CrawlWorker
from bfi_calendar.scraper.worker import EventSink

logger = logging.getLogger(__name__)

FILM_LINK_SELECTOR = (
    ".article-container.main-article-body .Rich-text > ul > li > a[href^='article/']"
)


async def discover_seeds(renderer: PageRenderer, index_locator: str) -> List[str]:
    """
    Collect the film page URLs listed on the films index.

    Raises:
        NoSeedsError: the index lists no films, usually a layout change or a
            blocked request.
    """
    page = await renderer.render(index_locator)
    try:
        seeds = [
            urljoin(index_locator, link["href"])
            for link in page.document.select(FILM_LINK_SELECTOR)
        ]
    finally:
        await page.close()

    logger.info(f"Found {len(seeds)} films")
    if not seeds:
        raise NoSeedsError(f"No film links found on {index_locator}")
    return seeds


class CrawlOrchestrator:
    """
    Crawls many films concurrently, at most ``capacity`` at a time.

    Args:
        renderer: Source of parsed pages.
        extractor: Page-to-events extractor shared by all workers.
        sink: Receives every event, one call per event.
        capacity: Maximum number of films in flight.
        max_pages: Page bound per film.
    """

    def __init__(
        self,
        renderer: PageRenderer,
        extractor: RecordExtractor,
        sink: EventSink,
        capacity: int = 8,
        max_pages: int = 50,
    ) -> None:
        self.renderer = renderer
        self.extractor = extractor
        self.sink = sink
        self.capacity = capacity
        self.max_pages = max_pages
        self.purged = 0

    async def run(self, seeds: Sequence[str]) -> CrawlReport:
        if not seeds:
            raise NoSeedsError("No seeds to crawl")

        report = CrawlReport(started_at=datetime.now())
        gate = ConcurrencyGate(self.capacity)
        workers = [
            CrawlWorker(seed, self.renderer, self.extractor, self.sink, self.max_pages)
            for seed in seeds
        ]
        tasks = [asyncio.ensure_future(gate.run_exclusively(worker.run)) for worker in workers]

        try:
            # asyncio.wait leaves the tasks running when this coroutine is cancelled.
            await asyncio.wait(tasks)
        except asyncio.CancelledError:
            # Reject the queued workers before anything else touches the gate.
            self.purged = gate.purge()
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.warning(f"Crawl cancelled; {self.purged} films never started")
            raise

        for worker, task in zip(workers, tasks):
            error = task.exception()
            if error is None:
                report.add_outcome(task.result())
            elif isinstance(error, Exception):
                # Never admitted by the gate, or failed outside the worker's own handling.
                report.add_outcome(
                    CrawlOutcome(
                        seed=worker.seed,
                        state=WorkerState.FAILED,
                        events=worker.events,
                        pages=worker.pages,
                        failed_locator=worker.locator or worker.seed,
                        error=str(error),
                        error_type=type(error).__name__,
                    )
                )
            else:
                raise error

        report.finish()
        logger.info(
            f"Crawled {len(report.outcomes)} films: {report.pages_total} pages, "
            f"{report.events_total} events, {len(report.failures)} failed"
        )
        return report
