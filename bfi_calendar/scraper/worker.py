"""
Crawling one film: follow its result pages until the last one.

Each page is fetched, extracted and closed before the next one is requested,
so the pages of a film are always processed in order and never concurrently.
"""

import logging
from contextlib import aclosing
from typing import AsyncIterator
from typing import Callable
from typing import Optional
from typing import Tuple

from bfi_calendar.models import CrawlOutcome
from bfi_calendar.models import EventCandidate
from bfi_calendar.models import WorkerState
from bfi_calendar.scraper.extractor import PageExtraction
from bfi_calendar.scraper.extractor import RecordExtractor
from bfi_calendar.scraper.http_client import PageRenderer

logger = logging.getLogger(__name__)

EventSink = Callable[[EventCandidate], None]


class CrawlWorker:
    """
    State machine for one seed URL.

    ``START -> FETCHING -> EXTRACTING -> FOLLOWING -> FETCHING ...`` until a
    page announces no successor (``DONE``) or something raises (``FAILED``).
    Events go to ``sink`` one at a time as soon as they are extracted.
    """

    def __init__(
        self,
        seed: str,
        renderer: PageRenderer,
        extractor: RecordExtractor,
        sink: EventSink,
        max_pages: int = 50,
    ) -> None:
        self.seed = seed
        self.renderer = renderer
        self.extractor = extractor
        self.sink = sink
        self.max_pages = max_pages

        self.state = WorkerState.START
        self.locator: Optional[str] = None
        self.pages = 0
        self.events = 0
        self.truncated = False

    async def run(self) -> CrawlOutcome:
        """Crawl the whole chain; failures end up in the returned outcome."""
        try:
            async with aclosing(self._pages()) as chain:
                async for _locator, extraction in chain:
                    for event in extraction.events:
                        self.sink(event.model_copy(update={"url": self.seed}))
                        self.events += 1
                    self.pages += 1
        except Exception as e:
            self.state = WorkerState.FAILED
            logger.error(f"Crawl of {self.seed} failed at {self.locator}: {type(e).__name__}: {e}")
            return self._outcome(error=e)

        self.state = WorkerState.DONE
        logger.debug(f"Crawl of {self.seed} done: {self.pages} pages, {self.events} events")
        return self._outcome()

    async def _pages(self) -> AsyncIterator[Tuple[str, PageExtraction]]:
        """Lazily walk the chain of result pages starting at the seed."""
        self.locator = self.seed
        for _ in range(self.max_pages):
            self.state = WorkerState.FETCHING
            page = await self.renderer.render(self.locator)
            try:
                self.state = WorkerState.EXTRACTING
                extraction = self.extractor.extract(page.document)
            finally:
                await page.close()

            yield self.locator, extraction

            if extraction.next_locator is None:
                return
            self.state = WorkerState.FOLLOWING
            self.locator = extraction.next_locator

        self.truncated = True
        logger.warning(
            f"Stopped following {self.seed} after {self.max_pages} pages; "
            f"next page would have been {self.locator}"
        )

    def _outcome(self, error: Optional[Exception] = None) -> CrawlOutcome:
        return CrawlOutcome(
            seed=self.seed,
            state=self.state,
            events=self.events,
            pages=self.pages,
            failed_locator=self.locator if error is not None else None,
            error=str(error) if error is not None else None,
            error_type=type(error).__name__ if error is not None else None,
            truncated=self.truncated,
        )
