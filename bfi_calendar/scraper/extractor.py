"""
Extraction of screenings from a rendered BFI film page.

A film page carries human-readable details (title, description, runtime) and
an inline script whose ``articleContext`` object holds the screening search
results as parallel lists: ``searchNames`` names the columns and every entry
of ``searchResults`` is one row of values in that column order.
"""

import logging
import re
from dataclasses import dataclass
from dataclasses import field
from datetime import timedelta
from typing import Any
from typing import Dict
from typing import Iterator
from typing import List
from typing import Optional

from bs4 import BeautifulSoup

from bfi_calendar.exceptions import ExtractionError
from bfi_calendar.models import EventCandidate
from bfi_calendar.scraper.dates import parse_date
from bfi_calendar.scraper.locators import next_page_url
from bfi_calendar.scraper.script_context import capture_assignment

logger = logging.getLogger(__name__)

CONTEXT_NAME = "articleContext"
CONTEXT_MARKER = f"var {CONTEXT_NAME} ="

# Availability code for screenings with tickets left; anything else counts as sold out.
AVAILABLE = "S"

RUNTIME_RE = re.compile(r"\b(\d+)(?=\s?min\b)")


@dataclass
class PageExtraction:
    """What one film page yields: screenings plus where to go next."""

    title: str
    description: str
    runtime: Optional[int] = None
    current_page: Optional[int] = None
    total_pages: Optional[int] = None
    next_locator: Optional[str] = None
    events: Iterator[EventCandidate] = field(default_factory=lambda: iter(()))


class RecordExtractor:
    """
    Turns a film page into ``EventCandidate``s and the next result page URL.

    Args:
        base_url: CMS entry point used to build next-page URLs.
    """

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url

    def extract(self, document: BeautifulSoup) -> PageExtraction:
        """
        Extract page-level details eagerly and screenings lazily.

        Rows are parsed while ``events`` is consumed, so a bad date on row
        three surfaces after rows one and two were handed out.

        Raises:
            ExtractionError: the page has no title or description.
        """
        title = self._required_text(document, "h1.Page__heading", "title")
        description = self._required_text(document, "p.Page__description", "description")
        runtime = self._runtime(document)

        context = self._article_context(document)
        if context is None or "searchResults" not in context:
            logger.debug(f"No search results on page for '{title}'")
            return PageExtraction(title=title, description=description, runtime=runtime)

        pagination = context.get("pagination") or {}
        current_page = _to_int(pagination.get("current_page"))
        total_pages = _to_int(pagination.get("total_pages"))
        logger.info(f"Scraping '{title}' page {current_page} of {total_pages}")

        next_locator = None
        if current_page is not None and total_pages is not None and current_page < total_pages:
            next_locator = next_page_url(
                self.base_url,
                str(context.get("sToken", "")),
                current_page + 1,
                str(context.get("articleId", "")),
            )

        rows = _project_rows(context.get("searchNames") or [], context["searchResults"] or [])
        return PageExtraction(
            title=title,
            description=description,
            runtime=runtime,
            current_page=current_page,
            total_pages=total_pages,
            next_locator=next_locator,
            events=self._events(rows, title, description, runtime),
        )

    def _events(
        self,
        rows: List[Dict[str, Any]],
        title: str,
        description: str,
        runtime: Optional[int],
    ) -> Iterator[EventCandidate]:
        duration = timedelta(minutes=runtime or 0)
        for row in rows:
            raw_start = row.get("start_date")
            if not raw_start:
                raise ExtractionError(f"Search result for '{title}' has no start_date: {row}")
            start = parse_date(str(raw_start))
            yield EventCandidate(
                title=title,
                description=description,
                start=start,
                end=start + duration,
                location=str(row.get("venue_name") or ""),
                sold_out=row.get("availability_status") != AVAILABLE,
            )

    @staticmethod
    def _required_text(document: BeautifulSoup, selector: str, what: str) -> str:
        node = document.select_one(selector)
        if node is None:
            raise ExtractionError(f"Page has no {what} ({selector})")
        return node.get_text().strip()

    @staticmethod
    def _runtime(document: BeautifulSoup) -> Optional[int]:
        """Runtime in minutes from the first info value like ``"94 min"``."""
        for node in document.select(".Film-info__information__value"):
            match = RUNTIME_RE.search(node.get_text())
            if match:
                return int(match.group(1))
        return None

    @staticmethod
    def _article_context(document: BeautifulSoup) -> Optional[Dict[str, Any]]:
        for node in document.select("script:not([src])"):
            script = node.string or node.get_text()
            if CONTEXT_MARKER not in script:
                continue
            capture = capture_assignment(script, CONTEXT_NAME)
            if capture.error is not None:
                # Expected: the rest of the script is code, not data.
                logger.debug(f"Stopped reading {CONTEXT_NAME}: {capture.error}")
            return capture.value
        return None


def _project_rows(columns: List[Any], rows: List[Any]) -> List[Dict[str, Any]]:
    """Zip every result row with the column names, by position."""
    names = [str(column) for column in columns]
    return [dict(zip(names, row)) for row in rows]


def _to_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None
