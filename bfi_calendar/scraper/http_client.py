"""
Fetching and parsing BFI pages.

The crawl core only needs something that turns a URL into a parsed document
(``PageRenderer``). ``HttpPageRenderer`` is the aiohttp implementation used in
production; the result pages are server-rendered, so the HTML as served
already contains the inline scripts the extractor reads.
"""

import asyncio
import logging
from typing import Optional
from typing import Protocol

import aiohttp
from bs4 import BeautifulSoup

from bfi_calendar.exceptions import FetchError
from bfi_calendar.settings import Settings
from bfi_calendar.settings import get_settings

logger = logging.getLogger(__name__)

RETRY_STATUSES = {429, 500, 502, 503, 504}


class RenderedPage:
    """A parsed page; ``close()`` frees the document tree."""

    def __init__(self, locator: str, document: BeautifulSoup) -> None:
        self.locator = locator
        self.document = document
        self.closed = False

    async def close(self) -> None:
        if not self.closed:
            self.document.decompose()
            self.closed = True


class PageRenderer(Protocol):
    async def render(self, locator: str) -> RenderedPage:
        """Return the fully loaded page at ``locator`` or raise ``FetchError``."""
        ...


def create_session(settings: Optional[Settings] = None) -> aiohttp.ClientSession:
    """Create the client session shared by all page fetches of a run."""
    settings = settings or get_settings()
    return aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(total=settings.request_timeout),
        headers={
            "User-Agent": settings.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-GB,en;q=0.7",
            # The CDN in front of the box office serves stale search pages otherwise.
            "Pragma": "no-cache",
            "Cache-Control": "no-cache",
        },
    )


class HttpPageRenderer:
    """
    ``PageRenderer`` backed by an aiohttp session.

    Transport errors and 429/5xx responses are retried with exponential
    backoff; other statuses fail immediately.
    """

    def __init__(self, session: aiohttp.ClientSession, settings: Optional[Settings] = None) -> None:
        self.session = session
        self.settings = settings or get_settings()

    async def render(self, locator: str) -> RenderedPage:
        html = await self.fetch(locator)
        return RenderedPage(locator, BeautifulSoup(html, "html.parser"))

    async def fetch(self, url: str) -> str:
        """Return the body of ``url``, retrying transient failures."""
        attempts = self.settings.max_retries + 1
        delay = self.settings.retry_backoff
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            try:
                async with self.session.get(url) as resp:
                    if resp.status == 200:
                        try:
                            text = await resp.text()
                        except UnicodeDecodeError as e:
                            # Body does not match its declared charset.
                            raise FetchError(url, e) from e
                        logger.debug(f"[FETCH] try={attempt} status=200 url={url}")
                        return text
                    error = aiohttp.ClientResponseError(
                        resp.request_info,
                        resp.history,
                        status=resp.status,
                        message=resp.reason or "",
                    )
                    if resp.status not in RETRY_STATUSES:
                        raise FetchError(url, error)
                    last_error = error
                    logger.warning(f"[FETCH] try={attempt} status={resp.status} url={url}")
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_error = e
                logger.warning(f"[FETCH] try={attempt} error={type(e).__name__} url={url} msg={e}")

            if attempt < attempts:
                await asyncio.sleep(delay)
                delay *= 2

        raise FetchError(url, last_error)
