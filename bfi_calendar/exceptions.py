"""Exceptions raised while crawling BFI listings."""

from typing import Optional


class CrawlError(Exception):
    """Base class for all crawl failures."""


class DateFormatError(CrawlError, ValueError):
    """Raised when a listing timestamp cannot be parsed."""

    def __init__(self, text: str, reason: str):
        self.text = text
        self.reason = reason
        super().__init__(f"Cannot parse date '{text}': {reason}")


class UnknownMonthError(CrawlError, LookupError):
    """Raised when a listing timestamp names a month we don't know."""

    def __init__(self, month: str):
        self.month = month
        super().__init__(f"Unknown month name '{month}'")


class FetchError(CrawlError):
    """Raised when a page cannot be fetched or parsed into a document."""

    def __init__(self, url: str, original: Exception):
        self.url = url
        self.original = original
        super().__init__(f"Fetch failed for {url}: {original}")


class ExtractionError(CrawlError):
    """Raised when a page lacks data that every film page must carry."""


class GateCancelled(CrawlError):
    """Raised in a waiter that was rejected by ``ConcurrencyGate.purge``."""


class NoSeedsError(CrawlError):
    """Raised when the films index yields no crawlable links."""


class SeedCrawlFailed(CrawlError):
    """Aggregate failure for a run: which seed broke, where and why."""

    def __init__(self, seed: str, locator: Optional[str], cause: str):
        self.seed = seed
        self.locator = locator
        self.cause = cause
        super().__init__(f"Crawl of {seed} failed at {locator or seed}: {cause}")
