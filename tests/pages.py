"""Canned BFI pages and an in-memory renderer for the crawl tests."""

import json
from typing import Dict
from typing import List
from typing import Optional
from typing import Sequence

from bs4 import BeautifulSoup

from bfi_calendar.exceptions import FetchError
from bfi_calendar.scraper.http_client import RenderedPage

BASE_URL = "https://whatson.example.org/Online/default.asp"

COLUMNS = ["id", "start_date", "venue_name", "availability_status"]


def context_script(
    rows: Sequence[Sequence[object]],
    current_page: int = 1,
    total_pages: int = 1,
    article_id: str = "film-123",
    token: str = "ab,c/d",
    columns: Sequence[str] = COLUMNS,
    trailer: str = "jQuery(function () { initSearch(articleContext); });",
) -> str:
    """Inline script in the shape the box office embeds in film pages."""
    return (
        "var articleContext = {\n"
        f"  articleId: '{article_id}',\n"
        f"  searchNames: {json.dumps(list(columns))},\n"
        f"  searchResults: {json.dumps([list(r) for r in rows])},\n"
        f"  pagination: {{current_page: '{current_page}', total_pages: '{total_pages}'}},\n"
        "};\n"
        f"articleContext.sToken = {json.dumps(token)};\n"
        f"{trailer}\n"
    )


def film_page(
    script: Optional[str],
    title: Optional[str] = "  Vertigo  ",
    description: Optional[str] = " A detective falls for a mysterious woman. ",
    info_values: Sequence[str] = ("USA 1958", "Dir Alfred Hitchcock", "128min"),
) -> str:
    parts: List[str] = ["<html><head>"]
    parts.append('<script src="/js/jquery.js"></script>')
    parts.append("<script>window.dataLayer = [];</script>")
    if script is not None:
        parts.append(f"<script>{script}</script>")
    parts.append("</head><body>")
    if title is not None:
        parts.append(f'<h1 class="Page__heading">{title}</h1>')
    if description is not None:
        parts.append(f'<p class="Page__description">{description}</p>')
    parts.append('<div class="Film-info">')
    for value in info_values:
        parts.append(f'<span class="Film-info__information__value">{value}</span>')
    parts.append("</div></body></html>")
    return "".join(parts)


def parse(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


class FakeRenderer:
    """In-memory PageRenderer serving canned HTML by URL."""

    def __init__(self, pages: Dict[str, str], failures: Optional[Dict[str, Exception]] = None):
        self.pages = pages
        self.failures = failures or {}
        self.rendered: List[str] = []
        self.opened: List[RenderedPage] = []

    async def render(self, locator: str) -> RenderedPage:
        self.rendered.append(locator)
        if locator in self.failures:
            raise FetchError(locator, self.failures[locator])
        if locator not in self.pages:
            raise FetchError(locator, LookupError("no such page"))
        page = RenderedPage(locator, parse(self.pages[locator]))
        self.opened.append(page)
        return page

    @property
    def all_closed(self) -> bool:
        return all(page.closed for page in self.opened)
