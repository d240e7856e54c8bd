import asyncio

import pytest

from bfi_calendar.exceptions import NoSeedsError
from bfi_calendar.exceptions import SeedCrawlFailed
from bfi_calendar.models import WorkerState
from bfi_calendar.scraper.extractor import RecordExtractor
from bfi_calendar.scraper.orchestrator import CrawlOrchestrator
from bfi_calendar.scraper.orchestrator import discover_seeds

from pages import BASE_URL
from pages import FakeRenderer
from pages import context_script
from pages import film_page

# Mark all tests in this file as async
pytestmark = pytest.mark.asyncio

INDEX = "https://whatson.example.org/Online/default.asp?BOparam::WScontent::loadArticle::permalink=filmsindex"

INDEX_HTML = """
<html><body>
<div class="article-container main-article-body">
  <div class="Rich-text">
    <ul>
      <li><a href="article/vertigo">Vertigo</a></li>
      <li><a href="article/rear-window">Rear Window</a></li>
      <li><a href="https://elsewhere.example.org/">Not a film</a></li>
    </ul>
  </div>
</div>
<ul><li><a href="article/footer">Footer</a></li></ul>
</body></html>
"""


def seed(n):
    return f"https://whatson.example.org/Online/article/film-{n}"


def single_page(n, rows=1):
    return film_page(
        context_script(
            [[i, "Saturday 5 October 2024 18:10", f"Screen {n}", "S"] for i in range(rows)]
        ),
        title=f"Film {n}",
    )


class SlowRenderer(FakeRenderer):
    """Tracks how many renders are in flight at once."""

    def __init__(self, pages, **kwargs):
        super().__init__(pages, **kwargs)
        self.active = 0
        self.peak = 0

    async def render(self, locator):
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(0.01)
            return await super().render(locator)
        finally:
            self.active -= 1


async def test_discover_seeds_resolves_film_links():
    renderer = FakeRenderer({INDEX: INDEX_HTML})

    seeds = await discover_seeds(renderer, INDEX)

    assert seeds == [
        "https://whatson.example.org/Online/article/vertigo",
        "https://whatson.example.org/Online/article/rear-window",
    ]
    assert renderer.all_closed


async def test_discover_seeds_fails_fast_without_links():
    renderer = FakeRenderer({INDEX: "<html><body>Access denied</body></html>"})
    with pytest.raises(NoSeedsError):
        await discover_seeds(renderer, INDEX)


async def test_run_without_seeds_fails_before_any_work():
    renderer = FakeRenderer({})
    orchestrator = CrawlOrchestrator(renderer, RecordExtractor(BASE_URL), [].append)

    with pytest.raises(NoSeedsError):
        await orchestrator.run([])
    assert renderer.rendered == []


async def test_runs_every_seed_within_capacity():
    pages = {seed(n): single_page(n, rows=2) for n in range(6)}
    renderer = SlowRenderer(pages)
    sink = []
    orchestrator = CrawlOrchestrator(renderer, RecordExtractor(BASE_URL), sink.append, capacity=2)

    report = await orchestrator.run([seed(n) for n in range(6)])

    assert report.success
    assert report.completed_at is not None
    assert report.events_total == 12
    assert len(sink) == 12
    assert renderer.peak == 2
    assert [o.seed for o in report.outcomes] == [seed(n) for n in range(6)]
    report.raise_for_failure()


async def test_failed_seed_does_not_stop_siblings():
    pages = {seed(n): single_page(n) for n in range(4)}
    renderer = FakeRenderer(pages, failures={seed(1): TimeoutError("slow")})
    sink = []
    orchestrator = CrawlOrchestrator(renderer, RecordExtractor(BASE_URL), sink.append, capacity=2)

    report = await orchestrator.run([seed(n) for n in range(4)])

    assert not report.success
    assert len(sink) == 3
    assert report.first_failure.seed == seed(1)
    assert report.first_failure.state is WorkerState.FAILED
    assert len(report.errors) == 1
    assert seed(1) in report.errors[0]

    with pytest.raises(SeedCrawlFailed) as exc_info:
        report.raise_for_failure()
    assert exc_info.value.seed == seed(1)
    assert exc_info.value.locator == seed(1)
    assert "FetchError" in exc_info.value.cause


async def test_first_failure_follows_seed_order():
    pages = {seed(n): single_page(n) for n in range(3)}
    failures = {seed(2): OSError("a"), seed(0): OSError("b")}
    renderer = FakeRenderer(pages, failures=failures)
    orchestrator = CrawlOrchestrator(renderer, RecordExtractor(BASE_URL), [].append, capacity=3)

    report = await orchestrator.run([seed(n) for n in range(3)])

    assert [o.failed for o in report.outcomes] == [True, False, True]
    assert report.first_failure.seed == seed(0)
    assert report.model_dump_metrics()["films_failed"] == 2


async def test_cancelling_the_run_purges_waiting_workers():
    started = []
    cancelled = []

    class BlockingRenderer(FakeRenderer):
        async def render(self, locator):
            started.append(locator)
            try:
                await asyncio.sleep(3600)
            except asyncio.CancelledError:
                cancelled.append(locator)
                raise

    renderer = BlockingRenderer({})
    orchestrator = CrawlOrchestrator(renderer, RecordExtractor(BASE_URL), [].append, capacity=1)

    task = asyncio.create_task(orchestrator.run([seed(n) for n in range(3)]))
    for _ in range(5):
        await asyncio.sleep(0)
    assert started == [seed(0)]

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert orchestrator.purged == 2
    assert started == [seed(0)]
    assert cancelled == [seed(0)]
