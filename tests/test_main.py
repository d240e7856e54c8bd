import pytest
from icalendar import Calendar

from bfi_calendar import main as main_module
from bfi_calendar.settings import Settings

from pages import BASE_URL
from pages import FakeRenderer
from pages import context_script
from pages import film_page

# Mark all tests in this file as async
pytestmark = pytest.mark.asyncio

FILM_A = "https://whatson.example.org/Online/article/vertigo"
FILM_B = "https://whatson.example.org/Online/article/psycho"

INDEX_HTML = """
<div class="article-container main-article-body"><div class="Rich-text"><ul>
  <li><a href="article/vertigo">Vertigo</a></li>
  <li><a href="article/psycho">Psycho</a></li>
</ul></div></div>
"""


@pytest.fixture
def settings():
    return Settings(base_url=BASE_URL, max_concurrent_requests=2)


@pytest.fixture
def site(settings):
    return {
        settings.index_url: INDEX_HTML,
        FILM_A: film_page(
            context_script([[1, "Saturday 5 October 2024 18:10", "NFT1", "S"]]),
            title="Vertigo",
        ),
        FILM_B: film_page(
            context_script([[2, "Sunday 6 October 2024 20:00", "NFT2", "X"]]),
            title="Psycho",
        ),
    }


def use_renderer(monkeypatch, renderer):
    monkeypatch.setattr(main_module, "HttpPageRenderer", lambda session, settings: renderer)


async def test_run_writes_calendar_for_every_film(monkeypatch, tmp_path, settings, site):
    use_renderer(monkeypatch, FakeRenderer(site))
    dest = tmp_path / "bfi.ics"

    code = await main_module.run(dest, settings, concurrency=2, max_pages=5)

    assert code == 0
    events = Calendar.from_ical(dest.read_bytes()).walk("VEVENT")
    assert sorted(str(e["summary"]) for e in events) == ["Psycho", "Vertigo"]


async def test_run_keeps_events_of_other_films_on_failure(monkeypatch, tmp_path, settings, site):
    renderer = FakeRenderer(site, failures={FILM_B: ConnectionResetError("reset")})
    use_renderer(monkeypatch, renderer)
    dest = tmp_path / "bfi.ics"

    code = await main_module.run(dest, settings, concurrency=2, max_pages=5)

    assert code == 1
    events = Calendar.from_ical(dest.read_bytes()).walk("VEVENT")
    assert [str(e["summary"]) for e in events] == ["Vertigo"]


async def test_run_without_films_exits_nonzero(monkeypatch, tmp_path, settings):
    use_renderer(monkeypatch, FakeRenderer({settings.index_url: "<html></html>"}))
    dest = tmp_path / "bfi.ics"

    code = await main_module.run(dest, settings, concurrency=2, max_pages=5)

    assert code == 1
    assert not dest.exists()


async def test_parser_defaults_come_from_settings(settings):
    args = main_module.build_parser(settings).parse_args([])
    assert args.concurrency == 2
    assert args.max_pages == settings.max_pages_per_seed
    assert args.dest == settings.output_path


async def test_run_exits_nonzero_when_index_cannot_be_fetched(monkeypatch, tmp_path, settings, site):
    renderer = FakeRenderer(site, failures={settings.index_url: ConnectionResetError("reset")})
    use_renderer(monkeypatch, renderer)
    dest = tmp_path / "bfi.ics"

    code = await main_module.run(dest, settings, concurrency=2, max_pages=5)

    assert code == 1
    assert not dest.exists()
    assert renderer.rendered == [settings.index_url]
