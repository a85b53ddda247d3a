from datetime import date
from pathlib import Path

import pytest
import responses as rsps
from bs4 import BeautifulSoup

from indianaconcerts.errors import UpstreamError
from indianaconcerts.scrapers import SCRAPERS
from indianaconcerts.scrapers.hifi import (
    HIFI_EVENTS_URL,
    HiFiScraper,
    extract_date_from_text,
    find_cards,
    find_next_page_url,
    find_upcoming_scope,
    infer_year,
    normalize_page_url,
    parse_card,
    parse_events_from_html,
)

FIXTURES = Path(__file__).parent / "fixtures"
TODAY = date(2024, 3, 15)


def _fixture(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


def _card(html: str):
    return BeautifulSoup(html, "lxml").select_one(".nevent")


def test_scraper_registry_is_dict():
    assert isinstance(SCRAPERS, dict)


def test_all_scrapers_have_venue_key():
    for key, cls in SCRAPERS.items():
        scraper = cls({})
        assert scraper.venue_key == key, (
            f"Scraper class {cls.__name__} has venue_key='{scraper.venue_key}' "
            f"but is registered under key '{key}'"
        )


# --- Year inference ---

def test_infer_year_past_month_rolls_to_next_year():
    assert infer_year(1, 10, TODAY) == date(2025, 1, 10)


def test_infer_year_yesterday_is_not_bumped():
    assert infer_year(3, 14, TODAY) == date(2024, 3, 14)


def test_infer_year_two_days_back_is_bumped():
    assert infer_year(3, 13, TODAY) == date(2025, 3, 13)


def test_infer_year_future_month_unchanged():
    assert infer_year(12, 1, TODAY) == date(2024, 12, 1)


def test_infer_year_leap_day_moves_to_next_leap_year():
    assert infer_year(2, 29, date(2027, 1, 10)) == date(2028, 2, 29)
    assert extract_date_from_text("Tue Feb 29 | HI-FI", date(2027, 3, 15)) == date(2028, 2, 29)


def test_infer_year_leap_day_without_a_leap_year_ahead_is_rejected():
    # 2028-02-29 is past and 2029 has no Feb 29
    assert extract_date_from_text("Thu Feb 29 | HI-FI", date(2028, 3, 15)) is None


def test_extract_date_from_text():
    assert extract_date_from_text("Sat  Mar\n 16 | HI-FI", TODAY) == date(2024, 3, 16)
    assert extract_date_from_text("Sept 7 | HI-FI", TODAY) == date(2024, 9, 7)
    assert extract_date_from_text("Fri JAN 10 |", TODAY) == date(2025, 1, 10)


def test_extract_date_from_text_rejects_unparseable():
    assert extract_date_from_text("Mar 16 HI-FI", TODAY) is None       # no separator
    assert extract_date_from_text("Foo 16 | HI-FI", TODAY) is None     # not a month
    assert extract_date_from_text("Feb 30 | HI-FI", TODAY) is None     # impossible day
    assert extract_date_from_text("", TODAY) is None


# --- Scope and card lookup ---

def test_scope_is_block_holding_heading():
    soup = BeautifulSoup(_fixture("hifi_page1.html"), "lxml")
    scope = find_upcoming_scope(soup)
    assert "block" in scope.get("class")
    cards = find_cards(soup, scope)
    assert len(cards) == 3
    assert all("Related Show" not in c.get_text() for c in cards)


def test_scope_falls_back_to_whole_document_without_heading():
    html = """
    <div class="nevents"><div class="nevent">
      <h3><a href="/event/x/">X</a></h3><div class="nevent-date-venue">Mar 20 | HI-FI</div>
    </div></div>
    """
    soup = BeautifulSoup(html, "lxml")
    scope = find_upcoming_scope(soup)
    assert scope is soup
    assert len(find_cards(soup, scope)) == 1


def test_cards_widen_to_document_when_scope_is_empty():
    html = """
    <div class="block"><h1>Upcoming Events</h1><p>Check back soon.</p></div>
    <div class="nevents"><div class="nevent">
      <h3><a href="/event/elsewhere/">Elsewhere</a></h3>
      <div class="nevent-date-venue">Apr 1 | HI-FI</div>
    </div></div>
    """
    soup = BeautifulSoup(html, "lxml")
    scope = find_upcoming_scope(soup)
    assert scope is not soup
    cards = find_cards(soup, scope)
    assert [c.h3.get_text(strip=True) for c in cards] == ["Elsewhere"]


# --- Card parsing ---

def test_parse_card_builds_event():
    card = _card("""
    <div class="nevents"><div class="nevent">
      <h3><a href="/event/the-band/">The  Band &amp; Friends!</a></h3>
      <a class="nevent-title" href="/event/the-band/">The Band</a>
      <div class="nevent-date-venue">Sat Mar 16 | HI-FI</div>
    </div></div>
    """)
    event = parse_card(card, HIFI_EVENTS_URL, TODAY)
    assert event.name == "The Band & Friends!"
    assert event.id == "hifi-2024-03-16-the-band-friends"
    assert event.local_date == date(2024, 3, 16)
    assert event.local_time is None
    assert event.url == "https://hifiindy.com/event/the-band/"
    assert event.venue_key == "hifi"
    assert event.venue_name == "HI-FI"


def test_parse_card_falls_back_to_heading_link_and_card_text():
    card = _card("""
    <div class="nevents"><div class="nevent">
      <h3><a href="https://tixr.com/e/123">Late Show</a></h3>
      <p>Doors 8pm</p><p>Tue Apr 2 | HI-FI</p>
    </div></div>
    """)
    event = parse_card(card, HIFI_EVENTS_URL, TODAY)
    assert event.url == "https://tixr.com/e/123"
    assert event.local_date == date(2024, 4, 2)


@pytest.mark.parametrize("html", [
    '<div class="nevent"><a class="nevent-title" href="/e/">x</a>'
    '<div class="nevent-date-venue">Mar 20 | HI-FI</div></div>',                 # no name
    '<div class="nevent"><h3>No Link</h3><div class="nevent-date-venue">Mar 20 | HI-FI</div></div>',
    '<div class="nevent"><h3><a href="/e/">No Date</a></h3>'
    '<div class="nevent-date-venue">TBA</div></div>',
])
def test_parse_card_skips_incomplete_cards(html):
    card = BeautifulSoup(html, "lxml").select_one(".nevent")
    assert parse_card(card, HIFI_EVENTS_URL, TODAY) is None


def test_parse_events_from_html_skips_bad_cards():
    page = parse_events_from_html(_fixture("hifi_page1.html"), HIFI_EVENTS_URL, TODAY)
    assert page.card_count == 3
    assert [e.name for e in page.events] == ["Band A"]


# --- Pagination ---

def test_normalize_page_url():
    assert normalize_page_url("https://hifiindy.com/events/page/2?x=1#top") == "https://hifiindy.com/events/page/2/"
    assert normalize_page_url("https://hifiindy.com/events/") == "https://hifiindy.com/events/"


def test_next_page_link_is_normalized():
    soup = BeautifulSoup(_fixture("hifi_page1.html"), "lxml")
    assert find_next_page_url(soup, HIFI_EVENTS_URL, 0, 3) == "https://hifiindy.com/events/page/2/"


def test_pagination_without_next_link_ends():
    soup = BeautifulSoup(_fixture("hifi_page3.html"), "lxml")
    assert find_next_page_url(soup, "https://hifiindy.com/events/page/3/", 2, 1) is None


def test_next_page_synthesized_when_pagination_markup_missing():
    soup = BeautifulSoup("<div class='nevents'><div class='nevent'></div></div>", "lxml")
    assert find_next_page_url(soup, HIFI_EVENTS_URL, 0, 1) == "https://hifiindy.com/events/page/2/"
    assert find_next_page_url(soup, HIFI_EVENTS_URL, 0, 0) is None
    assert find_next_page_url(soup, HIFI_EVENTS_URL, 13, 1, max_pages=15) == "https://hifiindy.com/events/page/15/"
    assert find_next_page_url(soup, HIFI_EVENTS_URL, 14, 1, max_pages=15) is None


# --- Full scrape ---

def _scraper(**overrides) -> HiFiScraper:
    return HiFiScraper({"url": HIFI_EVENTS_URL, "max_pages": 15, **overrides})


def test_scrape_follows_pages_and_dedupes():
    with rsps.RequestsMock() as mock:
        mock.add(rsps.GET, HIFI_EVENTS_URL, body=_fixture("hifi_page1.html"))
        mock.add(rsps.GET, "https://hifiindy.com/events/page/2/", body=_fixture("hifi_page2.html"))
        mock.add(rsps.GET, "https://hifiindy.com/events/page/3/", body=_fixture("hifi_page3.html"))

        result = _scraper().scrape(today=TODAY)

        assert len(mock.calls) == 3

    assert [(e.name, e.local_date) for e in result.events] == [
        ("Band A", date(2024, 3, 20)),
        ("Band B", date(2024, 4, 5)),
        ("Band C", date(2025, 1, 10)),
    ]
    assert sum(1 for e in result.events if e.url == "https://hifiindy.com/event/band-a/") == 1

    diag = result.diagnostics
    assert diag.pages == 3
    assert diag.first_page_cards == 3
    assert diag.total_events == 3
    assert diag.sample == [
        {"name": "Band A", "localDate": "2024-03-20", "url": "https://hifiindy.com/event/band-a/"},
    ]


def test_scrape_stops_at_page_cap():
    # No pagination block, so every page with cards synthesizes the next one
    page = """
    <div class="nevents"><div class="nevent">
      <h3><a href="/event/same/">Same</a></h3><div class="nevent-date-venue">Apr 1 | HI-FI</div>
    </div></div>
    """
    with rsps.RequestsMock() as mock:
        mock.add(rsps.GET, HIFI_EVENTS_URL, body=page)
        mock.add(rsps.GET, "https://hifiindy.com/events/page/2/", body=page)
        mock.add(rsps.GET, "https://hifiindy.com/events/page/3/", body=page)

        result = _scraper(max_pages=3).scrape(today=TODAY)

        assert len(mock.calls) == 3
    assert len(result.events) == 1


def test_scrape_stops_when_next_link_points_to_current_page():
    page = """
    <div class="block"><h1>UPCOMING EVENTS</h1></div>
    <div class="event-pagination"><a href="/events/?paged=1">Next Page</a></div>
    """
    with rsps.RequestsMock() as mock:
        mock.add(rsps.GET, HIFI_EVENTS_URL, body=page)
        result = _scraper().scrape(today=TODAY)
        assert len(mock.calls) == 1
    assert result.events == []


def test_scrape_http_error_is_fatal():
    with rsps.RequestsMock() as mock:
        mock.add(rsps.GET, HIFI_EVENTS_URL, body=_fixture("hifi_page1.html"))
        mock.add(rsps.GET, "https://hifiindy.com/events/page/2/", status=503, body="Service Unavailable")

        with pytest.raises(UpstreamError) as excinfo:
            _scraper().scrape(today=TODAY)

    assert excinfo.value.status_code == 503
    assert excinfo.value.source == "HI-FI"
    assert "Service Unavailable" in excinfo.value.body


def test_scrape_reads_first_page_from_snapshot(tmp_path):
    snapshot = tmp_path / "hifi-events.html"
    snapshot.write_text(_fixture("hifi_page3.html"), encoding="utf-8")

    with rsps.RequestsMock() as mock:
        result = _scraper(use_snapshot=True, snapshot_path=str(snapshot)).scrape(today=TODAY)
        assert len(mock.calls) == 0

    assert [e.name for e in result.events] == ["Band C"]
