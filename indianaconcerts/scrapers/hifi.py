"""
HI-FI Indy scraper (no Ticketmaster coverage for most of its shows).

Listing page: https://hifiindy.com/events/  (WordPress, paginated as /page/<n>/)
  - Scope:     the block holding the <h1>UPCOMING EVENTS</h1> heading
               (.elements / .block / .pb-area / #content). Event-card markup is
               repeated in "related events" widgets elsewhere on the page.
  - Cards:     .nevents .nevent
  - Title:     first h3 in the card
  - Link:      a.nevent-title[href], falling back to h3 a[href]
  - Date:      .nevent-date-venue, text like "Fri Mar 15 | HI-FI" (no year)
  - Next page: .event-pagination a containing "Next Page"

The year is never printed, so it is inferred: the current year, or next year
if that would put the show more than a day in the past.

Parsing is split into pure functions so each step can be tested against
stored HTML without touching the network.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup, Tag

from indianaconcerts.errors import UpstreamError
from indianaconcerts.models import Event
from indianaconcerts.scrapers.base import BaseScraper, ScrapeDiagnostics, ScrapeResult

log = logging.getLogger(__name__)

HIFI_EVENTS_URL = "https://hifiindy.com/events/"
MAX_PAGES = 15
_HEADERS = {"User-Agent": "indianaconcerts-bot/0.1"}

_SCOPE_CLASSES = frozenset({"elements", "block", "pb-area"})
_SCOPE_ID = "content"
_CARD_SELECTOR = ".nevents .nevent"
_SAMPLE_SIZE = 3

_MONTHS = {
    "jan": 1, "january": 1,
    "feb": 2, "february": 2,
    "mar": 3, "march": 3,
    "apr": 4, "april": 4,
    "may": 5,
    "jun": 6, "june": 6,
    "jul": 7, "july": 7,
    "aug": 8, "august": 8,
    "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10,
    "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}

# "Mar 15 |" -- month name, day, then the "|" that separates date from venue
_DATE_RE = re.compile(r"([A-Za-z]{3,9})\s+(\d{1,2})\s*\|")
_SLUG_RE = re.compile(r"[^a-z0-9]+")


@dataclass
class ParsedPage:
    events: list[Event]
    card_count: int


def _normalize_text(text: str) -> str:
    return " ".join(text.split())


def infer_year(month: int, day: int, today: date) -> date:
    """
    Return month/day in the current year, or next year if that is earlier
    than yesterday. Feb 29 outside a leap year moves to next year. Raises
    ValueError for dates impossible in both years (e.g. Feb 30).
    """
    try:
        candidate = date(today.year, month, day)
    except ValueError:
        return date(today.year + 1, month, day)
    if candidate < today - timedelta(days=1):
        candidate = date(today.year + 1, month, day)
    return candidate


def extract_date_from_text(text: str, today: date) -> Optional[date]:
    """Find a 'Mar 15 |' style date in free text and resolve its year."""
    match = _DATE_RE.search(_normalize_text(text))
    if not match:
        return None
    month = _MONTHS.get(match.group(1).lower())
    if month is None:
        return None
    try:
        return infer_year(month, int(match.group(2)), today)
    except ValueError:
        return None


def _is_scope_container(tag: Tag) -> bool:
    classes = tag.get("class") or []
    return any(c in _SCOPE_CLASSES for c in classes) or tag.get("id") == _SCOPE_ID


def find_upcoming_scope(soup: BeautifulSoup) -> Union[BeautifulSoup, Tag]:
    """Return the part of the page holding the upcoming-events listing, or the whole page."""
    heading = next(
        (h for h in soup.find_all("h1") if _normalize_text(h.get_text()).upper() == "UPCOMING EVENTS"),
        None,
    )
    if heading is None:
        return soup
    section = heading.find_parent(_is_scope_container)
    return section or heading.parent or soup


def find_cards(soup: BeautifulSoup, scope: Union[BeautifulSoup, Tag]) -> list[Tag]:
    cards = scope.select(_CARD_SELECTOR)
    if not cards and scope is not soup:
        # Heading found but no cards under it: widen to the whole page
        cards = soup.select(_CARD_SELECTOR)
    return cards


def _slugify(name: str) -> str:
    return _SLUG_RE.sub("-", name.lower()).strip("-")


def parse_card(card: Tag, base_url: str, today: date) -> Optional[Event]:
    """Turn one .nevent card into an Event; None if name, link or date is missing."""
    heading = card.find("h3")
    name = _normalize_text(heading.get_text(" ")) if heading else ""
    link_el = card.select_one("a.nevent-title[href]") or card.select_one("h3 a[href]")
    href = link_el.get("href", "").strip() if link_el else ""
    if not name or not href:
        return None

    date_el = card.select_one(".nevent-date-venue")
    date_text = date_el.get_text(" ", strip=True) if date_el else ""
    if not date_text:
        date_text = card.get_text(" ", strip=True)
    local_date = extract_date_from_text(date_text, today)
    if local_date is None:
        return None

    return Event(
        id=f"hifi-{local_date.isoformat()}-{_slugify(name)}",
        name=name,
        local_date=local_date,
        venue_name=HiFiScraper.venue_name,
        venue_key=HiFiScraper.venue_key,
        url=urljoin(base_url, href),
    )


def parse_events_from_soup(soup: BeautifulSoup, base_url: str, today: date) -> ParsedPage:
    cards = find_cards(soup, find_upcoming_scope(soup))
    events = []
    for card in cards:
        event = parse_card(card, base_url, today)
        if event is None:
            log.debug("Skipping HI-FI card: %s", _normalize_text(card.get_text(" "))[:80])
            continue
        events.append(event)
    return ParsedPage(events=events, card_count=len(cards))


def parse_events_from_html(html: str, base_url: str, today: date) -> ParsedPage:
    return parse_events_from_soup(BeautifulSoup(html, "lxml"), base_url, today)


def normalize_page_url(url: str) -> str:
    """Drop query string and fragment and force a trailing slash."""
    parts = urlsplit(url)
    path = parts.path if parts.path.endswith("/") else parts.path + "/"
    return urlunsplit((parts.scheme, parts.netloc, path, "", ""))


def find_next_page_url(
    soup: BeautifulSoup,
    current_url: str,
    page_index: int,
    card_count: int,
    listing_url: str = HIFI_EVENTS_URL,
    max_pages: int = MAX_PAGES,
) -> Optional[str]:
    """
    Return the URL of the page after `page_index` (0-based), or None.

    A "Next Page" link wins. When the pagination block is present without
    one, this is the last page. Only when the block is missing entirely on a
    page that still had cards is the /page/<n>/ URL synthesized.
    """
    pagination = soup.select(".event-pagination")
    for link in soup.select(".event-pagination a[href]"):
        if "next page" in link.get_text(" ", strip=True).lower():
            return normalize_page_url(urljoin(current_url, link["href"]))

    if pagination or card_count == 0:
        return None
    if page_index + 2 > max_pages:
        return None
    return f"{listing_url.rstrip('/')}/page/{page_index + 2}/"


class HiFiScraper(BaseScraper):
    venue_key = "hifi"
    venue_name = "HI-FI"

    def _read_page(self, url: str, page_index: int) -> str:
        if page_index == 0 and self.scraper_cfg.get("use_snapshot"):
            snapshot = Path(self.scraper_cfg.get("snapshot_path", ""))
            log.info("Reading HI-FI first page from snapshot %s", snapshot)
            return snapshot.read_text(encoding="utf-8")

        response = self.session.get(url, headers=_HEADERS, timeout=15)
        if not response.ok:
            raise UpstreamError("HI-FI", response.status_code, response.text[:500], url)
        return response.text

    def scrape(self, today: Optional[date] = None) -> ScrapeResult:
        today = today or date.today()
        listing_url = self.url or HIFI_EVENTS_URL
        max_pages = int(self.scraper_cfg.get("max_pages", MAX_PAGES))

        events: list[Event] = []
        seen_urls: set[str] = set()
        diagnostics = ScrapeDiagnostics(first_page_url=listing_url)
        current_url = listing_url

        for page_index in range(max_pages):
            soup = BeautifulSoup(self._read_page(current_url, page_index), "lxml")
            diagnostics.pages += 1
            parsed = parse_events_from_soup(soup, current_url, today)
            log.debug("HI-FI page %d (%s): %d cards, %d events", page_index + 1, current_url,
                      parsed.card_count, len(parsed.events))

            if page_index == 0:
                diagnostics.first_page_cards = parsed.card_count
                diagnostics.sample = [
                    {"name": e.name, "localDate": e.local_date.isoformat(), "url": e.url}
                    for e in parsed.events[:_SAMPLE_SIZE]
                ]

            for event in parsed.events:
                if event.url in seen_urls:
                    continue
                seen_urls.add(event.url)
                events.append(event)

            next_url = find_next_page_url(
                soup, current_url, page_index, parsed.card_count,
                listing_url=listing_url, max_pages=max_pages,
            )
            if not next_url or next_url == current_url:
                break
            current_url = next_url

        diagnostics.total_events = len(events)
        return ScrapeResult(events=events, diagnostics=diagnostics)
