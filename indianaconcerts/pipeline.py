"""
Aggregation: every Ticketmaster venue, then every registered scraper, merged
into one upcoming-first listing.

Venues are fetched one at a time in registry order. Any upstream failure
aborts the whole run; there are no partial results and no retries.
"""

import logging
import time as time_module
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Callable, Iterable, Optional

import requests

import indianaconcerts.config as cfg_module
from indianaconcerts import ticketmaster
from indianaconcerts.models import Event, Venue
from indianaconcerts.scrapers import SCRAPERS

log = logging.getLogger(__name__)

# An event with no start time counts as upcoming until the end of its day,
# but sorts ahead of timed events on the same day.
FILTER_DEFAULT_TIME = time(23, 59, 59)
SORT_DEFAULT_TIME = time.min


@dataclass
class Aggregation:
    events: list[Event] = field(default_factory=list)
    setup_required: bool = False
    missing_venue_ids: list[str] = field(default_factory=list)


def filter_upcoming(events: Iterable[Event], now: datetime) -> list[Event]:
    """Drop events that ended before `now` (wall-clock, venue-local)."""
    return [
        e for e in events
        if datetime.combine(e.local_date, e.local_time or FILTER_DEFAULT_TIME) >= now
    ]


def sort_events(events: Iterable[Event]) -> list[Event]:
    """Stable ascending sort on (date, time)."""
    return sorted(events, key=lambda e: (e.local_date, e.local_time or SORT_DEFAULT_TIME))


def _log_diagnostics(scraper, diagnostics) -> None:
    log.info(scraper.describe(diagnostics))
    if diagnostics.sample:
        log.info("[%s] sample %s", scraper.venue_name, diagnostics.sample)


def aggregate(
    cfg: dict,
    session: Optional[requests.Session] = None,
    now: Optional[datetime] = None,
    sleep: Callable[[float], None] = time_module.sleep,
) -> Aggregation:
    venues: list[Venue] = cfg_module.get_venues(cfg)
    missing = cfg_module.get_missing_venue_ids(venues)
    if missing:
        log.warning("Venue ids missing for %s; rendering setup page", ", ".join(missing))
        return Aggregation(setup_required=True, missing_venue_ids=missing)

    api_key = cfg_module.get_api_key(cfg)
    delay = float(cfg_module.get_ticketmaster(cfg)["delay_seconds"])
    session = session or requests.Session()

    merged: list[Event] = []
    for i, venue in enumerate(venues):
        if i and delay:
            sleep(delay)
        events = ticketmaster.fetch_events_for_venue(venue, api_key, session=session)
        log.info("%s (Ticketmaster): %d events", venue.label, len(events))
        merged.extend(events)

    for key, scraper_cls in SCRAPERS.items():
        scraper = scraper_cls(cfg_module.get_scraper_cfg(cfg, key), session=session)
        result = scraper.scrape()
        _log_diagnostics(scraper, result.diagnostics)
        merged.extend(result.events)

    upcoming = filter_upcoming(merged, now or datetime.now())
    log.info("%d events merged, %d upcoming", len(merged), len(upcoming))
    return Aggregation(events=sort_events(upcoming))
