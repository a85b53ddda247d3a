"""
Ticketmaster Discovery API client.

Endpoints used:
  - /events.json  ?venueId=<id>&size=200&sort=date,asc
      _embedded.events[] -> id, name, url,
                            dates.start.localDate / localTime,
                            classifications[0].segment.name,
                            _embedded.venues[0].name
  - /venues.json  ?keyword=<text>&size=N
      _embedded.venues[] -> id, name, city.name, state.stateCode / state.name

Only the "Music" and "Arts & Theatre" segments are kept; everything else
(sports, family shows, parking passes) is dropped.
"""

import logging
from dataclasses import dataclass
from datetime import date, time
from typing import Optional

import requests
from dateutil import parser as dateparser

from indianaconcerts.errors import UpstreamError
from indianaconcerts.models import Event, Venue

log = logging.getLogger(__name__)

BASE_URL = "https://app.ticketmaster.com/discovery/v2"
ALLOWED_SEGMENTS = frozenset({"Music", "Arts & Theatre"})
_HEADERS = {"User-Agent": "indianaconcerts/0.1"}
_PAGE_SIZE = 200


@dataclass(frozen=True)
class VenueMatch:
    id: str
    name: str
    city: str
    state: str


def _get_json(url: str, params: dict, session: Optional[requests.Session]) -> dict:
    http = session or requests
    response = http.get(url, params=params, headers=_HEADERS, timeout=15)
    if not response.ok:
        raise UpstreamError("Ticketmaster", response.status_code, response.text, url)
    return response.json()


def _parse_local_date(raw) -> Optional[date]:
    if not isinstance(raw, str) or not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return None


def _parse_local_time(raw) -> Optional[time]:
    if not isinstance(raw, str) or not raw:
        return None
    try:
        return dateparser.parse(raw).time()
    except (ValueError, OverflowError):
        return None


def _segment_name(item: dict) -> Optional[str]:
    classifications = item.get("classifications") or []
    if not classifications or not isinstance(classifications[0], dict):
        return None
    return (classifications[0].get("segment") or {}).get("name")


def _venue_name(item: dict) -> Optional[str]:
    venues = (item.get("_embedded") or {}).get("venues") or []
    if not venues or not isinstance(venues[0], dict):
        return None
    return venues[0].get("name") or None


def parse_event(item, venue_key: str) -> Optional[Event]:
    """Map one /events.json item to an Event, or None if it should be skipped."""
    if not isinstance(item, dict):
        return None
    if _segment_name(item) not in ALLOWED_SEGMENTS:
        return None

    start = (item.get("dates") or {}).get("start") or {}
    local_date = _parse_local_date(start.get("localDate"))
    venue_name = _venue_name(item)
    name = item.get("name")
    url = item.get("url")
    if local_date is None or not venue_name:
        return None
    if not isinstance(name, str) or not name or not isinstance(url, str) or not url:
        return None

    return Event(
        id=str(item.get("id", "")),
        name=name,
        local_date=local_date,
        local_time=_parse_local_time(start.get("localTime")),
        venue_name=venue_name,
        venue_key=venue_key,
        url=url,
    )


def fetch_events_for_venue(
    venue: Venue,
    api_key: str,
    session: Optional[requests.Session] = None,
) -> list[Event]:
    data = _get_json(
        f"{BASE_URL}/events.json",
        {
            "apikey": api_key,
            "venueId": venue.venue_id,
            "size": _PAGE_SIZE,
            "sort": "date,asc",
        },
        session,
    )
    items = (data.get("_embedded") or {}).get("events") or []

    events: list[Event] = []
    for item in items:
        event = parse_event(item, venue.key)
        if event is None:
            log.debug("Skipping Ticketmaster item for %s: %r", venue.key, item.get("id") if isinstance(item, dict) else item)
            continue
        events.append(event)
    log.debug("%s: %d of %d items kept", venue.key, len(events), len(items))
    return events


def _to_match(raw: dict) -> VenueMatch:
    city = (raw.get("city") or {}).get("name") or "Unknown city"
    state_obj = raw.get("state") or {}
    state = state_obj.get("stateCode") or state_obj.get("name") or "Unknown state"
    return VenueMatch(id=raw.get("id", ""), name=raw.get("name", ""), city=city, state=state)


def search_venues(
    keyword: str,
    api_key: str,
    size: int = 10,
    session: Optional[requests.Session] = None,
) -> list[VenueMatch]:
    data = _get_json(
        f"{BASE_URL}/venues.json",
        {"apikey": api_key, "keyword": keyword, "size": size},
        session,
    )
    venues = (data.get("_embedded") or {}).get("venues") or []
    return [_to_match(v) for v in venues if isinstance(v, dict)]


def lookup_venue(
    keyword: str,
    api_key: str,
    session: Optional[requests.Session] = None,
) -> Optional[VenueMatch]:
    matches = search_venues(keyword, api_key, size=5, session=session)
    return matches[0] if matches else None
