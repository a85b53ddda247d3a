"""
Listing view state: venue filter, search text and collapsed months.

Everything here is pure. The browser script in generator/static/app.js
applies the same rules to the embedded JSON; these functions produce the
initial server-rendered page and pin the behaviour down in tests.
"""

from dataclasses import dataclass, field, replace
from datetime import date, time
from typing import Iterable, Optional

from indianaconcerts.models import Event

ALL_VENUES = "All"


@dataclass(frozen=True)
class ViewState:
    venue: str = ALL_VENUES
    query: str = ""
    collapsed: frozenset[str] = field(default_factory=frozenset)  # month keys, e.g. "2024-03"

    def is_expanded(self, month_key: str) -> bool:
        return month_key not in self.collapsed


@dataclass
class MonthGroup:
    key: str      # "YYYY-MM"
    label: str    # "March 2024"
    events: list[Event]


def set_venue(state: ViewState, venue: str) -> ViewState:
    return replace(state, venue=venue)


def set_query(state: ViewState, query: str) -> ViewState:
    return replace(state, query=query)


def toggle_month(state: ViewState, month_key: str) -> ViewState:
    return replace(state, collapsed=state.collapsed ^ {month_key})


def filter_events(events: Iterable[Event], venue: str = ALL_VENUES, query: str = "") -> list[Event]:
    needle = query.strip().lower()
    return [
        e for e in events
        if (venue == ALL_VENUES or e.venue_key == venue)
        and (not needle or needle in e.name.lower())
    ]


def month_key(d: date) -> str:
    return f"{d.year}-{d.month:02d}"


def group_by_month(events: Iterable[Event]) -> list[MonthGroup]:
    """Group by calendar month, months in order of first appearance."""
    groups: dict[str, MonthGroup] = {}
    for event in events:
        key = month_key(event.local_date)
        if key not in groups:
            groups[key] = MonthGroup(key=key, label=event.local_date.strftime("%B %Y"), events=[])
        groups[key].events.append(event)
    return list(groups.values())


def visible_groups(events: Iterable[Event], state: ViewState) -> list[MonthGroup]:
    return group_by_month(filter_events(events, state.venue, state.query))


def format_date(d: date) -> str:
    """'Fri, Mar 15, 2024'"""
    return f"{d.strftime('%a, %b')} {d.day}, {d.year}"


def format_time(t: Optional[time]) -> str:
    """'7:30 PM', or 'TBA' when the start time is unknown."""
    if t is None:
        return "TBA"
    hour = t.hour % 12 or 12
    suffix = "AM" if t.hour < 12 else "PM"
    return f"{hour}:{t.minute:02d} {suffix}"
