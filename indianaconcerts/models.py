from dataclasses import dataclass
from datetime import date, time
from typing import Optional


@dataclass(frozen=True)
class Venue:
    key: str           # Short identifier, matches config.toml section and Event.venue_key
    label: str
    venue_id: str = "" # Ticketmaster venue id; empty until discovered with `ic find-venues`


@dataclass(frozen=True)
class Event:
    id: str            # Ticketmaster id, or hifi-<date>-<slug> for scraped events
    name: str
    local_date: date
    venue_name: str
    venue_key: str     # Foreign key to Venue.key
    url: str
    local_time: Optional[time] = None  # None means TBA

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "localDate": self.local_date.isoformat(),
            "localTime": self.local_time.isoformat() if self.local_time else None,
            "venue": self.venue_name,
            "venueKey": self.venue_key,
            "url": self.url,
        }
