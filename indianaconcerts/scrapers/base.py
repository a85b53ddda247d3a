from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

import requests

from indianaconcerts.models import Event


@dataclass
class ScrapeDiagnostics:
    """Counters gathered during one scrape, returned to the caller for logging."""
    pages: int = 0
    first_page_url: str = ""
    first_page_cards: int = 0
    total_events: int = 0
    sample: list[dict] = field(default_factory=list)  # name/localDate/url of the first few events


@dataclass
class ScrapeResult:
    events: list[Event]
    diagnostics: ScrapeDiagnostics


class BaseScraper(ABC):
    # Subclasses must set these class attributes
    venue_key: str = ""
    venue_name: str = ""

    def __init__(self, scraper_cfg: dict, session: Optional[requests.Session] = None):
        """
        Args:
            scraper_cfg: The [<venue_key>] section from config.toml merged with defaults.
                         Typically contains at least 'url'.
            session:     Optional shared requests session (tests inject their own).
        """
        self.scraper_cfg = scraper_cfg
        self.url = scraper_cfg.get("url", "")
        self.session = session or requests.Session()

    @abstractmethod
    def scrape(self) -> ScrapeResult:
        """Fetch the venue's listing and return its events plus diagnostics."""
        ...

    def fetch_events(self) -> list[Event]:
        return self.scrape().events

    def describe(self, diagnostics: ScrapeDiagnostics) -> str:
        return (
            f"[{self.venue_name}] pages={diagnostics.pages} page1={diagnostics.first_page_url} "
            f"cards={diagnostics.first_page_cards} total={diagnostics.total_events}"
        )
