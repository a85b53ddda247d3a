"""
Scraper registry, for venues whose listings are not (fully) on Ticketmaster.

To add a new venue scraper:
1. Create <venue_key>.py with a BaseScraper subclass setting venue_key and venue_name
2. Add a [<venue_key>] table to config.toml if it needs settings
3. Import and register it in the SCRAPERS dict below
"""

from indianaconcerts.scrapers.base import BaseScraper
from indianaconcerts.scrapers.hifi import HiFiScraper

SCRAPERS: dict[str, type[BaseScraper]] = {
    "hifi": HiFiScraper,
}
