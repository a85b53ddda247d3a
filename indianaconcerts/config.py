import os
import tomllib
from pathlib import Path
from typing import Any

from indianaconcerts.errors import ConfigurationError
from indianaconcerts.models import Venue

_DEFAULT_CONFIG_PATH = Path("config.toml")
_DEFAULT_ENV_PATH = Path("secrets")

# Hand-maintained registry, used when config.toml has no [venues] tables.
# Ids come from `ic find-venues`.
DEFAULT_VENUES: dict[str, dict[str, str]] = {
    "ruoff":      {"label": "Ruoff Music Center",     "venue_id": "KovZpvEk7A"},
    "everwise":   {"label": "Everwise Amphitheater",  "venue_id": "KovZpZAEAAJA"},
    "oldnational": {"label": "Old National Centre",   "venue_id": "KovZpZAEAkvA"},
    "vogue":      {"label": "The Vogue",              "venue_id": "KovZpZAEktEA"},
    "hifi":       {"label": "HI-FI",                  "venue_id": "Z7r9jZaAMC"},
    "gainbridge": {"label": "Gainbridge Fieldhouse",  "venue_id": "KovZpZA6keIA"},
}

_SITE_DEFAULTS = {
    "title": "Upcoming concerts across Indiana venues",
    "output_dir": "output",
}

_TICKETMASTER_DEFAULTS = {
    "delay_seconds": 0.0,
}

_SCRAPER_DEFAULTS: dict[str, dict[str, Any]] = {
    "hifi": {
        "url": "https://hifiindy.com/events/",
        "max_pages": 15,
        "snapshot_path": "/tmp/hifi-events.html",
        "use_snapshot": False,
    },
}


def load(path: Path = _DEFAULT_CONFIG_PATH) -> dict[str, Any]:
    """Load config from TOML (if present), then overlay any secrets from the environment."""
    cfg: dict[str, Any] = {}
    if path.exists():
        with open(path, "rb") as f:
            cfg = tomllib.load(f)
    _load_env(_DEFAULT_ENV_PATH, cfg)
    return cfg


def _load_env(env_path: Path, cfg: dict) -> None:
    """
    Parse a .env style file and inject values into the config dict.

    Supported variable names:
      TICKETMASTER_API_KEY  -> cfg["secrets"]["ticketmaster_api_key"]
      HIFI_DEBUG_SNAPSHOT   -> cfg["hifi"]["use_snapshot"]  ("1" enables)

    Shell environment variables take precedence over file values.
    """
    _apply_env_vars(cfg)

    if not env_path.exists():
        return

    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key not in os.environ:
                os.environ[key] = value

    _apply_env_vars(cfg)


def _apply_env_vars(cfg: dict) -> None:
    secrets = cfg.setdefault("secrets", {})
    if v := os.environ.get("TICKETMASTER_API_KEY"):
        secrets["ticketmaster_api_key"] = v
    if os.environ.get("HIFI_DEBUG_SNAPSHOT") == "1":
        cfg.setdefault("hifi", {})["use_snapshot"] = True


def get_api_key(cfg: dict) -> str:
    api_key = cfg.get("secrets", {}).get("ticketmaster_api_key")
    if not api_key:
        raise ConfigurationError("Missing TICKETMASTER_API_KEY in environment.")
    return api_key


def get_site(cfg: dict) -> dict:
    return {**_SITE_DEFAULTS, **cfg.get("site", {})}


def get_ticketmaster(cfg: dict) -> dict:
    return {**_TICKETMASTER_DEFAULTS, **cfg.get("ticketmaster", {})}


def get_scraper_cfg(cfg: dict, key: str) -> dict:
    """Return the [<key>] scraper table merged over its defaults."""
    return {**_SCRAPER_DEFAULTS.get(key, {}), **cfg.get(key, {})}


def get_venues(cfg: dict) -> list[Venue]:
    """Return the venue registry in file order, skipping disabled entries."""
    venues = cfg.get("venues") or DEFAULT_VENUES
    return [
        Venue(key=key, label=v.get("label", key), venue_id=v.get("venue_id", ""))
        for key, v in venues.items()
        if v.get("enabled", True)
    ]


def get_missing_venue_ids(venues: list[Venue]) -> list[str]:
    return [v.key for v in venues if not v.venue_id]
