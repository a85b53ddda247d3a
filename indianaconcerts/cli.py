import argparse
import logging
import sys
from pathlib import Path

from indianaconcerts import __version__
import indianaconcerts.config as cfg_module
from indianaconcerts import ticketmaster
from indianaconcerts.errors import ConcertsError, ConfigurationError
from indianaconcerts.generator.build import build_setup_page, build_site
from indianaconcerts.pipeline import aggregate

# Looked up when `find-venues` is run without keywords
DEFAULT_KEYWORDS = [
    "Ruoff Music Center",
    "Everwise Amphitheater at White River State Park",
]


def _build(args, cfg):
    site_cfg = cfg_module.get_site(cfg)
    output_dir = Path(args.output or site_cfg["output_dir"])

    result = aggregate(cfg)
    if result.setup_required:
        build_setup_page(result.missing_venue_ids, cfg, output_dir)
        print(f"Venue ids missing for: {', '.join(result.missing_venue_ids)}.")
        print(f"Setup page written to '{output_dir}/'. Run 'ic find-venues' to look them up.")
        return

    build_site(result.events, cfg_module.get_venues(cfg), cfg, output_dir)
    print(f"{len(result.events)} upcoming events. Site generated in '{output_dir}/'.")


def _find_venues(args, cfg):
    api_key = cfg_module.get_api_key(cfg)

    keyword = " ".join(args.keyword).strip()
    if keyword:
        matches = ticketmaster.search_venues(keyword, api_key)
        if not matches:
            print(f'No venues found for "{keyword}".')
            return
        for m in matches:
            print(f"{m.id} | {m.name} | {m.city}, {m.state}")
        return

    for kw in DEFAULT_KEYWORDS:
        try:
            match = ticketmaster.lookup_venue(kw, api_key)
        except ConcertsError as exc:
            print(f"{kw}: ERROR {exc}", file=sys.stderr)
            continue
        print(f"{kw}: {match.id if match else 'NOT FOUND'}")
        if match:
            print(f"  Name: {match.name}")


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="ic",
        description="Indiana concert listings static site generator",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config", default="config.toml", metavar="PATH",
        help="Path to config.toml (default: config.toml)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # build
    sp_build = subparsers.add_parser("build", help="Fetch all venues and generate the listing page")
    sp_build.add_argument(
        "--output", metavar="DIR",
        help="Output directory (default: [site] output_dir in config.toml)",
    )

    # find-venues
    sp_find = subparsers.add_parser("find-venues", help="Look up Ticketmaster venue ids by keyword")
    sp_find.add_argument("keyword", nargs="*", help="Free-text venue name (default: built-in list)")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    cfg = cfg_module.load(Path(args.config))

    try:
        if args.command == "build":
            _build(args, cfg)
        elif args.command == "find-venues":
            _find_venues(args, cfg)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except ConcertsError as exc:
        print(f"FAILED ({exc})", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
