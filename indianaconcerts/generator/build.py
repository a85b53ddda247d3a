import json
import shutil
from datetime import date
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

import indianaconcerts.config as cfg_module
from indianaconcerts.models import Event, Venue
from indianaconcerts.view import ALL_VENUES, ViewState, format_date, format_time, month_key, visible_groups

_TEMPLATES_DIR = Path(__file__).parent / "templates"
_STATIC_DIR = Path(__file__).parent / "static"


def _event_to_dict(event: Event) -> dict:
    """Serialise an Event for JSON embedding, with display strings precomputed."""
    return {
        **event.to_dict(),
        "month": month_key(event.local_date),
        "monthLabel": event.local_date.strftime("%B %Y"),
        "dateLabel": format_date(event.local_date),
        "timeLabel": format_time(event.local_time),
    }


def _environment(cfg: dict, today: date) -> Environment:
    site_cfg = cfg_module.get_site(cfg)
    env = Environment(
        loader=FileSystemLoader(_TEMPLATES_DIR),
        autoescape=select_autoescape(["html"]),
    )
    env.globals["site_title"] = site_cfg["title"]
    env.globals["generated_date"] = today.isoformat()
    env.filters["format_date"] = format_date
    env.filters["format_time"] = format_time
    return env


def _prepare_output(output_dir: Path) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)
    static_dst = output_dir / "static"
    if static_dst.exists():
        shutil.rmtree(static_dst)
    shutil.copytree(_STATIC_DIR, static_dst)


def build_site(
    events: list[Event],
    venues: list[Venue],
    cfg: dict,
    output_dir: Path,
    today: Optional[date] = None,
) -> Path:
    today = today or date.today()
    env = _environment(cfg, today)
    _prepare_output(output_dir)

    # "</" would end the embedding <script> early
    events_json = json.dumps([_event_to_dict(e) for e in events], ensure_ascii=False).replace("</", "<\\/")
    venue_options = [{"key": ALL_VENUES, "label": "All Venues"}] + [
        {"key": v.key, "label": v.label} for v in venues
    ]

    dest = output_dir / "index.html"
    _render(env, "index.html", dest, {
        "groups": visible_groups(events, ViewState()),
        "event_count": len(events),
        "events_json": events_json,
        "venue_options": venue_options,
    })
    return dest


def build_setup_page(missing_venue_ids: list[str], cfg: dict, output_dir: Path,
                     today: Optional[date] = None) -> Path:
    """Render the 'venue ids needed' page in place of the listing."""
    env = _environment(cfg, today or date.today())
    _prepare_output(output_dir)
    dest = output_dir / "index.html"
    _render(env, "setup.html", dest, {"missing": missing_venue_ids})
    return dest


def _render(env: Environment, template_name: str, dest: Path, context: dict) -> None:
    template = env.get_template(template_name)
    dest.write_text(template.render(**context), encoding="utf-8")
