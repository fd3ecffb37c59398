"""Configuration constants and templates for the application."""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from textwrap import dedent

from jinja2 import DictLoader, Environment, select_autoescape


class FacetSentinel(str):
    """Marker meaning "no filter" for a facet; compared by identity, never by text."""

    def __repr__(self) -> str:
        return "ALL"


# Database and storage slot
DATABASE_PATH = Path("timeline.sqlite3")
STORAGE_KEY = "timeline-items-v1"

# Timeline range
START_YEAR = 1850
CURRENT_YEAR = date.today().year

# Facet sentinel shown as "All" in filter menus
ALL = FacetSentinel("All")

# Quick-add defaults
DEFAULT_QUICK_ADD_DATE = "1900-01-01"
PREVIEW_CHARACTER_LIMIT = 48

# Basic logging setup
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)

# Jinja2 template environment for HTML rendering
TEMPLATE_ENV = Environment(
    loader=DictLoader(
        {
            "entry_detail.html": dedent(
                """\
                <div style='font-family:"Segoe UI",sans-serif; line-height:1.6; color:{{ colors.text }};'>
                    <div style='color:{{ colors.secondary }}; font-size:13px;'>
                        {{ date_display }} &bull; {{ entry.place }} &bull; {{ entry.event }}{% if entry.person %} &bull; {{ entry.person }}{% endif %}
                    </div>
                    <h1 style='font-size:22px; margin:4px 0 12px 0;'>{{ entry.title }}</h1>
                    <hr style='border:0; height:1px; background:{{ colors.divider }}; margin:12px 0;'>
                    <p style='white-space:pre-wrap; margin:0;'>
                        {% if entry.description.strip() %}{{ entry.description }}{% else %}<em>{{ empty_description_notice }}</em>{% endif %}
                    </p>
                    {% for item in media %}
                    <div style='margin-top:16px;'>
                        {% if item.type == "image" %}
                        <img src="{{ item.url }}" alt="{{ item.caption or 'media' }}" width="{{ image_width }}">
                        {% elif item.embeddable %}
                        <a href="{{ item.src }}">&#9654; Embedded video</a>
                        {% else %}
                        <a href="{{ item.src }}">&#9654; {{ item.src }}</a>
                        {% endif %}
                        {% if item.caption %}
                        <div style='color:{{ colors.secondary }}; font-size:12px;'>{{ item.caption }}</div>
                        {% endif %}
                    </div>
                    {% endfor %}
                </div>
                """
            ),
            "empty_timeline.html": dedent(
                """\
                <div style='font-family:"Segoe UI",sans-serif; color:{{ colors.secondary }};'>
                    Use <b>Add entry</b> to add your first item.
                </div>
                """
            ),
        }
    ),
    autoescape=select_autoescape(["html", "xml"]),
    trim_blocks=True,
    lstrip_blocks=True,
)

ENTRY_DETAIL_TEMPLATE = TEMPLATE_ENV.get_template("entry_detail.html")
EMPTY_TIMELINE_TEMPLATE = TEMPLATE_ENV.get_template("empty_timeline.html")
