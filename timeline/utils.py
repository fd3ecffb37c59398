"""Utility functions for formatting and rendering entries in the window."""

from __future__ import annotations

import base64
import mimetypes
from datetime import datetime
from pathlib import Path
from urllib.parse import parse_qs, urlparse

from timeline.constants import (
    EMPTY_TIMELINE_TEMPLATE,
    ENTRY_DETAIL_TEMPLATE,
    PREVIEW_CHARACTER_LIMIT,
)
from timeline.filtering import entry_year
from timeline.models import TimelineEntry


def format_date_display(date: str) -> str:
    """Render entry dates for reading: a bare year as-is, the 1st of a month without the day."""
    if not date:
        return "Unknown date"
    if len(date) == 4 and date.isdigit():
        return date
    try:
        dt = datetime.strptime(date, "%Y-%m-%d")
    except ValueError:
        return date
    if dt.day == 1:
        return dt.strftime("%b %Y")
    return dt.strftime("%b %d, %Y")


def resolve_video_embed(url: str) -> tuple[str, bool]:
    """Rewrite YouTube/Vimeo links into player URLs.

    Returns:
        ``(src, embeddable)``; unknown hosts come back unchanged and are
        played as a plain video link
    """
    try:
        parsed = urlparse(url)
    except ValueError:
        return url, False

    host = (parsed.hostname or "").lower()
    if "youtu" in host:
        video_id = parse_qs(parsed.query).get("v", [""])[0] or parsed.path.replace(
            "/", "", 1
        )
        return f"https://www.youtube.com/embed/{video_id}", True
    if "vimeo" in host:
        segments = [segment for segment in parsed.path.split("/") if segment]
        video_id = segments[-1] if segments else ""
        return f"https://player.vimeo.com/video/{video_id}", True
    return url, False


def file_to_data_url(path: Path) -> str:
    """Read an image file into a ``data:`` URL suitable for ``MediaRef.url``."""
    mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    encoded = base64.b64encode(path.read_bytes()).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def format_entry_caption(entry: TimelineEntry) -> str:
    """Two-line list caption: title and year, then place, category and person."""
    title = " ".join(entry.title.split())
    if len(title) > PREVIEW_CHARACTER_LIMIT:
        title = title[: PREVIEW_CHARACTER_LIMIT - 1] + "…"
    facets = " • ".join(part for part in (entry.place, entry.event, entry.person) if part)
    return f"{title}  ({entry_year(entry.date)})\n  {facets}"


def theme_colors(dark_mode: bool) -> dict[str, str]:
    """Choose detail pane colors based on the current palette."""
    if dark_mode:
        return {
            "text": "#dfe6e9",
            "secondary": "#a4b0be",
            "divider": "#3a3f44",
        }
    return {
        "text": "#2d3436",
        "secondary": "#636e72",
        "divider": "#dfe6e9",
    }


def render_entry_detail_html(entry: TimelineEntry, dark_mode: bool = False) -> str:
    """Render the selected entry via the Jinja2 template."""
    media = []
    for item in entry.media:
        src, embeddable = (
            resolve_video_embed(item.url) if item.type == "video" else (item.url, False)
        )
        media.append(
            {
                "type": item.type,
                "url": item.url,
                "src": src,
                "embeddable": embeddable,
                "caption": item.caption,
            }
        )

    return ENTRY_DETAIL_TEMPLATE.render(
        colors=theme_colors(dark_mode),
        entry=entry,
        date_display=format_date_display(entry.date),
        media=media,
        image_width=480,
        empty_description_notice="No description.",
    )


def render_empty_timeline_html(dark_mode: bool) -> str:
    """Render a friendly empty-state message that respects theme colors."""
    return EMPTY_TIMELINE_TEMPLATE.render(colors=theme_colors(dark_mode))
