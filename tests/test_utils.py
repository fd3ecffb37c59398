"""Tests for display formatting, the video embed resolver and HTML rendering."""

from __future__ import annotations

import base64

import pytest

from timeline.models import MediaRef, TimelineEntry
from timeline.utils import (
    file_to_data_url,
    format_date_display,
    format_entry_caption,
    render_empty_timeline_html,
    render_entry_detail_html,
    resolve_video_embed,
)


@pytest.mark.parametrize(
    ("date", "expected"),
    [
        ("1946", "1946"),
        ("1946-02-24", "Feb 24, 1946"),
        ("1900-01-01", "Jan 1900"),
        ("1810-05-01", "May 1810"),
        ("circa 1900", "circa 1900"),
        ("", "Unknown date"),
    ],
)
def test_format_date_display(date, expected):
    assert format_date_display(date) == expected


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        (
            "https://www.youtube.com/watch?v=abc123&t=10",
            ("https://www.youtube.com/embed/abc123", True),
        ),
        ("https://youtu.be/abc123", ("https://www.youtube.com/embed/abc123", True)),
        (
            "https://vimeo.com/channels/staff/76979871",
            ("https://player.vimeo.com/video/76979871", True),
        ),
        ("https://example.org/clip.mp4", ("https://example.org/clip.mp4", False)),
        ("not a url", ("not a url", False)),
    ],
)
def test_resolve_video_embed(url, expected):
    assert resolve_video_embed(url) == expected


def test_file_to_data_url(tmp_path):
    image = tmp_path / "pixel.png"
    image.write_bytes(b"\x89PNG fake")

    data_url = file_to_data_url(image)

    assert data_url.startswith("data:image/png;base64,")
    assert base64.b64decode(data_url.split(",", 1)[1]) == b"\x89PNG fake"


def test_format_entry_caption():
    entry = TimelineEntry(
        id="c",
        title="Caseros",
        date="1852-02-03",
        place="Caseros",
        event="Battle",
        person="Urquiza",
    )
    assert format_entry_caption(entry) == "Caseros  (1852)\n  Caseros • Battle • Urquiza"


def test_format_entry_caption_truncates_long_titles():
    entry = TimelineEntry(id="l", title="a" * 100, date="1900", place="P", event="E")

    caption = format_entry_caption(entry)

    assert "…" in caption
    assert "\n  P • E" in caption


def test_render_entry_detail_html_escapes_and_embeds():
    entry = TimelineEntry(
        id="d",
        title="Rally <b>",
        date="1946-02-24",
        place="Buenos Aires",
        event="Election",
        person="Juan Perón",
        description="<script>alert(1)</script>",
        media=[
            MediaRef(type="image", url="https://example.org/a.png", caption="Crowd"),
            MediaRef(type="video", url="https://youtu.be/abc123"),
            MediaRef(type="video", url="https://example.org/clip.mp4"),
        ],
    )

    html = render_entry_detail_html(entry)

    assert "Feb 24, 1946" in html
    assert "Juan Perón" in html
    assert "Rally &lt;b&gt;" in html
    assert "&lt;script&gt;" in html
    assert "<script>" not in html
    assert 'src="https://example.org/a.png"' in html
    assert "Crowd" in html
    assert "https://www.youtube.com/embed/abc123" in html
    assert 'href="https://example.org/clip.mp4"' in html


def test_render_entry_without_description_or_person():
    entry = TimelineEntry(id="e", title="Bare", date="1900", place="P", event="E")

    html = render_entry_detail_html(entry, dark_mode=True)

    assert "No description." in html
    assert "#dfe6e9" in html
    assert html.count("&bull;") == 2


def test_render_empty_timeline_html():
    assert "Add entry" in render_empty_timeline_html(dark_mode=False)
