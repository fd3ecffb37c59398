"""Coercion of loosely-shaped records into well-formed timeline entries."""

from __future__ import annotations

import re
import time
from collections.abc import Collection, Iterable, Mapping
from uuid import uuid4

from timeline.models import MediaRef, TimelineEntry

_SLUG_SEPARATORS = re.compile(r"[^a-z0-9]+")
_TEXT_FIELDS = ("title", "date", "place", "event", "person", "description")
_TRIMMED_FIELDS = ("title", "date")


def slugify_title(title: str) -> str:
    """Lower-case ``title`` and collapse every run of non ``[a-z0-9]`` into one hyphen.

    Examples:
        >>> slugify_title("  Battle of Caseros (1852) ")
        'battle-of-caseros-1852'
        >>> slugify_title("Perón")
        'per-n'
    """
    slug = _SLUG_SEPARATORS.sub("-", title.lower()).strip("-")
    return slug or "entry"


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def generate_entry_id(
    title: str, *, stamp: int | None = None, with_suffix: bool = False
) -> str:
    """Build ``slug-timestamp``, plus a random suffix for ids synthesized in bulk."""
    if stamp is None:
        stamp = _timestamp_ms()
    entry_id = f"{slugify_title(title)}-{stamp}"
    if with_suffix:
        entry_id = f"{entry_id}-{uuid4().hex[:6]}"
    return entry_id


def _coerce_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def normalize_media(raw: object) -> list[MediaRef]:
    """Keep only media items with a non-empty url; anything but "video" is an image."""
    if not isinstance(raw, (list, tuple)):
        return []

    media: list[MediaRef] = []
    for item in raw:
        if isinstance(item, MediaRef):
            item = item.to_dict()
        if not isinstance(item, Mapping):
            continue
        url = _coerce_text(item.get("url"))
        if not url:
            continue
        media_type = "video" if item.get("type") == "video" else "image"
        caption = item.get("caption")
        media.append(
            MediaRef(
                type=media_type,
                url=url,
                caption=None if caption is None else _coerce_text(caption),
            )
        )
    return media


def normalize_entry(raw: object) -> TimelineEntry:
    """Turn any decoded value into a valid entry. Never raises.

    Missing text fields become empty strings, ``title`` and ``date`` are
    trimmed, a missing id is synthesized and malformed media are dropped.
    Normalizing an already-normalized entry returns an equal entry.
    """
    if isinstance(raw, TimelineEntry):
        raw = raw.to_dict()
    if not isinstance(raw, Mapping):
        raw = {}

    values = {name: _coerce_text(raw.get(name)) for name in _TEXT_FIELDS}
    for name in _TRIMMED_FIELDS:
        values[name] = values[name].strip()

    entry_id = _coerce_text(raw.get("id")).strip()
    if not entry_id:
        entry_id = generate_entry_id(values["title"], with_suffix=True)

    return TimelineEntry(
        id=entry_id,
        media=normalize_media(raw.get("media")),
        **values,
    )


def build_quick_add_media(
    image_url: str = "", image_data: str = "", video_url: str = ""
) -> list[MediaRef]:
    """Media for the quick-add form: an uploaded image wins over a linked one."""
    media: list[MediaRef] = []
    if image_data:
        media.append(MediaRef(type="image", url=image_data))
    elif image_url:
        media.append(MediaRef(type="image", url=image_url))
    if video_url:
        media.append(MediaRef(type="video", url=video_url))
    return media


def create_entry(
    title: str,
    date: str,
    place: str,
    event: str,
    person: str = "",
    description: str = "",
    media: Iterable[MediaRef] = (),
    existing_ids: Collection[str] = (),
) -> TimelineEntry:
    """Create a new entry from quick-add form values.

    Args:
        title: Display title, must not be blank
        date: ``YYYY-MM-DD`` or bare ``YYYY``
        place: Place facet value
        event: Category facet value
        person: Optional person facet value
        description: Free text
        media: Attached images/videos
        existing_ids: Ids already in the store; the timestamp part of the new
            id is bumped until it no longer collides

    Raises:
        ValueError: If the title is blank or no unique id could be generated
    """
    title = (title or "").strip()
    if not title:
        raise ValueError("Entry title must not be empty")

    stamp = _timestamp_ms()
    for _ in range(3):
        entry_id = generate_entry_id(title, stamp=stamp)
        if entry_id not in existing_ids:
            break
        stamp += 1
    else:
        raise ValueError("Failed to generate unique timeline entry id")

    return TimelineEntry(
        id=entry_id,
        title=title,
        date=(date or "").strip(),
        place=place or "",
        event=event or "",
        person=person or "",
        description=description or "",
        media=normalize_media(list(media)),
    )
