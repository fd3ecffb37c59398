"""Facet menus and the filter/sort pipeline behind the timeline views.

Everything here is a pure function of the entries and the criteria, so the
caller simply recomputes after any change to either.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable, Sequence

from timeline.constants import ALL, START_YEAR
from timeline.models import FilterCriteria, TimelineEntry, ViewMode

FACET_FIELDS = ("place", "event", "person")

_YEAR_PATTERN = re.compile(r"\d{4}")
_DATE_PATTERN = re.compile(r"^(\d{4})(?:-(\d{1,2}))?(?:-(\d{1,2}))?")
_QUERY_FIELDS = ("title", "description", "place", "event", "person")


def locale_key(text: str) -> tuple[str, str]:
    """Sort key approximating a locale-aware compare.

    Accents and case are ignored for the primary ordering ("Ávila" sits with
    "avila", before "Bogotá"); the raw text breaks ties so ordering is total.
    """
    decomposed = unicodedata.normalize("NFKD", text)
    base = "".join(char for char in decomposed if not unicodedata.combining(char))
    return base.casefold(), text


def entry_year(date: str) -> int:
    """Year from the leading four digits of ``date``; ``START_YEAR`` when absent."""
    match = _YEAR_PATTERN.match(date or "")
    if match is None:
        return START_YEAR
    return int(match.group(0))


def date_sort_key(date: str) -> tuple[int, int, int]:
    """Chronological key; a bare year counts as January 1st of that year."""
    match = _DATE_PATTERN.match((date or "").strip())
    if match is None:
        return START_YEAR, 1, 1
    year, month, day = match.groups()
    return int(year), int(month or 1), int(day or 1)


def facet_values(entries: Iterable[TimelineEntry], field: str) -> list[str]:
    """Return ``[ALL]`` followed by the distinct non-empty values of ``field``."""
    if field not in FACET_FIELDS:
        raise ValueError(f"Unknown facet field: {field}")
    values = {getattr(entry, field) for entry in entries}
    values.discard("")
    return [ALL, *sorted(values, key=locale_key)]


def _facet_matches(selected: str, value: str) -> bool:
    return selected is ALL or value == selected


def matches_criteria(entry: TimelineEntry, criteria: FilterCriteria) -> bool:
    year = entry_year(entry.date)
    if not criteria.year_from <= year <= criteria.year_to:
        return False

    if not (
        _facet_matches(criteria.place, entry.place)
        and _facet_matches(criteria.event, entry.event)
        and _facet_matches(criteria.person, entry.person)
    ):
        return False

    query = criteria.query_text.strip().lower()
    if not query:
        return True
    if any(query in getattr(entry, name).lower() for name in _QUERY_FIELDS):
        return True
    # dates are matched as typed, without lower-casing
    return query in entry.date


def sort_entries(
    entries: Iterable[TimelineEntry], view_mode: ViewMode
) -> list[TimelineEntry]:
    """Stable sort for the given view; equal keys keep their input order."""
    if view_mode == ViewMode.DATE:
        return sorted(entries, key=lambda entry: date_sort_key(entry.date))

    field = {
        ViewMode.PLACE: "place",
        ViewMode.EVENT: "event",
        ViewMode.PERSON: "person",
    }[ViewMode(view_mode)]
    return sorted(
        entries,
        key=lambda entry: (
            locale_key(getattr(entry, field) or ""),
            date_sort_key(entry.date),
        ),
    )


def apply_criteria(
    entries: Sequence[TimelineEntry], criteria: FilterCriteria
) -> list[TimelineEntry]:
    """Filter ``entries`` by ``criteria`` and order them for its view mode."""
    kept = [entry for entry in entries if matches_criteria(entry, criteria)]
    return sort_entries(kept, criteria.view_mode)
