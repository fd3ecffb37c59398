"""Control layer tying the entry store, the filter criteria and the selection together.

The window calls into a TimelineSession for every user action. After each
mutation or criteria change the session recomputes the visible sequence and
repairs the selection cursor against it.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable
from pathlib import Path

from timeline.filtering import apply_criteria, facet_values
from timeline.models import (
    EntryStore,
    FilterCriteria,
    ImportMode,
    MediaRef,
    SelectionCursor,
    TimelineEntry,
)
from timeline.normalizer import create_entry
from timeline.reconcile import (
    export_document,
    export_to_file,
    import_document,
    import_from_file,
)


class TimelineSession:
    """Current store, criteria and selection of one open timeline."""

    def __init__(self, store: EntryStore, criteria: FilterCriteria | None = None) -> None:
        self.store = store
        self.criteria = criteria or FilterCriteria()
        self.cursor = SelectionCursor()
        self._visible: list[TimelineEntry] = []
        self.refresh()

    # ---- derived views ----
    @property
    def visible_entries(self) -> list[TimelineEntry]:
        return list(self._visible)

    @property
    def selected(self) -> TimelineEntry | None:
        if self.cursor.selected_id is None:
            return None
        return self.store.get_by_id(self.cursor.selected_id)

    def facets(self) -> dict[str, list[str]]:
        entries = self.store.entries()
        return {
            field: facet_values(entries, field) for field in ("place", "event", "person")
        }

    def refresh(self) -> list[TimelineEntry]:
        """Recompute the visible sequence and repair the selection."""
        self._visible = apply_criteria(self.store.entries(), self.criteria)
        self.cursor.sync(self._visible)
        return self.visible_entries

    # ---- criteria & navigation ----
    def set_criteria(self, criteria: FilterCriteria) -> list[TimelineEntry]:
        self.criteria = criteria
        return self.refresh()

    def update_criteria(self, **changes) -> list[TimelineEntry]:
        return self.set_criteria(dataclasses.replace(self.criteria, **changes))

    def select(self, entry_id: str | None) -> TimelineEntry | None:
        self.cursor.select(entry_id)
        return self.selected

    def select_previous(self) -> TimelineEntry | None:
        self.cursor.prev()
        return self.selected

    def select_next(self) -> TimelineEntry | None:
        self.cursor.next()
        return self.selected

    # ---- mutations ----
    def add_entry(
        self,
        title: str,
        date: str,
        place: str,
        event: str,
        person: str = "",
        description: str = "",
        media: Iterable[MediaRef] = (),
    ) -> TimelineEntry:
        """Quick-add a new entry and select it."""
        entry = create_entry(
            title,
            date,
            place,
            event,
            person=person,
            description=description,
            media=media,
            existing_ids=self.store.ids(),
        )
        self.store.add(entry)
        self.cursor.select(entry.id)
        self.refresh()
        logging.info("Added timeline entry %s", entry.id)
        return entry

    def update_entry(self, entry: TimelineEntry) -> bool:
        updated = self.store.update(entry)
        self.refresh()
        return updated

    def delete_entry(self, entry_id: str) -> bool:
        """Delete an entry; the caller is responsible for confirming first."""
        removed = self.store.remove(entry_id)
        self.refresh()
        if removed:
            logging.info("Deleted timeline entry %s", entry_id)
        return removed

    # ---- import / export ----
    def export_text(self) -> str:
        return export_document(self.store.entries())

    def export_to(self, path: Path) -> int:
        return export_to_file(self.store.entries(), path)

    def import_text(self, text: str, mode: ImportMode | str) -> int:
        processed = import_document(self.store, text, mode)
        self._after_import(mode)
        return processed

    def import_from(self, path: Path, mode: ImportMode | str) -> int:
        processed = import_from_file(self.store, path, mode)
        self._after_import(mode)
        return processed

    def _after_import(self, mode: ImportMode | str) -> None:
        if ImportMode(mode) is ImportMode.REPLACE:
            self.cursor.select(None)
        self.refresh()
