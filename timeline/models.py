"""Data models for timeline entries, filter criteria, the entry store and selection."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from timeline.constants import ALL, CURRENT_YEAR, START_YEAR
from timeline.exceptions import PersistenceError


@dataclass
class MediaRef:
    """An image or video attached to an entry, by remote URL or data URL."""

    type: str
    url: str
    caption: str | None = None

    def to_dict(self) -> dict[str, str]:
        payload = {"type": self.type, "url": self.url}
        if self.caption is not None:
            payload["caption"] = self.caption
        return payload


@dataclass
class TimelineEntry:
    """Represents a single dated timeline entry."""

    id: str
    title: str
    date: str
    place: str = ""
    event: str = ""
    person: str = ""
    description: str = ""
    media: list[MediaRef] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON record shape used for persistence and export."""
        return {
            "id": self.id,
            "title": self.title,
            "date": self.date,
            "place": self.place,
            "event": self.event,
            "person": self.person,
            "description": self.description,
            "media": [item.to_dict() for item in self.media],
        }


class ViewMode(str, Enum):
    """Active sort/grouping dimension of the timeline."""

    DATE = "Date"
    PLACE = "Place"
    EVENT = "Event"
    PERSON = "Person"


class ImportMode(str, Enum):
    MERGE = "merge"
    REPLACE = "replace"


@dataclass(frozen=True)
class FilterCriteria:
    """Current filter state; facet fields hold ``ALL`` when unfiltered."""

    query_text: str = ""
    year_from: int = START_YEAR
    year_to: int = CURRENT_YEAR
    place: str = ALL
    event: str = ALL
    person: str = ALL
    view_mode: ViewMode = ViewMode.DATE


class EntryStorage(Protocol):
    def load(self) -> list[TimelineEntry]: ...

    def save(self, entries: Sequence[TimelineEntry]) -> None: ...


class EntryStore:
    """内存中的条目集合，维护 id→entry 映射与插入顺序，是所有条目的唯一来源。

    每次 add/update/remove 之后都会把完整集合写回 storage；写入失败只记录日志，
    不会撤销内存中的修改。
    """

    def __init__(self, storage: EntryStorage | None = None) -> None:
        self._storage = storage
        # id → entry 映射，支持快速查找和存在性检查
        self._entries: dict[str, TimelineEntry] = {}
        # 插入顺序的 id 列表
        self._order: list[str] = []

    def __len__(self) -> int:
        return len(self._order)

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._entries

    def load(self) -> list[TimelineEntry]:
        """Replace the in-memory content with what storage holds."""
        loaded: list[TimelineEntry] = []
        if self._storage is not None:
            try:
                loaded = self._storage.load()
            except PersistenceError:
                logging.exception("Failed to load timeline entries; starting empty.")
                loaded = []
        self._set_entries(loaded)
        return self.entries()

    def save(self, entries: Sequence[TimelineEntry] | None = None) -> None:
        """Write the full collection; failures are logged and swallowed."""
        if self._storage is None:
            return
        payload = self.entries() if entries is None else list(entries)
        try:
            self._storage.save(payload)
        except PersistenceError:
            logging.exception("Failed to persist %d timeline entries.", len(payload))

    def entries(self) -> list[TimelineEntry]:
        """返回按插入顺序排列的所有条目。"""
        return [self._entries[entry_id] for entry_id in self._order]

    def ids(self) -> list[str]:
        return list(self._order)

    def get_by_id(self, entry_id: str) -> TimelineEntry | None:
        return self._entries.get(entry_id)

    def add(self, entry: TimelineEntry) -> TimelineEntry:
        if entry.id in self._entries:
            raise ValueError(f"Entry id already exists: {entry.id}")
        self._entries[entry.id] = entry
        self._order.append(entry.id)
        self.save()
        return entry

    def update(self, entry: TimelineEntry) -> bool:
        """Replace the record sharing ``entry.id``; no-op if the id is unknown."""
        if entry.id not in self._entries:
            return False
        self._entries[entry.id] = entry
        self.save()
        return True

    def remove(self, entry_id: str) -> bool:
        if entry_id not in self._entries:
            return False
        del self._entries[entry_id]
        self._order.remove(entry_id)
        self.save()
        return True

    def replace_all(self, entries: Iterable[TimelineEntry]) -> None:
        """Make the store exactly ``entries`` (later duplicates of an id win)."""
        self._set_entries(entries)
        self.save()

    def _set_entries(self, entries: Iterable[TimelineEntry]) -> None:
        self._entries.clear()
        self._order.clear()
        for entry in entries:
            if entry.id not in self._entries:
                self._order.append(entry.id)
            self._entries[entry.id] = entry


class SelectionCursor:
    """Tracks the selected entry id within the current filtered sequence."""

    def __init__(self) -> None:
        self.selected_id: str | None = None
        self._ids: list[str] = []

    @property
    def index(self) -> int:
        """Position of the selection in the sequence, or -1 when absent."""
        if self.selected_id is None:
            return -1
        try:
            return self._ids.index(self.selected_id)
        except ValueError:
            return -1

    def select(self, entry_id: str | None) -> None:
        self.selected_id = entry_id

    def sync(self, entries: Sequence[TimelineEntry]) -> str | None:
        """Adopt a new filtered sequence and repair the selection if it vanished."""
        self._ids = [entry.id for entry in entries]
        if self.selected_id not in self._ids:
            self.selected_id = self._ids[0] if self._ids else None
        return self.selected_id

    def prev(self) -> str | None:
        if not self._ids:
            return self.selected_id
        current = self.index
        position = len(self._ids) - 1 if current <= 0 else current - 1
        self.selected_id = self._ids[position]
        return self.selected_id

    def next(self) -> str | None:
        if not self._ids:
            return self.selected_id
        current = self.index
        position = 0 if current >= len(self._ids) - 1 else current + 1
        self.selected_id = self._ids[position]
        return self.selected_id
