"""Unit tests for the entry store and the selection cursor."""

from __future__ import annotations

from timeline.exceptions import PersistenceError
from timeline.models import EntryStore, MediaRef, SelectionCursor, TimelineEntry


class RecordingStorage:
    """In-memory storage double that remembers every write."""

    def __init__(self, entries=None) -> None:
        self.entries = list(entries or [])
        self.writes: list[list[TimelineEntry]] = []

    def load(self):
        return list(self.entries)

    def save(self, entries):
        self.writes.append(list(entries))


class FailingStorage:
    def load(self):
        raise PersistenceError("slot unreadable")

    def save(self, entries):
        raise PersistenceError("disk full")


def make_entry(entry_id: str, **fields) -> TimelineEntry:
    values = {"title": entry_id.upper(), "date": "1900-01-01", "place": "Lima", "event": "War"}
    values.update(fields)
    return TimelineEntry(id=entry_id, **values)


def test_to_dict_omits_missing_caption():
    """Captions are only written when present."""
    entry = make_entry(
        "a",
        media=[
            MediaRef(type="image", url="https://example.org/a.png"),
            MediaRef(type="video", url="https://youtu.be/xyz", caption="Speech"),
        ],
    )

    payload = entry.to_dict()
    assert payload["media"] == [
        {"type": "image", "url": "https://example.org/a.png"},
        {"type": "video", "url": "https://youtu.be/xyz", "caption": "Speech"},
    ]
    assert payload["person"] == ""


def test_store_load_and_order():
    """load() replaces content and keeps the stored order."""
    storage = RecordingStorage([make_entry("b"), make_entry("a")])
    store = EntryStore(storage)

    loaded = store.load()
    assert [entry.id for entry in loaded] == ["b", "a"]
    assert len(store) == 2
    assert "a" in store
    assert store.get_by_id("missing") is None
    # loading does not write back
    assert storage.writes == []


def test_store_mutations_write_full_collection():
    """Every add/update/remove persists the whole resulting collection."""
    storage = RecordingStorage()
    store = EntryStore(storage)

    store.add(make_entry("a"))
    store.add(make_entry("b"))
    store.update(make_entry("a", title="Renamed"))
    store.remove("b")

    assert [len(write) for write in storage.writes] == [1, 2, 2, 1]
    assert storage.writes[-1][0].title == "Renamed"
    assert store.ids() == ["a"]


def test_store_update_and_remove_unknown_ids_are_noops():
    storage = RecordingStorage()
    store = EntryStore(storage)
    store.add(make_entry("a"))

    assert store.update(make_entry("zzz")) is False
    assert store.remove("zzz") is False
    assert store.ids() == ["a"]
    assert len(storage.writes) == 1


def test_store_update_keeps_position():
    store = EntryStore(RecordingStorage())
    for entry_id in ("a", "b", "c"):
        store.add(make_entry(entry_id))

    store.update(make_entry("b", place="Quito"))

    assert store.ids() == ["a", "b", "c"]
    assert store.get_by_id("b").place == "Quito"


def test_store_rejects_duplicate_id():
    store = EntryStore()
    store.add(make_entry("a"))

    try:
        store.add(make_entry("a"))
    except ValueError as exc:
        assert "a" in str(exc)
    else:
        raise AssertionError("duplicate id was accepted")


def test_store_survives_persistence_failures():
    """Failed reads start empty; failed writes never undo the in-memory change."""
    store = EntryStore(FailingStorage())

    assert store.load() == []

    store.add(make_entry("a"))
    store.update(make_entry("a", title="Still here"))
    assert store.get_by_id("a").title == "Still here"

    store.remove("a")
    assert len(store) == 0


def test_replace_all_collapses_duplicate_ids():
    store = EntryStore(RecordingStorage())
    store.replace_all([make_entry("a"), make_entry("b"), make_entry("a", title="Last")])

    assert store.ids() == ["a", "b"]
    assert store.get_by_id("a").title == "Last"


def test_cursor_wraparound():
    """From the first element prev() wraps to the last, and next() wraps back."""
    entries = [make_entry(entry_id) for entry_id in ("a", "b", "c")]
    cursor = SelectionCursor()
    assert cursor.sync(entries) == "a"
    assert cursor.index == 0

    assert cursor.prev() == "c"
    assert cursor.index == 2
    assert cursor.next() == "a"
    assert cursor.next() == "b"
    assert cursor.prev() == "a"


def test_cursor_single_element_wraps_to_itself():
    cursor = SelectionCursor()
    cursor.sync([make_entry("only")])

    assert cursor.prev() == "only"
    assert cursor.next() == "only"


def test_cursor_empty_sequence():
    cursor = SelectionCursor()
    assert cursor.sync([]) is None
    assert cursor.prev() is None
    assert cursor.next() is None
    assert cursor.index == -1


def test_cursor_repair_rule():
    """A vanished selection falls back to the first element, or to none."""
    cursor = SelectionCursor()
    cursor.sync([make_entry("a"), make_entry("b")])
    cursor.select("b")

    # still present: kept
    assert cursor.sync([make_entry("c"), make_entry("b")]) == "b"
    # gone: first element of the new sequence
    assert cursor.sync([make_entry("c"), make_entry("d")]) == "c"
    # empty: none selected
    assert cursor.sync([]) is None


def test_cursor_navigation_from_unknown_selection():
    entries = [make_entry(entry_id) for entry_id in ("a", "b", "c")]
    cursor = SelectionCursor()
    cursor.sync(entries)

    cursor.select("elsewhere")
    assert cursor.index == -1
    assert cursor.prev() == "c"

    cursor.select("elsewhere")
    assert cursor.next() == "a"
