"""Tests for the control layer that keeps the view and selection in sync."""

from __future__ import annotations

import json

import pytest

from timeline.constants import ALL
from timeline.exceptions import FormatError
from timeline.models import EntryStore, FilterCriteria, ImportMode, TimelineEntry, ViewMode
from timeline.session import TimelineSession
from timeline.storage import SlotStorage


def make_entry(entry_id: str, **fields) -> TimelineEntry:
    values = {"title": entry_id, "date": "1900-01-01", "place": "Lima", "event": "War"}
    values.update(fields)
    return TimelineEntry(id=entry_id, **values)


@pytest.fixture
def session(tmp_path):
    store = EntryStore(SlotStorage(tmp_path / "timeline.sqlite3"))
    store.replace_all(
        [
            make_entry("a", date="1900-01-01"),
            make_entry("b", date="1895-05-01"),
            make_entry("c", date="1901-01-01", place="Quito", person="Sucre"),
        ]
    )
    return TimelineSession(store)


def visible_ids(session: TimelineSession) -> list[str]:
    return [entry.id for entry in session.visible_entries]


def test_initial_selection_is_first_visible(session):
    assert visible_ids(session) == ["b", "a", "c"]
    assert session.selected.id == "b"


def test_empty_session_selects_nothing():
    session = TimelineSession(EntryStore())
    assert session.visible_entries == []
    assert session.selected is None
    assert session.select_next() is None


def test_navigation_wraps(session):
    assert session.select_previous().id == "c"
    assert session.select_next().id == "b"
    assert session.select_next().id == "a"


def test_facets(session):
    facets = session.facets()
    assert facets["place"] == [ALL, "Lima", "Quito"]
    assert facets["person"] == [ALL, "Sucre"]
    assert facets["event"] == [ALL, "War"]


def test_criteria_change_repairs_selection(session):
    session.select("c")

    session.update_criteria(place="Lima")

    assert visible_ids(session) == ["b", "a"]
    assert session.selected.id == "b"

    session.update_criteria(place=ALL, view_mode=ViewMode.PERSON)
    assert visible_ids(session) == ["b", "a", "c"]
    # selection still present, kept
    assert session.selected.id == "b"


def test_criteria_filtering_everything_clears_selection(session):
    session.set_criteria(FilterCriteria(query_text="no such entry"))

    assert session.visible_entries == []
    assert session.selected is None


def test_add_entry_selects_new_entry_and_persists(session, tmp_path):
    entry = session.add_entry("Ayacucho", "1924-12-09", "Ayacucho", "Battle", person="Sucre")

    assert entry.id.startswith("ayacucho-")
    assert session.selected.id == entry.id
    assert visible_ids(session) == ["b", "a", "c", entry.id]

    reopened = EntryStore(SlotStorage(tmp_path / "timeline.sqlite3"))
    assert entry.id in [stored.id for stored in reopened.load()]


def test_add_filtered_out_entry_falls_back_to_first(session):
    session.update_criteria(place="Lima")

    session.add_entry("Elsewhere", "1900", "Quito", "War")

    assert session.selected.id == "b"


def test_update_entry_replaces_record(session):
    changed = make_entry("a", title="Renamed", place="Quito")

    assert session.update_entry(changed) is True
    assert session.store.get_by_id("a").title == "Renamed"
    assert session.update_entry(make_entry("zzz")) is False


def test_delete_selected_entry_moves_to_first(session):
    session.select("a")

    assert session.delete_entry("a") is True

    assert visible_ids(session) == ["b", "c"]
    assert session.selected.id == "b"
    assert session.delete_entry("a") is False


def test_replace_import_resets_selection(session):
    session.select("c")
    document = json.dumps([{"id": "y", "title": "Y", "date": "1950"}, {"id": "x", "title": "X", "date": "1940"}])

    assert session.import_text(document, ImportMode.REPLACE) == 2

    assert visible_ids(session) == ["x", "y"]
    assert session.selected.id == "x"


def test_merge_import_repairs_vanished_selection(session):
    session.update_criteria(place="Lima")
    session.select("a")
    document = json.dumps([make_entry("a", place="Quito").to_dict()])

    session.import_text(document, ImportMode.MERGE)

    assert visible_ids(session) == ["b"]
    assert session.selected.id == "b"


def test_merge_import_keeps_present_selection(session):
    session.select("c")

    session.import_text(json.dumps([{"id": "new", "title": "New"}]), "merge")

    assert session.selected.id == "c"
    assert len(session.store) == 4


def test_bad_import_changes_nothing(session):
    session.select("a")

    with pytest.raises(FormatError):
        session.import_text('{"not": "an array"}', ImportMode.REPLACE)

    assert visible_ids(session) == ["b", "a", "c"]
    assert session.selected.id == "a"


def test_export_and_import_files(session, tmp_path):
    target = tmp_path / "out.json"
    assert session.export_to(target) == 3
    assert json.loads(session.export_text()) == json.loads(target.read_text(encoding="utf-8"))

    fresh = TimelineSession(EntryStore())
    assert fresh.import_from(target, ImportMode.MERGE) == 3
    assert visible_ids(fresh) == ["b", "a", "c"]
