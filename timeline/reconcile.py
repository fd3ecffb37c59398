"""Export of the timeline as a JSON document and merge/replace import from one."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from timeline.exceptions import DecodeError, FormatError
from timeline.models import EntryStore, ImportMode, TimelineEntry
from timeline.normalizer import normalize_entry


def export_document(entries: Sequence[TimelineEntry]) -> str:
    """Serialize entries as a pretty-printed JSON array."""
    return json.dumps(
        [entry.to_dict() for entry in entries], indent=2, ensure_ascii=False
    )


def suggested_export_filename(now: datetime | None = None) -> str:
    now = now or datetime.now()
    return f"timeline-{now.strftime('%Y%m%d-%H%M%S')}.json"


def _json_type_name(value: object) -> str:
    if isinstance(value, dict):
        return "object"
    if isinstance(value, str):
        return "string"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if value is None:
        return "null"
    return type(value).__name__


def _collapse_duplicate_ids(entries: list[TimelineEntry]) -> list[TimelineEntry]:
    # last record with an id wins but keeps the slot of the first one
    by_id: dict[str, TimelineEntry] = {}
    for entry in entries:
        by_id[entry.id] = entry
    return list(by_id.values())


def parse_document(text: str) -> tuple[list[TimelineEntry], int]:
    """Decode and normalize an import document.

    Returns:
        The normalized entries (ids unique) and the number of records the
        document contained

    Raises:
        DecodeError: If ``text`` is not valid JSON
        FormatError: If the decoded root is not an array
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as exc:
        raise DecodeError(f"Import document is not valid JSON: {exc}") from exc

    if not isinstance(data, list):
        raise FormatError(
            f"Import document must be a JSON array, got {_json_type_name(data)}"
        )

    entries = [normalize_entry(record) for record in data]
    return _collapse_duplicate_ids(entries), len(data)


def merge_entries(
    existing: Sequence[TimelineEntry], incoming: Sequence[TimelineEntry]
) -> list[TimelineEntry]:
    """Merge by id: incoming records replace colliding ones wholesale, in place.

    Existing order is preserved and records with new ids are appended in
    document order. Fields are never merged individually.
    """
    incoming_by_id = {entry.id: entry for entry in incoming}
    merged = [incoming_by_id.pop(entry.id, entry) for entry in existing]
    merged.extend(entry for entry in incoming if entry.id in incoming_by_id)
    return merged


def import_document(store: EntryStore, text: str, mode: ImportMode | str) -> int:
    """Apply an import document to ``store`` and return the number of records processed.

    The document is fully parsed before the store changes, so a DecodeError
    or FormatError leaves the store untouched.
    """
    mode = ImportMode(mode)
    entries, processed = parse_document(text)

    if mode is ImportMode.REPLACE:
        store.replace_all(entries)
    else:
        store.replace_all(merge_entries(store.entries(), entries))

    logging.info(
        "Imported %d timeline records (%s); store now holds %d entries.",
        processed,
        mode.value,
        len(store),
    )
    return processed


def export_to_file(entries: Sequence[TimelineEntry], path: Path) -> int:
    """Write the export document to ``path`` and return the number of entries."""
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        path.write_text(export_document(entries), encoding="utf-8")
    except OSError:
        logging.exception("Failed to write timeline export to %s", path)
        raise
    return len(entries)


def import_from_file(store: EntryStore, path: Path, mode: ImportMode | str) -> int:
    """Import the document at ``path``; a leading UTF-8 byte-order mark is skipped.

    Raises:
        DecodeError: If the file is not UTF-8 text or not valid JSON
        FormatError: If the decoded root is not an array
        OSError: If the file cannot be read
    """
    try:
        text = path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as exc:
        raise DecodeError(f"Import file {path.name} is not UTF-8 text: {exc}") from exc
    except OSError:
        logging.exception("Failed to read timeline import from %s", path)
        raise
    return import_document(store, text, mode)
