"""Main entry point for the Dynamic Timeline application."""

from __future__ import annotations

import sys

from PySide6.QtWidgets import QApplication

from timeline.constants import DATABASE_PATH
from timeline.models import EntryStore
from timeline.session import TimelineSession
from timeline.storage import SlotStorage, initialize_storage
from timeline.ui import TimelineWindow


def main() -> int:
    """Load the persisted timeline and launch the application."""
    initialize_storage(DATABASE_PATH)
    store = EntryStore(SlotStorage(DATABASE_PATH))
    store.load()

    app = QApplication(sys.argv)
    window = TimelineWindow(TimelineSession(store))
    window.resize(1100, 760)
    window.show()
    return int(app.exec())


if __name__ == "__main__":
    sys.exit(main())
