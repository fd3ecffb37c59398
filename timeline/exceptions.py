"""Exception classes raised by the timeline core.

Hierarchy:
    Exception (built-in)
    └── TimelineError - Base for all timeline errors
        ├── PersistenceError - Local storage read/write failures
        ├── DecodeError - Import text is not valid JSON
        └── FormatError - Import document root is not an array

PersistenceError never reaches the user: the entry store logs and swallows
it. DecodeError and FormatError abort an import before the store is touched
and are shown to the user by the window.
"""

from __future__ import annotations


class TimelineError(Exception):
    """Base exception for timeline errors."""


class PersistenceError(TimelineError):
    """
    Raised when the persisted slot cannot be read or written.

    Wraps the underlying ``sqlite3.Error``. Callers treat a failed read as
    "no data yet" and a failed write as non-fatal.
    """


class DecodeError(TimelineError):
    """Raised when an import document is not valid JSON."""


class FormatError(TimelineError):
    """
    Raised when an import document decodes but its root is not an array.

    A document such as ``{"title": "X"}`` is rejected as a whole; nothing
    from it is applied.
    """
