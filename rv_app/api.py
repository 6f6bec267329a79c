"""Public API surface for rv_app."""

from rv_app.message_log import LogEntry, MessageLog
from rv_app.navigation import Action, NavigationController, ScrollCursor
from rv_app.viewmodels import AgeBands, Row, ScreenView, preview_rows, row_text

__all__ = [
    "Action",
    "AgeBands",
    "LogEntry",
    "MessageLog",
    "NavigationController",
    "Row",
    "ScreenView",
    "ScrollCursor",
    "preview_rows",
    "row_text",
]
