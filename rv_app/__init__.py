"""Navigation and presentation state for redis-scan-viewer."""

from rv_app.api import Action, MessageLog, NavigationController

__all__ = ["Action", "MessageLog", "NavigationController"]
