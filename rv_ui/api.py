"""Public API surface for rv_ui."""

from rv_ui.cli import app, main, run_viewer
from rv_ui.tui.app import ViewerApp

__all__ = ["ViewerApp", "app", "main", "run_viewer"]
