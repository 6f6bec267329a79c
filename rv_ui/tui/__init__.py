"""Full-screen terminal UI built on prompt_toolkit."""

from rv_ui.tui.app import ViewerApp

__all__ = ["ViewerApp"]
