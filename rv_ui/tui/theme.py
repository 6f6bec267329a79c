"""Colours for the viewer and the rich messages printed before it starts."""

from __future__ import annotations

from typing import Mapping

STARTUP_ERROR_TEMPLATE = "[bold red]rv:[/bold red] [red]{message}[/red]"


def startup_error(message: str) -> str:
    return STARTUP_ERROR_TEMPLATE.format(message=message)


def prompt_toolkit_viewer_style() -> Mapping[str, str]:
    return {
        "selected": "bg:#0000aa fg:white",
        "frame.border": "fg:#0000aa",
        "frame.label": "fg:#0000aa bold",
        "worker.enabled": "fg:ansigreen",
        "worker.disabled": "fg:ansired",
        "pattern.single": "fg:ansicyan",
        "age.none": "fg:ansiwhite",
        "age.new": "fg:ansigreen",
        "age.medium": "fg:ansiyellow",
        "age.stale": "fg:ansired",
        "shape": "fg:ansigreen",
        "label": "fg:ansicyan",
        "index": "fg:ansicyan",
        "score": "fg:ansigreen",
        "field": "fg:ansigreen",
        "key": "fg:ansiyellow",
        "dim": "fg:#888888",
        "log.info": "",
        "log.warning": "fg:ansiyellow",
        "log.error": "fg:ansired",
    }
