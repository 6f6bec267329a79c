from __future__ import annotations

import logging
from typing import Any, Sequence

from prompt_toolkit.application import Application
from prompt_toolkit.data_structures import Point
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import HSplit, Layout, VSplit, Window
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.layout.dimension import Dimension
from prompt_toolkit.styles import Style
from prompt_toolkit.widgets import Frame

from rv_app.message_log import MessageLog
from rv_app.navigation import Action, NavigationController
from rv_app.viewmodels import Row, ScreenView, preview_rows
from rv_ui.tui import theme

logger = logging.getLogger(__name__)

FOOTER_HEIGHT = 7
# Frame borders around the main list plus the footer frames.
CHROME_ROWS = FOOTER_HEIGHT + 2

KEY_ACTIONS: dict[str, Action] = {
    "up": Action.UP,
    "down": Action.DOWN,
    "pageup": Action.PAGE_UP,
    "pagedown": Action.PAGE_DOWN,
    "home": Action.HOME,
    "end": Action.END,
    "enter": Action.SELECT,
    "escape": Action.BACK,
    "e": Action.ENABLE,
    "d": Action.DISABLE,
    "m": Action.MESSAGES,
}

QUIT_KEYS = ("q", "c-c")


def list_fragments(rows: Sequence[Row], index: int) -> list[tuple[str, str]]:
    """Flatten rows into one fragment list, highlighting the row at ``index``."""
    fragments: list[tuple[str, str]] = []
    for i, row in enumerate(rows):
        if i == index:
            fragments.extend((f"{style} class:selected".strip(), text) for style, text in row)
        else:
            fragments.extend(row)
        fragments.append(("", "\n"))
    return fragments


def page_size_for(height: int) -> int:
    return max(1, height - CHROME_ROWS)


class ViewerApp:
    """Wires a NavigationController to a full-screen prompt_toolkit Application.

    The application redraws every ``refresh_interval`` seconds; each redraw
    polls pending fetches and rebuilds the active view from fresh snapshots.
    """

    def __init__(
        self,
        controller: NavigationController,
        log: MessageLog,
        *,
        refresh_interval: float = 0.1,
        preview: int = 3,
    ) -> None:
        self._controller = controller
        self._log = log
        self._preview = preview
        self._view: ScreenView = controller.view()

        self._main_control = FormattedTextControl(
            self._main_fragments,
            focusable=True,
            show_cursor=False,
            get_cursor_position=lambda: Point(x=0, y=self._view.index),
        )
        self._help_control = FormattedTextControl(self._help_fragments)
        self._preview_control = FormattedTextControl(self._preview_fragments)

        root_container = HSplit(
            [
                Frame(Window(self._main_control), title=lambda: self._view.title.strip()),
                VSplit(
                    [
                        Frame(
                            Window(self._help_control, wrap_lines=True),
                            title="Help",
                            width=Dimension(weight=1),
                        ),
                        Frame(
                            Window(self._preview_control, wrap_lines=True),
                            title="Messages",
                            width=Dimension(weight=1),
                        ),
                    ],
                    height=FOOTER_HEIGHT,
                ),
            ]
        )

        self._app: Application[None] = Application(
            layout=Layout(root_container, focused_element=self._main_control),
            key_bindings=self._bindings(),
            style=Style.from_dict(theme.prompt_toolkit_viewer_style()),
            full_screen=True,
            refresh_interval=refresh_interval,
            before_render=lambda _: self._refresh(),
        )
        self._app.ttimeoutlen = 0.05

    @property
    def application(self) -> Application[None]:
        return self._app

    def run(self) -> None:
        logger.info("Viewer started")
        self._app.run()
        logger.info("Viewer stopped")

    def _refresh(self) -> None:
        size = self._app.output.get_size()
        self._controller.page_size = page_size_for(size.rows)
        self._controller.width = max(20, size.columns - 2)
        self._controller.poll()
        self._view = self._controller.view()

    def _main_fragments(self) -> list[tuple[str, str]]:
        return list_fragments(self._view.rows, self._view.index)

    def _help_fragments(self) -> list[tuple[str, str]]:
        return list_fragments(self._view.help, -1)

    def _preview_fragments(self) -> list[tuple[str, str]]:
        return list_fragments(preview_rows(self._log.tail(self._preview)), -1)

    def _bindings(self) -> KeyBindings:
        kb = KeyBindings()

        for key, action in KEY_ACTIONS.items():
            kb.add(key)(self._dispatcher(action))

        @kb.add(QUIT_KEYS[0])
        @kb.add(QUIT_KEYS[1])
        def _(event: Any) -> None:
            event.app.exit()

        return kb

    def _dispatcher(self, action: Action):
        def _(event: Any) -> None:
            self._controller.handle(action)
            self._refresh()
            event.app.invalidate()

        return _
