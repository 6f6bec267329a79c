"""Four-screen drill-down state machine over the scanning engine."""

from __future__ import annotations

import logging
import time
from concurrent.futures import CancelledError, Future
from datetime import datetime
from enum import Enum
from typing import Callable

from rv_app import viewmodels
from rv_app.message_log import MessageLog
from rv_app.viewmodels import AgeBands, Row, ScreenView
from rv_common.errors import FetchError, ShapeMismatchError
from rv_scanner.engine import WorkerEngine
from rv_scanner.fetcher import DEFAULT_FETCH_TIMEOUT, ValueFetcher
from rv_scanner.models import DetailResult, Screen, SelectionSet, ValueShape

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10


class Action(str, Enum):
    UP = "up"
    DOWN = "down"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    HOME = "home"
    END = "end"
    SELECT = "select"
    BACK = "back"
    ENABLE = "enable"
    DISABLE = "disable"
    MESSAGES = "messages"


_SCROLL_ACTIONS = {
    Action.UP,
    Action.DOWN,
    Action.PAGE_UP,
    Action.PAGE_DOWN,
    Action.HOME,
    Action.END,
}

# Where BACK leads from each screen; the Log screen returns to whatever was
# active before it and is handled separately.
_BACK_TARGETS = {
    Screen.SELECTION: Screen.OVERVIEW,
    Screen.DETAIL: Screen.SELECTION,
}


class ScrollCursor:
    """Row cursor of one screen, always clamped to the row count it is given."""

    def __init__(self) -> None:
        self._index = 0

    def resolve(self, count: int) -> int:
        """Clamp the stored index to ``[0, count - 1]`` (0 when empty) and return it."""
        if count <= 0:
            self._index = 0
        else:
            self._index = max(0, min(self._index, count - 1))
        return self._index

    def move(self, delta: int, count: int) -> int:
        self._index = self.resolve(count) + delta
        return self.resolve(count)

    def top(self) -> int:
        self._index = 0
        return 0

    def bottom(self, count: int) -> int:
        self._index = max(0, count - 1)
        return self._index

    def reset(self) -> None:
        self._index = 0


class NavigationController:
    """Maps user actions to screen transitions and builds the active view.

    Only the UI thread calls into the controller. Background state is read
    through engine snapshots, so a row list always reflects one instant.
    """

    def __init__(
        self,
        engine: WorkerEngine,
        fetcher: ValueFetcher,
        log: MessageLog,
        *,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
        bands: AgeBands | None = None,
        clock: Callable[[], datetime] | None = None,
        monotonic: Callable[[], float] = time.monotonic,
        page_size: int = DEFAULT_PAGE_SIZE,
        width: int = viewmodels.DEFAULT_WIDTH,
    ) -> None:
        self._engine = engine
        self._fetcher = fetcher
        self._log = log
        self._fetch_timeout = fetch_timeout
        self._bands = bands or AgeBands()
        self._clock = clock or (lambda: datetime.now().astimezone())
        self._monotonic = monotonic
        self.page_size = page_size
        self.width = width

        self._screen = Screen.OVERVIEW
        self._before_log = Screen.OVERVIEW
        self._cursors = {screen: ScrollCursor() for screen in Screen}
        self._selection: SelectionSet | None = None
        self._detail: DetailResult | None = None
        self._pending: Future[DetailResult] | None = None
        self._deadline = 0.0

    @property
    def screen(self) -> Screen:
        return self._screen

    @property
    def selection(self) -> SelectionSet | None:
        return self._selection

    @property
    def detail(self) -> DetailResult | None:
        return self._detail

    @property
    def pending_fetch(self) -> Future[DetailResult] | None:
        return self._pending

    def cursor(self, screen: Screen | None = None) -> int:
        screen = screen or self._screen
        return self._cursors[screen].resolve(self.row_count(screen))

    def row_count(self, screen: Screen | None = None) -> int:
        screen = screen or self._screen
        if screen is Screen.OVERVIEW:
            return len(self._engine)
        if screen is Screen.SELECTION:
            return len(self._selection) if self._selection else 0
        if screen is Screen.DETAIL:
            return len(viewmodels.detail_rows(self._detail))
        return len(self._log)

    def handle(self, action: Action) -> None:
        if action in _SCROLL_ACTIONS:
            self._scroll(action)
        elif action is Action.MESSAGES:
            self._open_log()
        elif action is Action.BACK:
            self._back()
        elif action is Action.SELECT:
            if self._screen is Screen.OVERVIEW:
                self._select_worker()
            elif self._screen is Screen.SELECTION:
                self._select_key()
        elif action in (Action.ENABLE, Action.DISABLE):
            if self._screen is Screen.OVERVIEW:
                self._toggle_worker(action is Action.ENABLE)

    def _scroll(self, action: Action) -> None:
        cursor = self._cursors[self._screen]
        count = self.row_count()
        if action is Action.UP:
            cursor.move(-1, count)
        elif action is Action.DOWN:
            cursor.move(1, count)
        elif action is Action.PAGE_UP:
            cursor.move(-max(1, self.page_size), count)
        elif action is Action.PAGE_DOWN:
            cursor.move(max(1, self.page_size), count)
        elif action is Action.HOME:
            cursor.top()
        else:
            cursor.bottom(count)

    def _open_log(self) -> None:
        if self._screen is Screen.LOG:
            return
        self._before_log = self._screen
        self._cursors[Screen.LOG].bottom(len(self._log))
        self._screen = Screen.LOG

    def _back(self) -> None:
        if self._screen is Screen.LOG:
            self._screen = self._before_log
            return
        target = _BACK_TARGETS.get(self._screen)
        if target is None:
            return
        if self._screen is Screen.SELECTION:
            self._selection = None
        elif self._screen is Screen.DETAIL:
            self._pending = None
            self._detail = None
        self._screen = target

    def _select_worker(self) -> None:
        index = self.cursor(Screen.OVERVIEW)
        chosen = self._engine.select_by_index(index)
        if chosen is None:
            self._log.info(f"no scanner at row {index}")
            return
        if not chosen.matches:
            self._log.info(f'no matching keys for "{chosen.name}" ({chosen.pattern})')
            return
        self._selection = SelectionSet.build(
            chosen.matches, chosen.shape, source=chosen.name
        )
        self._cursors[Screen.SELECTION].reset()
        self._screen = Screen.SELECTION

    def _select_key(self) -> None:
        if self._selection is None:
            return
        key = self._selection.item_at(self.cursor(Screen.SELECTION))
        if key is None:
            return
        self._start_fetch(key, self._selection.shape)
        self._cursors[Screen.DETAIL].reset()
        self._screen = Screen.DETAIL

    def _start_fetch(self, key: str, shape: ValueShape) -> None:
        self._detail = DetailResult.pending(key, shape)
        self._deadline = self._monotonic() + self._fetch_timeout
        try:
            self._pending = self._fetcher.submit(key, shape)
        except RuntimeError as exc:
            # Raised by an executor that has already been shut down.
            self._pending = None
            self._fail_detail(key, shape, f"fetch {key!r}: {exc}")
            return
        self.poll()

    def _toggle_worker(self, enable: bool) -> None:
        index = self.cursor(Screen.OVERVIEW)
        name = self._engine.enable(index) if enable else self._engine.disable(index)
        if name is not None:
            state = "enabled" if enable else "disabled"
            self._log.info(f'{state} worker "{name}"')

    def poll(self) -> None:
        """Install a finished fetch, or fail it once its deadline has passed."""
        future = self._pending
        if future is None or self._detail is None:
            return
        key, shape = self._detail.key, self._detail.shape
        if future.done():
            self._pending = None
            try:
                self._detail = future.result()
            except ShapeMismatchError as exc:
                self._fail_detail(key, shape, f"shape mismatch for {key!r}: {exc}")
            except FetchError as exc:
                self._fail_detail(key, shape, f"fetch {key!r}: {exc}")
            except CancelledError:
                self._fail_detail(key, shape, f"fetch {key!r}: cancelled")
            except Exception as exc:
                logger.exception("Unexpected failure fetching %s", key)
                self._fail_detail(key, shape, f"fetch {key!r}: {type(exc).__name__}: {exc}")
            return
        if self._monotonic() >= self._deadline:
            future.cancel()
            self._pending = None
            self._fail_detail(
                key, shape, f"fetch {key!r}: timed out after {self._fetch_timeout:g}s"
            )

    def _fail_detail(self, key: str, shape: ValueShape, message: str) -> None:
        self._log.error(message)
        self._detail = DetailResult.failed(key, shape, message)

    def view(self) -> ScreenView:
        """Rows, title and clamped index of the active screen."""
        screen = self._screen
        rows: list[Row]
        if screen is Screen.OVERVIEW:
            rows = viewmodels.overview_rows(
                self._engine.snapshots(), self._clock(), self._bands, width=self.width
            )
            title = viewmodels.overview_title(len(rows))
        elif screen is Screen.SELECTION:
            rows = viewmodels.selection_rows(self._selection)
            title = viewmodels.selection_title(self._selection)
        elif screen is Screen.DETAIL:
            rows = viewmodels.detail_rows(self._detail)
            title = viewmodels.detail_title(self._detail)
        else:
            entries = self._log.entries()
            rows = viewmodels.log_rows(entries)
            title = viewmodels.log_title(len(entries))
        index = self._cursors[screen].resolve(len(rows))
        return ScreenView(
            screen=screen,
            title=title,
            rows=rows,
            index=index,
            help=viewmodels.help_rows(screen),
        )
