"""Pure state -> row mappings for every screen (UI-agnostic).

A row is a list of ``(style, text)`` fragments. Styles are symbolic
``class:`` names; what they look like is up to the renderer.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Sequence, TypeAlias

from rv_app.message_log import LogEntry
from rv_scanner.models import (
    DetailResult,
    Screen,
    SelectionSet,
    ValueShape,
    WorkerSnapshot,
    fields_view,
)

Fragment: TypeAlias = tuple[str, str]
Row: TypeAlias = list[Fragment]

COUNT_WIDTH = 7
AGE_WIDTH = 10
TYPE_WIDTH = 6
DEFAULT_WIDTH = 80


@dataclass(frozen=True)
class AgeBands:
    """Upper bounds, in seconds, of the "new" and "medium" age styles."""

    new: float = 30.0
    medium: float = 60.0

    def style(self, age: float | None) -> str:
        if age is None:
            return "class:age.none"
        if age <= self.new:
            return "class:age.new"
        if age <= self.medium:
            return "class:age.medium"
        return "class:age.stale"


@dataclass(frozen=True)
class ScreenView:
    """Everything the renderer needs to draw the active screen."""

    screen: Screen
    title: str
    rows: list[Row]
    index: int
    help: list[Row]


def row_text(row: Row) -> str:
    return "".join(text for _, text in row)


def format_age(seconds: float) -> str:
    """Whole-second age in the compact ``1h2m3s`` form."""
    total = int(round(max(0.0, seconds)))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{minutes}m{secs}s"
    return f"{secs}s"


def _fit(text: str, width: int) -> str:
    width = max(0, width)
    return text[:width].ljust(width)


def column_widths(width: int) -> tuple[int, int]:
    """Split the space left after count and age columns 1:2 between name and pattern."""
    remaining = max(2, width - COUNT_WIDTH - AGE_WIDTH - 5)
    name_width = remaining // 3
    return name_width, remaining - name_width


# Overview


def overview_title(count: int) -> str:
    return f" Scanners [{count}] "


def overview_rows(
    snapshots: Sequence[WorkerSnapshot],
    now: datetime,
    bands: AgeBands,
    *,
    width: int = DEFAULT_WIDTH,
) -> list[Row]:
    name_width, pattern_width = column_widths(width)
    return [
        _overview_row(snap, now, bands, name_width, pattern_width) for snap in snapshots
    ]


def _overview_row(
    snap: WorkerSnapshot,
    now: datetime,
    bands: AgeBands,
    name_width: int,
    pattern_width: int,
) -> Row:
    name_style = "class:worker.enabled" if snap.enabled else "class:worker.disabled"
    pattern_style = "class:pattern.single" if snap.single else "class:pattern"
    if snap.updated is None:
        age: float | None = None
        age_text = "n/a"
    else:
        age = (now - snap.updated).total_seconds()
        age_text = format_age(age)
    return [
        (name_style, _fit(snap.name, name_width)),
        ("", " "),
        (pattern_style, _fit(snap.pattern, pattern_width)),
        ("", " "),
        ("class:count", str(snap.match_count).rjust(COUNT_WIDTH)),
        ("", " "),
        (bands.style(age), age_text.rjust(AGE_WIDTH)),
    ]


# Selection


def selection_title(selection: SelectionSet | None) -> str:
    if selection is None or not selection.source:
        return " Select an item to inspect "
    return f" Select an item to inspect ({selection.source}) "


def selection_rows(selection: SelectionSet | None) -> list[Row]:
    if selection is None:
        return []
    tag = selection.shape.label.ljust(TYPE_WIDTH)
    return [[("class:shape", tag), ("", " "), ("", item)] for item in selection.items]


# Detail


def detail_title(result: DetailResult | None) -> str:
    if result is None:
        return " Details "
    return f" Details ({result.key}) "


def _detail_header(result: DetailResult, with_length: bool) -> Row:
    row: Row = [
        ("class:label", "Type"),
        ("", f": {result.shape.label}   "),
        ("class:label", "Key"),
        ("", f": {result.key}"),
    ]
    if with_length:
        row += [("", "   "), ("class:label", "Length"), ("", f": {len(result)}")]
    return row


def detail_rows(result: DetailResult | None) -> list[Row]:
    if result is None:
        return []
    shape = result.shape
    header = _detail_header(result, with_length=shape is not ValueShape.SCALAR)
    if result.loading:
        return [header, [("class:dim", "Loading...")]]
    if result.is_error:
        return [header, [("class:log.error", f"Error: {result.error}")]]
    if shape is ValueShape.SCALAR:
        return [header, [("class:label", "Value"), ("", f": {result.value}")]]
    if shape is ValueShape.SEQUENCE:
        rows = [header, [("class:label", "Items:")]]
        rows += [
            [("class:index", f"{i:5d})"), ("", f" {item}")]
            for i, item in enumerate(result.value)
        ]
        return rows
    if shape is ValueShape.SET:
        rows = [header, [("class:label", "Members:")]]
        rows += [[("class:index", "   -"), ("", f" {m}")] for m in result.value]
        return rows
    if shape is ValueShape.SCORED_SEQUENCE:
        rows = [header, [("class:label", "Members:")]]
        rows += [
            [("class:score", f"{m.score:20f}"), ("", f" - {m.member}")]
            for m in result.value
        ]
        return rows
    rows = [header, [("class:label", "Fields:")]]
    rows += [
        [("class:field", f"{field:>20}"), ("", f": {value}")]
        for field, value in fields_view(result.value).items()
    ]
    return rows


# Log


def log_title(count: int) -> str:
    return f" Messages [{count}] "


def log_rows(entries: Iterable[LogEntry]) -> list[Row]:
    return [
        [
            ("class:dim", entry.timestamp.strftime("%H:%M:%S")),
            ("", " "),
            (f"class:log.{entry.level}", entry.level.upper().ljust(7)),
            ("", entry.text),
        ]
        for entry in entries
    ]


# Help


def _keys(*pairs: tuple[str, str]) -> Row:
    row: Row = []
    for key, desc in pairs:
        if row:
            row.append(("", "   "))
        row += [("class:key", f"<{key}>"), ("", f" {desc}")]
    return row


_MOVE_HELP = [
    _keys(("Up/Down", "move selection")),
    _keys(("PgUp/PgDown", "scroll page")),
    _keys(("Home/End", "move to top/bottom")),
]

HELP: dict[Screen, list[Row]] = {
    Screen.OVERVIEW: _MOVE_HELP
    + [
        _keys(("Enter", "select"), ("m", "view messages")),
        _keys(("e", "enable scanner"), ("d", "disable scanner"), ("q", "quit")),
    ],
    Screen.SELECTION: _MOVE_HELP
    + [
        _keys(("Enter", "inspect key"), ("m", "view messages")),
        _keys(("Esc", "back"), ("q", "quit")),
    ],
    Screen.DETAIL: _MOVE_HELP
    + [_keys(("m", "view messages")), _keys(("Esc", "back"), ("q", "quit"))],
    Screen.LOG: _MOVE_HELP + [_keys(("Esc", "back"), ("q", "quit"))],
}


def help_rows(screen: Screen) -> list[Row]:
    return [list(row) for row in HELP[screen]]


def preview_rows(entries: Iterable[LogEntry]) -> list[Row]:
    """Compact rows for the message preview box."""
    return [[(f"class:log.{e.level}", e.text)] for e in entries]
