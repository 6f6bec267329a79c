"""Value types shared by the scanning engine and the navigation layer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Mapping, NamedTuple, Union

_GLOB_CHARS = frozenset("*?[")


class ValueShape(str, Enum):
    """Declared shape of the values a scan matches, keyed by config spelling."""

    SCALAR = "key"
    SEQUENCE = "list"
    SET = "set"
    SCORED_SEQUENCE = "zset"
    FIELDS = "hash"

    @property
    def label(self) -> str:
        return self.value.upper()


@dataclass(frozen=True)
class ScanSpec:
    """Named scan: key pattern, declared shape and poll interval in seconds."""

    name: str
    pattern: str
    shape: ValueShape
    interval: float

    @property
    def is_single(self) -> bool:
        """True when the pattern names one key rather than a glob."""
        return not any(ch in _GLOB_CHARS for ch in self.pattern)


@dataclass(frozen=True)
class WorkerSnapshot:
    """Copy of one worker's state at the instant it was read."""

    name: str
    pattern: str
    shape: ValueShape
    matches: tuple[str, ...]
    updated: datetime | None
    enabled: bool
    single: bool = False

    @property
    def match_count(self) -> int:
        return len(self.matches)


@dataclass(frozen=True)
class WorkerSelection:
    name: str
    pattern: str
    shape: ValueShape
    matches: tuple[str, ...]


@dataclass(frozen=True)
class SelectionSet:
    """Matched keys of one worker, frozen at drill-down time."""

    items: tuple[str, ...]
    shape: ValueShape
    source: str = ""

    @classmethod
    def build(
        cls, matches: Iterable[str], shape: ValueShape, *, source: str = ""
    ) -> "SelectionSet":
        return cls(items=tuple(sorted(set(matches))), shape=shape, source=source)

    def __len__(self) -> int:
        return len(self.items)

    def item_at(self, index: int) -> str | None:
        if 0 <= index < len(self.items):
            return self.items[index]
        return None


class ScoredMember(NamedTuple):
    member: str
    score: float


DetailValue = Union[str, tuple[str, ...], tuple[ScoredMember, ...], dict[str, str]]


@dataclass(frozen=True)
class DetailResult:
    """Full value of one key, tagged by its declared shape.

    ``value`` is a ``str`` for scalars, a tuple of strings for sequences and
    sets, a tuple of ``ScoredMember`` for scored sequences and a dict for
    field maps. A failed fetch carries ``error`` and an empty value.
    """

    key: str
    shape: ValueShape
    value: DetailValue = ""
    error: str | None = None
    loading: bool = False

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def __len__(self) -> int:
        if self.is_error or self.loading:
            return 0
        if self.shape is ValueShape.SCALAR:
            return 1
        return len(self.value)

    @classmethod
    def failed(cls, key: str, shape: ValueShape, message: str) -> "DetailResult":
        return cls(key=key, shape=shape, value=_empty_value(shape), error=message)

    @classmethod
    def pending(cls, key: str, shape: ValueShape) -> "DetailResult":
        return cls(key=key, shape=shape, value=_empty_value(shape), loading=True)


def _empty_value(shape: ValueShape) -> DetailValue:
    if shape is ValueShape.SCALAR:
        return ""
    if shape is ValueShape.FIELDS:
        return {}
    return ()


class Screen(str, Enum):
    OVERVIEW = "overview"
    SELECTION = "selection"
    DETAIL = "detail"
    LOG = "log"


def fields_view(value: Mapping[str, str]) -> dict[str, str]:
    """Return a field map ordered by field name for stable display."""
    return {k: value[k] for k in sorted(value)}


__all__ = [
    "DetailResult",
    "DetailValue",
    "ScanSpec",
    "ScoredMember",
    "Screen",
    "SelectionSet",
    "ValueShape",
    "WorkerSelection",
    "WorkerSnapshot",
    "fields_view",
]
