"""Shared error taxonomy for redis-scan-viewer."""

from __future__ import annotations

from typing import Any, Mapping


def _normalize_context_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return normalize_context(value)
    if isinstance(value, (list, tuple)):
        return [_normalize_context_value(item) for item in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def normalize_context(context: Mapping[str, Any]) -> dict[str, Any]:
    """Return a JSON-friendly copy of an error context mapping."""
    return {key: _normalize_context_value(val) for key, val in context.items()}


class RVError(Exception):
    """Base error type for typed failure handling."""

    def __init__(
        self,
        message: str,
        *,
        context: Mapping[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.context = normalize_context(context or {})
        if cause is not None:
            self.__cause__ = cause

    @property
    def error_type(self) -> str:
        return self.__class__.__name__


class ConfigError(RVError):
    """Missing or malformed configuration; fatal at startup."""


class ConnectError(RVError):
    """Store unreachable at startup; fatal."""


class StoreError(RVError):
    """Transport or server failure reported by the store client."""


class ScanError(RVError):
    """A worker's key enumeration failed; prior results are retained."""


class FetchError(RVError):
    """Reading a key's full value failed or timed out."""


class ShapeMismatchError(RVError):
    """The stored value does not have the shape the scan declares."""


def error_to_payload(error: RVError) -> dict[str, Any]:
    """Convert an RVError to a flat payload for structured logs."""
    return {
        "error_type": error.error_type,
        "error": str(error),
        "error_context": error.context,
    }
