"""Public API surface for rv_common."""

from rv_common.errors import (
    ConfigError,
    ConnectError,
    FetchError,
    RVError,
    ScanError,
    ShapeMismatchError,
    StoreError,
    error_to_payload,
)
from rv_common.logging import configure_logging

__all__ = [
    "ConfigError",
    "ConnectError",
    "FetchError",
    "RVError",
    "ScanError",
    "ShapeMismatchError",
    "StoreError",
    "configure_logging",
    "error_to_payload",
]
