"""Shared helpers for redis-scan-viewer."""

from rv_common.api import RVError, configure_logging

__all__ = ["RVError", "configure_logging"]
