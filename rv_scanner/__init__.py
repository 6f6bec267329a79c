"""Concurrent key-space scanning engine."""

from rv_scanner.api import ScanSpec, ValueFetcher, ValueShape, WorkerEngine

__all__ = ["ScanSpec", "ValueFetcher", "ValueShape", "WorkerEngine"]
