"""Public API surface for rv_scanner."""

from rv_scanner.config import (
    AppConfig,
    RedisSettings,
    ScanSettings,
    UISettings,
    load_config,
    parse_config,
    parse_duration,
    resolve_config_path,
)
from rv_scanner.engine import WorkerEngine
from rv_scanner.fetcher import ValueFetcher
from rv_scanner.models import (
    DetailResult,
    ScanSpec,
    ScoredMember,
    Screen,
    SelectionSet,
    ValueShape,
    WorkerSelection,
    WorkerSnapshot,
)
from rv_scanner.store import RedisStore, ScanCancelled, StoreClient, connect
from rv_scanner.worker import ScanWorker, WorkerStatus

__all__ = [
    "AppConfig",
    "DetailResult",
    "RedisSettings",
    "RedisStore",
    "ScanCancelled",
    "ScanSettings",
    "ScanSpec",
    "ScanWorker",
    "ScoredMember",
    "Screen",
    "SelectionSet",
    "StoreClient",
    "UISettings",
    "ValueFetcher",
    "ValueShape",
    "WorkerEngine",
    "WorkerSelection",
    "WorkerSnapshot",
    "WorkerStatus",
    "connect",
    "load_config",
    "parse_config",
    "parse_duration",
    "resolve_config_path",
]
