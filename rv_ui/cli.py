"""
Command-line interface for redis-scan-viewer.

Loads the scan configuration, checks the Redis connection and launches the
full-screen viewer. Startup failures print an error and exit non-zero.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

import typer
from rich.console import Console
from rich.markup import escape

from rv_app.api import AgeBands, MessageLog, NavigationController
from rv_common.api import ConfigError, ConnectError, configure_logging, error_to_payload
from rv_scanner.api import (
    AppConfig,
    StoreClient,
    ValueFetcher,
    WorkerEngine,
    connect,
    load_config,
    resolve_config_path,
)
from rv_ui.tui import theme
from rv_ui.tui.app import ViewerApp

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Watch Redis key patterns and drill into matching keys.",
    add_completion=False,
)

ViewerFactory = Callable[..., ViewerApp]


def _print_error(message: str) -> None:
    Console(stderr=True).print(theme.startup_error(escape(message)))


@app.command()
def entry(
    config: Optional[Path] = typer.Argument(
        None,
        help="Config file (default: $RV_CONFIG or ./config.toml).",
        show_default=False,
    ),
    log_file: Optional[Path] = typer.Option(
        None, "--log-file", help="Write diagnostic logs to this file."
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Log level (DEBUG, INFO, WARNING, ...)."
    ),
    debug: bool = typer.Option(False, "--debug", help="Shortcut for --log-level DEBUG."),
    json_logs: Optional[bool] = typer.Option(
        None, "--json-logs/--console-logs", help="Render log records as JSON."
    ),
) -> None:
    """Launch the viewer for the scans defined in CONFIG."""
    # The viewer owns the terminal, so records only go to the log file.
    configure_logging(
        level=log_level,
        debug=debug,
        log_file=str(log_file) if log_file else None,
        json=json_logs,
        force=True,
        stream=False,
    )
    path = resolve_config_path(config)
    try:
        cfg = load_config(path)
        store = connect(cfg.redis)
    except (ConfigError, ConnectError) as exc:
        logger.error("Startup failed: %s", exc, extra=error_to_payload(exc))
        _print_error(str(exc))
        raise typer.Exit(1)

    run_viewer(cfg, store)


def run_viewer(
    cfg: AppConfig,
    store: StoreClient,
    *,
    viewer_factory: ViewerFactory = ViewerApp,
) -> None:
    """Build the engine, fetcher and controller, run the UI, then shut everything down."""
    log = MessageLog(cfg.ui.message_capacity)
    engine = WorkerEngine(cfg.scan_specs(), store)
    fetcher = ValueFetcher(store, timeout=cfg.ui.fetch_timeout)
    try:
        log.attach(engine.messages)
        controller = NavigationController(
            engine,
            fetcher,
            log,
            fetch_timeout=cfg.ui.fetch_timeout,
            bands=AgeBands(new=cfg.ui.age_new, medium=cfg.ui.age_medium),
        )
        viewer = viewer_factory(
            controller,
            log,
            refresh_interval=cfg.ui.refresh_interval,
            preview=cfg.ui.message_preview,
        )
        viewer.run()
    finally:
        engine.close()
        fetcher.close()
        log.close()
        store.close()


def main() -> None:
    """Console script entrypoint (Typer app)."""
    app()


if __name__ == "__main__":
    main()
