"""CLI startup paths using Typer's CliRunner."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

import rv_ui.cli as cli
from rv_common.errors import ConnectError
from tests.helpers.fake_store import InMemoryStore

pytestmark = pytest.mark.unit_ui

CONFIG = """
[redis]
server = "localhost:6379"

[scans.users]
pattern = "user:*"
type = "hash"
interval = "1s"
"""

runner = CliRunner()


@pytest.fixture(autouse=True)
def logging_calls(monkeypatch: pytest.MonkeyPatch) -> list[dict]:
    calls: list[dict] = []
    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: calls.append(kwargs))
    return calls


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "rv.toml"
    path.write_text(CONFIG)
    return path


def test_missing_config_exits_non_zero(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(cli, "run_viewer", lambda *a, **k: pytest.fail("viewer started"))
    result = runner.invoke(cli.app, [str(tmp_path / "absent.toml")])
    assert result.exit_code == 1


def test_invalid_config_exits_non_zero(tmp_path: Path, monkeypatch) -> None:
    path = tmp_path / "bad.toml"
    path.write_text('[scans.a]\npattern = "a:*"\ntype = "stream"\ninterval = "1s"\n')
    monkeypatch.setattr(cli, "connect", lambda settings: pytest.fail("connected"))
    result = runner.invoke(cli.app, [str(path)])
    assert result.exit_code == 1


def test_unreachable_store_exits_non_zero(config_file: Path, monkeypatch) -> None:
    def refuse(settings):
        raise ConnectError("test Redis connection ping: refused")

    monkeypatch.setattr(cli, "connect", refuse)
    monkeypatch.setattr(cli, "run_viewer", lambda *a, **k: pytest.fail("viewer started"))
    result = runner.invoke(cli.app, [str(config_file)])
    assert result.exit_code == 1


def test_successful_startup_runs_viewer(
    config_file: Path, monkeypatch, logging_calls
) -> None:
    store = InMemoryStore()
    seen = {}
    monkeypatch.setattr(cli, "connect", lambda settings: store)
    monkeypatch.setattr(
        cli, "run_viewer", lambda cfg, client: seen.update(cfg=cfg, client=client)
    )

    result = runner.invoke(
        cli.app, [str(config_file), "--log-file", "rv.log", "--debug", "--json-logs"]
    )

    assert result.exit_code == 0
    assert seen["client"] is store
    assert set(seen["cfg"].scans) == {"users"}
    assert logging_calls == [
        {
            "level": None,
            "debug": True,
            "log_file": "rv.log",
            "json": True,
            "force": True,
            "stream": False,
        }
    ]


def test_config_path_falls_back_to_environment(config_file: Path, monkeypatch) -> None:
    seen = {}
    monkeypatch.setenv("RV_CONFIG", str(config_file))
    monkeypatch.setattr(cli, "connect", lambda settings: InMemoryStore())
    monkeypatch.setattr(cli, "run_viewer", lambda cfg, client: seen.update(cfg=cfg))

    result = runner.invoke(cli.app, [])

    assert result.exit_code == 0
    assert "users" in seen["cfg"].scans


class RecordingViewer:
    instances: list["RecordingViewer"] = []

    def __init__(self, controller, log, *, refresh_interval, preview) -> None:
        self.controller = controller
        self.log = log
        self.refresh_interval = refresh_interval
        self.preview = preview
        RecordingViewer.instances.append(self)

    def run(self) -> None:
        self.controller.view()


def test_run_viewer_tears_everything_down(config_file: Path) -> None:
    cfg = cli.load_config(config_file)
    store = InMemoryStore()
    RecordingViewer.instances.clear()

    cli.run_viewer(cfg, store, viewer_factory=RecordingViewer)

    viewer = RecordingViewer.instances[0]
    assert viewer.refresh_interval == pytest.approx(0.1)
    assert viewer.preview == 3
    assert viewer.log.capacity == 100
    assert store.closed


def test_run_viewer_closes_store_when_viewer_fails(config_file: Path) -> None:
    cfg = cli.load_config(config_file)
    store = InMemoryStore()

    def broken(*args, **kwargs):
        raise RuntimeError("terminal gone")

    with pytest.raises(RuntimeError):
        cli.run_viewer(cfg, store, viewer_factory=broken)
    assert store.closed
