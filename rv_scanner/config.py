"""TOML configuration loading and validation."""

from __future__ import annotations

import logging
import os
import re
import tomllib
from pathlib import Path
from typing import Annotated, Any, Mapping

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError

from rv_common.errors import ConfigError
from rv_scanner.models import ScanSpec, ValueShape

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "config.toml"
ENV_CONFIG_PATH = "RV_CONFIG"

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_TOKEN = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: Any) -> float:
    """Return seconds for a Go-style duration string ("1m30s", "250ms") or a number."""
    if isinstance(value, bool):
        raise ValueError("duration must be a string or a number")
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        raise ValueError("duration must be a string or a number")
    text = value.strip()
    if not text:
        raise ValueError("empty duration")
    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]
    if text == "0":
        return 0.0
    total = 0.0
    pos = 0
    for match in _DURATION_TOKEN.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text) or pos == 0:
        raise ValueError(f"invalid duration {value!r}")
    return sign * total


Duration = Annotated[float, BeforeValidator(parse_duration)]


class RedisSettings(BaseModel):
    """Connection settings for the Redis server."""

    server: str = Field(default="localhost:6379", description="host:port of the server")
    password: str = Field(default="")
    db: int = Field(default=0, ge=0)
    # Socket timeouts bound every store call, and so how long shutdown can
    # wait on a dead server; zero would mean "block forever" and is rejected.
    dial_timeout: Duration = Field(default=5.0, gt=0)
    idle_timeout: Duration = Field(
        default=0.0, ge=0, description="health check interval for idle connections; 0 disables"
    )
    read_timeout: Duration = Field(default=3.0, gt=0)
    write_timeout: Duration = Field(default=3.0, gt=0)
    max_retries: int = Field(default=3, ge=0)

    model_config = ConfigDict(extra="forbid")

    @property
    def host(self) -> str:
        host, _, _ = self.server.rpartition(":")
        return host or self.server

    @property
    def port(self) -> int:
        _, sep, port = self.server.rpartition(":")
        if not sep or not port.isdigit():
            return 6379
        return int(port)


class UISettings(BaseModel):
    """Refresh cadence, fetch deadline and message log sizing."""

    refresh_interval: Duration = Field(default=0.1, gt=0)
    fetch_timeout: Duration = Field(default=2.0, gt=0)
    message_capacity: int = Field(default=100, gt=0)
    message_preview: int = Field(default=3, ge=0)
    age_new: Duration = Field(default=30.0, ge=0)
    age_medium: Duration = Field(default=60.0, ge=0)

    model_config = ConfigDict(extra="forbid")


class ScanSettings(BaseModel):
    pattern: str = Field(min_length=1)
    type: ValueShape = Field(default=ValueShape.SCALAR)
    interval: Duration = Field(gt=0)

    model_config = ConfigDict(extra="forbid")


class AppConfig(BaseModel):
    """Top-level configuration file."""

    redis: RedisSettings = Field(default_factory=RedisSettings)
    ui: UISettings = Field(default_factory=UISettings)
    scans: dict[str, ScanSettings] = Field(min_length=1)

    model_config = ConfigDict(extra="forbid")

    def scan_specs(self) -> Mapping[str, ScanSpec]:
        """Return the name -> ScanSpec mapping consumed by the engine."""
        return {
            name: ScanSpec(
                name=name,
                pattern=scan.pattern,
                shape=scan.type,
                interval=scan.interval,
            )
            for name, scan in self.scans.items()
        }


def resolve_config_path(path: Path | str | None = None) -> Path:
    """Explicit path, then $RV_CONFIG, then ./config.toml."""
    if path is not None:
        return Path(path).expanduser()
    env_path = os.environ.get(ENV_CONFIG_PATH)
    if env_path:
        return Path(env_path).expanduser()
    return Path(DEFAULT_CONFIG_NAME)


def parse_config(text: str, *, source: str = "<string>") -> AppConfig:
    """Parse and validate TOML text."""
    if not text.strip():
        raise ConfigError(f"read {source}: empty file", context={"path": source})
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            f"parse config: {exc}", context={"path": source}, cause=exc
        ) from exc
    try:
        return AppConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(
            f"invalid config {source}: {_summarize_validation(exc)}",
            context={"path": source, "errors": exc.error_count()},
            cause=exc,
        ) from exc


def load_config(path: Path | str) -> AppConfig:
    """Read and validate a configuration file."""
    resolved = Path(path)
    try:
        text = resolved.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(
            f"load config file: {exc}", context={"path": resolved}, cause=exc
        ) from exc
    config = parse_config(text, source=str(resolved))
    logger.info("Loaded %d scan(s) from %s", len(config.scans), resolved)
    return config


def _summarize_validation(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)
