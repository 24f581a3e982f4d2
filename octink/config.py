# octink/config.py
"""
Runtime configuration.

Priority order:
1. Environment variables (OCTINK_*)
2. YAML config file
3. Dataclass defaults
"""
from __future__ import annotations

import os
import socket
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from . import settings
from .errors import ConfigError


@dataclass(frozen=True)
class AppConfig:
    # Where generated PNGs and latest.png go
    output_dir: str = settings.OUTPUT_DIR
    # YAML asset catalog (sources + device frames)
    catalog_path: str = "assets.yaml"

    # Base URL encoded in the QR code; None -> http://<hostname>:<port>
    public_url: Optional[str] = None
    port: int = settings.HTTP_PORT

    # Generation
    frame_count: int = settings.FRAME_COUNT
    frame_stride: int = settings.FRAME_STRIDE
    cycle_delay_s: float = settings.CYCLE_DELAY_S
    seed: Optional[int] = None

    # Panel backend: "epd" (SPI hardware) or "sim" (pygame preview)
    display: str = "sim"
    sim_window: bool = True
    startup_bars: bool = True

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def base_url(self) -> str:
        if self.public_url:
            return self.public_url.rstrip("/")
        return f"http://{socket.gethostname()}:{self.port}"


_ENV_OVERRIDES = {
    "OCTINK_OUTPUT_DIR":  ("output_dir", str),
    "OCTINK_CATALOG":     ("catalog_path", str),
    "OCTINK_PUBLIC_URL":  ("public_url", str),
    "OCTINK_PORT":        ("port", int),
    "OCTINK_DISPLAY":     ("display", str),
    "OCTINK_SEED":        ("seed", int),
    "OCTINK_CYCLE_DELAY": ("cycle_delay_s", float),
    "OCTINK_LOG_LEVEL":   ("log_level", str),
    "OCTINK_LOG_FILE":    ("log_file", str),
}


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"{path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    return data


def _apply_env(values: Dict[str, Any], environ) -> Dict[str, Any]:
    out = dict(values)
    for var, (key, cast) in _ENV_OVERRIDES.items():
        raw = environ.get(var)
        if raw is None or raw == "":
            continue
        try:
            out[key] = cast(raw)
        except ValueError as e:
            raise ConfigError(f"{var}={raw!r}: {e}") from e
    return out


def load_config(path: str | Path | None = None, environ=None) -> AppConfig:
    """Build an AppConfig from an optional YAML file plus environment overrides."""
    environ = os.environ if environ is None else environ
    values: Dict[str, Any] = {}
    if path is not None:
        p = Path(path)
        if not p.exists():
            raise ConfigError(f"config file not found: {p}")
        values = _read_yaml(p)

    known = {f.name for f in fields(AppConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigError(f"unknown config keys: {', '.join(unknown)}")

    values = _apply_env(values, environ)
    cfg = AppConfig(**values)
    if cfg.display not in ("epd", "sim"):
        raise ConfigError(f"display must be 'epd' or 'sim', not {cfg.display!r}")
    if cfg.frame_count < 1 or cfg.frame_stride < 1:
        raise ConfigError("frame_count and frame_stride must be >= 1")
    return cfg


def with_overrides(cfg: AppConfig, **kwargs) -> AppConfig:
    """CLI flags win over file + env; None means 'not given'."""
    given = {k: v for k, v in kwargs.items() if v is not None}
    return replace(cfg, **given) if given else cfg
