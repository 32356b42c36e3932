"""
mamoji.config — YAML Configuration Loader
==========================================

Reads ``config.yaml`` for the few knobs the sync engine exposes: the
freshness window of the cache gate, the per-request network timeout and
the bulk-download fan-out.  Secrets and connection strings (``DATABASE_URL``)
stay in ``.env``.

Usage::

    from mamoji.config import load_config

    cfg = load_config()              # reads ./config.yaml by default
    print(cfg.freshness_window)      # datetime.timedelta(days=1)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

import yaml

from mamoji.constants import FRESHNESS_WINDOW_MS

DEFAULT_CONFIG_PATH = "config.yaml"
DEFAULT_USER_AGENT = "mamoji/0.1 (+emoji directory)"


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class MamojiConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Cache gate
    freshness_window_ms: int = FRESHNESS_WINDOW_MS

    # Outbound HTTP
    http_timeout_seconds: float = 10.0
    user_agent: str = DEFAULT_USER_AGENT
    download_concurrency: int = 4

    # API
    api_port: int = 8000

    @property
    def freshness_window(self) -> timedelta:
        return timedelta(milliseconds=self.freshness_window_ms)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path | None = None) -> MamojiConfig:
    """Read *path* and return a :class:`MamojiConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.  Defaults to
        ``$MAMOJI_CONFIG`` or ``config.yaml`` in the working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    ValueError
        If a value is out of range.
    """
    config_path = Path(path or os.getenv("MAMOJI_CONFIG", DEFAULT_CONFIG_PATH))
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    cfg = MamojiConfig(
        freshness_window_ms=int(raw.get("freshness_window_ms", FRESHNESS_WINDOW_MS)),
        http_timeout_seconds=float(raw.get("http_timeout_seconds", 10.0)),
        user_agent=str(raw.get("user_agent") or DEFAULT_USER_AGENT),
        download_concurrency=int(raw.get("download_concurrency", 4)),
        api_port=int(raw.get("api_port", 8000)),
    )

    if cfg.freshness_window_ms <= 0:
        raise ValueError("freshness_window_ms must be positive")
    if cfg.http_timeout_seconds <= 0:
        raise ValueError("http_timeout_seconds must be positive")
    if cfg.download_concurrency < 1:
        raise ValueError("download_concurrency must be at least 1")
    return cfg
