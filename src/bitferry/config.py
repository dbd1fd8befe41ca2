"""
User configuration.

Loaded from ``$BITFERRY_HOME/config.yaml``. A broken file is reported
and ignored; bitferry then runs with the defaults.

    search_paths:
      - /srv/backup
      - ~/sync
    scan_mounts: true
    rclone: rclone
    restic: restic
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from . import BITFERRY_HOME

logger = logging.getLogger("bitferry.config")

SEARCH_PATH_ENV = "BITFERRY_SEARCH_PATH"


class BitferryConfig(BaseModel):
    """Persistent bitferry configuration."""

    search_paths: list[Path] = Field(default_factory=list)
    scan_mounts: bool = True
    rclone: str = "rclone"
    restic: str = "restic"


def config_file(home: Optional[Path] = None) -> Path:
    return (home or Path(BITFERRY_HOME)).expanduser() / "config.yaml"


def load_config(path: Optional[Path] = None) -> BitferryConfig:
    """Load configuration, extending search paths from ``BITFERRY_SEARCH_PATH``.

    Args:
        path: Configuration file. Defaults to ``$BITFERRY_HOME/config.yaml``.

    Returns:
        The loaded configuration, or the defaults if the file is
        missing or invalid.
    """
    path = path or config_file()
    config = BitferryConfig()
    if path.exists():
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
            config = BitferryConfig(**data)
        except (yaml.YAMLError, ValueError, TypeError, OSError) as exc:
            logger.warning("Failed to load config %s: %s", path, exc)

    extra = os.environ.get(SEARCH_PATH_ENV, "")
    config.search_paths.extend(Path(p) for p in extra.split(os.pathsep) if p)
    return config

