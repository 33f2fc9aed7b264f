from __future__ import annotations

import logging
import os
from pathlib import Path

from platformdirs import PlatformDirs

__all__ = [
    "APP_NAME",
    "APP_AUTHOR",
    "ENV_INSTANCES_DIR",
    "get_user_data_root",
    "get_instances_dir",
    "get_config_path",
    "save_file_path",
]

APP_NAME = "cclevels"
APP_AUTHOR = "cclevels"
ENV_INSTANCES_DIR = "CCLEVELS_INSTANCES_DIR"

_logger = logging.getLogger(__name__)


def _dirs() -> PlatformDirs:
    return PlatformDirs(appname=APP_NAME, appauthor=APP_AUTHOR)


def get_user_data_root() -> Path:
    return Path(_dirs().user_data_dir)


def get_instances_dir() -> Path:
    """Directory holding one sub-directory per game instance.

    The ``CCLEVELS_INSTANCES_DIR`` environment variable takes precedence over
    the platform user data directory.
    """
    env = os.getenv(ENV_INSTANCES_DIR, "").strip()
    if env:
        _logger.debug("Using instances dir from %s: %s", ENV_INSTANCES_DIR, env)
        return Path(env).expanduser()
    return get_user_data_root() / "instances"


def get_config_path() -> Path:
    return Path(_dirs().user_config_dir) / "settings.yaml"


def save_file_path(root_dir: Path, instance_id: str, filename: str) -> Path:
    return Path(root_dir) / instance_id / filename
