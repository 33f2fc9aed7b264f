from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .paths import get_config_path, get_instances_dir

logger = logging.getLogger(__name__)

DEFAULT_SAVE_FILENAME = "CCLocalLevels.dat"


@dataclass
class Settings:
    """User configuration for locating instances and their level saves.

    - instances_dir: root holding one directory per instance. ``None`` resolves
      through :func:`cclevels.paths.get_instances_dir`.
    - save_filename: name of the level save inside an instance directory.
    - default_instance: instance used by the CLI when ``--instance`` is omitted.
    - export_dir: where exports land when no explicit destination is given.
    """

    instances_dir: Optional[Path] = None
    save_filename: str = DEFAULT_SAVE_FILENAME
    default_instance: Optional[str] = None
    export_dir: Optional[Path] = None

    @property
    def resolved_instances_dir(self) -> Path:
        return self.instances_dir if self.instances_dir is not None else get_instances_dir()

    @staticmethod
    def _load_yaml(path: Path) -> dict:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    @classmethod
    def _deep_merge(cls, base: dict, overlay: dict) -> dict:
        merged = dict(base)
        for k, v in (overlay or {}).items():
            if isinstance(v, dict) and isinstance(base.get(k), dict):
                merged[k] = cls._deep_merge(base[k], v)
            else:
                merged[k] = v
        return merged

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Settings":
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown settings: %s", ", ".join(unknown))
        instances_dir = data.get("instances_dir")
        export_dir = data.get("export_dir")
        return cls(
            instances_dir=Path(instances_dir).expanduser() if instances_dir else None,
            save_filename=str(data.get("save_filename") or DEFAULT_SAVE_FILENAME),
            default_instance=data.get("default_instance") or None,
            export_dir=Path(export_dir).expanduser() if export_dir else None,
        )

    @classmethod
    def load(cls, user_path: Optional[Path] = None) -> "Settings":
        """Load settings from built-in defaults and an optional user override file.

        Without *user_path* the per-user config location is consulted.
        """
        try:
            default_text = resources.files("cclevels.config").joinpath("default_settings.yaml").read_text(encoding="utf-8")
            default_data = yaml.safe_load(default_text) or {}
        except FileNotFoundError:
            logger.warning("Default settings not found; falling back to dataclass defaults.")
            default_data = {}

        explicit = user_path is not None
        path = user_path if explicit else get_config_path()
        user_data = {}
        if path.exists():
            user_data = cls._load_yaml(path)
            logger.info("Loaded user settings from %s", path)
        elif explicit:
            logger.warning("User settings file not found: %s", path)

        merged = cls._deep_merge(default_data, user_data)
        settings = cls._from_dict(merged)
        logger.debug("Settings merged: %s", settings)
        return settings

    def save(self, path: Path) -> None:
        data = {
            "instances_dir": str(self.instances_dir) if self.instances_dir else None,
            "save_filename": self.save_filename,
            "default_instance": self.default_instance,
            "export_dir": str(self.export_dir) if self.export_dir else None,
        }
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False)
        logger.info("Saved settings to %s", path)
