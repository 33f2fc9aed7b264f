from __future__ import annotations

from pathlib import Path

import pytest

from cclevels import paths
from cclevels.settings import DEFAULT_SAVE_FILENAME, Settings


def test_defaults_without_user_file(tmp_path: Path) -> None:
    settings = Settings.load(tmp_path / "missing.yaml")
    assert settings.save_filename == DEFAULT_SAVE_FILENAME
    assert settings.instances_dir is None
    assert settings.default_instance is None


def test_user_file_overrides_defaults(tmp_path: Path) -> None:
    user = tmp_path / "settings.yaml"
    user.write_text(
        f"instances_dir: {tmp_path / 'instances'}\ndefault_instance: main\nbogus: 1\n",
        encoding="utf-8",
    )
    settings = Settings.load(user)
    assert settings.instances_dir == tmp_path / "instances"
    assert settings.resolved_instances_dir == tmp_path / "instances"
    assert settings.default_instance == "main"
    assert settings.save_filename == DEFAULT_SAVE_FILENAME


def test_save_and_reload(tmp_path: Path) -> None:
    path = tmp_path / "conf" / "settings.yaml"
    Settings(instances_dir=tmp_path, save_filename="Other.dat", export_dir=tmp_path / "out").save(path)
    loaded = Settings.load(path)
    assert loaded.instances_dir == tmp_path
    assert loaded.save_filename == "Other.dat"
    assert loaded.export_dir == tmp_path / "out"


def test_instances_dir_from_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(paths.ENV_INSTANCES_DIR, str(tmp_path))
    assert paths.get_instances_dir() == tmp_path
    assert Settings().resolved_instances_dir == tmp_path


def test_instances_dir_default_is_platform_dir(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(paths.ENV_INSTANCES_DIR, raising=False)
    assert paths.get_instances_dir() == paths.get_user_data_root() / "instances"


def test_save_file_path(tmp_path: Path) -> None:
    assert paths.save_file_path(tmp_path, "main", "CCLocalLevels.dat") == tmp_path / "main" / "CCLocalLevels.dat"
