import sys
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from cclevels import crypto, markup  # noqa: E402

INSTANCE = "main"
LEGACY_LEVEL = "1,1,2,0,3,0"
CURRENT_LEVEL = "kS38,1_40_2_125_3_255;1,1,2,15,3,15;"


def level(name: str, **fields) -> dict:
    node = {"k1": 1, "k2": name, "k4": crypto.encrypt_blob(LEGACY_LEVEL), "k8": 2, "k23": 3}
    node.update(fields)
    return node


@pytest.fixture
def make_save(tmp_path: Path):
    """Write a container to ``tmp_path/<instance>/CCLocalLevels.dat``."""

    def _make(container: dict, *, legacy: bool = False, encoded: bool = True, instance: str = INSTANCE) -> Path:
        text = markup.build(container, gjver=not legacy)
        path = tmp_path / instance / "CCLocalLevels.dat"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(crypto.encrypt_container(text) if encoded else text.encode("utf-8"))
        return path

    return _make
