from __future__ import annotations

import copy

from cclevels import crypto
from cclevels.generation import (
    CURRENT_VERSION,
    EXTENDED_SCAFFOLD_DEFAULT,
    LEGACY_VERSION,
    Generation,
    detect_container_generation,
    detect_generation,
    upgrade_record,
)


def legacy_record() -> dict:
    return {
        "k2": "Old level",
        "k4": "abc",
        "k50": LEGACY_VERSION,
        "kI6": {"0": "3", "1": "x", "2": "7"},
    }


def test_generation_versions() -> None:
    assert Generation.LEGACY.version == 23
    assert Generation.CURRENT.version == 45
    assert str(Generation.CURRENT) == "2.0+"


def test_current_scaffolding_key_means_current() -> None:
    doc = "<d><k>k2</k><s>A</s><k>k4</k><s>abc</s><k>k101</k><s>0,0</s></d>"
    assert detect_generation(doc) is Generation.CURRENT


def test_gjver_marker_means_current() -> None:
    doc = '<?xml version="1.0"?><plist version="1.0" gjver="2.0"><dict /></plist>'
    assert detect_generation(doc) is Generation.CURRENT
    assert detect_container_generation(doc) is Generation.CURRENT


def test_document_without_markers_is_legacy() -> None:
    doc = "<d><k>k2</k><s>A</s><k>k4</k><s>abc</s><k>k50</k><i>23</i></d>"
    assert detect_generation(doc) is Generation.LEGACY
    assert detect_container_generation(doc) is Generation.LEGACY


def test_document_payload_is_not_sniffed() -> None:
    # a ';' inside a tagged document is not a signal on its own
    doc = "<d><k>k2</k><s>A;B</s><k>k4</k><s>abc</s></d>"
    assert detect_generation(doc) is Generation.LEGACY


def test_encoded_level_string_markers() -> None:
    assert detect_generation(crypto.encrypt_blob("kS38,1_40;1,1,2,15;")) is Generation.CURRENT
    assert detect_generation(crypto.encrypt_blob("kA13,0,kA14,,1,1")) is Generation.CURRENT


def test_plain_level_string_markers() -> None:
    assert detect_generation("1,1,2,0;") is Generation.CURRENT
    assert detect_generation("1,1,2,0") is Generation.LEGACY


def test_upgrade_legacy_record() -> None:
    record = upgrade_record(legacy_record())
    assert record["kI6"] == {"0": 3, "1": 0, "2": 7}
    assert record["k101"] == EXTENDED_SCAFFOLD_DEFAULT
    assert len(record["k101"].split(",")) == 20
    assert record["k50"] == CURRENT_VERSION
    assert record["k2"] == "Old level"


def test_upgrade_is_in_place() -> None:
    record = legacy_record()
    assert upgrade_record(record) is record


def test_upgrade_is_idempotent() -> None:
    once = upgrade_record(legacy_record())
    twice = upgrade_record(copy.deepcopy(once))
    assert twice == once


def test_upgrade_leaves_current_record_alone() -> None:
    record = {"k50": CURRENT_VERSION, "k101": "1,2,3", "kI6": {"0": 4}}
    assert upgrade_record(copy.deepcopy(record)) == record


def test_upgrade_coerces_nested_counters() -> None:
    record = upgrade_record({"kI6": {"0": {"a": "5", "b": "?"}, "1": 2.0}})
    assert record["kI6"] == {"0": {"a": 5, "b": 0}, "1": 2}
    assert "k50" not in record
