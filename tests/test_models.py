from __future__ import annotations

import pytest

from cclevels.generation import Generation
from cclevels.models import EntryRecord, ExportFormat, FieldChanges, new_entry_defaults


def test_record_round_trip_keeps_unknown_keys_and_order() -> None:
    node = {"kX": 1, "k2": "A", "k99": {"a": 1}, "k4": "payload", "k8": 3, "kZ": True}
    record = EntryRecord.from_node(node)
    assert record.name == "A"
    assert record.payload == "payload"
    assert record.official_song == 3
    assert record.extra == {"kX": 1, "k99": {"a": 1}, "kZ": True}
    out = record.to_node()
    assert out == node
    assert list(out) == list(node)


def test_from_node_copies_nested_values() -> None:
    node = {"k2": "A", "kI6": {"0": 1}}
    record = EntryRecord.from_node(node)
    record.slot_counters["0"] = 99
    assert node["kI6"] == {"0": 1}


def test_new_fields_are_appended() -> None:
    record = EntryRecord.from_node({"k2": "A", "kX": 0})
    record.description = "hello"
    assert list(record.to_node()) == ["k2", "kX", "k3"]


def test_assign_song_is_exclusive() -> None:
    record = EntryRecord.from_node({"k2": "A", "k8": 1})
    record.assign_song("4", is_custom=True)
    assert record.to_node() == {"k2": "A", "k45": 4}
    assert record.song_id == 4 and record.is_custom_song

    record.assign_song(5, is_custom=False)
    assert record.to_node() == {"k2": "A", "k8": 5}
    assert record.song_id == 5 and not record.is_custom_song


def test_summary_defaults() -> None:
    summary = EntryRecord.from_node({}).summary("k_1")
    assert summary.identifier == "k_1"
    assert summary.name == "Unnamed"
    assert summary.song_id == 0
    assert summary.is_custom_song is False
    assert summary.length is None
    assert summary.description == ""
    assert summary.star_request == 0


def test_summary_reads_numeric_text_length() -> None:
    assert EntryRecord.from_node({"k23": "7"}).summary("k_1").length == 7
    assert EntryRecord.from_node({"k23": "junk"}).summary("k_1").length == 0


def test_summary_prefers_custom_song() -> None:
    summary = EntryRecord.from_node({"k2": "B", "k8": 2, "k45": 777, "k66": 5, "k23": 1}).summary("k_2")
    assert summary.song_id == 777
    assert summary.is_custom_song is True
    assert summary.star_request == 5
    assert summary.to_dict()["songId"] == 777


@pytest.mark.parametrize("generation,version", [(Generation.LEGACY, 23), (Generation.CURRENT, 45)])
def test_new_entry_defaults(generation: Generation, version: int) -> None:
    node = new_entry_defaults("Imported 1", generation)
    assert node["k2"] == "Imported 1"
    assert node["k50"] == version
    assert node["k101"] == ",".join(["0"] * 20)
    assert node["kI6"] == {str(i): 0 for i in range(14)}
    assert "k8" not in node and "k45" not in node


def test_field_changes_from_dict() -> None:
    changes = FieldChanges.from_dict({"songId": 4, "isCustom": True, "rawData": "1,1"})
    assert changes.song_id == 4
    assert changes.is_custom is True
    assert changes.raw_data == "1,1"
    assert changes.name is None


def test_export_format_parse() -> None:
    assert ExportFormat.parse("gmd") is ExportFormat.PACKAGED
    assert ExportFormat.parse("packaged") is ExportFormat.PACKAGED
    assert ExportFormat.parse("TXT") is ExportFormat.RAW
    assert ExportFormat.parse(ExportFormat.RAW) is ExportFormat.RAW
    assert ExportFormat.PACKAGED.extension == "gmd"
    with pytest.raises(ValueError):
        ExportFormat.parse("zip")
