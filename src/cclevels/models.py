from __future__ import annotations

import copy
import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .generation import (
    CURRENT_ONLY_KEY,
    EXTENDED_SCAFFOLD_DEFAULT,
    FORMAT_VERSION_KEY,
    SLOT_COUNTERS_KEY,
    Generation,
)
from .utils.numbers import lenient_int

ENTRY_TABLE_KEY = "LLM_01"
GENERATION_MARKER_KEY = "LLM_02"
ENTRY_ID_PREFIX = "k_"

NAME_KEY = "k2"
PAYLOAD_KEY = "k4"

# attribute -> save key, in the order new records are laid out
FIELD_KEYS: Dict[str, str] = {
    "level_id": "k1",
    "name": NAME_KEY,
    "description": "k3",
    "payload": PAYLOAD_KEY,
    "creator": "k5",
    "official_song": "k8",
    "length": "k23",
    "custom_song": "k45",
    "format_version": FORMAT_VERSION_KEY,
    "star_request": "k66",
    "slot_counters": SLOT_COUNTERS_KEY,
    "extended_scaffold": CURRENT_ONLY_KEY,
}
_KEY_FIELDS = {key: attr for attr, key in FIELD_KEYS.items()}

SLOT_COUNT = 14


def new_entry_defaults(name: str, generation: Generation) -> Dict[str, Any]:
    """Scaffolding every freshly created level needs before the game accepts it."""
    return {
        "k1": 1,
        NAME_KEY: name,
        "k5": "Player",
        "k13": True,
        "k21": 2,
        "k16": 1,
        "k80": 0,
        "kCEK": 4,
        CURRENT_ONLY_KEY: EXTENDED_SCAFFOLD_DEFAULT,
        FORMAT_VERSION_KEY: generation.version,
        "kI1": 0,
        "kI2": 0,
        "kI3": 0,
        SLOT_COUNTERS_KEY: {str(i): 0 for i in range(SLOT_COUNT)},
    }


@dataclass
class EntrySummary:
    """Read-only projection of a level for listings."""

    identifier: str
    name: str
    song_id: int
    is_custom_song: bool
    length: Optional[int]
    description: str
    star_request: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.identifier,
            "name": self.name,
            "songId": self.song_id,
            "isCustomSong": self.is_custom_song,
            "length": self.length,
            "description": self.description,
            "starRequest": self.star_request,
        }


@dataclass
class EntryRecord:
    """Typed view over one level dict from the entry table.

    Recognized keys map to attributes; everything else is kept in ``extra``.
    ``to_node`` writes keys back in their original order so unrelated fields
    survive an edit untouched. Values are not coerced on read.
    """

    level_id: Optional[int] = None
    name: Optional[str] = None
    description: Optional[str] = None
    payload: Optional[str] = None
    creator: Optional[str] = None
    official_song: Optional[int] = None
    length: Optional[int] = None
    custom_song: Optional[int] = None
    format_version: Optional[int] = None
    star_request: Optional[int] = None
    slot_counters: Optional[Dict[str, Any]] = None
    extended_scaffold: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)
    key_order: List[str] = field(default_factory=list, repr=False, compare=False)

    @classmethod
    def from_node(cls, node: Dict[str, Any]) -> "EntryRecord":
        node = copy.deepcopy(node)
        known: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in node.items():
            attr = _KEY_FIELDS.get(key)
            if attr is None:
                extra[key] = value
            else:
                known[attr] = value
        return cls(**known, extra=extra, key_order=list(node))

    def to_node(self) -> Dict[str, Any]:
        values = dict(self.extra)
        for attr, key in FIELD_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                values[key] = value
        node = {key: values.pop(key) for key in self.key_order if key in values}
        node.update(values)
        return node

    @property
    def song_id(self) -> int:
        if self.custom_song is not None:
            return lenient_int(self.custom_song)
        if self.official_song is not None:
            return lenient_int(self.official_song)
        return 0

    @property
    def is_custom_song(self) -> bool:
        return self.custom_song is not None

    def assign_song(self, song_id: Any, is_custom: bool) -> None:
        """Point the level at a custom or official song, clearing the other kind."""
        if is_custom:
            self.custom_song = lenient_int(song_id)
            self.official_song = None
        else:
            self.official_song = lenient_int(song_id)
            self.custom_song = None

    def summary(self, identifier: str) -> EntrySummary:
        return EntrySummary(
            identifier=identifier,
            name=self.name or "Unnamed",
            song_id=self.song_id,
            is_custom_song=self.is_custom_song,
            length=lenient_int(self.length) if self.length is not None else None,
            description=self.description or "",
            star_request=lenient_int(self.star_request) if self.star_request else 0,
        )


@dataclass
class FieldChanges:
    """Edits applied by ``LevelStore.write_fields``; ``None`` means leave as-is."""

    song_id: Optional[Any] = None
    is_custom: bool = False
    raw_data: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    star_request: Optional[Any] = None
    length: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldChanges":
        return cls(
            song_id=data.get("songId"),
            is_custom=bool(data.get("isCustom", False)),
            raw_data=data.get("rawData"),
            name=data.get("name"),
            description=data.get("description"),
            star_request=data.get("starRequest"),
            length=data.get("length"),
        )


class ExportFormat(enum.Enum):
    RAW = "raw"
    PACKAGED = "packaged"

    @property
    def extension(self) -> str:
        return "gmd" if self is ExportFormat.PACKAGED else "txt"

    @classmethod
    def parse(cls, value: "str | ExportFormat") -> "ExportFormat":
        if isinstance(value, ExportFormat):
            return value
        lowered = value.strip().lower()
        if lowered in ("gmd", "packaged"):
            return cls.PACKAGED
        if lowered in ("txt", "raw"):
            return cls.RAW
        raise ValueError(f"Unknown export format: {value!r}")
