"""Level format generations and the legacy to current record upgrade.

Saves written by 1.9 and older (legacy) differ from 2.0+ (current) saves in
a few places: the per-slot counter map ``kI6`` holds strings instead of
integers, the ``k101`` scaffolding string does not exist, and the format
version ``k50`` is 23 rather than 45.
"""
from __future__ import annotations

import enum
import logging
from typing import Any, Dict

from .crypto import decrypt_blob
from .utils.numbers import lenient_int

logger = logging.getLogger(__name__)

GJVER_MARKER = 'gjver="2.0"'
CURRENT_ONLY_KEY = "k101"
CURRENT_PAYLOAD_MARKER = "kA14"
CURRENT_PAYLOAD_DELIMITER = ";"

LEGACY_VERSION = 23
CURRENT_VERSION = 45

SLOT_COUNTERS_KEY = "kI6"
FORMAT_VERSION_KEY = "k50"
EXTENDED_SCAFFOLD_DEFAULT = ",".join(["0"] * 20)


class Generation(enum.Enum):
    LEGACY = "legacy"
    CURRENT = "current"

    @property
    def version(self) -> int:
        """Format-version value written into entry records and the container."""
        return CURRENT_VERSION if self is Generation.CURRENT else LEGACY_VERSION

    @property
    def label(self) -> str:
        return "2.0+" if self is Generation.CURRENT else "1.9 or older"

    def __str__(self) -> str:
        return self.label


def detect_generation(content: str) -> Generation:
    """Guess the generation of imported content from textual markers.

    This runs before any structural parse. It is a heuristic: current content
    carrying none of the markers is reported as legacy.
    """
    if GJVER_MARKER in content or CURRENT_ONLY_KEY in content:
        return Generation.CURRENT
    if not content.lstrip().startswith("<"):
        decoded = decrypt_blob(content)
        if CURRENT_PAYLOAD_MARKER in decoded or CURRENT_PAYLOAD_DELIMITER in decoded:
            return Generation.CURRENT
    return Generation.LEGACY


def detect_container_generation(markup: str) -> Generation:
    """Generation of a whole save, from the plist header attribute."""
    return Generation.CURRENT if GJVER_MARKER in markup else Generation.LEGACY


def _coerce_counters(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _coerce_counters(v) for k, v in value.items()}
    return lenient_int(value)


def upgrade_record(record: Dict[str, Any]) -> Dict[str, Any]:
    """Upgrade a legacy level record to the current layout, in place.

    Safe to call on a record that is already current.
    """
    counters = record.get(SLOT_COUNTERS_KEY)
    if isinstance(counters, dict):
        record[SLOT_COUNTERS_KEY] = _coerce_counters(counters)
    if CURRENT_ONLY_KEY not in record:
        record[CURRENT_ONLY_KEY] = EXTENDED_SCAFFOLD_DEFAULT
    if record.get(FORMAT_VERSION_KEY) == LEGACY_VERSION:
        record[FORMAT_VERSION_KEY] = CURRENT_VERSION
    logger.debug("Upgraded level record to the current format")
    return record
