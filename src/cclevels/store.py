"""Editing session over one instance's local levels save.

A :class:`LevelStore` owns at most one :class:`Session`: the decoded save of a
single instance plus its dirty flag and generation. Every edit goes through
the store, is validated first, and is installed in one step so a failed
call leaves the document as it was. Nothing is written to disk until
:meth:`LevelStore.persist` is called, and opening another instance drops
unsaved edits.

The store does no locking; callers serialize their calls.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from . import crypto, markup
from .errors import (
    CorruptSave,
    DecodeError,
    EntryNotFound,
    IncompatibleGeneration,
    IOFailure,
    MalformedMarkup,
    NoSession,
    NoValidEntry,
)
from .generation import Generation, detect_container_generation, detect_generation, upgrade_record
from .models import (
    ENTRY_ID_PREFIX,
    ENTRY_TABLE_KEY,
    GENERATION_MARKER_KEY,
    NAME_KEY,
    PAYLOAD_KEY,
    EntryRecord,
    EntrySummary,
    ExportFormat,
    FieldChanges,
    new_entry_defaults,
)
from .paths import save_file_path
from .settings import Settings
from .utils.numbers import lenient_int

logger = logging.getLogger(__name__)

NEW_ENTRY = "new"
IMPORTED_NAME = "Imported {}"

# k50 written into packaged exports
PACKAGED_FORMAT_VERSION = 24

_ID_SUFFIX = re.compile(r"\s*(\d+)")


@dataclass
class Session:
    """The decoded save of one instance, held for editing."""

    instance_id: str
    path: Path
    container: Dict[str, Any]
    generation: Generation
    dirty: bool = False

    @property
    def is_legacy(self) -> bool:
        return self.generation is Generation.LEGACY

    @property
    def entries(self) -> Dict[str, Any]:
        table = self.container.get(ENTRY_TABLE_KEY)
        return table if isinstance(table, dict) else {}


class LevelStore:
    """Open, query, edit and persist the level save of an instance."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()
        self._session: Optional[Session] = None

    # Session lifecycle

    @property
    def session(self) -> Session:
        if self._session is None:
            raise NoSession()
        return self._session

    @property
    def is_open(self) -> bool:
        return self._session is not None

    @property
    def is_dirty(self) -> bool:
        return self._session is not None and self._session.dirty

    def open(self, root_dir: Path | str, instance_id: str) -> Session:
        """Load ``<root_dir>/<instance_id>/<save file>`` as the active session.

        Any session already open is discarded without being persisted.
        """
        root = Path(root_dir)
        path = save_file_path(root, instance_id, self.settings.save_filename)
        try:
            text = crypto.read_container(path)
        except DecodeError as exc:
            raise CorruptSave(f"Failed to decrypt save file {path}. It may be corrupted.", path) from exc
        if not text.strip():
            raise CorruptSave(f"Save file {path} decoded to nothing.", path)

        generation = detect_container_generation(text)
        try:
            container = markup.parse(text)
        except MalformedMarkup as exc:
            raise CorruptSave(f"Save file {path} is not a valid document: {exc}", path) from exc

        if ENTRY_TABLE_KEY not in container:
            logger.info("No level table in %s; starting an empty one", path)
            container[ENTRY_TABLE_KEY] = {}
            container.setdefault(GENERATION_MARKER_KEY, generation.version)

        if self._session is not None and self._session.dirty:
            logger.warning("Discarding unsaved edits to instance %s", self._session.instance_id)
        self._session = Session(
            instance_id=instance_id,
            path=path,
            container=container,
            generation=generation,
        )
        logger.info(
            "Opened %s (%s format, %d levels)", path, generation.label, len(self._session.entries)
        )
        return self._session

    def persist(self, root_dir: Path | str | None = None) -> Path:
        """Encode the document and write it back to the instance's save file."""
        session = self.session
        path = session.path
        if root_dir is not None:
            path = save_file_path(Path(root_dir), session.instance_id, self.settings.save_filename)
        text = markup.build(session.container, gjver=not session.is_legacy)
        crypto.write_container(path, text)
        session.dirty = False
        logger.info("Saved %d levels to %s", len(session.entries), path)
        return path

    def close(self) -> None:
        """Drop the active session without saving."""
        self._session = None

    # Queries

    def list_entries(self) -> List[EntrySummary]:
        summaries = []
        for identifier, node in self.session.entries.items():
            if not identifier.startswith(ENTRY_ID_PREFIX) or not isinstance(node, dict):
                continue
            summaries.append(EntryRecord.from_node(node).summary(identifier))
        return summaries

    def read_payload(self, identifier: str) -> str:
        """Decoded level string of an entry."""
        record = self._record(identifier)
        return crypto.decrypt_blob(record.payload)

    def dump_markup(self) -> str:
        """The whole document as indented markup, for hand editing."""
        session = self.session
        return markup.build_pretty(session.container, gjver=not session.is_legacy)

    # Edits

    def write_fields(self, identifier: str, changes: FieldChanges) -> None:
        record = self._record(identifier)
        if changes.song_id is not None:
            record.assign_song(changes.song_id, changes.is_custom)
        if changes.raw_data is not None:
            record.payload = crypto.encrypt_blob(changes.raw_data)
        if changes.name is not None:
            record.name = changes.name
        if changes.description is not None:
            record.description = changes.description
        if changes.star_request is not None:
            record.star_request = lenient_int(changes.star_request)
        if changes.length is not None:
            record.length = lenient_int(changes.length)
        self._install(identifier, record)

    def rename(self, identifier: str, new_name: str) -> None:
        record = self._record(identifier)
        record.name = new_name
        self._install(identifier, record)

    def set_description(self, identifier: str, description: str) -> None:
        record = self._record(identifier)
        record.description = description
        self._install(identifier, record)

    def set_star_request(self, identifier: str, stars: Any) -> None:
        record = self._record(identifier)
        record.star_request = lenient_int(stars)
        self._install(identifier, record)

    def set_song(self, identifier: str, song_id: Any, is_custom: bool) -> None:
        record = self._record(identifier)
        record.assign_song(song_id, is_custom)
        self._install(identifier, record)

    def load_markup(self, text: str) -> None:
        """Replace the whole document with hand-edited markup."""
        session = self.session
        container = markup.parse(text)
        session.container = container
        session.dirty = True
        logger.info("Replaced document of %s from edited markup", session.instance_id)

    # Import / export

    def import_external(self, payload: str | bytes, target: str = NEW_ENTRY) -> str:
        """Bring a level from a .gmd document or a raw level string into the save.

        With ``target="new"`` the level is added at the top of the list;
        otherwise its fields are merged onto the existing level ``target``.
        Returns the identifier that was written.
        """
        session = self.session
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8", errors="replace")
        content = payload.strip()

        source = detect_generation(content)
        if session.is_legacy and source is Generation.CURRENT:
            raise IncompatibleGeneration(source, session.generation)
        if target != NEW_ENTRY:
            self._record(target)

        incoming = self._incoming_record(content)
        if not session.is_legacy and source is Generation.LEGACY:
            logger.info("Translating %s level to %s format", source.label, session.generation.label)
            upgrade_record(incoming)

        table = session.entries
        if target == NEW_ENTRY:
            identifier, node = self._new_entry(table, incoming)
            session.container[ENTRY_TABLE_KEY] = {identifier: node, **table}
        else:
            identifier = target
            table[identifier] = {**table[identifier], **incoming}
        session.dirty = True
        logger.info("Imported level into %s as %s", session.instance_id, identifier)
        return identifier

    def import_file(self, path: Path | str, target: str = NEW_ENTRY) -> str:
        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise IOFailure(f"Failed to read level file {path}: {exc}", path) from exc
        return self.import_external(content, target)

    def export_entry(self, identifier: str, fmt: str | ExportFormat = ExportFormat.RAW) -> str:
        """Level as a raw level string or as a minimal single-level .gmd document."""
        fmt = ExportFormat.parse(fmt)
        record = self._record(identifier)
        if fmt is ExportFormat.RAW:
            return crypto.decrypt_blob(record.payload)
        return markup.build_fragment({
            NAME_KEY: record.name or "",
            PAYLOAD_KEY: record.payload or "",
            "k1": 1,
            "k50": PACKAGED_FORMAT_VERSION,
            "kCEK": 4,
        })

    def export_to_file(self, identifier: str, fmt: str | ExportFormat, dest: Path | str | None = None) -> Path:
        """Export a level and write it out.

        *dest* may be a file or a directory; a directory (or the configured
        export directory when *dest* is omitted) gets ``<name>.<ext>``.
        """
        fmt = ExportFormat.parse(fmt)
        text = self.export_entry(identifier, fmt)
        target = Path(dest) if dest is not None else (self.settings.export_dir or Path.cwd())
        if target.is_dir():
            name = self._record(identifier).name or identifier
            target = target / f"{name}.{fmt.extension}"
        try:
            target.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise IOFailure(f"Failed to write export {target}: {exc}", target) from exc
        logger.info("Exported %s to %s", identifier, target)
        return target

    # Internal utilities

    def _record(self, identifier: str) -> EntryRecord:
        node = self.session.entries.get(identifier)
        if not isinstance(node, dict):
            raise EntryNotFound(identifier)
        return EntryRecord.from_node(node)

    def _install(self, identifier: str, record: EntryRecord) -> None:
        session = self.session
        session.entries[identifier] = record.to_node()
        session.dirty = True

    def _incoming_record(self, content: str) -> Dict[str, Any]:
        if not content.startswith("<"):
            blob = content if crypto.looks_encoded(content) else crypto.encrypt_blob(content)
            return {PAYLOAD_KEY: blob}

        try:
            document = markup.parse(content)
        except MalformedMarkup as exc:
            raise NoValidEntry(f"Could not find a valid level in the GMD file: {exc}") from exc
        if document.get(NAME_KEY) and document.get(PAYLOAD_KEY):
            return document
        for value in document.values():
            if isinstance(value, dict) and value.get(NAME_KEY) and value.get(PAYLOAD_KEY):
                return value
        raise NoValidEntry("Could not find a valid level in the GMD file.")

    def _new_entry(self, table: Dict[str, Any], incoming: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
        names = {node.get(NAME_KEY) for node in table.values() if isinstance(node, dict)}
        counter = 1
        while IMPORTED_NAME.format(counter) in names:
            counter += 1

        highest = 0
        for key in table:
            if key.startswith(ENTRY_ID_PREFIX):
                m = _ID_SUFFIX.match(key[len(ENTRY_ID_PREFIX):])
                if m:
                    highest = max(highest, int(m.group(1)))

        node = new_entry_defaults(IMPORTED_NAME.format(counter), self.session.generation)
        node.update(incoming)
        return f"{ENTRY_ID_PREFIX}{highest + 1}", node
