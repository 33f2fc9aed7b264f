from __future__ import annotations

from pathlib import Path
from typing import Optional


class LevelStoreError(Exception):
    """Base exception for level save codec and editing errors."""


class MalformedMarkup(LevelStoreError):
    """Raised when markup text has no usable dict root or is structurally broken."""


class DecodeError(LevelStoreError):
    """Raised when every container decode strategy has failed."""


class CorruptSave(DecodeError):
    """Raised when a save file on disk cannot be decoded into a document."""

    def __init__(self, message: str, path: Optional[Path] = None) -> None:
        super().__init__(message)
        self.path = path


class NoSession(LevelStoreError):
    """Raised when an operation needs an open document but none is loaded."""

    def __init__(self, message: str = "No editor session is open.") -> None:
        super().__init__(message)


class EntryNotFound(LevelStoreError):
    """Raised when an identifier is absent from the entry table."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"Level not found: {identifier}")
        self.identifier = identifier


class NoValidEntry(LevelStoreError):
    """Raised when an imported payload carries no recognizable level record."""


class IncompatibleGeneration(LevelStoreError):
    """Raised when current-generation content is imported into a legacy save."""

    def __init__(self, source: object, target: object) -> None:
        super().__init__(
            f"Cannot import a {source} level into a {target} instance. The level format is incompatible."
        )
        self.source = source
        self.target = target


class IOFailure(LevelStoreError):
    """Raised when reading or writing the underlying storage fails."""

    def __init__(self, message: str, path: Optional[Path] = None) -> None:
        super().__init__(message)
        self.path = path


class SaveFileNotFound(IOFailure):
    """Raised when an instance has no save file to open."""
