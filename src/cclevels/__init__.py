from importlib.metadata import version, PackageNotFoundError

from .errors import (
    CorruptSave,
    DecodeError,
    EntryNotFound,
    IncompatibleGeneration,
    IOFailure,
    LevelStoreError,
    MalformedMarkup,
    NoSession,
    NoValidEntry,
    SaveFileNotFound,
)
from .generation import Generation
from .models import EntryRecord, EntrySummary, ExportFormat, FieldChanges
from .settings import Settings
from .store import LevelStore, Session

__all__ = [
    "__version__",
    "LevelStore",
    "Session",
    "Settings",
    "Generation",
    "EntryRecord",
    "EntrySummary",
    "ExportFormat",
    "FieldChanges",
    "LevelStoreError",
    "MalformedMarkup",
    "DecodeError",
    "CorruptSave",
    "NoSession",
    "EntryNotFound",
    "NoValidEntry",
    "IncompatibleGeneration",
    "IOFailure",
    "SaveFileNotFound",
]

try:
    __version__ = version("cclevels")
except PackageNotFoundError:  # pragma: no cover - during tests without packaging
    __version__ = "0.0.0"
