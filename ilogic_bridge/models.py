"""
Bridge Data Models
==================

Value types shared by the scope resolver, the export engine, the watch
manager and the change processor.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import NamedTuple

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class Document:
    """
    Handle to a document open in the host application.

    Attributes:
        doc_id (str): Opaque identifier, stable while the document is open
        full_path (Path): Full path of the document file
    """
    doc_id: str
    full_path: Path

    def __post_init__(self):
        if not self.doc_id:
            raise ValueError("Document id cannot be empty")
        object.__setattr__(self, "full_path", Path(self.full_path))

    @property
    def display_name(self) -> str:
        return self.full_path.name

    @property
    def base_name(self) -> str:
        return self.full_path.stem

    @property
    def extension(self) -> str:
        """Extension without the leading dot (``Part1.ipt`` -> ``ipt``)."""
        return self.full_path.suffix.lstrip(".")

    @property
    def folder(self) -> Path:
        return self.full_path.parent


@dataclass(frozen=True)
class Rule:
    """A named rule body held by the store."""
    name: str
    text: str


@dataclass
class ScopeConfig:
    """
    Result of parsing one scope configuration file.

    Attributes:
        config_path (Path): Absolute path of the configuration file
        transfer_enabled (bool): False when the file carries ``@disable-transfer``
        patterns (list[str]): Ignore patterns in file order
        read_error (str | None): Set when the file could not be read
    """
    config_path: Path
    transfer_enabled: bool = True
    patterns: list[str] = field(default_factory=list)
    read_error: str | None = None

    @property
    def governing_folder(self) -> Path:
        return self.config_path.parent


class ChangeKind(str, Enum):
    """Kind of file-system change applied back to the store."""
    MODIFIED = "modified"
    CREATED = "created"
    DELETED = "deleted"
    RENAMED = "renamed"


class PendingChangeKey(NamedTuple):
    """Claim key; one in-flight handler per ``(path, kind)``."""
    path: str
    kind: ChangeKind


class DiagnosticKind(str, Enum):
    """Conditions recorded while synchronizing."""
    CONFIG_READ_FAILED = "config-read-failed"
    TRANSFER_DISABLED = "transfer-disabled"
    FOLDER_COLLISION = "folder-collision"
    EXPORT_FAILED = "export-failed"
    EXPORT_SKIPPED = "export-skipped"
    WATCH_FAILED = "watch-failed"
    NO_DOCUMENT = "no-document"
    DOCUMENT_FALLBACK = "document-fallback"
    FILE_READ_FAILED = "file-read-failed"
    RULE_MISSING = "rule-missing"
    RULE_EXISTS = "rule-exists"
    RULE_DELETED = "rule-deleted"
    RULE_RENAMED = "rule-renamed"
    RENAME_SOURCE_MISSING = "rename-source-missing"
    STORE_FAILED = "store-failed"
    POST_FAILED = "post-failed"


class Diagnostic(BaseModel):
    """A recorded condition; never raised, only reported."""
    kind: DiagnosticKind
    level: str = "info"
    message: str
    path: str | None = None
    doc_id: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)
