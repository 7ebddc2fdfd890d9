"""Registry of the documents open in the host application."""

from threading import Lock

from ilogic_bridge.core.paths import folder_name_for
from ilogic_bridge.models import Document


class DocumentRegistry:
    """
    Open documents, the active document, and the ignore patterns each
    document was last exported with.
    """

    def __init__(self):
        self._documents: dict[str, Document] = {}
        self._patterns: dict[str, list[str]] = {}
        self._active_id: str | None = None
        self._lock = Lock()

    def open(self, document: Document) -> None:
        """Record a document as open and active."""
        with self._lock:
            self._documents[document.doc_id] = document
            self._active_id = document.doc_id

    def activate(self, document: Document) -> None:
        self.open(document)

    def close(self, doc_id: str) -> Document | None:
        with self._lock:
            self._patterns.pop(doc_id, None)
            if self._active_id == doc_id:
                self._active_id = None
            return self._documents.pop(doc_id, None)

    def clear(self) -> None:
        with self._lock:
            self._documents.clear()
            self._patterns.clear()
            self._active_id = None

    def get(self, doc_id: str) -> Document | None:
        with self._lock:
            return self._documents.get(doc_id)

    def active(self) -> Document | None:
        with self._lock:
            if self._active_id is None:
                return None
            return self._documents.get(self._active_id)

    def all(self) -> list[Document]:
        with self._lock:
            return list(self._documents.values())

    def set_patterns(self, doc_id: str, patterns: list[str]) -> None:
        with self._lock:
            self._patterns[doc_id] = list(patterns)

    def patterns_for(self, doc_id: str) -> list[str]:
        with self._lock:
            return list(self._patterns.get(doc_id, []))

    def match_folder(self, name: str) -> Document | None:
        """Find the open document whose ``<base>_<ext>`` equals ``name``, ignoring case."""
        name = name.casefold()
        for document in self.all():
            if folder_name_for(document).casefold() == name:
                return document
        return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._documents)
