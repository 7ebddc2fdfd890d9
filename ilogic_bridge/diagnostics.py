"""Diagnostic recording for the background synchronizer."""

from collections import deque
from threading import Lock

from loguru import logger

from ilogic_bridge.models import Diagnostic, DiagnosticKind

_LOG_LEVELS = {
    "debug": "DEBUG",
    "info": "INFO",
    "warning": "WARNING",
    "critical": "CRITICAL",
}


class DiagnosticLog:
    """Thread-safe, bounded record of diagnostics, mirrored to the logger."""

    def __init__(self, limit: int = 500):
        self._entries: deque[Diagnostic] = deque(maxlen=limit)
        self._lock = Lock()

    def record(
        self,
        kind: DiagnosticKind,
        message: str,
        level: str = "info",
        path: str | None = None,
        doc_id: str | None = None,
    ) -> Diagnostic:
        """Record a diagnostic and log it at the matching level.

        Args:
            kind: Condition being reported
            message: Human readable description
            level: One of debug, info, warning, critical
            path: File or folder involved, if any
            doc_id: Document involved, if any

        Returns:
            Diagnostic: The stored entry
        """
        if level not in _LOG_LEVELS:
            raise ValueError(f"Invalid diagnostic level: {level}")
        entry = Diagnostic(kind=kind, level=level, message=message, path=path, doc_id=doc_id)
        with self._lock:
            self._entries.append(entry)
        logger.log(_LOG_LEVELS[level], message)
        return entry

    def entries(self, kind: DiagnosticKind | None = None) -> list[Diagnostic]:
        with self._lock:
            entries = list(self._entries)
        if kind is None:
            return entries
        return [entry for entry in entries if entry.kind == kind]

    def kinds(self) -> list[DiagnosticKind]:
        return [entry.kind for entry in self.entries()]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
