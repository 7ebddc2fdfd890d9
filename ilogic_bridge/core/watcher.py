"""
Rule Folder Watching
====================

One non-recursive watch per tracked document, rooted at the document's rule
folder and filtered to rule files. Events are handed to a callback on the
observer thread; the callback must not touch the store.

Classes:
    RuleFileHandler: watchdog event handler for one rule folder
    WatchHandle: live watch over one folder, keyed by document id
    WatchManager: creates, re-roots and tears down watches
"""

import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from threading import Lock

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import ObservedWatch

from ilogic_bridge.diagnostics import DiagnosticLog
from ilogic_bridge.errors import WatchError
from ilogic_bridge.models import ChangeKind, DiagnosticKind

ChangeCallback = Callable[[ChangeKind, str, str | None], None]


class RuleFileHandler(FileSystemEventHandler):
    """Forwards rule-file events from one folder to a change callback."""

    def __init__(self, doc_id: str, callback: ChangeCallback, extension: str = ".vb"):
        """Initialize the handler.

        Args:
            doc_id: Document the watched folder belongs to
            callback: Called with ``(kind, path, old_path)``
            extension: Rule file extension, including the dot
        """
        super().__init__()
        self.doc_id = doc_id
        self.extension = extension.lower()
        self.callback: ChangeCallback | None = callback
        self.enabled = False

    def detach(self) -> None:
        """Stop delivering events and drop the callback."""
        self.enabled = False
        self.callback = None

    def is_rule_file(self, path: str) -> bool:
        return path.lower().endswith(self.extension)

    def _emit(self, kind: ChangeKind, path: str, old_path: str | None = None) -> None:
        callback = self.callback
        if not self.enabled or callback is None:
            return
        try:
            callback(kind, path, old_path)
        except Exception:
            logger.exception(f"Error handling {kind.value} event for {path}")

    def _dispatch_simple(self, event: FileSystemEvent, kind: ChangeKind) -> None:
        if event.is_directory:
            return
        path = os.fsdecode(event.src_path)
        if self.is_rule_file(path):
            self._emit(kind, path)

    def on_created(self, event: FileSystemEvent) -> None:
        self._dispatch_simple(event, ChangeKind.CREATED)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._dispatch_simple(event, ChangeKind.MODIFIED)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._dispatch_simple(event, ChangeKind.DELETED)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        old_path = os.fsdecode(event.src_path)
        new_path = os.fsdecode(event.dest_path)
        if self.is_rule_file(old_path) or self.is_rule_file(new_path):
            self._emit(ChangeKind.RENAMED, new_path, old_path)


@dataclass
class WatchHandle:
    """Live watch over one rule folder."""
    doc_id: str
    folder: Path
    handler: RuleFileHandler
    watch: ObservedWatch


class WatchManager:
    """
    Keeps at most one watch per document on a shared observer.

    The handle map is shared with the observer thread and is only changed
    under ``_lock``.
    """

    def __init__(
        self,
        callback: ChangeCallback,
        extension: str = ".vb",
        diagnostics: DiagnosticLog | None = None,
        observer_factory: Callable[[], Observer] = Observer,
    ):
        self.callback = callback
        self.extension = extension
        self.diagnostics = diagnostics or DiagnosticLog()
        self._observer_factory = observer_factory
        self._observer: Observer | None = None
        self._handles: dict[str, WatchHandle] = {}
        self._closed = False
        self._lock = Lock()

    def _ensure_observer(self) -> Observer:
        if self._observer is None:
            self._observer = self._observer_factory()
            self._observer.start()
            logger.debug("Started rule folder observer")
        return self._observer

    def _schedule(self, handler: RuleFileHandler, folder: Path) -> ObservedWatch:
        try:
            return self._ensure_observer().schedule(handler, str(folder), recursive=False)
        except Exception as error:
            raise WatchError(f"Cannot watch {folder}: {error}") from error

    def _release(self, handle: WatchHandle) -> None:
        handle.handler.detach()
        if self._observer is None:
            return
        shared = any(
            other is not handle and other.watch == handle.watch for other in self._handles.values()
        )
        try:
            if shared:
                self._observer.remove_handler_for_watch(handle.handler, handle.watch)
            else:
                self._observer.unschedule(handle.watch)
        except (KeyError, ValueError, OSError) as error:
            logger.debug(f"Watch for {handle.folder} already released: {error}")

    def ensure_watch(self, doc_id: str, folder: str | Path) -> WatchHandle | None:
        """
        Create a watch for a document, or re-root its existing watch.

        Args:
            doc_id: Document id
            folder: Rule folder to observe

        Returns:
            WatchHandle | None: The live handle, None when watching failed
        """
        folder = Path(folder)
        with self._lock:
            if self._closed:
                logger.debug(f"Watch manager closed, not watching {folder} for {doc_id}")
                return None
            handle = self._handles.get(doc_id)
            if handle is not None and handle.folder == folder:
                return handle

            if handle is not None:
                try:
                    handle.handler.enabled = False
                    self._observer.unschedule(handle.watch)
                    handle.watch = self._schedule(handle.handler, folder)
                    handle.folder = folder
                    handle.handler.enabled = True
                    logger.info(f"Moved watch for {doc_id} to {folder}")
                    return handle
                except Exception as error:
                    self.diagnostics.record(
                        DiagnosticKind.WATCH_FAILED,
                        f"Error updating watch path for {doc_id}: {error}",
                        level="warning",
                        path=str(folder),
                        doc_id=doc_id,
                    )
                    self._handles.pop(doc_id, None)
                    self._release(handle)
                    return None

            handler = RuleFileHandler(doc_id, self.callback, self.extension)
            try:
                watch = self._schedule(handler, folder)
            except WatchError as error:
                self.diagnostics.record(
                    DiagnosticKind.WATCH_FAILED,
                    f"Error creating watch for {doc_id}: {error}",
                    level="warning",
                    path=str(folder),
                    doc_id=doc_id,
                )
                return None
            handle = WatchHandle(doc_id=doc_id, folder=folder, handler=handler, watch=watch)
            self._handles[doc_id] = handle
            handler.enabled = True
            logger.info(f"Watching {folder} for {doc_id}")
            return handle

    def tear_down(self, doc_id: str) -> bool:
        """
        Remove a document's watch.

        Returns:
            bool: True if a watch was removed
        """
        with self._lock:
            handle = self._handles.get(doc_id)
            if handle is None:
                return False
            self._release(handle)
            del self._handles[doc_id]
        logger.info(f"Removed watch for {doc_id}; rule files kept on disk")
        return True

    def tear_down_all(self) -> None:
        """
        Remove every watch and stop the observer. Safe to call repeatedly.

        The manager stays closed, refusing new watches, until ``reopen``.
        """
        with self._lock:
            self._closed = True
            doc_ids = list(self._handles)
        for doc_id in doc_ids:
            self.tear_down(doc_id)
        with self._lock:
            observer, self._observer = self._observer, None
        if observer is not None:
            try:
                observer.stop()
                if observer.is_alive():
                    observer.join()
            except RuntimeError as error:
                logger.debug(f"Observer already stopped: {error}")
            logger.debug("Stopped rule folder observer")

    def reopen(self) -> None:
        with self._lock:
            self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def folder_for(self, doc_id: str) -> Path | None:
        with self._lock:
            handle = self._handles.get(doc_id)
            return handle.folder if handle else None

    def owner_of(self, folder: str | Path) -> str | None:
        """Document id whose watch is rooted at ``folder``, if any."""
        folder = Path(folder)
        with self._lock:
            for doc_id, handle in self._handles.items():
                if handle.folder == folder:
                    return doc_id
        return None

    def watched(self) -> dict[str, Path]:
        with self._lock:
            return {doc_id: handle.folder for doc_id, handle in self._handles.items()}

    def __contains__(self, doc_id: str) -> bool:
        with self._lock:
            return doc_id in self._handles

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)
