"""
Sync Orchestrator
=================

Wires host lifecycle events to the export engine and the watch manager, and
owns the state shared by the components: the shutdown flag, the document
registry, the diagnostics log, and the owner context every store call is
posted to.
"""

from collections.abc import Callable
from pathlib import Path

from loguru import logger
from watchdog.observers import Observer

from ilogic_bridge.config import BridgeSettings, get_settings
from ilogic_bridge.core.context import OwnerContext
from ilogic_bridge.core.documents import DocumentRegistry
from ilogic_bridge.core.export import ExportEngine, ExportResult
from ilogic_bridge.core.paths import map_document_folder
from ilogic_bridge.core.processor import ChangeProcessor
from ilogic_bridge.core.scope import resolve_scope
from ilogic_bridge.core.watcher import WatchManager
from ilogic_bridge.diagnostics import DiagnosticLog
from ilogic_bridge.models import DiagnosticKind, Document
from ilogic_bridge.store import RuleStore


class SyncBridge:
    """Keeps a store's rules and their rule files in step, in both directions."""

    def __init__(
        self,
        store: RuleStore,
        context: OwnerContext,
        settings: BridgeSettings | None = None,
        observer_factory: Callable[[], Observer] = Observer,
    ):
        """Initialize the bridge.

        Args:
            store: Host rule store, only called from ``context``
            context: Owner context for store calls
            settings: Bridge settings, defaults to the environment
            observer_factory: Creates the watchdog observer
        """
        self.store = store
        self.context = context
        self.settings = settings or get_settings()
        self.diagnostics = DiagnosticLog(self.settings.DIAGNOSTIC_LIMIT)
        self.documents = DocumentRegistry()
        self._running = False
        self._shutting_down = False

        self.processor = ChangeProcessor(
            store,
            context,
            self.documents,
            diagnostics=self.diagnostics,
            settings=self.settings,
            is_shutting_down=self.is_shutting_down,
        )
        self.watch_manager = WatchManager(
            self.processor.submit,
            extension=self.settings.RULE_EXTENSION,
            diagnostics=self.diagnostics,
            observer_factory=observer_factory,
        )
        self.processor.folder_owner = self.watch_manager.owner_of
        self.exporter = ExportEngine(
            store,
            self.watch_manager,
            diagnostics=self.diagnostics,
            settings=self.settings,
            is_shutting_down=self.is_shutting_down,
        )

    def is_shutting_down(self) -> bool:
        return self._shutting_down

    @property
    def running(self) -> bool:
        return self._running

    def start(self, active_document: Document | None = None) -> None:
        """
        Start handling lifecycle events.

        Args:
            active_document: Document already active in the host, exported first
        """
        if self._running:
            logger.warning("Bridge is already running")
            return
        self._shutting_down = False
        self._running = True
        self.watch_manager.reopen()
        logger.info("Rule bridge started")
        if active_document is not None:
            self.on_document_opened(active_document)

    def stop(self) -> None:
        """Set the shutdown flag, then release every watch."""
        if not self._running and self._shutting_down:
            return
        self._shutting_down = True
        self._running = False
        self.watch_manager.tear_down_all()
        self.documents.clear()
        logger.info("Rule bridge stopped")

    # Lifecycle events, delivered by the host

    def _accepting_events(self) -> bool:
        return self._running and not self._shutting_down

    def _post(self, callback: Callable[[], None], doc_id: str) -> bool:
        try:
            self.context.post(callback)
        except Exception as error:
            self.diagnostics.record(
                DiagnosticKind.POST_FAILED,
                f"Error posting work for document {doc_id}: {error}",
                level="warning",
                doc_id=doc_id,
            )
            return False
        return True

    def on_document_opened(self, document: Document) -> None:
        if not self._accepting_events():
            return
        logger.debug(f"Opening document: {document.display_name}")
        self.documents.open(document)
        self._post(lambda: self.open_document_rules(document), document.doc_id)

    def on_document_saved(self, document: Document) -> None:
        if not self._accepting_events():
            return
        logger.debug(f"Saving document: {document.display_name}")
        self.documents.activate(document)
        self._post(lambda: self.open_document_rules(document), document.doc_id)

    def on_document_closed_before(self, doc_id: str) -> None:
        """Forget a closing document now and release its watch on the owner context."""
        if not self._accepting_events():
            return
        self.documents.close(doc_id)
        self._post(lambda: self._cleanup_document(doc_id), doc_id)

    def _cleanup_document(self, doc_id: str) -> None:
        if self._shutting_down:
            return
        try:
            self.watch_manager.tear_down(doc_id)
        except Exception as error:
            logger.error(f"Error in document cleanup for {doc_id}: {error}")

    # Owner context

    def open_document_rules(self, document: Document) -> ExportResult | None:
        """
        Resolve a document's scope, export its rules and watch its folder.

        Returns:
            ExportResult | None: None when the document is untracked or the
            export was refused
        """
        if self._shutting_down or self.store is None:
            return None
        if self.documents.get(document.doc_id) is None:
            logger.debug(f"{document.display_name} was closed before its rules were exported")
            return None

        scope = resolve_scope(document.full_path, self.settings)
        if scope is None:
            logger.info(f"No {self.settings.IGNORE_FILE} file found. Not tracking {document.display_name}")
            self.watch_manager.tear_down(document.doc_id)
            return None
        if scope.read_error:
            self.diagnostics.record(
                DiagnosticKind.CONFIG_READ_FAILED,
                f"Error parsing {scope.config_path}: {scope.read_error}",
                level="warning",
                path=str(scope.config_path),
                doc_id=document.doc_id,
            )
        if not scope.transfer_enabled:
            self.diagnostics.record(
                DiagnosticKind.TRANSFER_DISABLED,
                f"Transfer disabled for {document.display_name} in {scope.config_path}",
                level="info",
                path=str(scope.config_path),
                doc_id=document.doc_id,
            )
            self.watch_manager.tear_down(document.doc_id)
            return None

        folder = map_document_folder(scope.governing_folder, document, self.settings.RULES_FOLDER)
        owner = self.watch_manager.owner_of(folder)
        if owner is not None and owner != document.doc_id:
            self.diagnostics.record(
                DiagnosticKind.FOLDER_COLLISION,
                f"{folder} already belongs to document {owner}; not tracking {document.display_name}",
                level="warning",
                path=str(folder),
                doc_id=document.doc_id,
            )
            return None

        if scope.patterns:
            logger.debug(f"Ignoring patterns: {', '.join(scope.patterns)}")
        self.documents.set_patterns(document.doc_id, scope.patterns)
        result = self.exporter.export_all(document, scope)
        return None if result.skipped else result

    def status(self) -> dict:
        """Get the current status of the bridge.

        Returns:
            dict: Running flag, open documents, watched folders, pending claims and diagnostics
        """
        return {
            "running": self._running,
            "documents": [document.display_name for document in self.documents.all()],
            "watched": {doc_id: str(folder) for doc_id, folder in self.watch_manager.watched().items()},
            "pending": [f"{key.kind.value}:{key.path}" for key in self.processor.pending()],
            "diagnostics": [entry.model_dump(mode="json") for entry in self.diagnostics.entries()[-20:]],
        }

    def rule_folder(self, document: Document) -> Path | None:
        return self.watch_manager.folder_for(document.doc_id)

    def __enter__(self) -> "SyncBridge":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
