"""
Export Engine
=============

Writes a document's rules from the store into its rule folder, one
``<name>.vb`` file per rule, then registers the folder watch.
"""

from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock

from loguru import logger

from ilogic_bridge.config import BridgeSettings, get_settings
from ilogic_bridge.core.paths import ensure_folder, map_document_folder
from ilogic_bridge.core.scope import should_ignore
from ilogic_bridge.core.watcher import WatchManager
from ilogic_bridge.diagnostics import DiagnosticLog
from ilogic_bridge.models import DiagnosticKind, Document, ScopeConfig
from ilogic_bridge.store import RuleStore
from ilogic_bridge.utils.file import write_rule_file
from ilogic_bridge.utils.logging import timeit


@dataclass
class ExportResult:
    """Outcome of one export run."""
    folder: Path | None = None
    written: list[str] = field(default_factory=list)
    ignored: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: bool = False


class ExportEngine:
    """
    Store to files.

    A single reentrancy flag covers the whole bridge: an export requested
    while another is running is dropped, not queued.
    """

    def __init__(
        self,
        store: RuleStore,
        watch_manager: WatchManager,
        diagnostics: DiagnosticLog | None = None,
        settings: BridgeSettings | None = None,
        is_shutting_down=lambda: False,
    ):
        self.store = store
        self.watch_manager = watch_manager
        self.diagnostics = diagnostics or DiagnosticLog()
        self.settings = settings or get_settings()
        self._is_shutting_down = is_shutting_down
        self._flag_lock = Lock()
        self._exporting = False

    @property
    def is_exporting(self) -> bool:
        return self._exporting

    def _claim(self) -> bool:
        with self._flag_lock:
            if self._exporting:
                return False
            self._exporting = True
            return True

    def _release(self) -> None:
        with self._flag_lock:
            self._exporting = False

    def rule_path(self, folder: Path, rule_name: str) -> Path:
        return folder / f"{rule_name}{self.settings.RULE_EXTENSION}"

    @timeit
    def export_all(self, document: Document, scope: ScopeConfig) -> ExportResult:
        """
        Export every non-ignored rule of a document and watch its folder.

        Args:
            document: Document whose rules are exported
            scope: Configuration governing the document

        Returns:
            ExportResult: What was written, ignored or failed
        """
        result = ExportResult()
        if self._is_shutting_down() or not self._claim():
            result.skipped = True
            self.diagnostics.record(
                DiagnosticKind.EXPORT_SKIPPED,
                f"Export of {document.display_name} skipped: export already running or shutting down",
                level="debug",
                doc_id=document.doc_id,
            )
            return result

        try:
            folder = map_document_folder(scope.governing_folder, document, self.settings.RULES_FOLDER)
            result.folder = folder
            rules = self.store.list_rules(document)
            if not rules:
                logger.info(f"No rules found in {document.display_name}")

            ensure_folder(folder)
            for rule in rules:
                if should_ignore(rule.name, scope.patterns):
                    logger.debug(f"Ignoring rule {rule.name} as specified in {scope.config_path.name}")
                    result.ignored.append(rule.name)
                    continue
                try:
                    write_rule_file(self.rule_path(folder, rule.name), rule.text)
                    result.written.append(rule.name)
                except OSError as error:
                    result.failed.append(rule.name)
                    self.diagnostics.record(
                        DiagnosticKind.EXPORT_FAILED,
                        f"Error exporting rule {rule.name}: {error}",
                        level="warning",
                        path=str(self.rule_path(folder, rule.name)),
                        doc_id=document.doc_id,
                    )

            logger.info(f"Exported {len(result.written)} rules of {document.display_name} to {folder}")
            if self._is_shutting_down():
                logger.debug(f"Shutting down, not watching {folder}")
                return result
            self.watch_manager.ensure_watch(document.doc_id, folder)
        except Exception as error:
            self.diagnostics.record(
                DiagnosticKind.EXPORT_FAILED,
                f"Error exporting rules of {document.display_name}: {error}",
                level="warning",
                doc_id=document.doc_id,
            )
        finally:
            self._release()
        return result
