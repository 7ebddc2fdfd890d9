"""
Change Processor
================

Applies rule-file changes back to the store.

Notifications arrive on observer threads. Each one first claims its
``(path, kind)`` key; a notification whose key is already claimed is
dropped. Claimed work is posted to the owner context, the only place the
store is called, and the claim is released when the work finishes.
"""

from collections.abc import Callable
from functools import partial
from pathlib import Path
from threading import Lock

from loguru import logger

from ilogic_bridge.config import BridgeSettings, get_settings
from ilogic_bridge.core.context import OwnerContext
from ilogic_bridge.core.documents import DocumentRegistry
from ilogic_bridge.core.scope import should_ignore
from ilogic_bridge.diagnostics import DiagnosticLog
from ilogic_bridge.models import ChangeKind, DiagnosticKind, Document, PendingChangeKey
from ilogic_bridge.store import RuleStore
from ilogic_bridge.utils.file import read_rule_file


def is_swap_rename(old_path: str, new_path: str) -> bool:
    """True for an editor backup rename such as ``Calc.vb -> Calc.vb~``."""
    return Path(old_path).name + "~" == Path(new_path).name


class ChangeProcessor:
    """Files to store."""

    def __init__(
        self,
        store: RuleStore | None,
        context: OwnerContext,
        documents: DocumentRegistry,
        diagnostics: DiagnosticLog | None = None,
        settings: BridgeSettings | None = None,
        is_shutting_down: Callable[[], bool] = lambda: False,
        folder_owner: Callable[[Path], str | None] | None = None,
    ):
        self.store = store
        self.context = context
        self.documents = documents
        self.diagnostics = diagnostics or DiagnosticLog()
        self.settings = settings or get_settings()
        self._is_shutting_down = is_shutting_down
        self.folder_owner = folder_owner
        self._pending: set[PendingChangeKey] = set()
        self._pending_lock = Lock()

    # Claims

    def _claim(self, key: PendingChangeKey) -> bool:
        with self._pending_lock:
            if key in self._pending:
                return False
            self._pending.add(key)
            return True

    def _release(self, key: PendingChangeKey) -> None:
        with self._pending_lock:
            self._pending.discard(key)

    def pending(self) -> list[PendingChangeKey]:
        with self._pending_lock:
            return list(self._pending)

    def submit(self, kind: ChangeKind, path: str, old_path: str | None = None) -> bool:
        """
        Claim a notification and post its processing to the owner context.

        Safe to call from any thread.

        Args:
            kind: Kind of change
            path: Changed file (the new path for renames)
            old_path: Previous path for renames

        Returns:
            bool: True if the notification was claimed and posted
        """
        if self._is_shutting_down():
            return False
        key = PendingChangeKey(str(path), ChangeKind(kind))
        if not self._claim(key):
            logger.debug(f"Dropping duplicate {key.kind.value} notification for {path}")
            return False
        try:
            self.context.post(partial(self.process, key, old_path))
        except Exception as error:
            logger.error(f"Error initiating change processing for {path}: {error}")
            self._release(key)
            return False
        return True

    # Owner context

    def _alive(self) -> bool:
        return not self._is_shutting_down() and self.store is not None

    def resolve_document(self, path: str) -> Document | None:
        """
        Find the open document a rule file belongs to.

        The document watching the file's folder wins. Otherwise the parent
        folder name is matched against every open document, then the active
        document is used when enabled in the settings.
        """
        folder = Path(path).parent
        if self.folder_owner is not None:
            owner_id = self.folder_owner(folder)
            if owner_id is not None:
                document = self.documents.get(owner_id)
                if document is not None:
                    return document

        folder_name = folder.name
        document = self.documents.match_folder(folder_name)
        if document is not None:
            return document

        if self.settings.ACTIVE_FALLBACK:
            document = self.documents.active()
            if document is not None:
                self.diagnostics.record(
                    DiagnosticKind.DOCUMENT_FALLBACK,
                    f"No document matching subfolder '{folder_name}' found, using active document "
                    f"{document.display_name} as fallback",
                    level="warning",
                    path=path,
                    doc_id=document.doc_id,
                )
                return document

        self.diagnostics.record(
            DiagnosticKind.NO_DOCUMENT,
            f"No document available for processing change to {path}",
            level="warning",
            path=path,
        )
        return None

    def process(self, key: PendingChangeKey, old_path: str | None = None) -> None:
        """Apply one claimed change to the store. Runs on the owner context."""
        try:
            if not self._alive():
                return
            document = self.resolve_document(key.path)
            if document is None:
                return

            rule_name = Path(key.path).stem
            if should_ignore(rule_name, self.documents.patterns_for(document.doc_id)):
                logger.debug(f"Ignoring change to rule {rule_name} as specified in {self.settings.IGNORE_FILE}")
                return

            if key.kind is ChangeKind.MODIFIED:
                self._apply_modified(document, rule_name, key.path)
            elif key.kind is ChangeKind.CREATED:
                self._apply_created(document, rule_name, key.path)
            elif key.kind is ChangeKind.DELETED:
                self._apply_deleted(document, rule_name, key.path)
            elif key.kind is ChangeKind.RENAMED:
                self._apply_renamed(document, rule_name, key.path, old_path)
        except Exception as error:
            self.diagnostics.record(
                DiagnosticKind.STORE_FAILED,
                f"Error processing {key.kind.value} for {key.path}: {error}",
                level="warning",
                path=key.path,
            )
        finally:
            self._release(key)

    def _read(self, document: Document, path: str) -> str | None:
        try:
            return read_rule_file(path)
        except (OSError, UnicodeDecodeError) as error:
            self.diagnostics.record(
                DiagnosticKind.FILE_READ_FAILED,
                f"Cannot read {path}: {error}",
                level="warning",
                path=path,
                doc_id=document.doc_id,
            )
            return None

    def _is_rule_file(self, path: str) -> bool:
        return path.lower().endswith(self.settings.RULE_EXTENSION.lower())

    def _apply_modified(self, document: Document, rule_name: str, path: str) -> None:
        current = self.store.get_rule(document, rule_name)
        if current is None:
            self.diagnostics.record(
                DiagnosticKind.RULE_MISSING,
                f"Failed to write to {rule_name} on change: rule doesn't exist in {document.display_name}",
                level="warning",
                path=path,
                doc_id=document.doc_id,
            )
            return
        text = self._read(document, path)
        if text is None or not self._alive():
            return
        if text == current:
            logger.debug(f"Rule {rule_name} already up to date")
            return
        logger.info(f"Updating rule {rule_name} in document {document.display_name}")
        self.store.set_rule_text(document, rule_name, text)

    def _apply_created(self, document: Document, rule_name: str, path: str) -> None:
        if self.store.get_rule(document, rule_name) is not None:
            self.diagnostics.record(
                DiagnosticKind.RULE_EXISTS,
                f"Rule already exists: {rule_name} in {document.display_name}",
                level="info",
                path=path,
                doc_id=document.doc_id,
            )
            return
        text = self._read(document, path)
        if text is None or not self._alive():
            return
        logger.info(f"Creating rule {rule_name} in document {document.display_name}")
        self.store.add_rule(document, rule_name, text)

    def _apply_deleted(self, document: Document, rule_name: str, path: str) -> None:
        if self.store.get_rule(document, rule_name) is None:
            logger.debug(f"Deleted file {path} has no rule in {document.display_name}")
            return
        if not self._alive():
            return
        self.diagnostics.record(
            DiagnosticKind.RULE_DELETED,
            f"Removing rule {rule_name} from document {document.display_name}",
            level="critical",
            path=path,
            doc_id=document.doc_id,
        )
        self.store.delete_rule(document, rule_name)

    def _apply_replaced(self, document: Document, rule_name: str, path: str) -> None:
        """A non-rule file was moved onto a rule file name (save via temp file)."""
        if self.store.get_rule(document, rule_name) is None:
            self._apply_created(document, rule_name, path)
        else:
            self._apply_modified(document, rule_name, path)

    def _apply_renamed(self, document: Document, rule_name: str, path: str, old_path: str | None) -> None:
        if not old_path:
            self._apply_replaced(document, rule_name, path)
            return
        if is_swap_rename(old_path, path):
            logger.debug(f"Editor swap file {Path(path).name}, not a rename")
            return
        if not self._is_rule_file(path):
            self._apply_deleted(document, Path(old_path).stem, old_path)
            return
        if not self._is_rule_file(old_path):
            self._apply_replaced(document, rule_name, path)
            return

        old_rule_name = Path(old_path).stem
        text = self.store.get_rule(document, old_rule_name)
        if text is None:
            self.diagnostics.record(
                DiagnosticKind.RENAME_SOURCE_MISSING,
                f"Old rule {old_rule_name} does not exist in {document.display_name}",
                level="warning",
                path=old_path,
                doc_id=document.doc_id,
            )
            return
        if rule_name != old_rule_name and self.store.get_rule(document, rule_name) is not None:
            self.diagnostics.record(
                DiagnosticKind.RULE_EXISTS,
                f"Cannot rename {old_rule_name} to {rule_name}: rule already exists in {document.display_name}",
                level="warning",
                path=path,
                doc_id=document.doc_id,
            )
            return
        if not self._alive():
            return
        self.diagnostics.record(
            DiagnosticKind.RULE_RENAMED,
            f"Renaming rule {old_rule_name} to {rule_name} in document {document.display_name}",
            level="critical",
            path=path,
            doc_id=document.doc_id,
        )
        self.store.delete_rule(document, old_rule_name)
        self.store.add_rule(document, rule_name, text)
