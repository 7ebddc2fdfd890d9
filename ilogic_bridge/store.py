"""
Rule Store Interface
====================

The host application's rule automation API, reduced to the five operations
the bridge needs. All of them must be called from the owner context.
"""

import threading
from typing import Protocol, runtime_checkable

from ilogic_bridge.errors import StoreError
from ilogic_bridge.models import Document, Rule

__all__ = ["RuleStore", "InMemoryRuleStore", "StoreError"]


@runtime_checkable
class RuleStore(Protocol):
    """Named rule text held per document by the host application."""

    def list_rules(self, document: Document) -> list[Rule]:
        ...

    def get_rule(self, document: Document, name: str) -> str | None:
        ...

    def set_rule_text(self, document: Document, name: str, text: str) -> None:
        ...

    def add_rule(self, document: Document, name: str, text: str) -> None:
        ...

    def delete_rule(self, document: Document, name: str) -> None:
        ...


class InMemoryRuleStore:
    """
    Dictionary-backed store used by the CLI and the test suite.

    Rules keep insertion order per document. Every call is appended to
    ``calls`` as ``(operation, doc_id, name)``. When ``owner_thread`` is set,
    calls from any other thread raise ``StoreError``.
    """

    def __init__(self, owner_thread: threading.Thread | None = None):
        self._rules: dict[str, dict[str, str]] = {}
        self.owner_thread = owner_thread
        self.calls: list[tuple[str, str, str | None]] = []

    def _touch(self, operation: str, document: Document, name: str | None = None) -> dict[str, str]:
        if self.owner_thread is not None and threading.current_thread() is not self.owner_thread:
            raise StoreError(
                f"{operation} called from {threading.current_thread().name}, "
                f"expected {self.owner_thread.name}"
            )
        self.calls.append((operation, document.doc_id, name))
        return self._rules.setdefault(document.doc_id, {})

    def mutations(self) -> list[tuple[str, str, str | None]]:
        """Calls that changed the store."""
        return [call for call in self.calls if call[0] in ("set_rule_text", "add_rule", "delete_rule")]

    def seed(self, document: Document, rules: dict[str, str]) -> None:
        """Load rules without recording calls."""
        self._rules.setdefault(document.doc_id, {}).update(rules)

    def snapshot(self, document: Document) -> dict[str, str]:
        """Copy of a document's rules without recording a call."""
        return dict(self._rules.get(document.doc_id, {}))

    def list_rules(self, document: Document) -> list[Rule]:
        rules = self._touch("list_rules", document)
        return [Rule(name, text) for name, text in rules.items()]

    def get_rule(self, document: Document, name: str) -> str | None:
        return self._touch("get_rule", document, name).get(name)

    def set_rule_text(self, document: Document, name: str, text: str) -> None:
        rules = self._touch("set_rule_text", document, name)
        if name not in rules:
            raise StoreError(f"Rule {name} does not exist in {document.display_name}")
        rules[name] = text

    def add_rule(self, document: Document, name: str, text: str) -> None:
        rules = self._touch("add_rule", document, name)
        if name in rules:
            raise StoreError(f"Rule {name} already exists in {document.display_name}")
        rules[name] = text

    def delete_rule(self, document: Document, name: str) -> None:
        rules = self._touch("delete_rule", document, name)
        if name not in rules:
            raise StoreError(f"Rule {name} does not exist in {document.display_name}")
        del rules[name]
