"""
Test Configuration and Fixtures
===============================

This module provides pytest fixtures and utilities for testing ilogic-bridge.
"""

from collections.abc import Generator
from dataclasses import dataclass, field
from pathlib import Path

import pytest
from loguru import logger

from ilogic_bridge.config import BridgeSettings
from ilogic_bridge.core.context import QueueContext
from ilogic_bridge.models import Document
from ilogic_bridge.store import InMemoryRuleStore
from ilogic_bridge.sync.bridge import SyncBridge


@dataclass(frozen=True)
class FakeWatch:
    path: str
    recursive: bool


@dataclass
class FakeObserver:
    """Stands in for a watchdog observer; records scheduled handlers."""
    handlers: dict[str, list] = field(default_factory=dict)
    started: bool = False
    stopped: bool = False
    fail_paths: set[str] = field(default_factory=set)

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def is_alive(self):
        return self.started and not self.stopped

    def join(self, timeout=None):
        pass

    def schedule(self, handler, path, recursive=False):
        if path in self.fail_paths:
            raise OSError(f"cannot watch {path}")
        self.handlers.setdefault(path, []).append(handler)
        return FakeWatch(path, recursive)

    def unschedule(self, watch):
        if watch.path not in self.handlers:
            raise KeyError(watch.path)
        del self.handlers[watch.path]

    def remove_handler_for_watch(self, handler, watch):
        self.handlers[watch.path].remove(handler)

    def handlers_for(self, path) -> list:
        return self.handlers.get(str(path), [])


@pytest.fixture
def temp_dir(tmp_path) -> Path:
    """Create a temporary directory for test files."""
    return tmp_path


@pytest.fixture
def settings() -> BridgeSettings:
    """Default settings, independent of the process environment."""
    return BridgeSettings.from_env({})


@pytest.fixture
def project(temp_dir) -> Path:
    """
    Project tree with a scope configuration at its root.

    Returns:
        Path: Root folder holding ``.ilogicignore``
    """
    (temp_dir / ".ilogicignore").write_text("# test scope\nTest*\n")
    (temp_dir / "parts").mkdir()
    return temp_dir


@pytest.fixture
def make_document(project):
    """Create documents under the project's ``parts`` folder."""
    def create(name: str = "Part1.ipt", doc_id: str | None = None, folder: Path | None = None) -> Document:
        path = (folder or project / "parts") / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.touch()
        return Document(doc_id=doc_id or f"id-{name}", full_path=path)
    return create


@pytest.fixture
def document(make_document) -> Document:
    return make_document()


@pytest.fixture
def store() -> InMemoryRuleStore:
    return InMemoryRuleStore()


@pytest.fixture
def context() -> QueueContext:
    return QueueContext()


@pytest.fixture
def fake_observer() -> FakeObserver:
    return FakeObserver()


@pytest.fixture
def bridge(store, context, settings, fake_observer) -> Generator[SyncBridge, None, None]:
    """Started bridge on a queue context and a fake observer."""
    bridge = SyncBridge(store, context, settings=settings, observer_factory=lambda: fake_observer)
    bridge.start()
    yield bridge
    bridge.stop()


@pytest.fixture
def log_messages() -> Generator[list[str], None, None]:
    """Capture loguru messages emitted during a test."""
    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def mock_event():
    """Create a mock event with the required attributes."""
    def create_event(src_path: str, is_directory: bool = False, event_type: str = "modified", dest_path: str | None = None):
        attrs = {
            "src_path": str(src_path),
            "is_directory": is_directory,
            "event_type": event_type,
        }
        if dest_path:
            attrs["dest_path"] = str(dest_path)
        return type("Event", (), attrs)()
    return create_event
