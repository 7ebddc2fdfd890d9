"""
Tests for Rule Folder Watching
==============================

This module contains tests for the rule file handler and the watch manager.
"""

import pytest

from ilogic_bridge.core.watcher import RuleFileHandler, WatchManager
from ilogic_bridge.diagnostics import DiagnosticLog
from ilogic_bridge.models import ChangeKind, DiagnosticKind


@pytest.fixture
def mock_callback():
    """Create a mock callback function that tracks calls."""
    calls = []
    def callback(kind, path, old_path=None):
        calls.append((kind, path, old_path))
    callback.calls = calls  # type: ignore
    return callback


@pytest.fixture
def handler(mock_callback):
    handler = RuleFileHandler("doc-1", mock_callback)
    handler.enabled = True
    return handler


@pytest.fixture
def manager(mock_callback, fake_observer):
    return WatchManager(mock_callback, diagnostics=DiagnosticLog(), observer_factory=lambda: fake_observer)


def test_handler_forwards_rule_file_events(handler, mock_callback, mock_event, temp_dir):
    path = str(temp_dir / "Calc.vb")
    handler.on_modified(mock_event(path))
    handler.on_created(mock_event(path, event_type="created"))
    handler.on_deleted(mock_event(path, event_type="deleted"))

    assert mock_callback.calls == [
        (ChangeKind.MODIFIED, path, None),
        (ChangeKind.CREATED, path, None),
        (ChangeKind.DELETED, path, None),
    ]


def test_handler_filters_extension_case_insensitively(handler, mock_callback, mock_event, temp_dir):
    handler.on_modified(mock_event(str(temp_dir / "notes.txt")))
    handler.on_modified(mock_event(str(temp_dir / "UPPER.VB")))
    assert [call[1] for call in mock_callback.calls] == [str(temp_dir / "UPPER.VB")]


def test_handler_ignores_directories(handler, mock_callback, mock_event, temp_dir):
    handler.on_modified(mock_event(str(temp_dir / "folder.vb"), is_directory=True))
    handler.on_moved(mock_event(str(temp_dir / "a.vb"), is_directory=True, dest_path=str(temp_dir / "b.vb")))
    assert mock_callback.calls == []


def test_handler_moved_reports_new_and_old_path(handler, mock_callback, mock_event, temp_dir):
    old, new = str(temp_dir / "Calc.vb"), str(temp_dir / "Calc2.vb")
    handler.on_moved(mock_event(old, event_type="moved", dest_path=new))
    assert mock_callback.calls == [(ChangeKind.RENAMED, new, old)]


def test_handler_moved_with_one_rule_side_is_forwarded(handler, mock_callback, mock_event, temp_dir):
    handler.on_moved(mock_event(str(temp_dir / "Calc.vb"), dest_path=str(temp_dir / "Calc.vb~")))
    handler.on_moved(mock_event(str(temp_dir / "tmp123"), dest_path=str(temp_dir / "Calc.vb")))
    handler.on_moved(mock_event(str(temp_dir / "a.txt"), dest_path=str(temp_dir / "b.txt")))
    assert len(mock_callback.calls) == 2


def test_disabled_or_detached_handler_is_silent(handler, mock_callback, mock_event, temp_dir):
    handler.enabled = False
    handler.on_modified(mock_event(str(temp_dir / "Calc.vb")))
    handler.enabled = True
    handler.detach()
    handler.on_modified(mock_event(str(temp_dir / "Calc.vb")))
    assert mock_callback.calls == []


def test_handler_swallows_callback_errors(mock_event, temp_dir):
    def failing_callback(kind, path, old_path=None):
        raise Exception("Test error")

    handler = RuleFileHandler("doc-1", failing_callback)
    handler.enabled = True
    handler.on_modified(mock_event(str(temp_dir / "Calc.vb")))  # Should not raise exception


def test_ensure_watch_creates_one_handle(manager, fake_observer, temp_dir):
    handle = manager.ensure_watch("doc-1", temp_dir)
    again = manager.ensure_watch("doc-1", temp_dir)

    assert handle is again
    assert fake_observer.started
    assert len(fake_observer.handlers_for(temp_dir)) == 1
    assert handle.handler.enabled
    assert len(manager) == 1


def test_ensure_watch_reroots_existing_handle(manager, fake_observer, temp_dir):
    first, second = temp_dir / "a", temp_dir / "b"
    handle = manager.ensure_watch("doc-1", first)
    moved = manager.ensure_watch("doc-1", second)

    assert moved is handle
    assert handle.folder == second
    assert fake_observer.handlers_for(first) == []
    assert fake_observer.handlers_for(second) == [handle.handler]
    assert len(manager) == 1


def test_failed_reroot_tears_down_stale_handle(manager, fake_observer, temp_dir):
    first, second = temp_dir / "a", temp_dir / "b"
    handle = manager.ensure_watch("doc-1", first)
    fake_observer.fail_paths.add(str(second))

    assert manager.ensure_watch("doc-1", second) is None
    assert "doc-1" not in manager
    assert handle.handler.callback is None
    assert manager.diagnostics.kinds() == [DiagnosticKind.WATCH_FAILED]

    fake_observer.fail_paths.clear()
    fresh = manager.ensure_watch("doc-1", second)
    assert fresh is not None and fresh is not handle


def test_failed_create_records_diagnostic(manager, fake_observer, temp_dir):
    fake_observer.fail_paths.add(str(temp_dir))
    assert manager.ensure_watch("doc-1", temp_dir) is None
    assert "doc-1" not in manager
    assert manager.diagnostics.kinds() == [DiagnosticKind.WATCH_FAILED]


def test_tear_down(manager, fake_observer, temp_dir):
    handle = manager.ensure_watch("doc-1", temp_dir)
    assert manager.tear_down("doc-1") is True
    assert manager.tear_down("doc-1") is False
    assert handle.handler.enabled is False
    assert fake_observer.handlers_for(temp_dir) == []


def test_tear_down_all_is_idempotent(manager, fake_observer, temp_dir):
    manager.ensure_watch("doc-1", temp_dir / "a")
    manager.ensure_watch("doc-2", temp_dir / "b")
    # handle already gone from the observer
    fake_observer.handlers.pop(str(temp_dir / "a"))

    manager.tear_down_all()
    manager.tear_down_all()

    assert len(manager) == 0
    assert fake_observer.stopped


def test_owner_and_folder_queries(manager, temp_dir):
    manager.ensure_watch("doc-1", temp_dir / "a")
    assert manager.owner_of(temp_dir / "a") == "doc-1"
    assert manager.owner_of(temp_dir / "b") is None
    assert manager.folder_for("doc-1") == temp_dir / "a"
    assert manager.folder_for("doc-2") is None
    assert manager.watched() == {"doc-1": temp_dir / "a"}


def test_shared_folder_release_keeps_other_handler(manager, fake_observer, temp_dir):
    first = manager.ensure_watch("doc-1", temp_dir)
    second = manager.ensure_watch("doc-2", temp_dir)
    manager.tear_down("doc-1")
    assert fake_observer.handlers_for(temp_dir) == [second.handler]
    assert first.handler.callback is None


def test_closed_manager_refuses_watches_until_reopened(manager, fake_observer, temp_dir):
    manager.tear_down_all()
    assert manager.closed
    assert manager.ensure_watch("doc-1", temp_dir) is None
    assert fake_observer.started is False
    assert manager.watched() == {}

    manager.reopen()
    assert manager.ensure_watch("doc-1", temp_dir) is not None
    assert fake_observer.started
