"""Tests for :class:`confedit.ui.domain.DirtyTracker`."""

from __future__ import annotations

import threading

from confedit.documents.model import ConfigDocument, ConfigElement
from confedit.ui.domain import DirtyTracker
from confedit.ui.events import ChangeKind, ChangeListenerHub


def test_none_is_never_dirty(tracker: DirtyTracker) -> None:
    tracker.attach(None)
    tracker.detach(None)
    assert tracker.is_dirty(None) is False
    assert tracker.mark_saved(None) is False


def test_mutation_marks_dirty_and_publishes(tracker: DirtyTracker, recorder) -> None:
    document = ConfigDocument.new()
    tracker.attach(document)

    document.root.append(ConfigElement("Files"))
    document.root.append(ConfigElement("Strings"))

    assert tracker.is_dirty(document) is True
    events = recorder.of_kind(ChangeKind.DOCUMENT_MODIFIED)
    assert [(event.old_value, event.new_value) for event in events] == [(False, True), (True, True)]
    assert document.revision == 2


def test_attach_is_idempotent(tracker: DirtyTracker, recorder) -> None:
    document = ConfigDocument.new()
    tracker.attach(document)
    tracker.attach(document)

    document.root.append(ConfigElement("Files"))

    assert len(recorder.of_kind(ChangeKind.DOCUMENT_MODIFIED)) == 1
    assert document.root.mutation_listener_count() == 1


def test_detach_stops_events(tracker: DirtyTracker, recorder) -> None:
    document = ConfigDocument.new()
    tracker.attach(document)
    tracker.detach(document)

    document.root.append(ConfigElement("Files"))

    assert recorder.events == []
    assert tracker.is_attached(document) is False
    assert document.root.mutation_listener_count() == 0


def test_mark_saved_clears_flag(tracker: DirtyTracker) -> None:
    document = ConfigDocument.new()
    tracker.attach(document)
    document.root.append(ConfigElement("Files"))

    assert tracker.mark_saved(document) is True
    assert tracker.is_dirty(document) is False


def test_mark_saved_with_stale_revision_keeps_dirty(tracker: DirtyTracker) -> None:
    document = ConfigDocument.new()
    tracker.attach(document)
    document.root.append(ConfigElement("Files"))
    revision = document.revision
    document.root.append(ConfigElement("Strings"))

    assert tracker.mark_saved(document, revision=revision) is False
    assert tracker.is_dirty(document) is True


def test_untracked_mutation_does_not_mark_dirty(tracker: DirtyTracker) -> None:
    document = ConfigDocument.new()
    document.root.append(ConfigElement("Files"))
    assert tracker.is_dirty(document) is False


def test_concurrent_mutations_from_worker_threads() -> None:
    hub = ChangeListenerHub()
    tracker = DirtyTracker(hub)
    document = ConfigDocument.new()
    sections = [document.root.append(ConfigElement(f"S{index}")) for index in range(4)]
    tracker.attach(document)
    modified: list[bool] = []
    lock = threading.Lock()

    def _record(event) -> None:
        with lock:
            modified.append(event.old_value)

    hub.subscribe(_record, kinds=[ChangeKind.DOCUMENT_MODIFIED])

    def _mutate(section: ConfigElement) -> None:
        for index in range(25):
            section.set("n", str(index))

    threads = [threading.Thread(target=_mutate, args=(section,)) for section in sections]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert tracker.is_dirty(document) is True
    assert len(modified) == 100
    assert modified.count(False) == 1
    assert document.revision == 100
