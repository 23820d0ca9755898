"""Tests for :class:`confedit.ui.domain.DocumentStore`."""

from __future__ import annotations

import threading
import time

import pytest

from confedit.documents.model import ConfigDocument, ConfigElement
from confedit.ui.domain import DirtyTracker, DocumentStore
from confedit.ui.events import ChangeEvent, ChangeKind, ChangeListenerHub


class TestCurrentDocument:
    def test_starts_empty(self, store: DocumentStore) -> None:
        assert store.current is None
        assert store.get_current() is None
        assert store.has_document() is False
        assert store.is_dirty() is False

    def test_require_current_without_document(self, store: DocumentStore) -> None:
        with pytest.raises(RuntimeError):
            store.require_current()

    def test_set_current_publishes_replacement(self, store: DocumentStore, recorder) -> None:
        first = ConfigDocument.new()
        second = ConfigDocument.new()

        store.set_current(first)
        store.set_current(second)
        store.set_current(None)

        replaced = recorder.of_kind(ChangeKind.DOCUMENT_REPLACED)
        assert [(event.old_value, event.new_value) for event in replaced] == [
            (None, first),
            (first, second),
            (second, None),
        ]
        assert store.current is None

    def test_observers_see_new_document_installed(self, store: DocumentStore, hub) -> None:
        seen: list[ConfigDocument | None] = []

        def observer(event: ChangeEvent) -> None:
            seen.append(store.current)

        hub.subscribe(observer, kinds=[ChangeKind.DOCUMENT_REPLACED])
        document = ConfigDocument.new()
        store.set_current(document)

        assert seen == [document]

    def test_reinstalling_same_document_keeps_tracking(self, store: DocumentStore, recorder) -> None:
        document = ConfigDocument.new()
        store.set_current(document)
        store.set_current(document)
        recorder.clear()

        document.root.append(ConfigElement("Files"))

        assert recorder.kinds() == [ChangeKind.DOCUMENT_MODIFIED]
        assert document.root.mutation_listener_count() == 1


class TestDirtyTracking:
    def test_mutation_of_current_document_marks_dirty(self, store: DocumentStore, recorder) -> None:
        document = ConfigDocument.new()
        store.set_current(document)

        document.root.append(ConfigElement("Files"))

        assert store.is_dirty() is True
        assert recorder.kinds() == [ChangeKind.DOCUMENT_REPLACED, ChangeKind.DOCUMENT_MODIFIED]

    def test_replaced_document_no_longer_emits(self, store: DocumentStore, recorder) -> None:
        old = ConfigDocument.new()
        store.set_current(old)
        store.set_current(ConfigDocument.new())
        recorder.clear()

        old.root.append(ConfigElement("Files"))

        assert recorder.events == []
        assert store.is_dirty() is False

    def test_dirty_tracker_property(self, store: DocumentStore, tracker) -> None:
        assert store.dirty_tracker is tracker


class TestRefresh:
    def test_refresh_is_posted_after_replacement(self, store: DocumentStore, ui_queue) -> None:
        calls: list[ConfigDocument | None] = []
        store.set_refresh_callback(lambda: calls.append(store.current))
        document = ConfigDocument.new()

        store.set_current(document)

        assert calls == []
        assert ui_queue.pending_count() == 1
        assert ui_queue.drain() == 1
        assert calls == [document]

    def test_no_refresh_without_callback(self, store: DocumentStore, ui_queue) -> None:
        store.set_current(ConfigDocument.new())
        assert ui_queue.pending_count() == 0


class _GatedTracker(DirtyTracker):
    """Tracker that pauses while attaching one chosen document."""

    def __init__(self, hub: ChangeListenerHub, gated: ConfigDocument) -> None:
        super().__init__(hub)
        self.gated = gated
        self.entered = threading.Event()
        self.release = threading.Event()

    def attach(self, document: ConfigDocument | None) -> None:
        if document is self.gated:
            self.entered.set()
            self.release.wait(timeout=5)
        super().attach(document)


class TestConcurrentReplacement:
    def test_overlapping_replacements_track_only_the_winner(
        self, hub: ChangeListenerHub, recorder, ui_queue
    ) -> None:
        first = ConfigDocument.new()
        second = ConfigDocument.new()
        tracker = _GatedTracker(hub, first)
        store = DocumentStore(hub, tracker, ui_queue)

        installing_first = threading.Thread(target=store.set_current, args=(first,))
        installing_first.start()
        assert tracker.entered.wait(timeout=5)
        installing_second = threading.Thread(target=store.set_current, args=(second,))
        installing_second.start()
        time.sleep(0.05)
        tracker.release.set()
        installing_first.join(timeout=5)
        installing_second.join(timeout=5)
        recorder.clear()

        first.root.append(ConfigElement("Files"))

        assert store.current is second
        assert tracker.is_attached(first) is False
        assert tracker.is_attached(second) is True
        assert recorder.of_kind(ChangeKind.DOCUMENT_MODIFIED) == []
        assert first.root.mutation_listener_count() == 0

    def test_readers_only_see_installed_documents(self, store: DocumentStore, tracker) -> None:
        documents = [ConfigDocument.new() for _ in range(8)]
        seen: list[ConfigDocument | None] = []
        stop = threading.Event()

        def read() -> None:
            while not stop.is_set():
                seen.append(store.get_current())

        reader = threading.Thread(target=read)
        reader.start()
        writers = [threading.Thread(target=store.set_current, args=(document,)) for document in documents]
        for writer in writers:
            writer.start()
        for writer in writers:
            writer.join(timeout=5)
        stop.set()
        reader.join(timeout=5)

        allowed = {id(document) for document in documents} | {id(None)}
        assert all(id(value) in allowed for value in seen)
        assert store.current in documents
        attached = [document for document in documents if tracker.is_attached(document)]
        assert attached == [store.current]
