"""Dirty-state tracking for configuration documents.

Observes structural mutations of a document's root subtree, marks the
document dirty and announces the transition on the change hub.
"""

from __future__ import annotations

import logging
import threading
import weakref
from typing import TYPE_CHECKING

from ..events import ChangeKind

if TYPE_CHECKING:  # pragma: no cover
    from ...documents.model import ConfigDocument, MutationEvent, MutationListener
    from ..events import ChangeListenerHub

LOGGER = logging.getLogger(__name__)


class DirtyTracker:
    """Records whether documents differ from their last-saved form.

    Events Emitted:
        - document-modified: On every mutation of an attached document,
          carrying the previous dirty flag and ``True``.
    """

    def __init__(self, event_bus: ChangeListenerHub) -> None:
        self._bus = event_bus
        self._lock = threading.RLock()
        self._listeners: weakref.WeakKeyDictionary[ConfigDocument, MutationListener] = (
            weakref.WeakKeyDictionary()
        )

    def attach(self, document: ConfigDocument | None) -> None:
        """Start tracking ``document``; repeated calls for the same document are ignored."""

        if document is None:
            return
        with self._lock:
            if document in self._listeners:
                return
            listener = self._make_listener(document)
            self._listeners[document] = listener
            document.root.add_mutation_listener(listener)
        LOGGER.debug("DirtyTracker: attached to document %s", document.document_id)

    def detach(self, document: ConfigDocument | None) -> None:
        """Stop tracking ``document``; later mutations no longer emit events."""

        if document is None:
            return
        with self._lock:
            listener = self._listeners.pop(document, None)
            if listener is None:
                return
            document.root.remove_mutation_listener(listener)
        LOGGER.debug("DirtyTracker: detached from document %s", document.document_id)

    def is_attached(self, document: ConfigDocument | None) -> bool:
        if document is None:
            return False
        with self._lock:
            return document in self._listeners

    def is_dirty(self, document: ConfigDocument | None) -> bool:
        """Return the dirty flag; an absent document is never dirty."""

        if document is None:
            return False
        with self._lock:
            return document.dirty

    def mark_saved(self, document: ConfigDocument | None, *, revision: int | None = None) -> bool:
        """Clear the dirty flag after a confirmed save.

        Args:
            document: The document that was written.
            revision: The revision that was serialized. When the document
                has been mutated since, it stays dirty.

        Returns:
            True if the document is now clean.
        """
        if document is None:
            return False
        with self._lock:
            if revision is not None and document.revision != revision:
                LOGGER.debug(
                    "DirtyTracker: document %s changed during save (revision %s -> %s)",
                    document.document_id,
                    revision,
                    document.revision,
                )
                return False
            document.dirty = False
        LOGGER.debug("DirtyTracker: document %s marked saved", document.document_id)
        return True

    def _make_listener(self, document: ConfigDocument) -> MutationListener:
        document_ref = weakref.ref(document)

        def _on_subtree_modified(event: MutationEvent) -> None:
            target = document_ref()
            if target is not None:
                self._record_mutation(target, event)

        return _on_subtree_modified

    def _record_mutation(self, document: ConfigDocument, event: MutationEvent) -> None:
        with self._lock:
            previous = document.dirty
            document.dirty = True
            document.revision += 1
        LOGGER.debug(
            "DirtyTracker: %s on <%s> in document %s (was_dirty=%s)",
            event.kind.value,
            event.target.tag,
            document.document_id,
            previous,
        )
        self._bus.publish(ChangeKind.DOCUMENT_MODIFIED, previous, True)


__all__ = ["DirtyTracker"]
