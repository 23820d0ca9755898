"""Document store domain manager.

Owns the single current configuration document. This is the only place the
current-document reference is changed; every replacement is announced on the
change hub and followed by a deferred UI refresh.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Callable

from ..events import ChangeKind

if TYPE_CHECKING:  # pragma: no cover
    from ...documents.model import ConfigDocument
    from ..events import ChangeListenerHub
    from ..ui_queue import UiQueue
    from .dirty_tracker import DirtyTracker

LOGGER = logging.getLogger(__name__)


class DocumentStore:
    """Domain manager for the current document reference.

    Constructed once at startup and handed to every collaborator that needs
    document state; there is no module-level current document.

    Events Emitted:
        - document-replaced: After every :meth:`set_current`, carrying the
          previous and the new document.
    """

    def __init__(
        self,
        event_bus: ChangeListenerHub,
        dirty_tracker: DirtyTracker,
        ui_queue: UiQueue,
        *,
        refresh_callback: Callable[[], None] | None = None,
    ) -> None:
        """Initialize the document store.

        Args:
            event_bus: The hub used to announce replacements.
            dirty_tracker: Tracker attached to each installed document.
            ui_queue: Queue receiving the post-replacement UI refresh.
            refresh_callback: Repaint hook posted after each replacement.
        """
        self._bus = event_bus
        self._dirty_tracker = dirty_tracker
        self._ui_queue = ui_queue
        self._refresh_callback = refresh_callback
        self._lock = threading.RLock()
        self._current: ConfigDocument | None = None

    # ------------------------------------------------------------------
    # Current document
    # ------------------------------------------------------------------

    @property
    def current(self) -> ConfigDocument | None:
        """The current document, or None when nothing is loaded."""
        with self._lock:
            return self._current

    def get_current(self) -> ConfigDocument | None:
        return self.current

    def has_document(self) -> bool:
        return self.current is not None

    def require_current(self) -> ConfigDocument:
        """Return the current document.

        Raises:
            RuntimeError: If no document is loaded.
        """
        document = self.current
        if document is None:
            raise RuntimeError("No configuration document is loaded")
        return document

    def set_current(self, new_document: ConfigDocument | None) -> None:
        """Replace the current document.

        The swap and the hand-over of dirty tracking from the old document
        to the new one happen under the store lock, so readers see either
        the old or the new reference and only the current document is ever
        tracked. Observers are notified after the lock is released.

        Emits:
            document-replaced: With ``(old, new)``.
        """
        with self._lock:
            old_document = self._current
            self._current = new_document
            if old_document is not None and old_document is not new_document:
                self._dirty_tracker.detach(old_document)
            self._dirty_tracker.attach(new_document)

        LOGGER.debug(
            "DocumentStore.set_current: %s -> %s",
            old_document.document_id if old_document is not None else None,
            new_document.document_id if new_document is not None else None,
        )

        self._bus.publish(ChangeKind.DOCUMENT_REPLACED, old_document, new_document)

        if self._refresh_callback is not None:
            self._ui_queue.post(self._refresh_callback)

    def set_refresh_callback(self, callback: Callable[[], None] | None) -> None:
        """Install the repaint hook; the presentation layer calls this once."""
        self._refresh_callback = callback

    # ------------------------------------------------------------------
    # Dirty state
    # ------------------------------------------------------------------

    @property
    def dirty_tracker(self) -> DirtyTracker:
        return self._dirty_tracker

    def is_dirty(self) -> bool:
        """Return whether the current document has unsaved changes."""
        return self._dirty_tracker.is_dirty(self.current)


__all__ = ["DocumentStore"]
