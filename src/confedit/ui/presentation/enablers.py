"""Reactive enablers for actions and widgets.

Enablers subscribe to the change hub and toggle the ``enabled`` state of a
group of widgets. They never poll the document store.

Classes:
    SaveEnabler: Enabled while the current document has unsaved changes
    DocumentPresenceEnabler: Enabled while a document is loaded
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from functools import partial
from typing import TYPE_CHECKING, Iterable, Protocol

from ..events import ChangeEvent, ChangeKind

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from ..events import ChangeListenerHub
    from ..ui_queue import UiQueue

LOGGER = logging.getLogger(__name__)


class Enableable(Protocol):
    """Anything with a Qt-style ``setEnabled`` (QAction, QWidget)."""

    def setEnabled(self, enabled: bool) -> None:  # noqa: N802 - Qt naming
        ...


class _Enabler(ABC):
    """Shared subscription and widget bookkeeping."""

    __slots__ = ("_event_bus", "_widgets", "_ui_queue", "_enabled", "_subscribed", "__weakref__")

    kinds: tuple[ChangeKind, ...] = ()

    def __init__(
        self,
        event_bus: ChangeListenerHub,
        widgets: Iterable[Enableable] = (),
        *,
        ui_queue: UiQueue | None = None,
        initial: bool = False,
    ) -> None:
        """Initialize the enabler and subscribe to the hub.

        Args:
            event_bus: Hub delivering document-state changes.
            widgets: Widgets whose enabled state follows this enabler.
            ui_queue: When given, widget updates are posted to it instead of
                running on the publishing thread.
            initial: The enabled state applied before any event arrives.
        """
        self._event_bus = event_bus
        self._widgets: list[Enableable] = list(widgets)
        self._ui_queue = ui_queue
        self._enabled = initial
        self._subscribed = True
        event_bus.subscribe(self, kinds=self.kinds)
        self._apply(initial)

    @property
    def enabled(self) -> bool:
        return self._enabled

    def add_widget(self, widget: Enableable) -> None:
        """Track ``widget`` and bring it to the current state."""
        self._widgets.append(widget)
        widget.setEnabled(self._enabled)

    def dispose(self) -> None:
        if not self._subscribed:
            return
        self._event_bus.unsubscribe(self)
        self._subscribed = False

    @abstractmethod
    def on_change(self, event: ChangeEvent) -> None:
        """React to a change delivered by the hub."""

    def _apply(self, enabled: bool) -> None:
        self._enabled = enabled
        if self._ui_queue is not None:
            self._ui_queue.post(partial(self._push, enabled))
        else:
            self._push(enabled)

    def _push(self, enabled: bool) -> None:
        for widget in list(self._widgets):
            widget.setEnabled(enabled)


class SaveEnabler(_Enabler):
    """Enables Save while the current document is dirty.

    Events Handled:
        - document-replaced: Follows the new document's dirty flag
        - document-modified: Enables
        - document-saved: Disables
    """

    __slots__ = ()

    kinds = (ChangeKind.DOCUMENT_REPLACED, ChangeKind.DOCUMENT_MODIFIED, ChangeKind.DOCUMENT_SAVED)

    def on_change(self, event: ChangeEvent) -> None:
        if event.kind is ChangeKind.DOCUMENT_REPLACED:
            document = event.new_value
            self._apply(bool(document is not None and document.dirty))
        elif event.kind is ChangeKind.DOCUMENT_MODIFIED:
            self._apply(bool(event.new_value))
        elif event.kind is ChangeKind.DOCUMENT_SAVED:
            self._apply(False)


class DocumentPresenceEnabler(_Enabler):
    """Enables document actions (Save As, Run, editors) while a document exists."""

    __slots__ = ()

    kinds = (ChangeKind.DOCUMENT_REPLACED,)

    def on_change(self, event: ChangeEvent) -> None:
        self._apply(event.new_value is not None)


__all__ = ["DocumentPresenceEnabler", "Enableable", "SaveEnabler"]
