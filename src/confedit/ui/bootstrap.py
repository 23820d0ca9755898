"""Application bootstrap module.

Creates and wires the components of the editor:

1. Creates the change hub
2. Creates the dirty tracker and the document store
3. Creates the facade with its preferences and runner
4. Optionally creates the main window

Usage:
    components = create_editor(preferences_store=store, preferences=prefs)
    components.facade.load(Path("configuration.xml"))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .application.coordinator import DocumentEditorFacade
from .domain import DirtyTracker, DocumentStore
from .events import ChangeListenerHub
from .ui_queue import DeferredUiQueue

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from ..services.preferences import Preferences, PreferencesStore
    from ..services.runner import ConfigurationRunner
    from .application.document_ops import DialogProvider
    from .presentation.main_window import ConfigEditorWindow
    from .ui_queue import UiQueue

_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class EditorComponents:
    """The wired object graph; one instance per editor session."""

    event_bus: ChangeListenerHub
    dirty_tracker: DirtyTracker
    document_store: DocumentStore
    facade: DocumentEditorFacade
    ui_queue: UiQueue


def create_editor(
    *,
    ui_queue: UiQueue | None = None,
    dialog_provider: DialogProvider | None = None,
    preferences_store: PreferencesStore | None = None,
    preferences: Preferences | None = None,
    runner: ConfigurationRunner | None = None,
) -> EditorComponents:
    """Create the headless editor components.

    Args:
        ui_queue: Queue for deferred repaints; a :class:`DeferredUiQueue`
            is used when omitted.
        dialog_provider: Provider for dialogs and notifications.
        preferences_store: Store for persisting preference changes.
        preferences: Active preferences.
        runner: Run action override.
    """
    event_bus = ChangeListenerHub()
    dirty_tracker = DirtyTracker(event_bus)
    queue: UiQueue = ui_queue if ui_queue is not None else DeferredUiQueue()
    document_store = DocumentStore(event_bus, dirty_tracker, queue)
    facade = DocumentEditorFacade(
        event_bus,
        document_store,
        dialog_provider=dialog_provider,
        preferences_store=preferences_store,
        preferences=preferences,
        runner=runner,
    )
    _LOGGER.debug("Editor components created")
    return EditorComponents(
        event_bus=event_bus,
        dirty_tracker=dirty_tracker,
        document_store=document_store,
        facade=facade,
        ui_queue=queue,
    )


def create_application(
    *,
    ui_queue: UiQueue,
    preferences_store: PreferencesStore | None = None,
    preferences: Preferences | None = None,
) -> tuple[EditorComponents, ConfigEditorWindow]:
    """Create the editor components plus the Qt main window bound to them."""
    from .presentation.main_window import ConfigEditorWindow

    components = create_editor(
        ui_queue=ui_queue,
        preferences_store=preferences_store,
        preferences=preferences,
    )
    window = ConfigEditorWindow(components.facade, ui_queue=ui_queue)
    _LOGGER.info("Application window created")
    return components, window


__all__ = ["EditorComponents", "create_application", "create_editor"]
