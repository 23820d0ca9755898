"""Presentation layer for the configuration editor.

This package contains thin UI components that respond to change events
and delegate user actions to the application layer:

1. **Enablers**: SaveEnabler and DocumentPresenceEnabler toggle actions
2. **Editor panels**: one ValuePanelModel per tab (DEFAULT_PANELS) exposes
   ``<Value>`` leaves for editing
3. **Dialogs**: QtDialogProvider and PreferencesDialog (``.dialogs``)
4. **Main window**: ConfigEditorWindow (``.main_window``)

The Qt modules are imported explicitly by the application bootstrap so the
enablers and the panel model stay importable without a display.
"""

from __future__ import annotations

from .editor_panel import (
    BATCH_FIELDS,
    DEFAULT_FIELDS,
    DEFAULT_PANELS,
    PanelSpec,
    ValueField,
    ValuePanelModel,
    ValueRow,
)
from .enablers import DocumentPresenceEnabler, Enableable, SaveEnabler

__all__: list[str] = [
    "BATCH_FIELDS",
    "DEFAULT_FIELDS",
    "DEFAULT_PANELS",
    "DocumentPresenceEnabler",
    "Enableable",
    "PanelSpec",
    "SaveEnabler",
    "ValueField",
    "ValuePanelModel",
    "ValueRow",
]
