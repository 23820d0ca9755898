"""Domain layer for the editor UI.

Domain managers own document state and announce changes on the change hub.
They receive their collaborators through the constructor and have no direct
dependency on Qt or widgets.

Domain Managers:
    - DocumentStore: The single current-document reference
    - DirtyTracker: Unsaved-changes state per document
"""

from __future__ import annotations

from .dirty_tracker import DirtyTracker
from .document_store import DocumentStore

__all__: list[str] = [
    "DirtyTracker",
    "DocumentStore",
]
