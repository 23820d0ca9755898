"""UI package: change notification, domain state, use cases and presentation."""

from .bootstrap import EditorComponents, create_application, create_editor
from .events import ChangeEvent, ChangeKind, ChangeListenerHub

__all__ = [
    "ChangeEvent",
    "ChangeKind",
    "ChangeListenerHub",
    "EditorComponents",
    "create_application",
    "create_editor",
]
