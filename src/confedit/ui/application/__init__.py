"""Application layer for the configuration editor.

Use cases orchestrate the domain managers for one user action each;
:class:`DocumentEditorFacade` is the presentation layer's single entry point.

Use Cases:
    - New, Load, Save / Save As, Run, Edit Log Settings
"""

from __future__ import annotations

from .coordinator import DocumentEditorFacade
from .document_ops import (
    DialogProvider,
    EditLogSettingsUseCase,
    InitialChoice,
    LoadDocumentUseCase,
    NewDocumentUseCase,
    OperationResult,
    Outcome,
    RunConfigurationUseCase,
    SaveChoice,
    SaveDocumentUseCase,
)

__all__ = [
    "DialogProvider",
    "DocumentEditorFacade",
    "EditLogSettingsUseCase",
    "InitialChoice",
    "LoadDocumentUseCase",
    "NewDocumentUseCase",
    "OperationResult",
    "Outcome",
    "RunConfigurationUseCase",
    "SaveChoice",
    "SaveDocumentUseCase",
]
