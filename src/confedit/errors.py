"""Error types surfaced by document operations.

Each failure family carries a ``kind`` enum so the presentation layer can
name the failure in a modal notification without parsing messages. User
cancellation is not an error; see :class:`confedit.ui.application.Outcome`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import ClassVar


class LoadErrorKind(Enum):
    """Reasons a configuration document could not be loaded."""

    UNREADABLE = "unreadable"
    MALFORMED = "malformed"
    UNSUPPORTED_ROOT = "unsupported-root"


class SaveErrorKind(Enum):
    """Reasons a configuration document could not be saved."""

    NO_DOCUMENT = "no-document"
    NO_TARGET = "no-target"
    UNWRITABLE = "unwritable"
    SERIALIZATION = "serialization"


class RunErrorKind(Enum):
    """Reasons the run action could not complete."""

    NO_DOCUMENT = "no-document"
    NOT_CONFIGURED = "not-configured"
    LAUNCH_FAILED = "launch-failed"
    PROCESS_FAILED = "process-failed"


class SettingsErrorKind(Enum):
    """Reasons the log settings file could not be opened for editing."""

    NOT_CONFIGURED = "not-configured"
    MISSING = "missing"
    OPEN_FAILED = "open-failed"


@dataclass(eq=False)
class ConfigEditorError(Exception):
    """Base exception for document operation failures.

    Attributes:
        kind: Machine-readable failure category.
        message: Human-readable failure description.
        path: The file involved in the failure, if any.
    """

    kind: Enum
    message: str
    path: Path | None = None

    operation: ClassVar[str] = "Operation"

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.path is not None:
            return f"{self.message} ({self.path})"
        return self.message

    @property
    def title(self) -> str:
        """Short label naming the failure kind, e.g. ``Load failed (malformed)``."""

        return f"{self.operation} failed ({self.kind.value})"


@dataclass(eq=False)
class LoadError(ConfigEditorError):
    """Raised when XML input cannot be turned into a configuration document."""

    kind: LoadErrorKind
    operation: ClassVar[str] = "Load"


@dataclass(eq=False)
class SaveError(ConfigEditorError):
    """Raised when the current document cannot be written."""

    kind: SaveErrorKind
    operation: ClassVar[str] = "Save"


@dataclass(eq=False)
class RunError(ConfigEditorError):
    """Raised when the external run action fails to launch or reports failure."""

    kind: RunErrorKind
    returncode: int | None = None
    output: str = ""
    operation: ClassVar[str] = "Run"


@dataclass(eq=False)
class SettingsError(ConfigEditorError):
    """Raised when the log settings file cannot be handed to an editor."""

    kind: SettingsErrorKind
    operation: ClassVar[str] = "Edit log settings"


__all__ = [
    "ConfigEditorError",
    "LoadError",
    "LoadErrorKind",
    "RunError",
    "RunErrorKind",
    "SaveError",
    "SaveErrorKind",
    "SettingsError",
    "SettingsErrorKind",
]
