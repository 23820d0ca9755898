"""Document operation use cases.

This module provides use cases for document lifecycle operations:
- NewDocumentUseCase: Create an empty configuration document
- LoadDocumentUseCase: Parse a configuration from disk or bytes
- SaveDocumentUseCase: Write the current document (Save / Save As)
- RunConfigurationUseCase: Save if needed, then launch the run action
- EditLogSettingsUseCase: Hand the configured log settings file to an editor

Each use case has a blocking ``execute`` and an ``execute_async`` variant.
The async variants keep dialogs, tree access and store updates on the event
loop thread and push file IO or process waits to worker threads.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Protocol

from ...documents import xml_codec
from ...documents.model import ROOT_ELEMENT_NAME, ConfigDocument
from ...errors import (
    ConfigEditorError,
    LoadError,
    LoadErrorKind,
    RunError,
    RunErrorKind,
    SaveError,
    SaveErrorKind,
    SettingsError,
    SettingsErrorKind,
)
from ...utils import file_io
from ..events import ChangeKind

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from ...services.preferences import Preferences
    from ...services.runner import ConfigurationRunner
    from ..domain.document_store import DocumentStore
    from ..events import ChangeListenerHub

LOGGER = logging.getLogger(__name__)

PathCallback = Callable[[Path], None]


class Outcome(Enum):
    """How an interactive operation ended."""

    OK = "ok"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(slots=True, frozen=True)
class OperationResult:
    """Result of a facade operation.

    Attributes:
        outcome: Whether the operation succeeded, failed or was cancelled.
        value: The operation's product (document, saved path, run result).
        error: The failure, when ``outcome`` is ``FAILED``.
    """

    outcome: Outcome
    value: Any = None
    error: ConfigEditorError | None = None

    @classmethod
    def succeeded(cls, value: Any = None) -> OperationResult:
        return cls(Outcome.OK, value=value)

    @classmethod
    def failed(cls, error: ConfigEditorError) -> OperationResult:
        return cls(Outcome.FAILED, error=error)

    @classmethod
    def cancelled(cls) -> OperationResult:
        return cls(Outcome.CANCELLED)

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK

    @property
    def is_cancelled(self) -> bool:
        return self.outcome is Outcome.CANCELLED

    @property
    def is_failed(self) -> bool:
        return self.outcome is Outcome.FAILED


class SaveChoice(Enum):
    """Answer to "save changes before continuing?"."""

    SAVE = "save"
    DISCARD = "discard"
    CANCEL = "cancel"


class InitialChoice(Enum):
    """Answer to the startup "new or load?" question."""

    NEW = "new"
    LOAD = "load"
    NOTHING = "nothing"


class DialogProvider(Protocol):
    """Protocol for UI dialog providers.

    Every prompt returning ``None`` or a negative answer means the user
    cancelled; the calling operation then ends without changing state.
    """

    def prompt_open_path(self, start_dir: Path | None = None) -> Path | None:
        """Prompt user to select a configuration file to load."""
        ...

    def prompt_save_path(
        self,
        start_dir: Path | None = None,
        suggested_name: str | None = None,
    ) -> Path | None:
        """Prompt user to select a save location."""
        ...

    def confirm_save_before_run(self) -> bool:
        """Ask whether the document may be saved so it can be run."""
        ...

    def ask_save_changes(self) -> SaveChoice:
        """Ask whether unsaved changes should be saved, discarded, or kept."""
        ...

    def choose_initial_action(self) -> InitialChoice:
        """Ask how the user wants to start the session."""
        ...

    def show_preferences(self) -> None:
        """Show the preferences editor (first-run setup)."""
        ...

    def show_error(self, error: ConfigEditorError) -> None:
        """Report a failure in a modal notification."""
        ...

    def warn_no_document(self) -> None:
        """Explain that editing actions stay disabled until a document exists."""
        ...

    def open_log_settings(self, path: Path) -> bool:
        """Open the log settings file in an editor; False when that failed."""
        ...


class NewDocumentUseCase:
    """Use case for creating an empty configuration document.

    Events Emitted:
        - document-replaced: When the new document is installed
    """

    __slots__ = ("_document_store", "_root_name")

    def __init__(self, document_store: DocumentStore, *, root_name: str = ROOT_ELEMENT_NAME) -> None:
        self._document_store = document_store
        self._root_name = root_name

    def execute(self) -> ConfigDocument:
        """Install and return a clean document holding only the root element."""
        document = ConfigDocument.new(self._root_name)
        self._document_store.set_current(document)
        LOGGER.debug("NewDocumentUseCase: created document %s", document.document_id)
        return document


class LoadDocumentUseCase:
    """Use case for loading a configuration document.

    Handles:
    - Open dialog if no source provided
    - Parsing bytes or files into a document
    - Leaving the current document untouched on any failure

    Events Emitted:
        - document-replaced: After a successful load
    """

    __slots__ = ("_document_store", "_dialog_provider", "_start_dir_resolver", "_on_loaded", "_root_name")

    def __init__(
        self,
        document_store: DocumentStore,
        dialog_provider: DialogProvider | None = None,
        *,
        start_dir_resolver: Callable[[], Path | None] | None = None,
        on_loaded: PathCallback | None = None,
        root_name: str = ROOT_ELEMENT_NAME,
    ) -> None:
        """Initialize the use case.

        Args:
            document_store: Store receiving the loaded document.
            dialog_provider: Provider for the open dialog.
            start_dir_resolver: Function returning the dialog's start directory.
            on_loaded: Called with the path of each successfully loaded file.
            root_name: Required root element name.
        """
        self._document_store = document_store
        self._dialog_provider = dialog_provider
        self._start_dir_resolver = start_dir_resolver or (lambda: None)
        self._on_loaded = on_loaded
        self._root_name = root_name

    def execute(self, source: Path | str | bytes | None = None) -> OperationResult:
        """Load ``source`` (a path, raw XML bytes, or None to prompt)."""
        resolved = self._resolve_source(source)
        if resolved is None:
            return OperationResult.cancelled()
        try:
            if isinstance(resolved, bytes):
                document = xml_codec.parse_document(resolved, root_name=self._root_name)
            else:
                document = xml_codec.read_document(resolved, root_name=self._root_name)
        except LoadError as exc:
            LOGGER.warning("LoadDocumentUseCase: %s", exc)
            return OperationResult.failed(exc)
        return self._install(document)

    async def execute_async(self, source: Path | str | bytes | None = None) -> OperationResult:
        """Like :meth:`execute`, reading the file on a worker thread."""
        resolved = self._resolve_source(source)
        if resolved is None:
            return OperationResult.cancelled()
        try:
            if isinstance(resolved, bytes):
                payload, path = resolved, None
            else:
                path = resolved
                payload = await asyncio.to_thread(_read_source, path)
            document = xml_codec.parse_document(payload, path=path, root_name=self._root_name)
        except LoadError as exc:
            LOGGER.warning("LoadDocumentUseCase: %s", exc)
            return OperationResult.failed(exc)
        return self._install(document)

    def _resolve_source(self, source: Path | str | bytes | None) -> Path | bytes | None:
        if isinstance(source, bytes):
            return source
        if source is not None:
            return Path(source).expanduser()
        if self._dialog_provider is None:
            LOGGER.warning("LoadDocumentUseCase: no dialog provider")
            return None
        path = self._dialog_provider.prompt_open_path(start_dir=self._start_dir_resolver())
        if path is None:
            LOGGER.debug("LoadDocumentUseCase: user cancelled dialog")
        return path

    def _install(self, document: ConfigDocument) -> OperationResult:
        self._document_store.set_current(document)
        if document.path is not None and self._on_loaded is not None:
            self._on_loaded(document.path)
        LOGGER.debug("LoadDocumentUseCase: loaded %s as %s", document.path, document.document_id)
        return OperationResult.succeeded(document)


@dataclass(slots=True, frozen=True)
class _SavePlan:
    document: ConfigDocument
    target: Path
    revision: int


class SaveDocumentUseCase:
    """Use case for saving the current document.

    Handles:
    - Skipping clean documents unless forced
    - Save As dialog for unnamed documents or explicit Save As
    - Atomic writes; state only changes after the write succeeded

    Events Emitted:
        - document-saved: After the document is written and marked clean
    """

    __slots__ = ("_document_store", "_event_bus", "_dialog_provider", "_start_dir_resolver", "_on_saved")

    def __init__(
        self,
        document_store: DocumentStore,
        event_bus: ChangeListenerHub,
        dialog_provider: DialogProvider | None = None,
        *,
        start_dir_resolver: Callable[[], Path | None] | None = None,
        on_saved: PathCallback | None = None,
    ) -> None:
        """Initialize the use case.

        Args:
            document_store: Store holding the document to save.
            event_bus: Hub for the document-saved event.
            dialog_provider: Provider for the Save As dialog.
            start_dir_resolver: Function returning the dialog's start directory.
            on_saved: Called with the path of each successful write.
        """
        self._document_store = document_store
        self._event_bus = event_bus
        self._dialog_provider = dialog_provider
        self._start_dir_resolver = start_dir_resolver or (lambda: None)
        self._on_saved = on_saved

    def execute(
        self,
        target: Path | str | None = None,
        *,
        confirm_if_unnamed: bool = True,
        force: bool = False,
        save_as: bool = False,
    ) -> OperationResult:
        """Save the current document.

        Args:
            target: Explicit destination; writing to it is always forced.
            confirm_if_unnamed: Prompt for a path when the document has none.
            force: Write even when the document is clean.
            save_as: Always prompt for a destination.

        Returns:
            ``OK`` with the saved path, ``CANCELLED`` when the dialog was
            dismissed, or ``FAILED`` with a :class:`SaveError`.
        """
        plan = self._plan(target, confirm_if_unnamed=confirm_if_unnamed, force=force, save_as=save_as)
        if not isinstance(plan, _SavePlan):
            return plan
        try:
            xml_codec.write_document(plan.document, plan.target)
        except SaveError as exc:
            LOGGER.warning("SaveDocumentUseCase: %s", exc)
            return OperationResult.failed(exc)
        return self._commit(plan)

    async def execute_async(
        self,
        target: Path | str | None = None,
        *,
        confirm_if_unnamed: bool = True,
        force: bool = False,
        save_as: bool = False,
    ) -> OperationResult:
        """Like :meth:`execute`, writing the file on a worker thread."""
        plan = self._plan(target, confirm_if_unnamed=confirm_if_unnamed, force=force, save_as=save_as)
        if not isinstance(plan, _SavePlan):
            return plan
        try:
            payload = xml_codec.serialize_document(plan.document)
            await asyncio.to_thread(_write_payload, plan.target, payload)
        except SaveError as exc:
            LOGGER.warning("SaveDocumentUseCase: %s", exc)
            return OperationResult.failed(exc)
        return self._commit(plan)

    def _plan(
        self,
        target: Path | str | None,
        *,
        confirm_if_unnamed: bool,
        force: bool,
        save_as: bool,
    ) -> _SavePlan | OperationResult:
        document = self._document_store.current
        if document is None:
            return OperationResult.failed(
                SaveError(SaveErrorKind.NO_DOCUMENT, "No configuration document to save")
            )

        if target is not None:
            return _SavePlan(document, Path(target).expanduser(), document.revision)

        dirty = self._document_store.dirty_tracker.is_dirty(document)
        if not save_as and document.path is not None:
            if not dirty and not force:
                LOGGER.debug("SaveDocumentUseCase: %s is clean; nothing to write", document.path)
                return OperationResult.succeeded(document.path)
            return _SavePlan(document, document.path, document.revision)

        if not save_as and not confirm_if_unnamed:
            return OperationResult.failed(
                SaveError(SaveErrorKind.NO_TARGET, "The document has no file name")
            )
        if self._dialog_provider is None:
            LOGGER.warning("SaveDocumentUseCase: no dialog provider")
            return OperationResult.failed(
                SaveError(SaveErrorKind.NO_TARGET, "No save location could be requested")
            )
        start_dir = document.path.parent if document.path is not None else self._start_dir_resolver()
        chosen = self._dialog_provider.prompt_save_path(
            start_dir=start_dir,
            suggested_name=document.path.name if document.path is not None else None,
        )
        if chosen is None:
            LOGGER.debug("SaveDocumentUseCase: user cancelled dialog")
            return OperationResult.cancelled()
        return _SavePlan(document, Path(chosen).expanduser(), document.revision)

    def _commit(self, plan: _SavePlan) -> OperationResult:
        document = plan.document
        document.path = plan.target
        clean = self._document_store.dirty_tracker.mark_saved(document, revision=plan.revision)
        if self._on_saved is not None:
            self._on_saved(plan.target)
        if clean and self._document_store.current is document:
            self._event_bus.publish(ChangeKind.DOCUMENT_SAVED, False, True)
        LOGGER.debug("SaveDocumentUseCase: saved to %s", plan.target)
        return OperationResult.succeeded(plan.target)


class RunConfigurationUseCase:
    """Use case for running the external program on the current document.

    The document must be saved before it can be run. When it is dirty or
    unnamed, the user is asked first (if the save policy requires it).
    """

    __slots__ = ("_document_store", "_save_use_case", "_runner", "_dialog_provider", "_ask_before_saving")

    def __init__(
        self,
        document_store: DocumentStore,
        save_use_case: SaveDocumentUseCase,
        runner: ConfigurationRunner,
        dialog_provider: DialogProvider | None = None,
        *,
        ask_before_saving: Callable[[], bool] = lambda: True,
    ) -> None:
        self._document_store = document_store
        self._save_use_case = save_use_case
        self._runner = runner
        self._dialog_provider = dialog_provider
        self._ask_before_saving = ask_before_saving

    def execute(self, *, confirm_save_first: bool = True) -> OperationResult:
        """Save if needed and run, waiting for the process to exit."""
        blocked = self._prepare(confirm_save_first)
        if blocked is not None:
            return blocked
        if self._needs_save():
            saved = self._save_use_case.execute(confirm_if_unnamed=True)
            if not saved.ok:
                return saved
        return self._run(self._document_store.require_current().path)

    async def execute_async(self, *, confirm_save_first: bool = True) -> OperationResult:
        """Like :meth:`execute`, without blocking the event loop."""
        blocked = self._prepare(confirm_save_first)
        if blocked is not None:
            return blocked
        if self._needs_save():
            saved = await self._save_use_case.execute_async(confirm_if_unnamed=True)
            if not saved.ok:
                return saved
        path = self._document_store.require_current().path
        if path is None:
            return OperationResult.cancelled()
        try:
            result = await self._runner.run_async(path)
        except RunError as exc:
            return OperationResult.failed(exc)
        return OperationResult.succeeded(result)

    def _prepare(self, confirm_save_first: bool) -> OperationResult | None:
        """Return the result that ends the run early, or None to proceed."""
        document = self._document_store.current
        if document is None:
            return OperationResult.failed(
                RunError(RunErrorKind.NO_DOCUMENT, "No configuration document to run")
            )
        if self._needs_save() and confirm_save_first and self._ask_before_saving():
            if self._dialog_provider is None:
                LOGGER.warning("RunConfigurationUseCase: cannot ask to save without a dialog provider")
                return OperationResult.cancelled()
            if not self._dialog_provider.confirm_save_before_run():
                LOGGER.debug("RunConfigurationUseCase: user declined to save before running")
                return OperationResult.cancelled()
        return None

    def _needs_save(self) -> bool:
        document = self._document_store.current
        if document is None:
            return False
        return document.path is None or self._document_store.dirty_tracker.is_dirty(document)

    def _run(self, path: Path | None) -> OperationResult:
        if path is None:
            return OperationResult.cancelled()
        try:
            result = self._runner.run(path)
        except RunError as exc:
            return OperationResult.failed(exc)
        return OperationResult.succeeded(result)


class EditLogSettingsUseCase:
    """Use case for editing the log settings file named in the preferences.

    A relative ``log_settings_path`` is resolved against the run working
    directory, where the external program reads it from.
    """

    __slots__ = ("_preferences_provider", "_dialog_provider")

    def __init__(
        self,
        preferences_provider: Callable[[], Preferences],
        dialog_provider: DialogProvider | None = None,
    ) -> None:
        self._preferences_provider = preferences_provider
        self._dialog_provider = dialog_provider

    def resolve_path(self) -> Path | None:
        preferences = self._preferences_provider()
        configured = (preferences.log_settings_path or "").strip()
        if not configured:
            return None
        path = Path(configured).expanduser()
        if not path.is_absolute() and preferences.working_directory:
            path = Path(preferences.working_directory).expanduser() / path
        return path

    def execute(self) -> OperationResult:
        path = self.resolve_path()
        if path is None:
            return OperationResult.failed(
                SettingsError(SettingsErrorKind.NOT_CONFIGURED, "No log settings file is set in the preferences")
            )
        if not path.is_file():
            return OperationResult.failed(
                SettingsError(SettingsErrorKind.MISSING, "Log settings file does not exist", path=path)
            )
        if self._dialog_provider is None:
            LOGGER.warning("EditLogSettingsUseCase: no dialog provider to open %s", path)
            return OperationResult.cancelled()
        if not self._dialog_provider.open_log_settings(path):
            return OperationResult.failed(
                SettingsError(SettingsErrorKind.OPEN_FAILED, "No editor could open the log settings", path=path)
            )
        LOGGER.info("Opened log settings %s", path)
        return OperationResult.succeeded(path)


def _read_source(path: Path) -> bytes:
    try:
        return file_io.read_bytes(path)
    except OSError as exc:
        raise LoadError(
            LoadErrorKind.UNREADABLE,
            f"Cannot read file: {exc.strerror or exc}",
            path=path,
        ) from exc


def _write_payload(path: Path, payload: bytes) -> None:
    try:
        file_io.write_bytes(path, payload)
    except OSError as exc:
        raise SaveError(SaveErrorKind.UNWRITABLE, f"Cannot write file: {exc.strerror or exc}", path=path) from exc


__all__ = [
    "DialogProvider",
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
