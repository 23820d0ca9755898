"""Document editor facade.

This module provides the DocumentEditorFacade - the single entry point the
presentation layer uses to act on the current configuration document.

The facade:
- Owns all use case instances
- Applies the save policy (``ask_before_saving``)
- Keeps the recent-files list in the preferences current
- Exposes blocking and ``async`` variants of the IO-bound operations
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ...documents.model import ROOT_ELEMENT_NAME, ConfigDocument
from ...services.preferences import Preferences
from ...services.runner import ConfigurationRunner
from .document_ops import (
    EditLogSettingsUseCase,
    InitialChoice,
    LoadDocumentUseCase,
    NewDocumentUseCase,
    OperationResult,
    RunConfigurationUseCase,
    SaveChoice,
    SaveDocumentUseCase,
)

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from ...services.preferences import PreferencesStore
    from ..domain.document_store import DocumentStore
    from ..events import ChangeListenerHub
    from .document_ops import DialogProvider

LOGGER = logging.getLogger(__name__)


class DocumentEditorFacade:
    """Facade coordinating the document use cases.

    Example:
        facade = DocumentEditorFacade(event_bus, document_store)
        facade.create_new()
        facade.save(Path("gcam.xml"))
        result = facade.request_run()
    """

    __slots__ = (
        "_event_bus",
        "_document_store",
        "_dialog_provider",
        "_preferences_store",
        "_preferences",
        "_runner",
        "_root_name",
        "_new_document_uc",
        "_load_document_uc",
        "_save_document_uc",
        "_run_configuration_uc",
        "_edit_log_settings_uc",
    )

    def __init__(
        self,
        event_bus: ChangeListenerHub,
        document_store: DocumentStore,
        *,
        dialog_provider: DialogProvider | None = None,
        preferences_store: PreferencesStore | None = None,
        preferences: Preferences | None = None,
        runner: ConfigurationRunner | None = None,
        root_name: str = ROOT_ELEMENT_NAME,
    ) -> None:
        """Initialize the facade.

        Args:
            event_bus: Hub used for the document-saved event.
            document_store: Owner of the current document.
            dialog_provider: Provider for dialogs and notifications.
            preferences_store: Store for persisting preference changes.
            preferences: Initial preferences; defaults are used when omitted.
            runner: Run action; by default built from the facade's preferences.
            root_name: Root element name of new and loaded documents.
        """
        self._event_bus = event_bus
        self._document_store = document_store
        self._dialog_provider = dialog_provider
        self._preferences_store = preferences_store
        self._preferences = preferences or Preferences()
        self._runner = runner or ConfigurationRunner(lambda: self._preferences)
        self._root_name = root_name

        self._new_document_uc: NewDocumentUseCase | None = None
        self._load_document_uc: LoadDocumentUseCase | None = None
        self._save_document_uc: SaveDocumentUseCase | None = None
        self._run_configuration_uc: RunConfigurationUseCase | None = None
        self._edit_log_settings_uc: EditLogSettingsUseCase | None = None

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    @property
    def document_store(self) -> DocumentStore:
        return self._document_store

    @property
    def event_bus(self) -> ChangeListenerHub:
        return self._event_bus

    @property
    def preferences(self) -> Preferences:
        return self._preferences

    @property
    def current_document(self) -> ConfigDocument | None:
        return self._document_store.current

    def is_dirty(self) -> bool:
        return self._document_store.is_dirty()

    def set_dialog_provider(self, provider: DialogProvider | None) -> None:
        """Set the dialog provider; the presentation layer binds it once."""
        self._dialog_provider = provider
        self._load_document_uc = None
        self._save_document_uc = None
        self._run_configuration_uc = None
        self._edit_log_settings_uc = None

    def update_preferences(self, preferences: Preferences, *, persist: bool = True) -> None:
        """Replace the active preferences, optionally writing them to disk."""
        self._preferences = preferences
        if persist:
            self._persist_preferences()

    # ------------------------------------------------------------------
    # Document operations
    # ------------------------------------------------------------------

    def create_new(self) -> ConfigDocument:
        """Install an empty, clean document."""
        return self._get_new_document_uc().execute()

    def load(self, source: Path | str | bytes | None = None) -> OperationResult:
        """Load a document from ``source`` or from a path chosen by the user."""
        return self._get_load_document_uc().execute(source)

    async def load_async(self, source: Path | str | bytes | None = None) -> OperationResult:
        return await self._get_load_document_uc().execute_async(source)

    def save(
        self,
        target: Path | str | None = None,
        *,
        confirm_if_unnamed: bool = True,
        force: bool = False,
    ) -> OperationResult:
        """Save the current document to ``target`` or its own path."""
        return self._get_save_document_uc().execute(
            target, confirm_if_unnamed=confirm_if_unnamed, force=force
        )

    async def save_async(
        self,
        target: Path | str | None = None,
        *,
        confirm_if_unnamed: bool = True,
        force: bool = False,
    ) -> OperationResult:
        return await self._get_save_document_uc().execute_async(
            target, confirm_if_unnamed=confirm_if_unnamed, force=force
        )

    def save_as(self) -> OperationResult:
        """Prompt for a destination and write the current document there."""
        return self._get_save_document_uc().execute(save_as=True)

    def ask_before_saving(self) -> bool:
        """Whether the user must confirm saves triggered by other actions."""
        return True

    def request_run(self, confirm_save_first: bool = True) -> OperationResult:
        """Save the document if needed and run it with the configured program."""
        return self._get_run_configuration_uc().execute(confirm_save_first=confirm_save_first)

    async def request_run_async(self, confirm_save_first: bool = True) -> OperationResult:
        return await self._get_run_configuration_uc().execute_async(
            confirm_save_first=confirm_save_first
        )

    def edit_log_settings(self) -> OperationResult:
        """Open the log settings file from the preferences in an editor."""
        return self._get_edit_log_settings_uc().execute()

    def request_quit(self) -> bool:
        """Return True when the application may exit.

        A dirty document triggers a save/discard/cancel question. Quitting
        proceeds after a successful save or a discard.
        """
        if not self._document_store.is_dirty():
            return True
        if self._dialog_provider is None:
            LOGGER.warning("request_quit: unsaved changes and no dialog provider; staying open")
            return False
        choice = self._dialog_provider.ask_save_changes()
        if choice is SaveChoice.DISCARD:
            LOGGER.info("request_quit: discarding unsaved changes")
            return True
        if choice is SaveChoice.CANCEL:
            return False
        result = self.save()
        if result.is_failed and result.error is not None:
            self._dialog_provider.show_error(result.error)
        return result.ok and not self._document_store.is_dirty()

    def initial_action(self) -> OperationResult:
        """Run the startup flow: first-run preferences, then New/Load/Nothing."""
        provider = self._dialog_provider
        if provider is None:
            LOGGER.warning("initial_action: no dialog provider")
            return OperationResult.cancelled()

        if self._preferences_store is not None and not self._preferences_store.exists():
            LOGGER.info("No preferences file at %s; showing preferences", self._preferences_store.path)
            provider.show_preferences()

        choice = provider.choose_initial_action()
        if choice is InitialChoice.NEW:
            result = OperationResult.succeeded(self.create_new())
        elif choice is InitialChoice.LOAD:
            result = self.load()
            if result.is_failed and result.error is not None:
                provider.show_error(result.error)
        else:
            result = OperationResult.cancelled()

        if not self._document_store.has_document():
            provider.warn_no_document()
        return result

    # ------------------------------------------------------------------
    # Use case construction
    # ------------------------------------------------------------------

    def _get_new_document_uc(self) -> NewDocumentUseCase:
        if self._new_document_uc is None:
            self._new_document_uc = NewDocumentUseCase(self._document_store, root_name=self._root_name)
        return self._new_document_uc

    def _get_load_document_uc(self) -> LoadDocumentUseCase:
        if self._load_document_uc is None:
            self._load_document_uc = LoadDocumentUseCase(
                self._document_store,
                self._dialog_provider,
                start_dir_resolver=self._start_dir,
                on_loaded=self._remember_path,
                root_name=self._root_name,
            )
        return self._load_document_uc

    def _get_save_document_uc(self) -> SaveDocumentUseCase:
        if self._save_document_uc is None:
            self._save_document_uc = SaveDocumentUseCase(
                self._document_store,
                self._event_bus,
                self._dialog_provider,
                start_dir_resolver=self._start_dir,
                on_saved=self._remember_path,
            )
        return self._save_document_uc

    def _get_run_configuration_uc(self) -> RunConfigurationUseCase:
        if self._run_configuration_uc is None:
            self._run_configuration_uc = RunConfigurationUseCase(
                self._document_store,
                self._get_save_document_uc(),
                self._runner,
                self._dialog_provider,
                ask_before_saving=self.ask_before_saving,
            )
        return self._run_configuration_uc

    def _get_edit_log_settings_uc(self) -> EditLogSettingsUseCase:
        if self._edit_log_settings_uc is None:
            self._edit_log_settings_uc = EditLogSettingsUseCase(
                lambda: self._preferences,
                self._dialog_provider,
            )
        return self._edit_log_settings_uc

    # ------------------------------------------------------------------
    # Preferences helpers
    # ------------------------------------------------------------------

    def _start_dir(self) -> Path | None:
        last = self._preferences.last_open_file
        if not last:
            return None
        parent = Path(last).expanduser().parent
        return parent if parent.is_dir() else None

    def _remember_path(self, path: Path) -> None:
        if self._preferences_store is None:
            return
        self._preferences = self._preferences_store.remember_recent_file(self._preferences, path)
        self._persist_preferences()

    def _persist_preferences(self) -> None:
        if self._preferences_store is None:
            return
        try:
            self._preferences_store.save(self._preferences)
        except OSError as exc:
            LOGGER.warning("Unable to persist preferences: %s", exc)

    def __repr__(self) -> str:
        document: Any = self._document_store.current
        return f"DocumentEditorFacade(document={getattr(document, 'document_id', None)!r})"


__all__ = ["DocumentEditorFacade"]
