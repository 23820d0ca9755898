"""Qt dialogs implementing the application layer's DialogProvider."""

from __future__ import annotations

import logging
import shlex
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from PySide6.QtCore import QUrl
from PySide6.QtGui import QDesktopServices
from PySide6.QtWidgets import (
    QCheckBox,
    QDialog,
    QDialogButtonBox,
    QFileDialog,
    QFormLayout,
    QHBoxLayout,
    QLineEdit,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from ...services.preferences import Preferences
from ..application.document_ops import InitialChoice, SaveChoice

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from ...errors import ConfigEditorError

LOGGER = logging.getLogger(__name__)

CONFIG_FILE_FILTER = "Configuration files (*.xml);;All files (*)"


class QtDialogProvider:
    """Dialog provider backed by QFileDialog and QMessageBox.

    Example:
        provider = QtDialogProvider(
            parent_provider=lambda: main_window,
            preferences_editor=main_window.show_preferences,
        )
        facade.set_dialog_provider(provider)
    """

    __slots__ = ("_parent_provider", "_preferences_editor")

    def __init__(
        self,
        *,
        parent_provider: Callable[[], QWidget | None] | None = None,
        preferences_editor: Callable[[], None] | None = None,
    ) -> None:
        """Initialize the dialog provider.

        Args:
            parent_provider: Function returning the parent widget for dialogs.
            preferences_editor: Callback opening the preferences dialog.
        """
        self._parent_provider = parent_provider
        self._preferences_editor = preferences_editor

    def _parent(self) -> QWidget | None:
        return self._parent_provider() if self._parent_provider else None

    def prompt_open_path(self, start_dir: Path | None = None) -> Path | None:
        path, _ = QFileDialog.getOpenFileName(
            self._parent(),
            "Load Configuration",
            str(start_dir) if start_dir else "",
            CONFIG_FILE_FILTER,
        )
        return Path(path) if path else None

    def prompt_save_path(
        self,
        start_dir: Path | None = None,
        suggested_name: str | None = None,
    ) -> Path | None:
        initial = Path(start_dir) if start_dir else Path()
        if suggested_name:
            initial = initial / suggested_name
        path, _ = QFileDialog.getSaveFileName(
            self._parent(),
            "Save Configuration",
            str(initial) if str(initial) != "." else "",
            CONFIG_FILE_FILTER,
        )
        return Path(path) if path else None

    def confirm_save_before_run(self) -> bool:
        answer = QMessageBox.question(
            self._parent(),
            "Save Configuration",
            "The configuration must be saved before it can be run. Save now?",
            QMessageBox.StandardButton.Ok | QMessageBox.StandardButton.Cancel,
            QMessageBox.StandardButton.Ok,
        )
        return answer == QMessageBox.StandardButton.Ok

    def ask_save_changes(self) -> SaveChoice:
        answer = QMessageBox.question(
            self._parent(),
            "Unsaved Changes",
            "The configuration has unsaved changes. Save them?",
            QMessageBox.StandardButton.Save
            | QMessageBox.StandardButton.Discard
            | QMessageBox.StandardButton.Cancel,
            QMessageBox.StandardButton.Save,
        )
        if answer == QMessageBox.StandardButton.Save:
            return SaveChoice.SAVE
        if answer == QMessageBox.StandardButton.Discard:
            return SaveChoice.DISCARD
        return SaveChoice.CANCEL

    def choose_initial_action(self) -> InitialChoice:
        box = QMessageBox(self._parent())
        box.setWindowTitle("Configuration Editor")
        box.setText("Create a new configuration or load an existing one?")
        new_button = box.addButton("New", QMessageBox.ButtonRole.AcceptRole)
        load_button = box.addButton("Load", QMessageBox.ButtonRole.ActionRole)
        box.addButton(QMessageBox.StandardButton.Cancel)
        box.exec()
        clicked = box.clickedButton()
        if clicked is new_button:
            return InitialChoice.NEW
        if clicked is load_button:
            return InitialChoice.LOAD
        return InitialChoice.NOTHING

    def show_preferences(self) -> None:
        if self._preferences_editor is None:
            LOGGER.debug("QtDialogProvider: no preferences editor bound")
            return
        self._preferences_editor()

    def show_error(self, error: ConfigEditorError) -> None:
        QMessageBox.critical(self._parent(), error.title, str(error))

    def warn_no_document(self) -> None:
        QMessageBox.warning(
            self._parent(),
            "No Configuration",
            "Most actions stay disabled until a configuration is created or loaded.",
        )

    def open_log_settings(self, path: Path) -> bool:
        opened = QDesktopServices.openUrl(QUrl.fromLocalFile(str(path)))
        if not opened:
            LOGGER.warning("QtDialogProvider: no application opened %s", path)
        return bool(opened)


class PreferencesDialog(QDialog):
    """Modal editor for the run action and logging preferences."""

    def __init__(self, preferences: Preferences, *, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Preferences")
        self.setModal(True)
        self._preferences = preferences

        self._executable_input = QLineEdit(preferences.run_executable, self)
        self._arguments_input = QLineEdit(shlex.join(preferences.run_arguments), self)
        self._workdir_input = QLineEdit(preferences.working_directory or "", self)
        self._log_settings_input = QLineEdit(preferences.log_settings_path or "", self)
        self._debug_checkbox = QCheckBox("Verbose logging", self)
        self._debug_checkbox.setChecked(preferences.debug_logging)

        form = QFormLayout()
        form.addRow("Executable", self._with_browse(self._executable_input, directory=False))
        form.addRow("Arguments", self._arguments_input)
        form.addRow("Working directory", self._with_browse(self._workdir_input, directory=True))
        form.addRow("Log settings", self._with_browse(self._log_settings_input, directory=False))
        form.addRow("", self._debug_checkbox)

        buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel,
            parent=self,
        )
        buttons.accepted.connect(self.accept)
        buttons.rejected.connect(self.reject)

        layout = QVBoxLayout(self)
        layout.addLayout(form)
        layout.addWidget(buttons)

    def result_preferences(self) -> Preferences:
        """Return the edited preferences (unchanged fields are kept)."""
        try:
            arguments = shlex.split(self._arguments_input.text())
        except ValueError as exc:
            LOGGER.warning("Ignoring malformed run arguments: %s", exc)
            arguments = list(self._preferences.run_arguments)
        return replace(
            self._preferences,
            run_executable=self._executable_input.text().strip(),
            run_arguments=arguments,
            working_directory=self._workdir_input.text().strip() or None,
            log_settings_path=self._log_settings_input.text().strip() or None,
            debug_logging=self._debug_checkbox.isChecked(),
        )

    def _with_browse(self, line_edit: QLineEdit, *, directory: bool) -> QWidget:
        container = QWidget(self)
        row = QHBoxLayout(container)
        row.setContentsMargins(0, 0, 0, 0)
        row.addWidget(line_edit)
        button = QPushButton("Browse…", container)
        button.clicked.connect(lambda: self._browse(line_edit, directory=directory))
        row.addWidget(button)
        return container

    def _browse(self, line_edit: QLineEdit, *, directory: bool) -> None:
        start = line_edit.text() or ""
        if directory:
            selected = QFileDialog.getExistingDirectory(self, self.windowTitle(), start)
        else:
            selected, _ = QFileDialog.getOpenFileName(self, self.windowTitle(), start)
        if selected:
            line_edit.setText(selected)


__all__ = ["CONFIG_FILE_FILTER", "PreferencesDialog", "QtDialogProvider"]
