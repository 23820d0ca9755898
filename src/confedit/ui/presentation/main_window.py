"""Main window for the configuration editor.

The window:
1. Creates one value table per editor tab, menus and toolbar actions
2. Wires SaveEnabler / DocumentPresenceEnabler to the actions
3. Delegates every action to the DocumentEditorFacade
4. Repaints through the document store's refresh callback and the panel
   models (which also fire after a save)
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Iterable

from PySide6.QtCore import Qt
from PySide6.QtGui import QAction, QCloseEvent, QKeySequence
from PySide6.QtWidgets import QMainWindow, QTableWidget, QTableWidgetItem, QTabWidget, QWidget

from ..application.document_ops import OperationResult
from .dialogs import PreferencesDialog, QtDialogProvider
from .editor_panel import DEFAULT_PANELS, PanelSpec, ValuePanelModel
from .enablers import DocumentPresenceEnabler, SaveEnabler

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from ..application.coordinator import DocumentEditorFacade
    from ..ui_queue import UiQueue

LOGGER = logging.getLogger(__name__)

WINDOW_APP_NAME = "Configuration Editor"
STATUS_TIMEOUT_MS = 5_000


class ConfigEditorWindow(QMainWindow):
    """Thin presentation shell around :class:`DocumentEditorFacade`."""

    def __init__(
        self,
        facade: DocumentEditorFacade,
        *,
        ui_queue: UiQueue | None = None,
        panels: Iterable[PanelSpec] = DEFAULT_PANELS,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self._facade = facade
        self._ui_queue = ui_queue
        self._populating = False
        self._refresh_pending = False
        self._pending: set[asyncio.Future[Any]] = set()

        self._dialogs = QtDialogProvider(
            parent_provider=lambda: self,
            preferences_editor=self.show_preferences,
        )
        facade.set_dialog_provider(self._dialogs)

        self._tabs = QTabWidget(self)
        self._panels: list[tuple[ValuePanelModel, QTableWidget]] = []
        for panel in panels:
            model = panel.create_model(facade.event_bus, document=facade.current_document)
            model.add_refresh_listener(self._schedule_refresh)
            table = self._create_table(model)
            self._tabs.addTab(table, panel.title)
            self._panels.append((model, table))
        self.setCentralWidget(self._tabs)

        self._actions = self._create_actions()
        self._build_menus()

        self._save_enabler = SaveEnabler(
            facade.event_bus,
            [self._actions["save"]],
            ui_queue=ui_queue,
            initial=facade.is_dirty(),
        )
        self._presence_enabler = DocumentPresenceEnabler(
            facade.event_bus,
            [self._actions["save_as"], self._actions["run"], *(table for _, table in self._panels)],
            ui_queue=ui_queue,
            initial=facade.current_document is not None,
        )

        facade.document_store.set_refresh_callback(self.refresh)
        self.resize(900, 600)
        self.refresh()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def _create_table(self, model: ValuePanelModel) -> QTableWidget:
        table = QTableWidget(0, 3, self._tabs)
        table.setHorizontalHeaderLabels(["Section", "Value", "Setting"])
        table.horizontalHeader().setStretchLastSection(True)
        table.itemChanged.connect(lambda item: self._on_item_changed(model, item))
        return table

    def _create_actions(self) -> dict[str, QAction]:
        specs = (
            ("new", "&New", QKeySequence.StandardKey.New, self._on_new),
            ("load", "&Load…", QKeySequence.StandardKey.Open, self._on_load),
            ("save", "&Save", QKeySequence.StandardKey.Save, self._on_save),
            ("save_as", "Save &As…", QKeySequence.StandardKey.SaveAs, self._on_save_as),
            ("run", "&Run", QKeySequence("Ctrl+R"), self._on_run),
            ("preferences", "&Preferences…", QKeySequence.StandardKey.Preferences, self.show_preferences),
            ("log_settings", "Edit &Log Settings…", QKeySequence(), self._on_edit_log_settings),
            ("quit", "&Quit", QKeySequence.StandardKey.Quit, self.close),
        )
        actions: dict[str, QAction] = {}
        for name, text, shortcut, slot in specs:
            action = QAction(text, self)
            action.setShortcut(shortcut)
            action.triggered.connect(slot)
            actions[name] = action
        return actions

    def _build_menus(self) -> None:
        file_menu = self.menuBar().addMenu("&File")
        for name in ("new", "load", "save", "save_as"):
            file_menu.addAction(self._actions[name])
        file_menu.addSeparator()
        file_menu.addAction(self._actions["quit"])

        run_menu = self.menuBar().addMenu("&Run")
        run_menu.addAction(self._actions["run"])

        edit_menu = self.menuBar().addMenu("&Edit")
        edit_menu.addAction(self._actions["preferences"])
        edit_menu.addAction(self._actions["log_settings"])

        toolbar = self.addToolBar("Main")
        for name in ("new", "load", "save", "run"):
            toolbar.addAction(self._actions[name])

    @property
    def editor_actions(self) -> dict[str, QAction]:
        return dict(self._actions)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def refresh(self) -> None:
        """Repaint the title and every value table from the current document."""
        self._refresh_pending = False
        document = self._facade.current_document
        title = WINDOW_APP_NAME
        if document is not None:
            marker = "*" if self._facade.is_dirty() else ""
            title = f"{marker}{document.display_name} - {WINDOW_APP_NAME}"
        self.setWindowTitle(title)

        self._populating = True
        try:
            for model, table in self._panels:
                self._fill_table(table, model)
        finally:
            self._populating = False

    @staticmethod
    def _fill_table(table: QTableWidget, model: ValuePanelModel) -> None:
        rows = model.rows()
        table.setRowCount(len(rows))
        for index, row in enumerate(rows):
            section_item = QTableWidgetItem(row.field.section)
            label_item = QTableWidgetItem(row.field.display_label)
            value_item = QTableWidgetItem(row.text)
            for item in (section_item, label_item):
                item.setFlags(item.flags() & ~Qt.ItemFlag.ItemIsEditable)
            table.setItem(index, 0, section_item)
            table.setItem(index, 1, label_item)
            table.setItem(index, 2, value_item)

    def _schedule_refresh(self) -> None:
        if self._ui_queue is None:
            self.refresh()
            return
        # Every panel reports the same event; one repaint covers them all.
        if self._refresh_pending:
            return
        self._refresh_pending = True
        self._ui_queue.post(self.refresh)

    def _on_item_changed(self, model: ValuePanelModel, item: QTableWidgetItem) -> None:
        if self._populating or item.column() != 2:
            return
        fields = model.fields()
        if item.row() >= len(fields):
            return
        model.set_value(fields[item.row()], item.text())

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _on_new(self) -> None:
        if not self._facade.request_quit():
            return
        self._facade.create_new()
        self.statusBar().showMessage("New configuration", STATUS_TIMEOUT_MS)

    def _on_load(self) -> None:
        if not self._facade.request_quit():
            return
        self._spawn(self._facade.load_async(), "Loaded")

    def _on_save(self) -> None:
        self._spawn(self._facade.save_async(), "Saved")

    def _on_save_as(self) -> None:
        self._report(self._facade.save_as(), "Saved")

    def _on_run(self) -> None:
        self._spawn(self._facade.request_run_async(), "Run finished")

    def _on_edit_log_settings(self) -> None:
        self._report(self._facade.edit_log_settings(), "Opened log settings")

    def show_preferences(self) -> None:
        dialog = PreferencesDialog(self._facade.preferences, parent=self)
        if dialog.exec():
            self._facade.update_preferences(dialog.result_preferences())

    def closeEvent(self, event: QCloseEvent) -> None:  # noqa: N802 - Qt override
        if self._facade.request_quit():
            self._save_enabler.dispose()
            self._presence_enabler.dispose()
            for model, _ in self._panels:
                model.dispose()
            event.accept()
        else:
            event.ignore()

    def _spawn(self, operation: Awaitable[OperationResult], success_message: str) -> None:
        future = asyncio.ensure_future(operation)
        self._pending.add(future)

        def _done(task: asyncio.Future[Any]) -> None:
            self._pending.discard(task)
            if task.cancelled():
                return
            exc = task.exception()
            if exc is not None:
                LOGGER.error("Operation failed unexpectedly", exc_info=exc)
                return
            self._report(task.result(), success_message)

        future.add_done_callback(_done)

    def _report(self, result: OperationResult, success_message: str) -> None:
        if result.ok:
            self.statusBar().showMessage(success_message, STATUS_TIMEOUT_MS)
        elif result.is_failed and result.error is not None:
            self._dialogs.show_error(result.error)


__all__ = ["ConfigEditorWindow", "WINDOW_APP_NAME"]
