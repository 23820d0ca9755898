"""Editor panel models for named configuration values.

The models are Qt-free: the main window renders each one as a table in its
own tab and forwards edits back to it. Edits go through the element mutation API, so
the dirty tracker sees them like any other change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterable

from ...documents import config_values
from ..events import ChangeEvent, ChangeKind

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from ...documents.model import ConfigDocument
    from ..events import ChangeListenerHub

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ValueField:
    """One editable ``<Value>`` leaf."""

    section: str
    name: str
    label: str | None = None

    @property
    def display_label(self) -> str:
        return self.label or self.name


@dataclass(slots=True, frozen=True)
class ValueRow:
    field: ValueField
    text: str
    present: bool


DEFAULT_FIELDS: tuple[ValueField, ...] = (
    ValueField(config_values.SECTION_FILES, "xmlInputFileName", "Input file"),
    ValueField(config_values.SECTION_FILES, "xmlOutputFileName", "Output file"),
    ValueField(config_values.SECTION_FILES, "xmldb-location", "Database location"),
    ValueField(config_values.SECTION_STRINGS, "scenarioName", "Scenario name"),
    ValueField(config_values.SECTION_BOOLS, "CalibrationActive", "Calibration active"),
    ValueField(config_values.SECTION_INTS, "stop-period", "Stop period"),
)


BATCH_FIELDS: tuple[ValueField, ...] = (
    ValueField(config_values.SECTION_BOOLS, "BatchMode", "Batch mode"),
    ValueField(config_values.SECTION_FILES, "BatchFileName", "Batch file"),
    ValueField(config_values.SECTION_INTS, "restart-period", "Restart period"),
)


@dataclass(slots=True, frozen=True)
class PanelSpec:
    """One editor tab: its title and the values it shows.

    With ``discover=True`` the tab lists every named value in the document.
    """

    title: str
    fields: tuple[ValueField, ...] = ()
    discover: bool = False

    def create_model(
        self, event_bus: ChangeListenerHub, *, document: ConfigDocument | None = None
    ) -> ValuePanelModel:
        return ValuePanelModel(event_bus, self.fields, discover=self.discover, document=document)


DEFAULT_PANELS: tuple[PanelSpec, ...] = (
    PanelSpec("Main Options", DEFAULT_FIELDS),
    PanelSpec("Batch Options", BATCH_FIELDS),
    PanelSpec("Advanced Options", discover=True),
)


class ValuePanelModel:
    """Observer presenting a set of ``Value`` leaves of the current document.

    Events Handled:
        - document-replaced: Rebinds to the new document and refreshes
        - document-modified: Refreshes
        - document-saved: Refreshes, so views can drop their unsaved marker

    With ``discover=True`` the rows are every named value in the document,
    in document order, instead of the configured ``fields``.
    """

    __slots__ = ("_event_bus", "_fields", "_discover", "_document", "_listeners", "__weakref__")

    def __init__(
        self,
        event_bus: ChangeListenerHub,
        fields: Iterable[ValueField] = DEFAULT_FIELDS,
        *,
        discover: bool = False,
        document: ConfigDocument | None = None,
    ) -> None:
        self._event_bus = event_bus
        self._fields = tuple(fields)
        self._discover = discover
        self._document = document
        self._listeners: list[Callable[[], None]] = []
        event_bus.subscribe(
            self,
            kinds=(ChangeKind.DOCUMENT_REPLACED, ChangeKind.DOCUMENT_MODIFIED, ChangeKind.DOCUMENT_SAVED),
        )

    @property
    def document(self) -> ConfigDocument | None:
        return self._document

    def add_refresh_listener(self, callback: Callable[[], None]) -> None:
        """Call ``callback`` whenever the rows may have changed."""
        self._listeners.append(callback)

    def dispose(self) -> None:
        self._event_bus.unsubscribe(self)
        self._listeners.clear()
        self._document = None

    def on_change(self, event: ChangeEvent) -> None:
        if event.kind is ChangeKind.DOCUMENT_REPLACED:
            self._document = event.new_value
            LOGGER.debug(
                "ValuePanelModel: bound to %s",
                getattr(self._document, "document_id", None),
            )
        self._notify()

    def fields(self) -> tuple[ValueField, ...]:
        document = self._document
        if not self._discover or document is None:
            return self._fields
        return tuple(ValueField(section, name) for section, name, _ in config_values.iter_values(document))

    def rows(self) -> list[ValueRow]:
        document = self._document
        rows: list[ValueRow] = []
        for value_field in self.fields():
            if document is None:
                rows.append(ValueRow(value_field, "", False))
                continue
            element = config_values.find_value(document, value_field.section, value_field.name)
            text = element.text if element is not None and element.text is not None else ""
            rows.append(ValueRow(value_field, text, element is not None))
        return rows

    def value(self, value_field: ValueField) -> str | None:
        if self._document is None:
            return None
        return config_values.get_value(self._document, value_field.section, value_field.name)

    def set_value(self, value_field: ValueField, text: str) -> bool:
        """Write ``text`` into the bound document.

        Returns:
            False when no document is bound.
        """
        if self._document is None:
            LOGGER.debug("ValuePanelModel: ignoring edit of %s without a document", value_field.name)
            return False
        config_values.set_value(self._document, value_field.section, value_field.name, text)
        return True

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback()
            except Exception:
                LOGGER.exception("ValuePanelModel refresh listener %r failed", callback)


__all__ = [
    "BATCH_FIELDS",
    "DEFAULT_FIELDS",
    "DEFAULT_PANELS",
    "PanelSpec",
    "ValueField",
    "ValuePanelModel",
    "ValueRow",
]
