"""Shared pytest fixtures."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import pytest

from confedit.errors import ConfigEditorError
from confedit.services.preferences import Preferences, PreferencesStore
from confedit.ui.application.coordinator import DocumentEditorFacade
from confedit.ui.application.document_ops import InitialChoice, SaveChoice
from confedit.ui.domain import DirtyTracker, DocumentStore
from confedit.ui.events import ChangeEvent, ChangeKind, ChangeListenerHub
from confedit.ui.ui_queue import DeferredUiQueue

SAMPLE_CONFIGURATION = b"""<?xml version="1.0" encoding="UTF-8"?>
<Configuration>
    <Files>
        <Value name="xmlInputFileName">input/base.xml</Value>
        <Value name="xmlOutputFileName">output/out.xml</Value>
    </Files>
    <Strings>
        <Value name="scenarioName">Reference</Value>
    </Strings>
    <Bools>
        <Value name="CalibrationActive">1</Value>
    </Bools>
    <Ints>
        <Value name="stop-period">-1</Value>
    </Ints>
</Configuration>
"""


class EventRecorder:
    """Change observer collecting every event it receives."""

    def __init__(self) -> None:
        self.events: list[ChangeEvent] = []

    def on_change(self, event: ChangeEvent) -> None:
        self.events.append(event)

    def kinds(self) -> list[ChangeKind]:
        return [event.kind for event in self.events]

    def of_kind(self, kind: ChangeKind) -> list[ChangeEvent]:
        return [event for event in self.events if event.kind is kind]

    def clear(self) -> None:
        self.events.clear()


@dataclass
class FakeDialogProvider:
    """Scripted DialogProvider; records every prompt it answers."""

    open_path: Path | None = None
    save_path: Path | None = None
    confirm_run_save: bool = True
    save_choice: SaveChoice = SaveChoice.SAVE
    initial_choice: InitialChoice = InitialChoice.NOTHING
    calls: list[str] = field(default_factory=list)
    errors: list[ConfigEditorError] = field(default_factory=list)
    on_show_preferences: Callable[[], None] | None = None
    open_log_settings_result: bool = True
    opened_paths: list[Path] = field(default_factory=list)

    def prompt_open_path(self, start_dir: Path | None = None) -> Path | None:
        self.calls.append("open")
        return self.open_path

    def prompt_save_path(
        self,
        start_dir: Path | None = None,
        suggested_name: str | None = None,
    ) -> Path | None:
        self.calls.append("save")
        return self.save_path

    def confirm_save_before_run(self) -> bool:
        self.calls.append("confirm_run_save")
        return self.confirm_run_save

    def ask_save_changes(self) -> SaveChoice:
        self.calls.append("ask_save_changes")
        return self.save_choice

    def choose_initial_action(self) -> InitialChoice:
        self.calls.append("initial")
        return self.initial_choice

    def show_preferences(self) -> None:
        self.calls.append("preferences")
        if self.on_show_preferences is not None:
            self.on_show_preferences()

    def show_error(self, error: ConfigEditorError) -> None:
        self.calls.append("error")
        self.errors.append(error)

    def warn_no_document(self) -> None:
        self.calls.append("warn_no_document")

    def open_log_settings(self, path: Path) -> bool:
        self.calls.append("open_log_settings")
        self.opened_paths.append(path)
        return self.open_log_settings_result


class FakeRunner:
    """Runner stand-in recording the paths it was asked to run."""

    def __init__(self, result: Any = "ran", error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.runs: list[Path] = []
        self.saved_snapshots: list[bytes] = []

    def _record(self, path: Path) -> Any:
        self.runs.append(path)
        self.saved_snapshots.append(path.read_bytes())
        if self.error is not None:
            raise self.error
        return self.result

    def run(self, config_path: Path) -> Any:
        return self._record(config_path)

    async def run_async(self, config_path: Path) -> Any:
        return self._record(config_path)


@pytest.fixture
def sample_bytes() -> bytes:
    return SAMPLE_CONFIGURATION


@pytest.fixture
def sample_file(tmp_path: Path) -> Path:
    path = tmp_path / "configuration.xml"
    path.write_bytes(SAMPLE_CONFIGURATION)
    return path


@pytest.fixture
def hub() -> ChangeListenerHub:
    return ChangeListenerHub()


@pytest.fixture
def recorder(hub: ChangeListenerHub) -> EventRecorder:
    recorder = EventRecorder()
    hub.subscribe(recorder)
    return recorder


@pytest.fixture
def ui_queue() -> DeferredUiQueue:
    return DeferredUiQueue()


@pytest.fixture
def tracker(hub: ChangeListenerHub) -> DirtyTracker:
    return DirtyTracker(hub)


@pytest.fixture
def store(hub: ChangeListenerHub, tracker: DirtyTracker, ui_queue: DeferredUiQueue) -> DocumentStore:
    return DocumentStore(hub, tracker, ui_queue)


@pytest.fixture
def dialogs() -> FakeDialogProvider:
    return FakeDialogProvider()


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def preferences_store(tmp_path: Path) -> PreferencesStore:
    return PreferencesStore(tmp_path / "prefs" / "preferences.json")


@pytest.fixture
def facade(
    hub: ChangeListenerHub,
    store: DocumentStore,
    dialogs: FakeDialogProvider,
    runner: FakeRunner,
    preferences_store: PreferencesStore,
) -> DocumentEditorFacade:
    return DocumentEditorFacade(
        hub,
        store,
        dialog_provider=dialogs,
        preferences_store=preferences_store,
        preferences=Preferences(run_executable="gcam"),
        runner=runner,  # type: ignore[arg-type]
    )


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in (
        "CONFEDIT_RUN_EXECUTABLE",
        "CONFEDIT_WORKING_DIRECTORY",
        "CONFEDIT_LOG_SETTINGS_PATH",
        "CONFEDIT_DEBUG_LOGGING",
        "CONFEDIT_PREFERENCES_PATH",
        "CONFEDIT_DEBUG",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("CONFEDIT_LOG_DIR", str(tmp_path / "logs"))
