"""Tests covering the application bootstrap helpers."""

from __future__ import annotations

import io
import json
import logging
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

from confedit import app
from confedit.services.preferences import Preferences, PreferencesStore
from confedit.utils import logging as logging_utils


@pytest.fixture(autouse=True)
def _restore_argv(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(sys, "argv", ["confedit"])


@pytest.fixture
def root_logging():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield root
    for handler in list(root.handlers):
        if handler not in saved_handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in saved_handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(saved_level)
    logging_utils.bind_document_source(None)


def test_coerce_cli_overrides_uses_field_defaults() -> None:
    overrides = app._coerce_cli_overrides(
        [
            "run_executable=/opt/gcam/gcam.exe",
            "debug_logging=on",
            "max_recent_files=5",
            "run_arguments=-C {config} --log 'run log.txt'",
            "working_directory=none",
            "log_settings_path=log_conf.xml",
        ]
    )

    assert overrides == {
        "run_executable": "/opt/gcam/gcam.exe",
        "debug_logging": True,
        "max_recent_files": 5,
        "run_arguments": ["-C", "{config}", "--log", "run log.txt"],
        "working_directory": None,
        "log_settings_path": "log_conf.xml",
    }


def test_every_preference_can_be_overridden() -> None:
    assert set(app._override_parsers()) == set(Preferences.__dataclass_fields__)


@pytest.mark.parametrize(
    "entry",
    ["no-equals", "=value", "unknown=1", "debug_logging=maybe", "max_recent_files=ten", "run_arguments='-C"],
)
def test_coerce_cli_overrides_rejects_bad_entries(entry: str) -> None:
    with pytest.raises(ValueError):
        app._coerce_cli_overrides([entry])


def test_load_preferences_applies_overrides(tmp_path: Path) -> None:
    store = PreferencesStore(tmp_path / "preferences.json")
    store.save(Preferences(run_executable="gcam"))

    preferences = app.load_preferences(store=store, overrides={"run_executable": "other"})

    assert preferences.run_executable == "other"


def test_dump_preferences_writes_json(tmp_path: Path) -> None:
    store = PreferencesStore(tmp_path / "preferences.json")
    stream = io.StringIO()

    app._dump_preferences(Preferences(run_executable="gcam"), store, overrides={"run_executable": "gcam"}, stream=stream)

    payload = json.loads(stream.getvalue())
    assert payload["preferences"]["run_executable"] == "gcam"
    assert payload["path"] == str(store.path)
    assert payload["overrides"]["cli"] == ["run_executable"]
    assert "CONFEDIT_LOG_DIR" in payload["overrides"]["environment"]


def test_main_dump_preferences(tmp_path: Path, capsys: pytest.CaptureFixture[str], root_logging) -> None:
    path = tmp_path / "preferences.json"

    app.main(["--preferences-path", str(path), "--set", "run_executable=gcam", "--dump-preferences"])

    payload = json.loads(capsys.readouterr().out)
    assert payload["preferences"]["run_executable"] == "gcam"
    assert payload["exists"] is False


def test_main_rejects_invalid_override(tmp_path: Path, root_logging) -> None:
    with pytest.raises(SystemExit) as excinfo:
        app.main(["--preferences-path", str(tmp_path / "p.json"), "--set", "bogus=1", "--dump-preferences"])
    assert excinfo.value.code == 2


def test_debug_flag_and_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    assert app._debug_requested(app._parse_cli_args(["--debug"])[0]) is True
    assert app._debug_requested(app._parse_cli_args([])[0]) is False

    monkeypatch.setenv("CONFEDIT_DEBUG", "yes")

    assert app._debug_requested(app._parse_cli_args([])[0]) is True


def test_check_document_valid(sample_file: Path, root_logging) -> None:
    stream = io.StringIO()

    assert app.check_document(sample_file, stream=stream) == 0
    assert "OK" in stream.getvalue()


def test_check_document_invalid(tmp_path: Path, root_logging) -> None:
    bad = tmp_path / "bad.xml"
    bad.write_bytes(b"<Other/>")
    stream = io.StringIO()

    assert app.check_document(bad, stream=stream) == 1
    assert "unsupported-root" in stream.getvalue()


def test_main_check_exit_code(sample_file: Path, root_logging) -> None:
    with pytest.raises(SystemExit) as excinfo:
        app.main(["--check", str(sample_file)])
    assert excinfo.value.code == 0


def _flush(root: logging.Logger) -> None:
    for handler in root.handlers:
        handler.flush()


def test_setup_logging_creates_rotating_file(tmp_path: Path, root_logging) -> None:
    log_dir = tmp_path / "logs"

    log_path = logging_utils.setup_logging(logging.INFO, log_dir=log_dir, console=False)
    logging.getLogger("confedit.tests").info("Logging smoke test")
    _flush(root_logging)

    assert log_path == log_dir / "confedit.log"
    assert "Logging smoke test" in log_path.read_text(encoding="utf-8")
    assert logging.getLogger("qasync").level == logging.WARNING


def test_log_lines_name_the_current_document(tmp_path: Path, root_logging) -> None:
    log_path = logging_utils.setup_logging(logging.INFO, log_dir=tmp_path, console=False)
    logger = logging.getLogger("confedit.tests")

    logging_utils.bind_document_source(lambda: "0123456789abcdef")
    logger.info("while editing")
    logging_utils.bind_document_source(lambda: None)
    logger.info("nothing open")
    _flush(root_logging)

    lines = log_path.read_text(encoding="utf-8").splitlines()
    assert lines[-2].endswith("[01234567] confedit.tests: while editing")
    assert lines[-1].endswith("[-] confedit.tests: nothing open")


def test_check_document_logs_under_loaded_document(sample_file: Path, tmp_path: Path, root_logging) -> None:
    log_path = logging_utils.setup_logging(logging.DEBUG, log_dir=tmp_path, console=False)

    app.check_document(sample_file, stream=io.StringIO())
    logging.getLogger("confedit.tests").info("after check")
    _flush(root_logging)

    last = log_path.read_text(encoding="utf-8").splitlines()[-1]
    assert "[-]" not in last
    assert last.endswith("confedit.tests: after check")


def test_explicit_document_field_is_kept() -> None:
    context = logging_utils.DocumentContextFilter(lambda: "abcdef0123")
    record = logging.LogRecord("confedit.tests", logging.INFO, __file__, 1, "message", None, None)
    record.document = "given"

    assert context.filter(record) is True
    assert record.document == "given"


def test_qt_messages_use_their_own_logger(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.DEBUG, logger=logging_utils.QT_LOGGER_NAME):
        logging_utils.log_qt_message(logging.WARNING, "bad geometry", "qt.widgets")
        logging_utils.log_qt_message(logging.INFO, "plain", "default")

    assert [(record.name, record.levelno, record.getMessage()) for record in caplog.records] == [
        ("confedit.qt", logging.WARNING, "qt.widgets: bad geometry"),
        ("confedit.qt", logging.INFO, "plain"),
    ]


def test_qt_message_levels() -> None:
    assert app._qt_level(SimpleNamespace(name="QtCriticalMsg")) == logging.ERROR
    assert app._qt_level(SimpleNamespace(name="QtDebugMsg")) == logging.DEBUG
    assert app._qt_level(SimpleNamespace(name="SomethingElse")) == logging.INFO
