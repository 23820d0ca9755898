"""Tests for the preferences persistence layer."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from confedit.services.preferences import CONFIG_PLACEHOLDER, Preferences, PreferencesStore


def test_load_returns_defaults_when_file_missing(tmp_path: Path) -> None:
    store = PreferencesStore(tmp_path / "preferences.json")

    preferences = store.load()

    assert preferences == Preferences()
    assert preferences.run_arguments == ["-C", CONFIG_PLACEHOLDER]
    assert store.exists() is False


def test_save_and_load_roundtrip(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "preferences.json"
    store = PreferencesStore(path)
    original = Preferences(
        run_executable="/opt/gcam/gcam.exe",
        run_arguments=["-C", "{config}", "-L", "log.xml"],
        working_directory="/opt/gcam/exe",
        recent_files=["a.xml"],
        debug_logging=True,
    )

    store.save(original)

    assert store.exists() is True
    assert store.load() == original
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["version"] == 1
    assert not path.with_suffix(".tmp").exists()


def test_unknown_keys_are_ignored(tmp_path: Path) -> None:
    path = tmp_path / "preferences.json"
    path.write_text(json.dumps({"version": 1, "run_executable": "gcam", "theme": "dark"}), encoding="utf-8")

    preferences = PreferencesStore(path).load()

    assert preferences.run_executable == "gcam"


def test_invalid_json_falls_back_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "preferences.json"
    path.write_text("{not json", encoding="utf-8")

    assert PreferencesStore(path).load() == Preferences()


def test_version_mismatch_rewrites_file(tmp_path: Path) -> None:
    path = tmp_path / "preferences.json"
    path.write_text(json.dumps({"run_executable": "gcam"}), encoding="utf-8")

    PreferencesStore(path).load()

    assert json.loads(path.read_text(encoding="utf-8"))["version"] == 1


def test_cli_overrides_then_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    store = PreferencesStore(tmp_path / "preferences.json")
    monkeypatch.setenv("CONFEDIT_WORKING_DIRECTORY", "/env/dir")
    monkeypatch.setenv("CONFEDIT_DEBUG_LOGGING", "yes")

    preferences = store.load(overrides={"run_executable": "cli-gcam", "working_directory": "/cli/dir", "bogus": 1})

    assert preferences.run_executable == "cli-gcam"
    assert preferences.working_directory == "/env/dir"
    assert preferences.debug_logging is True


def test_remember_recent_file_moves_entry_to_front(tmp_path: Path) -> None:
    store = PreferencesStore(tmp_path / "preferences.json")
    preferences = Preferences(recent_files=["b.xml", "a.xml"], max_recent_files=2)

    updated = store.remember_recent_file(preferences, "a.xml")
    updated = store.remember_recent_file(updated, "c.xml")

    assert updated.recent_files == ["c.xml", "a.xml"]
    assert updated.last_open_file == "c.xml"
    assert preferences.recent_files == ["b.xml", "a.xml"]
