"""Preferences dataclass and JSON persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

__all__ = ["Preferences", "PreferencesStore", "DEFAULT_PREFERENCES_PATH"]

LOGGER = logging.getLogger(__name__)
_PREFERENCES_DIR = Path.home() / ".confedit"
DEFAULT_PREFERENCES_PATH = _PREFERENCES_DIR / "preferences.json"
_PREFERENCES_VERSION = 1
_ENV_OVERRIDES: Mapping[str, str] = {
    "CONFEDIT_RUN_EXECUTABLE": "run_executable",
    "CONFEDIT_WORKING_DIRECTORY": "working_directory",
    "CONFEDIT_LOG_SETTINGS_PATH": "log_settings_path",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "CONFEDIT_DEBUG_LOGGING": "debug_logging",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
CONFIG_PLACEHOLDER = "{config}"


@dataclass(slots=True)
class Preferences:
    """User preferences persisted between sessions.

    ``run_arguments`` may contain ``{config}``, replaced by the saved
    configuration path; when absent the path is appended.
    """

    run_executable: str = ""
    run_arguments: list[str] = field(default_factory=lambda: ["-C", CONFIG_PLACEHOLDER])
    working_directory: str | None = None
    log_settings_path: str | None = None
    recent_files: list[str] = field(default_factory=list)
    max_recent_files: int = 10
    last_open_file: str | None = None
    debug_logging: bool = False


class PreferencesStore:
    """Persistence adapter for :class:`Preferences`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or DEFAULT_PREFERENCES_PATH

    @property
    def path(self) -> Path:
        """Return the resolved path backing this store."""

        return self._path

    def exists(self) -> bool:
        """Return ``True`` when a readable preferences file is present (first-run check)."""

        return self._path.is_file() and os.access(self._path, os.R_OK)

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Preferences:
        """Load preferences from disk, applying CLI/environment overrides when present."""

        payload = self._read_payload()
        preferences = Preferences()
        if payload:
            data = _filter_fields(payload)
            try:
                preferences = Preferences(**data)
            except TypeError as exc:
                LOGGER.warning("Preferences payload contained unexpected data: %s", exc)
                preferences = Preferences()
        LOGGER.debug("Preferences loaded from %s (exists=%s)", self._path, bool(payload))

        version_mismatch = bool(payload) and payload.get("version") != _PREFERENCES_VERSION
        if version_mismatch:
            try:
                self.save(preferences)
            except OSError as exc:  # pragma: no cover - defensive guard
                LOGGER.warning("Failed to migrate preferences payload: %s", exc)

        if overrides:
            preferences = self._apply_overrides(preferences, overrides, source="CLI")
        return self._apply_env_overrides(preferences)

    def save(self, preferences: Preferences) -> Path:
        """Persist preferences to disk with atomic file writes."""

        payload = asdict(preferences)
        payload["version"] = _PREFERENCES_VERSION
        body = json.dumps(payload, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Preferences saved to %s", self._path)
        return self._path

    def remember_recent_file(self, preferences: Preferences, path: Path | str) -> Preferences:
        """Return preferences with ``path`` moved to the front of the recent list."""

        entry = str(Path(path).expanduser())
        recent = [item for item in preferences.recent_files if item != entry]
        recent.insert(0, entry)
        limit = max(1, preferences.max_recent_files)
        return replace(preferences, recent_files=recent[:limit], last_open_file=entry)

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
            payload = json.loads(text)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Preferences file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Preferences file %s does not contain an object", self._path)
            return {}
        return payload

    def _apply_overrides(
        self,
        preferences: Preferences,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> Preferences:
        allowed = {item.name for item in fields(Preferences)}
        filtered = {key: value for key, value in overrides.items() if key in allowed and value is not None}
        if filtered:
            LOGGER.debug("Applying %s preference overrides: %s", source, sorted(filtered))
            preferences = replace(preferences, **filtered)
        return preferences

    def _apply_env_overrides(self, preferences: Preferences) -> Preferences:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value.strip().lower() in _TRUE_VALUES
        if overrides:
            preferences = self._apply_overrides(preferences, overrides, source="environment")
        return preferences


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {item.name for item in fields(Preferences)}
    return {key: value for key, value in payload.items() if key in allowed}
