"""Service layer helpers (preferences, run action)."""

from .preferences import Preferences, PreferencesStore
from .runner import ConfigurationRunner, RunResult

__all__ = [
    "ConfigurationRunner",
    "Preferences",
    "PreferencesStore",
    "RunResult",
]
