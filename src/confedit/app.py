"""Command line entry point and Qt bootstrap for the configuration editor."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import shlex
import sys
from dataclasses import MISSING, asdict, dataclass, fields
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, TextIO, cast

from .services.preferences import Preferences, PreferencesStore
from .ui.bootstrap import create_editor
from .utils import logging as logging_utils

_LOGGER = logging.getLogger(__name__)
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_NONE_VALUES = {"", "none", "null"}

OverrideParser = Callable[[str], Any]


@dataclass(slots=True)
class QtRuntime:
    """Container returned by :func:`create_qapp`."""

    app: Any
    loop: asyncio.AbstractEventLoop


def configure_logging(debug: bool = False) -> Path:
    """Configure logging for the application and return the log file path."""

    level = logging.DEBUG if debug else logging.INFO
    log_path = logging_utils.setup_logging(level)
    _LOGGER.debug("Logging to %s (level=%s)", log_path, logging.getLevelName(level))
    return log_path


def load_preferences(
    path: Optional[Path] = None,
    *,
    store: PreferencesStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Preferences:
    """Load persisted preferences or fall back to defaults."""

    active_store = store or PreferencesStore(path)
    try:
        preferences = active_store.load(overrides=overrides)
    except OSError as exc:
        _LOGGER.warning("Failed to load preferences from %s: %s", active_store.path, exc)
        preferences = Preferences()
    return preferences


def create_qapp() -> QtRuntime:
    """Create a qasync-powered QApplication instance."""

    from PySide6.QtWidgets import QApplication
    from qasync import QEventLoop

    app = cast(Any, QApplication.instance() or QApplication(sys.argv))
    app.setApplicationName("confedit")
    app.setApplicationDisplayName("Configuration Editor")
    _install_qt_message_handler()

    loop = QEventLoop(app)
    asyncio.set_event_loop(loop)
    app.aboutToQuit.connect(loop.stop)
    return QtRuntime(app=app, loop=loop)


def check_document(path: Path, *, stream: TextIO | None = None) -> int:
    """Load ``path`` headlessly and report whether it is a valid configuration.

    Returns:
        ``0`` when the document loads, ``1`` otherwise.
    """

    destination = stream or sys.stdout
    facade = create_editor().facade
    logging_utils.bind_document_source(lambda: _current_document_id(facade))
    result = facade.load(path)
    if result.ok:
        document = result.value
        count = sum(1 for _ in document.root.iter()) - 1
        destination.write(f"{path}: OK ({count} elements under <{document.root_name}>)\n")
        return 0
    destination.write(f"{path}: {result.error.title if result.error else 'not loaded'}: {result.error}\n")
    return 1


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point invoked by the `confedit` console script."""

    args, passthrough = _parse_cli_args(argv)
    _rewrite_sys_argv(passthrough)

    debug = _debug_requested(args)
    configure_logging(debug)

    if args.check:
        raise SystemExit(check_document(Path(args.check).expanduser()))

    preferences_path = args.preferences_path or os.environ.get("CONFEDIT_PREFERENCES_PATH")
    resolved_path = Path(preferences_path).expanduser() if preferences_path else None
    preferences_store = PreferencesStore(resolved_path)
    first_run = not preferences_store.exists()
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    preferences = load_preferences(resolved_path, store=preferences_store, overrides=cli_overrides or None)

    if args.dump_preferences:
        _dump_preferences(preferences, preferences_store, overrides=cli_overrides)
        return

    if preferences.debug_logging and not debug:
        configure_logging(True)

    runtime = create_qapp()

    from .ui.bootstrap import create_application
    from .ui.ui_queue import LoopUiQueue

    components, window = create_application(
        ui_queue=LoopUiQueue(runtime.loop),
        preferences_store=preferences_store,
        preferences=preferences,
    )
    facade = components.facade
    logging_utils.bind_document_source(lambda: _current_document_id(facade))
    window.show()

    if args.document:
        def _open_initial() -> None:
            result = facade.load(Path(args.document))
            if result.is_failed and result.error is not None:
                _LOGGER.warning("Could not open %s: %s", args.document, result.error)
                facade.initial_action()

        runtime.loop.call_soon(_open_initial)
    else:
        runtime.loop.call_soon(facade.initial_action)
    _LOGGER.info("Editor started (first_run=%s)", first_run)

    loop = runtime.loop
    try:
        loop.run_forever()
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown path
        _LOGGER.info("Shutdown requested by user.")
    finally:
        _shutdown_loop(loop)


def _current_document_id(facade: Any) -> str | None:
    document = facade.current_document
    return document.document_id if document is not None else None


def _debug_requested(args: argparse.Namespace) -> bool:
    if args.debug:
        return True
    value = os.environ.get("CONFEDIT_DEBUG")
    return value is not None and value.strip().lower() in _TRUE_VALUES


def _shutdown_loop(loop: asyncio.AbstractEventLoop) -> None:
    """Cancel pending saves and runs, then close ``loop``."""

    if loop.is_closed():
        return
    pending = [task for task in asyncio.all_tasks(loop) if not task.done()]
    if pending:
        _LOGGER.info("Cancelling %s pending operation(s) before exit.", len(pending))
        for task in pending:
            task.cancel()
        loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
    loop.run_until_complete(loop.shutdown_asyncgens())
    loop.close()


_QT_LEVELS: Dict[str, int] = {
    "QtDebugMsg": logging.DEBUG,
    "QtInfoMsg": logging.INFO,
    "QtWarningMsg": logging.WARNING,
    "QtCriticalMsg": logging.ERROR,
    "QtFatalMsg": logging.CRITICAL,
}


def _qt_level(mode: Any) -> int:
    return _QT_LEVELS.get(getattr(mode, "name", str(mode)), logging.INFO)


def _install_qt_message_handler() -> None:
    """Send Qt diagnostics to the ``confedit.qt`` logger."""

    from PySide6.QtCore import qInstallMessageHandler

    def _handler(mode, context, message):  # type: ignore[no-untyped-def]
        logging_utils.log_qt_message(_qt_level(mode), message, getattr(context, "category", None))

    qInstallMessageHandler(_handler)


def _parse_cli_args(argv: Sequence[str] | None) -> tuple[argparse.Namespace, list[str]]:
    parser = argparse.ArgumentParser(
        prog="confedit",
        add_help=True,
        description="Edit XML configuration documents and run them with an external program.",
    )
    parser.add_argument(
        "document",
        nargs="?",
        metavar="PATH",
        help="Configuration document to open at startup.",
    )
    parser.add_argument(
        "--check",
        metavar="PATH",
        help="Load PATH without a window, report whether it is valid and exit.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log at DEBUG level (also enabled by CONFEDIT_DEBUG=1).",
    )
    parser.add_argument(
        "--dump-preferences",
        action="store_true",
        help="Print the effective preferences payload and exit.",
    )
    parser.add_argument(
        "--preferences-path",
        metavar="PATH",
        help="Override the default ~/.confedit/preferences.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override a preference for this session (repeatable). List values use shell quoting.",
    )
    return parser.parse_known_args(argv)


def _rewrite_sys_argv(passthrough: Sequence[str]) -> None:
    program = sys.argv[0] if sys.argv else "confedit"
    sys.argv = [program, *passthrough]


def _override_parsers() -> Dict[str, OverrideParser]:
    """Map every :class:`Preferences` field to the parser for its ``--set`` text.

    The parser follows the field's default: booleans, integers and lists
    (split like a shell command line) are converted, and fields that
    default to ``None`` also accept ``none``.
    """

    parsers: Dict[str, OverrideParser] = {}
    for item in fields(Preferences):
        default = item.default_factory() if item.default_factory is not MISSING else item.default
        parser: OverrideParser
        if isinstance(default, bool):
            parser = _parse_bool
        elif isinstance(default, int):
            parser = int
        elif isinstance(default, list):
            parser = shlex.split
        else:
            parser = str
        if default is None:
            parser = _nullable(parser)
        parsers[item.name] = parser
    return parsers


def _nullable(parser: OverrideParser) -> OverrideParser:
    def _parse(text: str) -> Any:
        return None if text.lower() in _NONE_VALUES else parser(text)

    return _parse


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    if not items:
        return {}
    parsers = _override_parsers()
    overrides: Dict[str, Any] = {}
    for entry in items:
        key, separator, raw_value = entry.partition("=")
        key = key.strip()
        if not separator or not key:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        parser = parsers.get(key)
        if parser is None:
            raise ValueError(f"Unknown preference '{key}'.")
        overrides[key] = parser(raw_value.strip())
    return overrides


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_preferences(
    preferences: Preferences,
    store: PreferencesStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    output = {
        "path": str(store.path),
        "exists": store.exists(),
        "overrides": {
            "cli": sorted(overrides),
            "environment": sorted(name for name in os.environ if name.startswith("CONFEDIT_")),
        },
        "preferences": asdict(preferences),
    }
    json.dump(output, destination, indent=2, sort_keys=True)
    destination.write("\n")


__all__ = ["QtRuntime", "check_document", "configure_logging", "create_qapp", "load_preferences", "main"]
