"""Logging setup for the editor.

Records go to a rotating ``confedit.log`` and, optionally, the console.
Every record carries a ``document`` field naming the configuration being
edited when it was emitted (the first characters of its ``document_id``,
or ``-`` when nothing is open), so a session that loads several files can
be followed in one log. Qt's own diagnostics are routed to the
``confedit.qt`` logger.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path
from typing import Callable, Optional

__all__ = [
    "DocumentContextFilter",
    "LOG_FORMAT",
    "QT_LOGGER_NAME",
    "bind_document_source",
    "log_qt_message",
    "setup_logging",
]

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(document)s] %(name)s: %(message)s"
LOG_FILE_NAME = "confedit.log"
QT_LOGGER_NAME = "confedit.qt"

_DEFAULT_LOG_DIR = Path.home() / ".confedit" / "logs"
_QUIET_LOGGERS: tuple[str, ...] = ("asyncio", "qasync")
_NO_DOCUMENT = "-"
_SHORT_ID = 8

DocumentSource = Callable[[], Optional[str]]


class DocumentContextFilter(logging.Filter):
    """Stamp records with the id of the document being edited.

    A record that already has a ``document`` attribute (passed through
    ``extra=``) keeps it.
    """

    def __init__(self, source: DocumentSource | None = None) -> None:
        super().__init__()
        self._source = source

    def bind(self, source: DocumentSource | None) -> None:
        self._source = source

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "document"):
            document_id = self._source() if self._source is not None else None
            record.document = document_id[:_SHORT_ID] if document_id else _NO_DOCUMENT
        return True


_DOCUMENT_CONTEXT = DocumentContextFilter()


def bind_document_source(source: DocumentSource | None) -> None:
    """Tell every handler how to find the current document id."""

    _DOCUMENT_CONTEXT.bind(source)


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
) -> Path:
    """(Re)configure root logging and return the log file path.

    ``log_dir`` falls back to ``$CONFEDIT_LOG_DIR`` and then
    ``~/.confedit/logs``. Calling again replaces the previous handlers.
    """

    directory = Path(log_dir or os.environ.get("CONFEDIT_LOG_DIR") or _DEFAULT_LOG_DIR).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    log_path = directory / LOG_FILE_NAME

    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    ]
    if console:
        handlers.append(logging.StreamHandler())

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        # Handler filters also see records propagated from child loggers.
        handler.addFilter(_DOCUMENT_CONTEXT)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    return log_path


def log_qt_message(level: int, message: str, category: str | None = None) -> None:
    """Forward one Qt diagnostic to the ``confedit.qt`` logger."""

    logger = logging.getLogger(QT_LOGGER_NAME)
    if category and category != "default":
        logger.log(level, "%s: %s", category, message)
    else:
        logger.log(level, "%s", message)
