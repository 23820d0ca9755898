"""Primitives for deferring work onto the presentation thread.

Core components never call into widgets directly from an arbitrary thread.
They post callbacks onto a :class:`UiQueue`; the application wires in a
queue bound to the Qt-driven asyncio loop, headless callers and tests use
:class:`DeferredUiQueue` and drain it explicitly.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import deque
from typing import Callable, Protocol

LOGGER = logging.getLogger(__name__)

UiCallback = Callable[[], None]


class UiQueue(Protocol):
    """Protocol for posting callbacks to the single UI thread."""

    def post(self, callback: UiCallback) -> None:
        """Schedule ``callback`` to run later on the UI thread."""
        ...


class LoopUiQueue:
    """Posts callbacks onto an asyncio loop (the qasync loop in the app)."""

    __slots__ = ("_loop",)

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def post(self, callback: UiCallback) -> None:
        if self._loop.is_closed():
            LOGGER.debug("UI loop closed; dropping callback %r", callback)
            return
        self._loop.call_soon_threadsafe(_run_guarded, callback)


class DeferredUiQueue:
    """Accumulates callbacks until :meth:`drain` is called."""

    __slots__ = ("_pending", "_lock")

    def __init__(self) -> None:
        self._pending: deque[UiCallback] = deque()
        self._lock = threading.Lock()

    def post(self, callback: UiCallback) -> None:
        with self._lock:
            self._pending.append(callback)

    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def drain(self) -> int:
        """Run every queued callback in posting order and return how many ran.

        Callbacks posted while draining run in the same call.
        """
        ran = 0
        while True:
            with self._lock:
                if not self._pending:
                    return ran
                callback = self._pending.popleft()
            _run_guarded(callback)
            ran += 1


def _run_guarded(callback: UiCallback) -> None:
    try:
        callback()
    except Exception:
        LOGGER.exception("UI callback %r failed", callback)


__all__ = ["DeferredUiQueue", "LoopUiQueue", "UiCallback", "UiQueue"]
