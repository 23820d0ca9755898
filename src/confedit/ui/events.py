"""Change notification infrastructure for document-state observers.

Widgets, panels and enablers never poll the document store. They subscribe
to a :class:`ChangeListenerHub` and react to :class:`ChangeEvent` records
describing document replacement, modification and saving.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Protocol, Union, runtime_checkable
from weakref import WeakMethod

logger = logging.getLogger(__name__)


class ChangeKind(Enum):
    """Named document-state transitions."""

    DOCUMENT_REPLACED = "document-replaced"
    DOCUMENT_MODIFIED = "document-modified"
    DOCUMENT_SAVED = "document-saved"


@dataclass(slots=True, frozen=True)
class ChangeEvent:
    """A state transition carrying the value before and after the change.

    Attributes:
        kind: Which transition occurred.
        old_value: For ``DOCUMENT_REPLACED`` the previous document (or None);
            for ``DOCUMENT_MODIFIED`` / ``DOCUMENT_SAVED`` a boolean.
        new_value: The value after the transition.
    """

    kind: ChangeKind
    old_value: Any
    new_value: Any

    @property
    def name(self) -> str:
        return self.kind.value


@runtime_checkable
class ChangeObserver(Protocol):
    """Anything that receives change notifications."""

    def on_change(self, event: ChangeEvent) -> None:
        ...


Handler = Callable[[ChangeEvent], None]
Observer = Union[ChangeObserver, Handler]


class ChangeListenerHub:
    """A publish-subscribe broadcaster for :class:`ChangeEvent` records.

    Example::

        hub = ChangeListenerHub()

        def on_change(event: ChangeEvent) -> None:
            print(event.name, event.old_value, event.new_value)

        hub.subscribe(on_change)
        hub.publish(ChangeKind.DOCUMENT_SAVED, False, True)
        hub.unsubscribe(on_change)

    Observers are called synchronously in subscription order. An observer
    that raises is logged and the remaining observers still receive the
    event. Observers may subscribe with an object exposing ``on_change`` or
    with any callable; bound methods (including ``on_change``) are held by
    weak reference so an observer disappears once its owner is collected.

    Thread Safety:
        Subscription changes are guarded by a lock and observers are invoked
        outside of it, so publishing from a worker thread is safe. Observers
        touching widgets must defer that work onto the UI queue themselves.
    """

    __slots__ = ("_observers", "_lock")

    def __init__(self) -> None:
        self._observers: list[_ObserverRef] = []
        self._lock = threading.RLock()

    def subscribe(self, observer: Observer, *, kinds: Iterable[ChangeKind] | None = None) -> None:
        """Register ``observer`` for every event, or only for ``kinds``.

        Subscribing the same observer twice results in two deliveries.
        """
        handler = _as_handler(observer)
        observer_ref = _ObserverRef.create(handler, frozenset(kinds) if kinds is not None else None)
        with self._lock:
            self._observers.append(observer_ref)
        logger.debug("Subscribed change observer %s", _handler_name(handler))

    def unsubscribe(self, observer: Observer) -> None:
        """Remove the first registration of ``observer``; unknown observers are ignored."""

        handler = _as_handler(observer)
        with self._lock:
            for index, observer_ref in enumerate(self._observers):
                if observer_ref.matches(handler):
                    self._observers.pop(index)
                    logger.debug("Unsubscribed change observer %s", _handler_name(handler))
                    return

    def publish(self, kind: ChangeKind, old_value: Any, new_value: Any) -> ChangeEvent:
        """Build a :class:`ChangeEvent` and deliver it to every observer.

        Returns:
            The event that was delivered.
        """
        event = ChangeEvent(kind=kind, old_value=old_value, new_value=new_value)
        self.dispatch(event)
        return event

    def dispatch(self, event: ChangeEvent) -> None:
        """Deliver an already-built ``event`` to every interested observer."""

        with self._lock:
            live: list[Handler] = []
            dead: list[_ObserverRef] = []
            for observer_ref in self._observers:
                handler = observer_ref.resolve()
                if handler is None:
                    dead.append(observer_ref)
                elif observer_ref.accepts(event.kind):
                    live.append(handler)
            for observer_ref in dead:
                self._observers.remove(observer_ref)

        logger.debug("Publishing %s to %d observer(s)", event.name, len(live))
        for handler in live:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Observer %s raised exception for event %s",
                    _handler_name(handler),
                    event.name,
                )

    def clear(self) -> None:
        """Remove all registered observers."""

        with self._lock:
            self._observers.clear()
        logger.debug("Cleared all change observers")

    def observer_count(self) -> int:
        """Return the number of live registrations."""

        with self._lock:
            return sum(1 for observer_ref in self._observers if observer_ref.resolve() is not None)


class _ObserverRef:
    """Wrapper for observer references supporting both weak and strong refs.

    Bound methods are stored as :class:`WeakMethod`; functions, lambdas and
    callable objects are stored strongly since their lifetime is managed
    explicitly by whoever subscribed them.
    """

    __slots__ = ("_ref", "_is_weak", "_kinds")

    def __init__(
        self,
        handler_ref: WeakMethod | Handler,
        is_weak: bool,
        kinds: frozenset[ChangeKind] | None,
    ) -> None:
        self._ref = handler_ref
        self._is_weak = is_weak
        self._kinds = kinds

    @classmethod
    def create(cls, handler: Handler, kinds: frozenset[ChangeKind] | None) -> _ObserverRef:
        if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
            try:
                return cls(WeakMethod(handler), is_weak=True, kinds=kinds)
            except TypeError:
                # Some bound methods cannot be weakly referenced
                pass
        return cls(handler, is_weak=False, kinds=kinds)

    def resolve(self) -> Handler | None:
        if not self._is_weak:
            return self._ref  # type: ignore[return-value]
        return self._ref()  # type: ignore[operator]

    def accepts(self, kind: ChangeKind) -> bool:
        return self._kinds is None or kind in self._kinds

    def matches(self, handler: Handler) -> bool:
        resolved = self.resolve()
        if resolved is None:
            return False
        return resolved == handler


def _as_handler(observer: Observer) -> Handler:
    on_change = getattr(observer, "on_change", None)
    if callable(on_change):
        return on_change
    if callable(observer):
        return observer
    raise TypeError(f"{observer!r} cannot receive change notifications")


def _handler_name(handler: Handler) -> str:
    """Get a human-readable name for a handler for logging purposes."""
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        cls_name = type(handler.__self__).__name__
        return f"{cls_name}.{handler.__func__.__name__}"
    if hasattr(handler, "__name__"):
        return handler.__name__
    return repr(handler)


__all__ = [
    "ChangeEvent",
    "ChangeKind",
    "ChangeListenerHub",
    "ChangeObserver",
    "Handler",
    "Observer",
]
