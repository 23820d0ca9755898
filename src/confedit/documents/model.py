"""Observable element tree backing configuration documents.

The tree exposes an explicit mutation API. Every structural change is
reported to the mutation listeners of the changed element and of all its
ancestors, root first, so a single listener on the root element observes
the whole subtree.

Comments and processing instructions are kept as non-element nodes in
document order next to the child elements. They are invisible to the
element queries (``children``, ``find``, ``iter``) and are only reached
through ``nodes``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Iterator, Mapping, Union

LOGGER = logging.getLogger(__name__)

ROOT_ELEMENT_NAME = "Configuration"
"""Name of the single root element of every configuration document."""

VALUE_ELEMENT_NAME = "Value"
"""Name of the leaf elements holding scalar configuration values."""


class MutationKind(Enum):
    """Structural mutations reported by :class:`ConfigElement`."""

    CHILD_ADDED = "child-added"
    CHILD_REMOVED = "child-removed"
    TEXT_CHANGED = "text-changed"
    ATTRIBUTE_CHANGED = "attribute-changed"


@dataclass(slots=True, frozen=True)
class MutationEvent:
    """A single structural mutation.

    Attributes:
        kind: What changed.
        target: The element whose children, text or attributes changed.
        detail: The child tag or attribute name involved, when relevant.
    """

    kind: MutationKind
    target: ConfigElement
    detail: str | None = None


@dataclass(slots=True, frozen=True, eq=False)
class ConfigComment:
    """An XML comment; ``tail`` is the text following it inside the parent."""

    text: str
    tail: str | None = None

    @property
    def node_name(self) -> str:
        return "#comment"


@dataclass(slots=True, frozen=True, eq=False)
class ConfigProcessingInstruction:
    """An XML processing instruction such as ``<?xml-stylesheet ...?>``."""

    target: str
    text: str | None = None
    tail: str | None = None

    @property
    def node_name(self) -> str:
        return f"?{self.target}"


MiscNode = Union[ConfigComment, ConfigProcessingInstruction]

MutationListener = Callable[[MutationEvent], None]


class ConfigElement:
    """A mutable XML element with subtree mutation listeners."""

    __slots__ = ("_tag", "_attributes", "_text", "_tail", "_nodes", "_parent", "_listeners")

    def __init__(
        self,
        tag: str,
        attributes: Mapping[str, str] | None = None,
        text: str | None = None,
        *,
        tail: str | None = None,
    ) -> None:
        if not tag:
            raise ValueError("Element tag must be a non-empty string")
        self._tag = tag
        self._attributes: dict[str, str] = dict(attributes or {})
        self._text = text
        self._tail = tail
        self._nodes: list[ConfigElement | MiscNode] = []
        self._parent: ConfigElement | None = None
        self._listeners: list[MutationListener] = []

    def __repr__(self) -> str:
        return f"ConfigElement({self._tag!r}, children={len(self.children)})"

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------
    @property
    def tag(self) -> str:
        return self._tag

    @property
    def parent(self) -> ConfigElement | None:
        return self._parent

    @property
    def children(self) -> tuple[ConfigElement, ...]:
        return tuple(self._elements())

    @property
    def nodes(self) -> tuple[ConfigElement | MiscNode, ...]:
        """Child elements, comments and processing instructions in document order."""
        return tuple(self._nodes)

    @property
    def attributes(self) -> Mapping[str, str]:
        return MappingProxyType(self._attributes)

    @property
    def text(self) -> str | None:
        return self._text

    @text.setter
    def text(self, value: str | None) -> None:
        if value == self._text:
            return
        self._text = value
        self._notify(MutationEvent(MutationKind.TEXT_CHANGED, self))

    @property
    def tail(self) -> str | None:
        """Text following this element's end tag inside its parent."""
        return self._tail

    @tail.setter
    def tail(self, value: str | None) -> None:
        if value == self._tail:
            return
        self._tail = value
        self._notify(MutationEvent(MutationKind.TEXT_CHANGED, self, "tail"))

    def get(self, name: str, default: str | None = None) -> str | None:
        """Return the attribute ``name`` or ``default``."""

        return self._attributes.get(name, default)

    def find(self, tag: str, **attributes: str) -> ConfigElement | None:
        """Return the first direct child matching ``tag`` and ``attributes``."""

        for child in self._elements():
            if child._matches(tag, attributes):
                return child
        return None

    def findall(self, tag: str, **attributes: str) -> list[ConfigElement]:
        """Return every direct child matching ``tag`` and ``attributes``."""

        return [child for child in self._elements() if child._matches(tag, attributes)]

    def iter(self, tag: str | None = None) -> Iterator[ConfigElement]:
        """Iterate over this element and its descendant elements in document order."""

        if tag is None or self._tag == tag:
            yield self
        for child in self._elements():
            yield from child.iter(tag)

    def root(self) -> ConfigElement:
        node = self
        while node._parent is not None:
            node = node._parent
        return node

    # ------------------------------------------------------------------
    # Mutation API
    # ------------------------------------------------------------------
    def set(self, name: str, value: str) -> None:
        """Set attribute ``name``; unchanged values are not reported."""

        if self._attributes.get(name) == value:
            return
        self._attributes[name] = value
        self._notify(MutationEvent(MutationKind.ATTRIBUTE_CHANGED, self, name))

    def remove_attribute(self, name: str) -> bool:
        if name not in self._attributes:
            return False
        del self._attributes[name]
        self._notify(MutationEvent(MutationKind.ATTRIBUTE_CHANGED, self, name))
        return True

    def append(self, child: ConfigElement) -> ConfigElement:
        return self.insert(len(self.children), child)

    def insert(self, index: int, child: ConfigElement) -> ConfigElement:
        """Insert ``child`` before the element currently at ``index`` and return it.

        ``index`` counts child elements only; comments stay where they are
        relative to the elements around them.

        Raises:
            ValueError: If ``child`` already has a parent or is an ancestor
                of this element.
        """
        if child._parent is not None:
            raise ValueError(f"Element {child.tag!r} already has a parent")
        node: ConfigElement | None = self
        while node is not None:
            if node is child:
                raise ValueError("Cannot insert an element into its own subtree")
            node = node._parent
        positions = [i for i, existing in enumerate(self._nodes) if isinstance(existing, ConfigElement)]
        if index < 0:
            index = max(len(positions) + index, 0)
        position = positions[index] if index < len(positions) else len(self._nodes)
        self._nodes.insert(position, child)
        child._parent = self
        self._notify(MutationEvent(MutationKind.CHILD_ADDED, self, child.tag))
        return child

    def remove(self, child: ConfigElement) -> None:
        """Detach ``child`` from this element.

        Raises:
            ValueError: If ``child`` is not a direct child of this element.
        """
        if child._parent is not self:
            raise ValueError(f"Element {child.tag!r} is not a child of {self._tag!r}")
        self._pop_node(child)
        child._parent = None
        self._notify(MutationEvent(MutationKind.CHILD_REMOVED, self, child.tag))

    def append_node(self, node: MiscNode) -> MiscNode:
        """Append a comment or processing instruction after the last child node."""

        self._nodes.append(node)
        self._notify(MutationEvent(MutationKind.CHILD_ADDED, self, node.node_name))
        return node

    def remove_node(self, node: MiscNode) -> None:
        """Remove a comment or processing instruction.

        Raises:
            ValueError: If ``node`` is not held by this element.
        """
        self._pop_node(node)
        self._notify(MutationEvent(MutationKind.CHILD_REMOVED, self, node.node_name))

    def clear(self) -> None:
        """Remove every child element, comment and processing instruction."""

        for node in list(self._nodes):
            if isinstance(node, ConfigElement):
                self.remove(node)
            else:
                self.remove_node(node)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------
    def add_mutation_listener(self, listener: MutationListener) -> None:
        """Observe mutations of this element and every descendant."""

        self._listeners.append(listener)

    def remove_mutation_listener(self, listener: MutationListener) -> bool:
        try:
            self._listeners.remove(listener)
        except ValueError:
            return False
        return True

    def mutation_listener_count(self) -> int:
        return len(self._listeners)

    def _elements(self) -> Iterator[ConfigElement]:
        for node in self._nodes:
            if isinstance(node, ConfigElement):
                yield node

    def _pop_node(self, node: ConfigElement | MiscNode) -> None:
        for index, existing in enumerate(self._nodes):
            if existing is node:
                del self._nodes[index]
                return
        raise ValueError(f"{node!r} is not held by <{self._tag}>")

    def _notify(self, event: MutationEvent) -> None:
        path: list[ConfigElement] = []
        node: ConfigElement | None = self
        while node is not None:
            path.append(node)
            node = node._parent
        # Capture order: outermost ancestor first, target last.
        for element in reversed(path):
            for listener in list(element._listeners):
                try:
                    listener(event)
                except Exception:
                    LOGGER.exception(
                        "Mutation listener %r failed for %s on <%s>",
                        listener,
                        event.kind.value,
                        event.target.tag,
                    )

    def _matches(self, tag: str, attributes: Mapping[str, str]) -> bool:
        if self._tag != tag:
            return False
        return all(self._attributes.get(key) == value for key, value in attributes.items())


@dataclass(slots=True, eq=False, weakref_slot=True)
class ConfigDocument:
    """A configuration document: a root element plus persistence metadata.

    Instances compare by identity. ``dirty`` and ``revision`` are owned by
    :class:`confedit.ui.domain.dirty_tracker.DirtyTracker`; ``revision``
    counts tracked mutations. ``prolog`` and ``epilog`` hold the comments and
    processing instructions outside the root element.
    """

    root: ConfigElement
    path: Path | None = None
    dirty: bool = False
    revision: int = 0
    document_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    prolog: tuple[MiscNode, ...] = ()
    epilog: tuple[MiscNode, ...] = ()

    @classmethod
    def new(cls, root_name: str = ROOT_ELEMENT_NAME) -> ConfigDocument:
        """Return an empty document containing only the root element."""

        return cls(root=ConfigElement(root_name))

    @property
    def root_name(self) -> str:
        return self.root.tag

    @property
    def display_name(self) -> str:
        return self.path.name if self.path is not None else "Untitled"


__all__ = [
    "ROOT_ELEMENT_NAME",
    "VALUE_ELEMENT_NAME",
    "ConfigComment",
    "ConfigDocument",
    "ConfigElement",
    "ConfigProcessingInstruction",
    "MiscNode",
    "MutationEvent",
    "MutationKind",
    "MutationListener",
]
