"""Conversion between XML bytes and :class:`ConfigDocument` trees."""

from __future__ import annotations

import logging
from pathlib import Path

from lxml import etree

from ..errors import LoadError, LoadErrorKind, SaveError, SaveErrorKind
from ..utils import file_io
from .model import (
    ROOT_ELEMENT_NAME,
    ConfigComment,
    ConfigDocument,
    ConfigElement,
    ConfigProcessingInstruction,
    MiscNode,
)

LOGGER = logging.getLogger(__name__)


def _make_parser() -> etree.XMLParser:
    return etree.XMLParser(
        remove_blank_text=True,
        resolve_entities=False,
        no_network=True,
    )


def parse_document(
    data: bytes | str,
    *,
    path: Path | None = None,
    root_name: str = ROOT_ELEMENT_NAME,
) -> ConfigDocument:
    """Parse ``data`` into a clean configuration document.

    Comments and processing instructions, inside the root element or around
    it, are kept so that saving the document writes them back.

    Raises:
        LoadError: ``MALFORMED`` for invalid XML, ``UNSUPPORTED_ROOT`` when the
            root element is not ``root_name``.
    """
    payload = data.encode("utf-8") if isinstance(data, str) else data
    try:
        xml_root = etree.fromstring(payload, _make_parser())
    except etree.XMLSyntaxError as exc:
        raise LoadError(LoadErrorKind.MALFORMED, f"Malformed XML: {exc}", path=path) from exc

    if xml_root.tag != root_name:
        raise LoadError(
            LoadErrorKind.UNSUPPORTED_ROOT,
            f"Expected root element <{root_name}> but found <{xml_root.tag}>",
            path=path,
        )

    prolog = [_to_misc(node) for node in xml_root.itersiblings(preceding=True)]
    epilog = [_to_misc(node) for node in xml_root.itersiblings()]
    document = ConfigDocument(
        root=_to_element(xml_root),
        path=path,
        prolog=tuple(node for node in reversed(prolog) if node is not None),
        epilog=tuple(node for node in epilog if node is not None),
    )
    LOGGER.debug("Parsed document %s (path=%s)", document.document_id, path)
    return document


def read_document(path: Path | str, *, root_name: str = ROOT_ELEMENT_NAME) -> ConfigDocument:
    """Read and parse the file at ``path``.

    Raises:
        LoadError: ``UNREADABLE`` when the file cannot be read, otherwise as
            :func:`parse_document`.
    """
    target = Path(path).expanduser()
    try:
        data = file_io.read_bytes(target)
    except OSError as exc:
        raise LoadError(LoadErrorKind.UNREADABLE, f"Cannot read file: {exc.strerror or exc}", path=target) from exc
    return parse_document(data, path=target, root_name=root_name)


def serialize_document(document: ConfigDocument) -> bytes:
    """Return the UTF-8 XML serialization of ``document``.

    Raises:
        SaveError: ``SERIALIZATION`` when the tree holds names or values XML
            cannot represent.
    """
    try:
        xml_root = _to_xml(document.root)
        xml_root.tail = None
        for node in document.prolog:
            xml_root.addprevious(_misc_to_xml(node, with_tail=False))
        for node in reversed(document.epilog):
            xml_root.addnext(_misc_to_xml(node, with_tail=False))
        return etree.tostring(
            xml_root.getroottree(),
            pretty_print=True,
            xml_declaration=True,
            encoding="UTF-8",
        )
    except (ValueError, TypeError) as exc:
        raise SaveError(
            SaveErrorKind.SERIALIZATION, f"Cannot serialize document: {exc}", path=document.path
        ) from exc


def write_document(document: ConfigDocument, path: Path | str) -> Path:
    """Serialize ``document`` and write it atomically to ``path``.

    The document itself is not modified; callers update ``path`` and the
    dirty flag once the write has succeeded.
    """
    target = Path(path).expanduser()
    payload = serialize_document(document)
    try:
        return file_io.write_bytes(target, payload)
    except OSError as exc:
        raise SaveError(SaveErrorKind.UNWRITABLE, f"Cannot write file: {exc.strerror or exc}", path=target) from exc


def _to_element(node: etree._Element) -> ConfigElement:
    element = ConfigElement(node.tag, dict(node.attrib), node.text, tail=node.tail)
    for child in node:
        misc = _to_misc(child)
        if misc is not None:
            element.append_node(misc)
        elif isinstance(child.tag, str):
            element.append(_to_element(child))
        else:
            LOGGER.debug("Skipping unsupported node %r inside <%s>", child, node.tag)
    return element


def _to_misc(node: etree._Element) -> MiscNode | None:
    if isinstance(node, etree._Comment):
        return ConfigComment(node.text or "", tail=node.tail)
    if isinstance(node, etree._ProcessingInstruction):
        return ConfigProcessingInstruction(node.target, node.text, tail=node.tail)
    return None


def _to_xml(element: ConfigElement) -> etree._Element:
    node = etree.Element(element.tag, dict(element.attributes))
    node.text = element.text
    node.tail = element.tail
    for child in element.nodes:
        if isinstance(child, ConfigElement):
            node.append(_to_xml(child))
        else:
            node.append(_misc_to_xml(child))
    return node


def _misc_to_xml(misc: MiscNode, *, with_tail: bool = True) -> etree._Element:
    if isinstance(misc, ConfigComment):
        node = etree.Comment(misc.text)
    else:
        node = etree.ProcessingInstruction(misc.target, misc.text)
    if with_tail:
        node.tail = misc.tail
    return node


__all__ = ["parse_document", "read_document", "serialize_document", "write_document"]
