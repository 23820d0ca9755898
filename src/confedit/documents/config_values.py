"""Access to named ``<Value>`` leaves grouped under section elements.

A configuration file looks like::

    <Configuration>
        <Files>
            <Value name="xmlOutputFileName">out.xml</Value>
        </Files>
        <Bools>
            <Value name="calibrationActive">1</Value>
        </Bools>
    </Configuration>

All updates go through the element mutation API, so they mark the owning
document dirty like any other edit.
"""

from __future__ import annotations

from typing import Iterator

from .model import VALUE_ELEMENT_NAME, ConfigDocument, ConfigElement

SECTION_FILES = "Files"
SECTION_STRINGS = "Strings"
SECTION_BOOLS = "Bools"
SECTION_INTS = "Ints"
SECTION_DOUBLES = "Doubles"

_TRUE_TEXT = {"1", "true", "yes", "on"}


def find_value(document: ConfigDocument, section: str, name: str) -> ConfigElement | None:
    """Return the ``Value`` element called ``name`` in ``section``, if any."""

    section_element = document.root.find(section)
    if section_element is None:
        return None
    return section_element.find(VALUE_ELEMENT_NAME, name=name)


def get_value(
    document: ConfigDocument,
    section: str,
    name: str,
    default: str | None = None,
) -> str | None:
    element = find_value(document, section, name)
    if element is None or element.text is None:
        return default
    return element.text


def get_bool(document: ConfigDocument, section: str, name: str, default: bool = False) -> bool:
    raw = get_value(document, section, name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_TEXT


def set_value(document: ConfigDocument, section: str, name: str, value: str) -> ConfigElement:
    """Set ``name`` in ``section`` to ``value``, creating missing elements."""

    section_element = document.root.find(section)
    if section_element is None:
        section_element = document.root.append(ConfigElement(section))
    element = section_element.find(VALUE_ELEMENT_NAME, name=name)
    if element is None:
        element = section_element.append(ConfigElement(VALUE_ELEMENT_NAME, {"name": name}))
    element.text = value
    return element


def set_bool(document: ConfigDocument, section: str, name: str, value: bool) -> ConfigElement:
    return set_value(document, section, name, "1" if value else "0")


def remove_value(document: ConfigDocument, section: str, name: str) -> bool:
    """Remove ``name`` from ``section``; returns ``False`` when it was absent."""

    element = find_value(document, section, name)
    if element is None or element.parent is None:
        return False
    element.parent.remove(element)
    return True


def iter_values(document: ConfigDocument) -> Iterator[tuple[str, str, str]]:
    """Yield ``(section, name, text)`` for every named value in document order."""

    for section_element in document.root.children:
        for element in section_element.findall(VALUE_ELEMENT_NAME):
            name = element.get("name")
            if name is None:
                continue
            yield section_element.tag, name, element.text or ""


__all__ = [
    "SECTION_BOOLS",
    "SECTION_DOUBLES",
    "SECTION_FILES",
    "SECTION_INTS",
    "SECTION_STRINGS",
    "find_value",
    "get_bool",
    "get_value",
    "iter_values",
    "remove_value",
    "set_bool",
    "set_value",
]
