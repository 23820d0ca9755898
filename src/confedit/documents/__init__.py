"""Configuration document model and XML persistence."""

from .model import (
    ROOT_ELEMENT_NAME,
    VALUE_ELEMENT_NAME,
    ConfigComment,
    ConfigDocument,
    ConfigElement,
    ConfigProcessingInstruction,
    MutationEvent,
    MutationKind,
)
from .xml_codec import parse_document, read_document, serialize_document, write_document

__all__ = [
    "ROOT_ELEMENT_NAME",
    "VALUE_ELEMENT_NAME",
    "ConfigComment",
    "ConfigDocument",
    "ConfigElement",
    "ConfigProcessingInstruction",
    "MutationEvent",
    "MutationKind",
    "parse_document",
    "read_document",
    "serialize_document",
    "write_document",
]
