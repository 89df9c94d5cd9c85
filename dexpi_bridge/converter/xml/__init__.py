"""
XML layer: tree walker, generic DEXPI 2.0 grammar, serializer and parsers.
"""

from .detection import FormatInfo, detect_format, parse_document
from .dexpi_parser import parse_dexpi_xml
from .proteus_parser import parse_proteus_xml
from .serializer import serialize_document

__all__ = [
    "FormatInfo",
    "detect_format",
    "parse_document",
    "parse_dexpi_xml",
    "parse_proteus_xml",
    "serialize_document",
]
