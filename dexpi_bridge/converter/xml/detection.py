"""
Format detection and parser dispatch.
"""

from dataclasses import dataclass
from typing import Optional, Union
import logging

from dexpi_bridge.converter.diagnostics import Diagnostics
from dexpi_bridge.converter.errors import FatalParseError, UnsupportedFormatError
from dexpi_bridge.converter.models.document import DexpiDocument, DexpiFormat
from dexpi_bridge.converter.xml.dexpi_parser import parse_dexpi_root
from dexpi_bridge.converter.xml.proteus_parser import PLANT_MODEL_ROOT, parse_proteus_root
from dexpi_bridge.converter.xml.serializer import DEXPI_VERSION, ROOT_ELEMENT
from dexpi_bridge.converter.xml.tree import XmlNode, parse_xml

logger = logging.getLogger(__name__)


@dataclass
class FormatInfo:
    """Result of inspecting a document root."""
    format: DexpiFormat
    version: str
    root_element: str
    detected_version: Optional[str] = None
    discipline: Optional[str] = None

    @property
    def is_legacy(self) -> bool:
        return self.format == DexpiFormat.PROTEUS


def detect_root_format(root: XmlNode) -> FormatInfo:
    """Classify an already parsed root element."""
    if root.name == ROOT_ELEMENT:
        return FormatInfo(
            format=DexpiFormat.DEXPI_XML,
            version="2.0",
            root_element=root.name,
            detected_version=root.attr("version", DEXPI_VERSION),
        )

    if root.name == PLANT_MODEL_ROOT:
        plant_info = root.child("PlantInformation")
        detected = None
        discipline = None
        if plant_info is not None:
            detected = plant_info.attr("ApplicationVersion") or plant_info.attr("SchemaVersion")
            discipline = plant_info.attr("Discipline")
        return FormatInfo(
            format=DexpiFormat.PROTEUS,
            version="1.x",
            root_element=root.name,
            detected_version=detected,
            discipline=discipline,
        )

    return FormatInfo(format=DexpiFormat.UNKNOWN, version="unknown", root_element=root.name)


def detect_format(xml: Union[str, bytes]) -> FormatInfo:
    """
    Detect the DEXPI dialect of a document.

    Malformed XML is reported as an unknown format rather than raised.

    Args:
        xml: Document text

    Returns:
        FormatInfo with format, version and (legacy only) discipline
    """
    try:
        root = parse_xml(xml)
    except FatalParseError as e:
        logger.debug(f"Format detection failed: {e}")
        return FormatInfo(format=DexpiFormat.UNKNOWN, version="unknown", root_element="error")
    return detect_root_format(root)


def parse_document(xml: Union[str, bytes], diagnostics: Optional[Diagnostics] = None) -> DexpiDocument:
    """
    Parse DEXPI 2.0 or Proteus 1.x text into the document model.

    Args:
        xml: Document text
        diagnostics: Warning collector

    Returns:
        Parsed document

    Raises:
        FatalParseError: Malformed XML or missing ProcessModel
        UnsupportedFormatError: Root element is neither DEXPI-Document nor PlantModel
    """
    root = parse_xml(xml)
    info = detect_root_format(root)
    logger.info(f"Detected DEXPI format: {info.format.value} (version {info.detected_version or info.version})")

    if info.format == DexpiFormat.DEXPI_XML:
        return parse_dexpi_root(root, diagnostics)
    if info.format == DexpiFormat.PROTEUS:
        return parse_proteus_root(root, diagnostics)
    raise UnsupportedFormatError(info.root_element)
