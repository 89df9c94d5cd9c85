"""
dexpi-bridge - Process Diagram Interchange

Converts interactive process-diagram graphs (BFD, PFD, P&ID) to DEXPI XML
and back, supporting the DEXPI 2.0 schema and the legacy Proteus 1.x schema.
"""

__version__ = "2.0.0"

from .converter.bridge import (
    DexpiExporter,
    DexpiImporter,
    export_to_dexpi,
    import_from_dexpi,
    parse_dexpi_to_model,
    validate,
)
from .converter.errors import DexpiBridgeError, FatalParseError, UnsupportedFormatError
from .converter.models.graph import DiagramMode, GraphEdge, GraphNode, GraphSnapshot
from .converter.models.results import ExportResult, ImportResult, ValidationResult
from .converter.xml.detection import detect_format

__all__ = [
    "DexpiExporter",
    "DexpiImporter",
    "export_to_dexpi",
    "import_from_dexpi",
    "parse_dexpi_to_model",
    "validate",
    "detect_format",
    "DexpiBridgeError",
    "FatalParseError",
    "UnsupportedFormatError",
    "DiagramMode",
    "GraphEdge",
    "GraphNode",
    "GraphSnapshot",
    "ExportResult",
    "ImportResult",
    "ValidationResult",
]
