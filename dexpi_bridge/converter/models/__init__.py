"""
Data models for dexpi-bridge using Pydantic for type safety and validation.
"""

from .document import (
    DexpiDocument,
    DexpiFormat,
    DiagramType,
    ExternalPort,
    FlowType,
    InlineComponent,
    Layout,
    Parameter,
    PhysicalQuantity,
    Point,
    Port,
    PortDirection,
    ProcessConnection,
    ProcessModel,
    ProcessModelMetadata,
    ProcessStep,
    StreamProperties,
)
from .graph import DiagramMode, GraphEdge, GraphNode, GraphSnapshot, NozzleInfo
from .results import ExportResult, ImportMetadata, ImportResult, ValidationResult

__all__ = [
    "DexpiDocument",
    "DexpiFormat",
    "DiagramType",
    "ExternalPort",
    "FlowType",
    "InlineComponent",
    "Layout",
    "Parameter",
    "PhysicalQuantity",
    "Point",
    "Port",
    "PortDirection",
    "ProcessConnection",
    "ProcessModel",
    "ProcessModelMetadata",
    "ProcessStep",
    "StreamProperties",
    "DiagramMode",
    "GraphEdge",
    "GraphNode",
    "GraphSnapshot",
    "NozzleInfo",
    "ExportResult",
    "ImportMetadata",
    "ImportResult",
    "ValidationResult",
]
