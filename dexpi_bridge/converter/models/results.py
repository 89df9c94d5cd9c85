"""
Result models returned by the converter entry points.
"""

from typing import List, Optional
from pydantic import BaseModel, Field

from dexpi_bridge.converter.models.document import ProcessModel
from dexpi_bridge.converter.models.graph import DiagramMode, GraphEdge, GraphNode, GraphSnapshot


class ValidationResult(BaseModel):
    """Outcome of a structural check."""
    valid: bool = True
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.valid = False

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)

    def merge(self, other: "ValidationResult") -> None:
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        self.valid = self.valid and other.valid


class ImportMetadata(BaseModel):
    """Document-level information surfaced to the caller after import."""
    name: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[str] = None
    application_source: Optional[str] = None
    version: Optional[str] = None


class ImportResult(BaseModel):
    """Graph reconstructed from a DEXPI document."""
    nodes: List[GraphNode] = Field(default_factory=list)
    edges: List[GraphEdge] = Field(default_factory=list)
    mode: DiagramMode = DiagramMode.BFD
    metadata: ImportMetadata = Field(default_factory=ImportMetadata)
    warnings: List[str] = Field(default_factory=list)

    def to_snapshot(self) -> GraphSnapshot:
        return GraphSnapshot(nodes=self.nodes, edges=self.edges)


class ExportResult(BaseModel):
    """Serialized DEXPI document plus the degradations recorded while building it."""
    xml: str
    process_model: ProcessModel
    warnings: List[str] = Field(default_factory=list)
