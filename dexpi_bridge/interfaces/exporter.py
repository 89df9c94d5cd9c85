"""
Interface for graph exporters.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from dexpi_bridge.converter.models.graph import DiagramMode, GraphSnapshot
from dexpi_bridge.converter.models.results import ExportResult


class IExporter(ABC):
    """Interface for exporting a diagram graph to an interchange document."""

    @abstractmethod
    def export(
        self,
        snapshot: GraphSnapshot,
        mode: DiagramMode
    ) -> ExportResult:
        """Convert a graph snapshot to a serialized document."""
        pass

    @abstractmethod
    def export_to_file(
        self,
        snapshot: GraphSnapshot,
        mode: DiagramMode,
        output_path: Path
    ) -> List[str]:
        """Write the serialized document and return the export warnings."""
        pass

    @abstractmethod
    def can_export(self, mode: DiagramMode) -> bool:
        """Whether the mode has a native interchange representation."""
        pass
