"""
Interface for interchange-document importers.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Union

from dexpi_bridge.converter.models.results import ImportResult, ValidationResult


class IImporter(ABC):
    """Interface for importing an interchange document into a diagram graph."""

    @abstractmethod
    def import_document(self, xml: Union[str, bytes]) -> ImportResult:
        """Convert document text to a graph; raises only on fatal parse errors."""
        pass

    @abstractmethod
    def import_file(self, input_path: Path) -> ImportResult:
        """Read and convert a document file."""
        pass

    @abstractmethod
    def validate(self, xml: Union[str, bytes]) -> ValidationResult:
        """Check a document before import."""
        pass
