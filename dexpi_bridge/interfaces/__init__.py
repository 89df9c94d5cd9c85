"""
Interfaces for converter components.
"""

from .taxonomy import ITaxonomyProvider
from .exporter import IExporter
from .importer import IImporter

__all__ = ["ITaxonomyProvider", "IExporter", "IImporter"]
