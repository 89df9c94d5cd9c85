"""
DEXPI bridge - both conversion directions behind one facade.

Export: graph snapshot -> process model -> DEXPI 2.0 XML.
Import: DEXPI 2.0 or Proteus 1.x XML -> document model -> graph.
"""

from pathlib import Path
from typing import List, Optional, Union
import logging

from dexpi_bridge.converter.diagnostics import Diagnostics
from dexpi_bridge.converter.errors import FatalParseError
from dexpi_bridge.converter.export.graph_to_document import ConvertOptions, ProcessModelBuilder
from dexpi_bridge.converter.importer.document_to_graph import GraphBuilder
from dexpi_bridge.converter.mapping.provider import ConfiguredTaxonomy
from dexpi_bridge.converter.models.document import DexpiDocument
from dexpi_bridge.converter.models.graph import DiagramMode, GraphSnapshot
from dexpi_bridge.converter.models.results import ExportResult, ImportResult, ValidationResult
from dexpi_bridge.converter.validation.validator import can_export, validate_dexpi_xml, validate_for_import
from dexpi_bridge.converter.xml.detection import parse_document
from dexpi_bridge.converter.xml.serializer import serialize_document
from dexpi_bridge.interfaces.exporter import IExporter
from dexpi_bridge.interfaces.importer import IImporter
from dexpi_bridge.interfaces.taxonomy import ITaxonomyProvider
from dexpi_bridge.services.config_service import AppConfig

logger = logging.getLogger(__name__)


class DexpiExporter(IExporter):
    """
    Exports diagram graphs as DEXPI 2.0 XML.

    Never raises for graph content: unsupported types and dangling edges
    degrade to fallbacks and are reported in ExportResult.warnings.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        taxonomy_provider: Optional[ITaxonomyProvider] = None
    ):
        """
        Initialize exporter.

        Args:
            config: Application configuration (defaults when omitted)
            taxonomy_provider: Legal element types (default: config taxonomy section)
        """
        self.config = config or AppConfig()
        self.taxonomy_provider = taxonomy_provider or ConfiguredTaxonomy(self.config.taxonomy)

    def export(
        self,
        snapshot: GraphSnapshot,
        mode: DiagramMode,
        options: Optional[ConvertOptions] = None
    ) -> ExportResult:
        """
        Convert a graph snapshot to DEXPI XML.

        Args:
            snapshot: Diagram nodes and edges
            mode: Diagram mode the snapshot was drawn in
            options: Name, description, id and timestamp overrides

        Returns:
            ExportResult with the XML text, the process model and the warnings
        """
        diagnostics = Diagnostics(logger)
        builder = ProcessModelBuilder(self.config.conversion, self.taxonomy_provider, diagnostics)
        model = builder.build(snapshot, mode, options)
        xml = serialize_document(model)
        return ExportResult(xml=xml, process_model=model, warnings=list(diagnostics.messages))

    def export_to_file(
        self,
        snapshot: GraphSnapshot,
        mode: DiagramMode,
        output_path: Path,
        options: Optional[ConvertOptions] = None
    ) -> List[str]:
        result = self.export(snapshot, mode, options)
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(result.xml, encoding="utf-8")
        logger.info(f"DEXPI document written to {output_path}")
        return result.warnings

    def can_export(self, mode: DiagramMode) -> bool:
        return can_export(mode)


class DexpiImporter(IImporter):
    """
    Imports DEXPI 2.0 and Proteus 1.x documents into diagram graphs.

    Only fatal conditions raise (FatalParseError); everything else becomes
    a warning on the returned ImportResult.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        taxonomy_provider: Optional[ITaxonomyProvider] = None
    ):
        self.config = config or AppConfig()
        self.taxonomy_provider = taxonomy_provider or ConfiguredTaxonomy(self.config.taxonomy)

    def parse(self, xml: Union[str, bytes], diagnostics: Optional[Diagnostics] = None) -> DexpiDocument:
        """
        Validate and parse document text into the document model.

        Raises:
            FatalParseError: If the document fails structural validation
        """
        diagnostics = diagnostics if diagnostics is not None else Diagnostics(logger)
        validation = validate_dexpi_xml(xml)
        if not validation.valid:
            raise FatalParseError(f"Invalid DEXPI XML: {', '.join(validation.errors)}", validation.errors)

        diagnostics.extend(validation.warnings)
        return parse_document(xml, diagnostics)

    def import_document(self, xml: Union[str, bytes]) -> ImportResult:
        """
        Convert document text into a graph.

        Args:
            xml: DEXPI 2.0 or Proteus 1.x text

        Returns:
            ImportResult with nodes, edges, detected mode, metadata and warnings

        Raises:
            FatalParseError: Malformed XML, unknown root or missing ProcessModel
        """
        diagnostics = Diagnostics(logger)
        document = self.parse(xml, diagnostics)
        builder = GraphBuilder(
            self.config.conversion,
            self.config.layout,
            self.taxonomy_provider,
            diagnostics,
        )
        return builder.build(document)

    def import_file(self, input_path: Path) -> ImportResult:
        input_path = Path(input_path)
        logger.info(f"Importing DEXPI document: {input_path}")
        return self.import_document(input_path.read_bytes())

    def validate(self, xml: Union[str, bytes]) -> ValidationResult:
        return validate_for_import(xml)


# ============================================================================
# Convenience functions
# ============================================================================

def export_to_dexpi(
    snapshot: GraphSnapshot,
    mode: Union[DiagramMode, str],
    name: Optional[str] = None,
    description: Optional[str] = None,
    config: Optional[AppConfig] = None
) -> ExportResult:
    """
    Export a graph snapshot as DEXPI 2.0 XML.

    Args:
        snapshot: Diagram nodes and edges
        mode: Diagram mode ("bfd", "pfd", "pid" or "playground")
        name: Process model name (default: "<diagram type> Diagram")
        description: Optional process model description
        config: Application configuration

    Returns:
        ExportResult
    """
    exporter = DexpiExporter(config)
    return exporter.export(snapshot, DiagramMode(mode), ConvertOptions(name=name, description=description))


def import_from_dexpi(xml: Union[str, bytes], config: Optional[AppConfig] = None) -> ImportResult:
    """Import DEXPI 2.0 or Proteus 1.x text; raises FatalParseError on fatal problems."""
    return DexpiImporter(config).import_document(xml)


def parse_dexpi_to_model(xml: Union[str, bytes]) -> DexpiDocument:
    """Parse document text into the document model without building a graph."""
    return DexpiImporter().parse(xml)


def validate(xml: Union[str, bytes]) -> ValidationResult:
    """Structural and reference checks on document text."""
    return validate_for_import(xml)
