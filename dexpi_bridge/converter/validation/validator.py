"""
Structural validation of DEXPI documents and exportable graphs.

Checks well-formedness, root identity and the presence and identity of the
process model elements. No XSD validation is attempted.
"""

from collections import Counter
from typing import List, Optional, Union
import logging

from dexpi_bridge.converter.errors import FatalParseError, UnsupportedFormatError
from dexpi_bridge.converter.diagnostics import Diagnostics
from dexpi_bridge.converter.export.graph_to_document import PLAYGROUND_WARNING, unsupported_node_message
from dexpi_bridge.converter.mapping import taxonomy
from dexpi_bridge.converter.mapping.provider import ConfiguredTaxonomy
from dexpi_bridge.converter.models.document import DexpiDocument, DexpiFormat, DiagramType, FlowType
from dexpi_bridge.converter.models.graph import DiagramMode, GraphSnapshot
from dexpi_bridge.converter.models.results import ValidationResult
from dexpi_bridge.converter.xml.detection import detect_root_format, parse_document
from dexpi_bridge.converter.xml.dexpi_parser import find_process_model_node
from dexpi_bridge.converter.xml.grammar import DEXPI_NAMESPACE, decode_object
from dexpi_bridge.converter.xml.proteus_parser import PLANT_MODEL_ROOT
from dexpi_bridge.converter.xml.serializer import DEXPI_VERSION, ROOT_ELEMENT
from dexpi_bridge.converter.xml.tree import XmlNode, parse_xml
from dexpi_bridge.interfaces.taxonomy import ITaxonomyProvider
from dexpi_bridge.utils.graph_theory import ProcessGraphAnalyzer

logger = logging.getLogger(__name__)

EXPORTABLE_MODES = (DiagramMode.BFD, DiagramMode.PFD, DiagramMode.PID)

_STANDARD_DIAGRAM_TYPES = {t.value for t in DiagramType}
_STANDARD_FLOW_TYPES = {t.value for t in FlowType}


# ============================================================================
# XML text
# ============================================================================

def _validate_legacy(root: XmlNode, result: ValidationResult) -> None:
    if root.name != PLANT_MODEL_ROOT:
        result.add_error(f"Expected root element '{PLANT_MODEL_ROOT}', found '{root.name}'")
        return

    plant_info = root.child("PlantInformation")
    if plant_info is None:
        result.add_warning("PlantInformation element is missing")
    elif not plant_info.attr("SchemaVersion"):
        result.add_warning("SchemaVersion attribute is missing")

    equipment = root.children("Equipment")
    if not equipment and not root.children("PipingNetworkSystem"):
        result.add_warning("No Equipment or PipingNetworkSystem elements found")

    for node in equipment:
        if not node.attr("ID"):
            result.add_error("Equipment element is missing ID attribute")
        elif not node.attr("ComponentClass"):
            result.add_warning(f"Equipment '{node.attr('ID')}' is missing ComponentClass attribute")


def _validate_current(root: XmlNode, result: ValidationResult) -> None:
    if root.name != ROOT_ELEMENT:
        result.add_error(f"Expected root element '{ROOT_ELEMENT}', found '{root.name}'")
        return

    if root.namespace != DEXPI_NAMESPACE:
        result.add_warning(
            f"DEXPI namespace mismatch: expected '{DEXPI_NAMESPACE}', found '{root.namespace or 'none'}'"
        )

    version = root.attr("version")
    if version is None:
        result.add_warning("DEXPI version attribute is missing")
    elif version != DEXPI_VERSION:
        result.add_warning(f"DEXPI version mismatch: expected '{DEXPI_VERSION}', found '{version}'")

    model_node = find_process_model_node(root)
    if model_node is None:
        result.add_error("No ProcessModel object found in document")
        return

    model = decode_object(model_node)
    if not model.id:
        result.add_error("ProcessModel is missing required 'id' attribute")
    if not model.text("Name"):
        result.add_warning("ProcessModel is missing Name property")

    diagram_type = model.text("DiagramType")
    if diagram_type and diagram_type.upper() not in {t.upper() for t in _STANDARD_DIAGRAM_TYPES}:
        result.add_warning(
            f"DiagramType '{diagram_type}' is not a standard type (expected BFD, PFD, or P&ID)"
        )

    for step in model.components("ProcessSteps"):
        if not step.id:
            result.add_error("ProcessStep is missing required 'id' attribute")
            continue
        if not step.type:
            result.add_error(f"ProcessStep '{step.id}' is missing required 'type' attribute")
        elif not step.type.startswith("Process/"):
            result.add_warning(
                f"ProcessStep '{step.id}' has non-standard type '{step.type}' (should start with 'Process/')"
            )
        if not step.text("Name"):
            result.add_warning(f"ProcessStep '{step.id}' is missing Name property")

    for connection in model.components("ProcessConnections"):
        if not connection.id:
            result.add_error("ProcessConnection is missing required 'id' attribute")
            continue
        if not connection.type:
            result.add_error(f"ProcessConnection '{connection.id}' is missing required 'type' attribute")
        if not connection.text("FromPort"):
            result.add_error(f"ProcessConnection '{connection.id}' is missing FromPort property")
        if not connection.text("ToPort"):
            result.add_error(f"ProcessConnection '{connection.id}' is missing ToPort property")

        flow_type = connection.text("FlowType")
        if flow_type and flow_type.lower() not in _STANDARD_FLOW_TYPES:
            result.add_warning(f"ProcessConnection '{connection.id}' has non-standard FlowType '{flow_type}'")


def validate_dexpi_xml(xml: Union[str, bytes]) -> ValidationResult:
    """
    Check that text is a structurally valid DEXPI 2.0 or Proteus 1.x document.

    Args:
        xml: Document text

    Returns:
        ValidationResult; legacy documents carry an informational warning
    """
    result = ValidationResult()
    try:
        root = parse_xml(xml)
    except FatalParseError as e:
        result.add_error(str(e))
        return result

    info = detect_root_format(root)
    if info.format == DexpiFormat.PROTEUS:
        if info.detected_version:
            result.add_warning(f"DEXPI 1.x format detected (version: {info.detected_version})")
        else:
            result.add_warning("DEXPI 1.x (Proteus Schema) format detected")
        _validate_legacy(root, result)
    elif info.format == DexpiFormat.DEXPI_XML:
        _validate_current(root, result)
    else:
        result.add_error(str(UnsupportedFormatError(info.root_element)))

    logger.debug(f"Validated XML: {len(result.errors)} errors, {len(result.warnings)} warnings")
    return result


# ============================================================================
# Document model
# ============================================================================

def validate_document(document: DexpiDocument) -> ValidationResult:
    """
    Reference checks on a parsed document.

    Duplicate ids, dangling FromPort/ToPort references, an empty model and
    unconnected steps are reported as warnings; none of them block import.
    """
    result = ValidationResult()
    model = document.process_model

    if not model.steps and not model.external_ports:
        result.add_warning("ProcessModel has no process steps or external ports")

    ids: List[str] = [step.id for step in model.steps]
    ids.extend(port.id for step in model.steps for port in step.ports)
    ids.extend(port.id for port in model.external_ports)
    ids.extend(conn.id for conn in model.connections)
    for element_id, count in Counter(ids).items():
        if count > 1:
            result.add_warning(f"Duplicate id '{element_id}' ({count} occurrences)")

    known = set(model.known_port_references())
    for conn in model.connections:
        if conn.from_port not in known:
            result.add_warning(f'Connection "{conn.id}" references unknown source port "{conn.from_port}"')
        if conn.to_port not in known:
            result.add_warning(f'Connection "{conn.id}" references unknown target port "{conn.to_port}"')

    step_ids = {step.id for step in model.steps}
    analyzer = ProcessGraphAnalyzer.from_process_model(model)
    for node_id in analyzer.isolated_nodes():
        if node_id in step_ids:
            result.add_warning(f"ProcessStep '{node_id}' is not connected to any other element")

    return result


def validate_for_import(xml: Union[str, bytes]) -> ValidationResult:
    """
    Everything an import would complain about, without building the graph.

    Runs the XML checks, then parses the document and runs the reference
    checks on the result.
    """
    result = validate_dexpi_xml(xml)
    if not result.valid:
        return result

    diagnostics = Diagnostics(logger)
    try:
        document = parse_document(xml, diagnostics)
    except FatalParseError as e:
        for error in e.errors:
            result.add_error(error)
        return result

    for message in diagnostics:
        if message not in result.warnings:
            result.add_warning(message)
    result.merge(validate_document(document))
    return result


# ============================================================================
# Export side
# ============================================================================

def can_export(mode: Union[DiagramMode, str]) -> bool:
    """Whether a diagram mode has a native DEXPI diagram type."""
    try:
        return DiagramMode(mode) in EXPORTABLE_MODES
    except ValueError:
        return False


def get_export_warnings(
    snapshot: GraphSnapshot,
    mode: Union[DiagramMode, str],
    taxonomy_provider: Optional[ITaxonomyProvider] = None
) -> List[str]:
    """
    Warnings an export of this snapshot would produce, plus connectivity findings.

    Args:
        snapshot: Diagram nodes and edges
        mode: Diagram mode the snapshot was drawn in
        taxonomy_provider: Source of the boundary node types

    Returns:
        Ordered, de-duplicated warning messages
    """
    provider = taxonomy_provider or ConfiguredTaxonomy()
    warnings: List[str] = []

    def add(message: str) -> None:
        if message not in warnings:
            warnings.append(message)

    if not can_export(mode):
        add(PLAYGROUND_WARNING)

    for node in snapshot.nodes:
        if provider.is_boundary(node.type):
            continue
        if taxonomy.diagram_type_to_taxonomy(node.type) is None:
            add(unsupported_node_message(node))

    analyzer = ProcessGraphAnalyzer.from_snapshot(snapshot)
    node_ids = set(snapshot.node_ids())
    for edge_id, source, target in analyzer.dangling_edges():
        for endpoint in (source, target):
            if endpoint not in node_ids:
                add(f'Edge "{edge_id}" references unknown node "{endpoint}"')
    for node_id in analyzer.isolated_nodes():
        add(f'Node "{node_id}" is not connected to any other node')

    return warnings
