"""
DEXPI 2.0 parser.

Decodes the ProcessModel Object through the generic grammar and maps it
onto the document model. Every named lookup goes through the property
resolver chain, so producers that spell "processSteps" or "processsteps"
parse the same way; flattened dot-notation leaves (``layout.x``,
``flowRate.value``) are read when the nested Object form is absent.
"""

from typing import Optional, Tuple
import logging

from dexpi_bridge.converter.diagnostics import Diagnostics
from dexpi_bridge.converter.errors import FatalParseError
from dexpi_bridge.converter.mapping.taxonomy import GENERIC_PROCESS_STEP, MATERIAL_FLOW
from dexpi_bridge.converter.models.document import (
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
from dexpi_bridge.converter.xml.grammar import DEXPI_NAMESPACE, DexpiObject, decode_object
from dexpi_bridge.converter.xml.serializer import DEXPI_VERSION, PROCESS_MODEL_TYPE, ROOT_ELEMENT
from dexpi_bridge.converter.xml.tree import XmlNode, parse_xml
from dexpi_bridge.utils.type_utils import coerce_numeric, parse_number

logger = logging.getLogger(__name__)


def find_process_model_node(root: XmlNode) -> Optional[XmlNode]:
    """First Object of type Process/ProcessModel anywhere below the root."""
    for node in root.descendants("Object"):
        if node.attr("type") == PROCESS_MODEL_TYPE:
            return node
    return None


# ============================================================================
# Field helpers
# ============================================================================

def _direction(obj: DexpiObject, owner: str, diagnostics: Diagnostics) -> PortDirection:
    text = obj.text("Direction")
    if text is None:
        return PortDirection.INLET
    try:
        return PortDirection(text.lower())
    except ValueError:
        diagnostics.structural(f"Unknown port direction '{text}' on '{owner}' - treating as inlet")
        return PortDirection.INLET


def _flow_type(obj: DexpiObject) -> FlowType:
    text = obj.text("FlowType")
    if text is None:
        return FlowType.MATERIAL
    try:
        return FlowType(text.lower())
    except ValueError:
        # Reported by the validator
        return FlowType.MATERIAL


def _layout_from_object(obj: DexpiObject) -> Layout:
    return Layout(
        x=obj.number("X") or 0.0,
        y=obj.number("Y") or 0.0,
        width=obj.number("Width"),
        height=obj.number("Height"),
    )


def _layout_from_dot_notation(obj: DexpiObject) -> Optional[Layout]:
    x_text = obj.text("layout.x")
    y_text = obj.text("layout.y")
    if x_text is None and y_text is None:
        return None
    return Layout(
        x=parse_number(x_text) or 0.0,
        y=parse_number(y_text) or 0.0,
        width=parse_number(obj.text("layout.width")),
        height=parse_number(obj.text("layout.height")),
    )


def _layout(obj: DexpiObject) -> Optional[Layout]:
    layout_obj = obj.first_component("Layout")
    if layout_obj is not None:
        return _layout_from_object(layout_obj)
    return _layout_from_dot_notation(obj)


def _quantity(obj: DexpiObject, name: str) -> Optional[PhysicalQuantity]:
    nested = obj.nested(name)
    if nested is None:
        return None
    return PhysicalQuantity(value=nested.number("Value") or 0.0, unit=nested.text("Unit") or "")


def _dotted_quantity(obj: DexpiObject, prefix: str) -> Optional[PhysicalQuantity]:
    value = parse_number(obj.text(f"{prefix}.value"))
    if value is None:
        return None
    return PhysicalQuantity(value=value, unit=obj.text(f"{prefix}.unit") or "")


_STREAM_QUANTITIES: Tuple[Tuple[str, str, str], ...] = (
    ("flow_rate", "FlowRate", "flowRate"),
    ("temperature", "Temperature", "temperature"),
    ("pressure", "Pressure", "pressure"),
)


def _stream_properties(connection: DexpiObject) -> Optional[StreamProperties]:
    container = connection.first_component("StreamProperties", "Properties")
    if container is not None:
        values = {}
        for field_name, nested_name, dotted in _STREAM_QUANTITIES:
            values[field_name] = _quantity(container, nested_name) or _dotted_quantity(container, dotted)
        values["composition"] = container.text("Composition")
        return StreamProperties(**values)

    values = {
        field_name: _dotted_quantity(connection, dotted)
        for field_name, _nested, dotted in _STREAM_QUANTITIES
    }
    if all(v is None for v in values.values()):
        return None
    return StreamProperties(**values)


# ============================================================================
# Object mappers
# ============================================================================

def _parse_port(obj: DexpiObject, step_id: str, index: int, diagnostics: Diagnostics) -> Port:
    port_id = obj.id or f"{step_id}_port_{index}"
    return Port(
        id=port_id,
        name=obj.text("Name") or "Port",
        direction=_direction(obj, port_id, diagnostics),
        flow_type=_flow_type(obj),
        owner_step_id=step_id,
        nozzle=obj.flag("Nozzle"),
    )


def _parse_parameter(obj: DexpiObject) -> Parameter:
    raw = obj.value("Value")
    if isinstance(raw, float):
        value = raw
    else:
        value = coerce_numeric(obj.text("Value") or "")
    return Parameter(name=obj.text("Name") or "Parameter", value=value, unit=obj.text("Unit"))


def _parse_step(obj: DexpiObject, index: int, diagnostics: Diagnostics) -> ProcessStep:
    step_id = obj.id or f"ps_{index}"
    ports = [
        _parse_port(port_obj, step_id, j, diagnostics)
        for j, port_obj in enumerate(obj.components("Ports"))
    ]
    return ProcessStep(
        id=step_id,
        taxonomy_type=obj.type or GENERIC_PROCESS_STEP,
        name=obj.text("Name") or "Unnamed Step",
        description=obj.text("Description"),
        ports=ports,
        parameters=[_parse_parameter(p) for p in obj.components("Parameters")],
        layout=_layout(obj),
        original_element_type=obj.text("OriginalNodeType"),
    )


def _parse_external_port(obj: DexpiObject, index: int, diagnostics: Diagnostics) -> ExternalPort:
    port_id = obj.id or f"ep_{index}"
    return ExternalPort(
        id=port_id,
        name=obj.text("Name") or "External Port",
        direction=_direction(obj, port_id, diagnostics),
        flow_type=_flow_type(obj),
        layout=_layout(obj),
    )


def _parse_inline_component(obj: DexpiObject, connection_id: str, index: int) -> InlineComponent:
    component_class = obj.text("ComponentClass") or "Valve"
    original = obj.nested("OriginalPosition")
    position = obj.number("Position")
    return InlineComponent(
        id=obj.id or f"{connection_id}_inline_{index}",
        component_class=component_class,
        category=obj.text("Category") or "Valves",
        symbol_index=max(0, int(obj.number("SymbolIndex") or 0)),
        label=obj.text("Label"),
        position=min(1.0, max(0.0, 0.5 if position is None else position)),
        original_position=(
            Point(x=original.number("X") or 0.0, y=original.number("Y") or 0.0)
            if original is not None else None
        ),
        rotation=obj.number("Rotation") or 0.0,
    )


def _parse_connection(obj: DexpiObject, index: int) -> ProcessConnection:
    connection_id = obj.id or f"conn_{index}"
    return ProcessConnection(
        id=connection_id,
        taxonomy_type=obj.type or MATERIAL_FLOW,
        from_port=obj.text("FromPort") or "",
        to_port=obj.text("ToPort") or "",
        flow_type=_flow_type(obj),
        label=obj.text("Label"),
        stream_properties=_stream_properties(obj),
        original_element_type=obj.text("OriginalEdgeType"),
        inline_components=[
            _parse_inline_component(c, connection_id, j)
            for j, c in enumerate(obj.components("InlineComponents"))
        ],
    )


def _parse_metadata(obj: DexpiObject) -> ProcessModelMetadata:
    custom = {}
    for attribute in obj.components("CustomAttributes"):
        key = attribute.text("Name")
        if key:
            custom[key] = attribute.text("Value") or ""
    return ProcessModelMetadata(
        created_at=obj.text("CreatedAt"),
        updated_at=obj.text("UpdatedAt"),
        application_source=obj.text("ApplicationSource"),
        custom_attributes=custom,
    )


def _diagram_type(obj: DexpiObject) -> Optional[DiagramType]:
    text = obj.text("DiagramType")
    if text is None:
        return None
    for member in DiagramType:
        if member.value.lower() == text.lower():
            return member
    # Reported by the validator; mode is then inferred from the step classes
    return None


def object_to_process_model(obj: DexpiObject, diagnostics: Optional[Diagnostics] = None) -> ProcessModel:
    """
    Map a decoded ProcessModel Object onto the document model.

    Args:
        obj: Decoded Process/ProcessModel object
        diagnostics: Warning collector (a fresh one is used when None)

    Returns:
        Process model; missing ids receive positional fallbacks
    """
    diagnostics = diagnostics if diagnostics is not None else Diagnostics(logger)
    metadata_obj = obj.first_component("Metadata")

    return ProcessModel(
        id=obj.id or "pm_imported",
        name=obj.text("Name") or "Untitled",
        description=obj.text("Description"),
        diagram_type=_diagram_type(obj),
        steps=[_parse_step(s, i, diagnostics) for i, s in enumerate(obj.components("ProcessSteps"))],
        external_ports=[
            _parse_external_port(p, i, diagnostics)
            for i, p in enumerate(obj.components("ExternalPorts"))
        ],
        connections=[_parse_connection(c, i) for i, c in enumerate(obj.components("ProcessConnections"))],
        metadata=_parse_metadata(metadata_obj) if metadata_obj is not None else None,
    )


def parse_dexpi_root(root: XmlNode, diagnostics: Optional[Diagnostics] = None) -> DexpiDocument:
    """
    Parse an already-loaded DEXPI-Document tree.

    Raises:
        FatalParseError: If the root is not DEXPI-Document or no ProcessModel exists
    """
    diagnostics = diagnostics if diagnostics is not None else Diagnostics(logger)

    if root.name != ROOT_ELEMENT:
        raise FatalParseError(f"Invalid root element: expected '{ROOT_ELEMENT}', found '{root.name}'")
    if root.namespace != DEXPI_NAMESPACE:
        diagnostics.structural(
            f"Unexpected namespace '{root.namespace or ''}' - expected '{DEXPI_NAMESPACE}'"
        )

    model_node = find_process_model_node(root)
    if model_node is None:
        raise FatalParseError("No ProcessModel found in DEXPI document")

    model = object_to_process_model(decode_object(model_node), diagnostics)
    logger.info(
        f"Parsed DEXPI 2.0 model '{model.name}': {len(model.steps)} steps, "
        f"{len(model.external_ports)} external ports, {len(model.connections)} connections"
    )
    return DexpiDocument(
        version=root.attr("version", DEXPI_VERSION),
        process_model=model,
        source_format=DexpiFormat.DEXPI_XML,
    )


def parse_dexpi_xml(xml, diagnostics: Optional[Diagnostics] = None) -> DexpiDocument:
    """
    Parse DEXPI 2.0 XML text.

    Args:
        xml: Document text (str or bytes)
        diagnostics: Warning collector

    Returns:
        Parsed document

    Raises:
        FatalParseError: Malformed XML, wrong root or missing ProcessModel
    """
    return parse_dexpi_root(parse_xml(xml), diagnostics)
