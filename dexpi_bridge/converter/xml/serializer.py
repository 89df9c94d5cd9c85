"""
DEXPI 2.0 serializer.

Maps the document model onto the generic Object/Data/Components grammar
and renders it as indented XML with a namespace/version-stamped root.
"""

from typing import Optional, Union
import logging

from lxml import etree

from dexpi_bridge.converter.models.document import (
    DexpiDocument,
    ExternalPort,
    InlineComponent,
    Layout,
    Parameter,
    PhysicalQuantity,
    Port,
    ProcessConnection,
    ProcessModel,
    ProcessModelMetadata,
    ProcessStep,
    StreamProperties,
)
from dexpi_bridge.converter.xml.grammar import (
    DEXPI_NAMESPACE,
    XSI_NAMESPACE,
    DexpiObject,
    encode_object,
)

logger = logging.getLogger(__name__)

DEXPI_VERSION = "2.0"
DEXPI_SCHEMA_LOCATION = "https://dexpi.org/schema/2.0 DEXPI_XML_Schema.xsd"
ROOT_ELEMENT = "DEXPI-Document"

# Object type strings
PROCESS_MODEL_TYPE = "Process/ProcessModel"
METADATA_TYPE = "Core/Metadata"
CUSTOM_ATTRIBUTE_TYPE = "Core/CustomAttribute"
LAYOUT_TYPE = "Extension/Layout"
EXTERNAL_PORT_TYPE = "Process/ExternalPort"
STREAM_PROPERTIES_TYPE = "Process/StreamProperties"
PHYSICAL_QUANTITY_TYPE = "Core/PhysicalQuantity"
PARAMETER_TYPE = "Process/Parameter"
INLINE_COMPONENT_TYPE = "Process/InlineComponent"


def port_object_type(flow_type: str) -> str:
    """Object type of a step port, e.g. "Process/MaterialPort"."""
    return f"Process/{flow_type[:1].upper()}{flow_type[1:]}Port"


def _layout_object(layout: Layout) -> DexpiObject:
    obj = DexpiObject(type=LAYOUT_TYPE)
    obj.add_data("X", layout.x)
    obj.add_data("Y", layout.y)
    obj.add_data("Width", layout.width)
    obj.add_data("Height", layout.height)
    return obj


def _metadata_object(metadata: ProcessModelMetadata) -> DexpiObject:
    obj = DexpiObject(type=METADATA_TYPE)
    obj.add_data("CreatedAt", metadata.created_at)
    obj.add_data("UpdatedAt", metadata.updated_at)
    obj.add_data("ApplicationSource", metadata.application_source)
    attributes = [
        DexpiObject(type=CUSTOM_ATTRIBUTE_TYPE).add_data("Name", key).add_data("Value", value)
        for key, value in metadata.custom_attributes.items()
    ]
    obj.add_components("CustomAttributes", attributes)
    return obj


def _port_object(port: Port) -> DexpiObject:
    obj = DexpiObject(type=port_object_type(port.flow_type.value), id=port.id)
    obj.add_data("Name", port.name)
    obj.add_data("Direction", port.direction.value)
    obj.add_data("FlowType", port.flow_type.value)
    if port.nozzle:
        obj.add_data("Nozzle", True)
    return obj


def _parameter_object(parameter: Parameter) -> DexpiObject:
    obj = DexpiObject(type=PARAMETER_TYPE)
    obj.add_data("Name", parameter.name)
    obj.add_data("Value", parameter.value)
    obj.add_data("Unit", parameter.unit)
    return obj


def _step_object(step: ProcessStep) -> DexpiObject:
    obj = DexpiObject(type=step.taxonomy_type, id=step.id)
    obj.add_data("Name", step.name)
    obj.add_data("Description", step.description)
    obj.add_data("OriginalNodeType", step.original_element_type)
    if step.layout is not None:
        obj.add_components("Layout", [_layout_object(step.layout)])
    obj.add_components("Ports", [_port_object(p) for p in step.ports])
    obj.add_components("Parameters", [_parameter_object(p) for p in step.parameters])
    return obj


def _external_port_object(port: ExternalPort) -> DexpiObject:
    obj = DexpiObject(type=EXTERNAL_PORT_TYPE, id=port.id)
    obj.add_data("Name", port.name)
    obj.add_data("Direction", port.direction.value)
    obj.add_data("FlowType", port.flow_type.value)
    if port.layout is not None:
        obj.add_components("Layout", [_layout_object(port.layout)])
    return obj


def _quantity_object(quantity: PhysicalQuantity) -> DexpiObject:
    obj = DexpiObject(type=PHYSICAL_QUANTITY_TYPE)
    obj.add_data("Value", quantity.value)
    obj.add_data("Unit", quantity.unit)
    return obj


def _stream_properties_object(properties: StreamProperties) -> DexpiObject:
    obj = DexpiObject(type=STREAM_PROPERTIES_TYPE)
    if properties.flow_rate is not None:
        obj.add_data("FlowRate", _quantity_object(properties.flow_rate))
    if properties.temperature is not None:
        obj.add_data("Temperature", _quantity_object(properties.temperature))
    if properties.pressure is not None:
        obj.add_data("Pressure", _quantity_object(properties.pressure))
    obj.add_data("Composition", properties.composition)
    return obj


def _inline_component_object(component: InlineComponent) -> DexpiObject:
    obj = DexpiObject(type=INLINE_COMPONENT_TYPE, id=component.id)
    obj.add_data("ComponentClass", component.component_class)
    obj.add_data("Category", component.category)
    obj.add_data("SymbolIndex", float(component.symbol_index))
    obj.add_data("Label", component.label)
    obj.add_data("Position", component.position)
    obj.add_data("Rotation", component.rotation)
    if component.original_position is not None:
        original = DexpiObject(type=LAYOUT_TYPE)
        original.add_data("X", component.original_position.x)
        original.add_data("Y", component.original_position.y)
        obj.add_data("OriginalPosition", original)
    return obj


def _connection_object(connection: ProcessConnection) -> DexpiObject:
    obj = DexpiObject(type=connection.taxonomy_type, id=connection.id)
    obj.add_data("FromPort", connection.from_port)
    obj.add_data("ToPort", connection.to_port)
    obj.add_data("FlowType", connection.flow_type.value)
    obj.add_data("Label", connection.label)
    obj.add_data("OriginalEdgeType", connection.original_element_type)
    if connection.stream_properties is not None:
        obj.add_components("StreamProperties", [_stream_properties_object(connection.stream_properties)])
    obj.add_components("InlineComponents", [_inline_component_object(c) for c in connection.inline_components])
    return obj


def process_model_to_object(model: ProcessModel) -> DexpiObject:
    """
    Express a process model in the generic grammar.

    Sections are emitted only when non-empty.

    Args:
        model: Process model to encode

    Returns:
        Root grammar object of type Process/ProcessModel
    """
    obj = DexpiObject(type=PROCESS_MODEL_TYPE, id=model.id)
    obj.add_data("Name", model.name)
    obj.add_data("Description", model.description)
    if model.diagram_type is not None:
        obj.add_data("DiagramType", model.diagram_type.value)
    if model.metadata is not None:
        obj.add_components("Metadata", [_metadata_object(model.metadata)])
    obj.add_components("ProcessSteps", [_step_object(s) for s in model.steps])
    obj.add_components("ExternalPorts", [_external_port_object(p) for p in model.external_ports])
    obj.add_components("ProcessConnections", [_connection_object(c) for c in model.connections])
    return obj


def build_document_element(model: ProcessModel) -> etree._Element:
    """Build the DEXPI-Document root element with the process model inside."""
    root = etree.Element(
        f"{{{DEXPI_NAMESPACE}}}{ROOT_ELEMENT}",
        nsmap={None: DEXPI_NAMESPACE, "xsi": XSI_NAMESPACE}
    )
    root.set(f"{{{XSI_NAMESPACE}}}schemaLocation", DEXPI_SCHEMA_LOCATION)
    root.set("version", DEXPI_VERSION)
    encode_object(process_model_to_object(model), root)
    return root


def serialize_document(document: Union[DexpiDocument, ProcessModel], indent: Optional[str] = "  ") -> str:
    """
    Render a document as DEXPI 2.0 XML text.

    Documents parsed from Proteus 1.x are written in the 2.0 schema.

    Args:
        document: Document or bare process model
        indent: Indentation unit, None for compact output

    Returns:
        XML text with a leading declaration
    """
    model = document.process_model if isinstance(document, DexpiDocument) else document
    root = build_document_element(model)
    if indent:
        etree.indent(root, space=indent)

    xml = etree.tostring(
        root,
        xml_declaration=True,
        encoding="UTF-8",
        pretty_print=bool(indent),
    ).decode("utf-8")

    logger.debug(
        f"Serialized process model '{model.id}': {len(model.steps)} steps, "
        f"{len(model.external_ports)} external ports, {len(model.connections)} connections"
    )
    return xml
