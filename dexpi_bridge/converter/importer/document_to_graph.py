"""
DEXPI document -> diagram graph.

Never raises: unknown classes fall back to mode defaults, unresolvable
port references fall back to id heuristics, and every fallback is
recorded as a warning.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple
import logging
import re

from dexpi_bridge.converter.diagnostics import Diagnostics
from dexpi_bridge.converter.importer.coordinates import CoordinateTransform, transform_for_document
from dexpi_bridge.converter.importer.layout import layout_nodes_without_position
from dexpi_bridge.converter.mapping import taxonomy
from dexpi_bridge.converter.mapping.provider import ConfiguredTaxonomy
from dexpi_bridge.converter.models.document import (
    DexpiDocument,
    DiagramType,
    ExternalPort,
    ProcessConnection,
    ProcessModel,
    ProcessStep,
)
from dexpi_bridge.converter.models.graph import (
    COMPOSITION,
    DIRECTION,
    FLOW_RATE,
    PRESSURE,
    STREAM_TYPE,
    TEMPERATURE,
    DiagramMode,
    GraphEdge,
    GraphNode,
    NozzleInfo,
)
from dexpi_bridge.converter.models.results import ImportMetadata, ImportResult
from dexpi_bridge.interfaces.taxonomy import ITaxonomyProvider
from dexpi_bridge.services.config_service import ConversionParameters, LayoutParameters
from dexpi_bridge.utils.type_utils import format_quantity

logger = logging.getLogger(__name__)

DEFAULT_HANDLE = "default"

_PORT_ID_PATTERN = re.compile(r'^(.+?)_(in|out)_(\d+|default)$')
_DIRECTION_PREFIX = re.compile(r'^(in|out)_')

_DIAGRAM_TYPE_TO_MODE = {
    DiagramType.PID: DiagramMode.PID,
    DiagramType.PFD: DiagramMode.PFD,
    DiagramType.BFD: DiagramMode.BFD,
}


@dataclass(frozen=True)
class PortRef:
    """Node and handle a port id resolves to."""
    node_id: str
    handle: str = DEFAULT_HANDLE


def detect_mode(model: ProcessModel) -> DiagramMode:
    """Explicit diagram type first, else inferred from the step classes."""
    if model.diagram_type is not None:
        return _DIAGRAM_TYPE_TO_MODE[model.diagram_type]
    return taxonomy.detect_mode_from_taxonomy_types(model.step_types())


def extract_handle(port_id: str, node_id: str) -> str:
    """
    Handle name of a port id: "{node}_out_{handle}" -> "handle".

    Ids that do not follow the pattern keep whatever is left after
    stripping the node prefix.
    """
    remainder = port_id[len(node_id) + 1:] if port_id.startswith(f"{node_id}_") else port_id
    handle = _DIRECTION_PREFIX.sub("", remainder)
    return handle or DEFAULT_HANDLE


def extract_node_id(port_id: str) -> Optional[str]:
    """Node id from a "{node}_in_{n}" / "{node}_out_{n}" port id, None if it does not match."""
    match = _PORT_ID_PATTERN.match(port_id)
    return match.group(1) if match else None


def build_port_table(model: ProcessModel) -> Dict[str, PortRef]:
    """
    Map every legal port reference to its node and handle.

    Registered: each step port, each step id, each external port id
    plus its ``_out_default`` / ``_in_default`` aliases, and every
    connection end of the form ``{external}_out_{handle}`` /
    ``{external}_in_{handle}``. External ports carry no port list of
    their own, so handled ends exist only in the connections.
    """
    table: Dict[str, PortRef] = {}
    for step in model.steps:
        for port in step.ports:
            table[port.id] = PortRef(step.id, extract_handle(port.id, step.id))
        table[step.id] = PortRef(step.id)

    external_ids = [ext_port.id for ext_port in model.external_ports]
    for ext_id in external_ids:
        ref = PortRef(ext_id)
        table[ext_id] = ref
        table[f"{ext_id}_out_default"] = ref
        table[f"{ext_id}_in_default"] = ref

    for connection in model.connections:
        for port_id, direction in ((connection.from_port, "out"), (connection.to_port, "in")):
            if port_id in table:
                continue
            for ext_id in external_ids:
                prefix = f"{ext_id}_{direction}_"
                if port_id.startswith(prefix) and len(port_id) > len(prefix):
                    table[port_id] = PortRef(ext_id, port_id[len(prefix):])
                    break
    return table


class GraphBuilder:
    """Builds the diagram graph for one parsed document."""

    def __init__(
        self,
        conversion: Optional[ConversionParameters] = None,
        layout: Optional[LayoutParameters] = None,
        taxonomy_provider: Optional[ITaxonomyProvider] = None,
        diagnostics: Optional[Diagnostics] = None
    ):
        self.conversion = conversion or ConversionParameters()
        self.layout = layout or LayoutParameters()
        self.taxonomy_provider = taxonomy_provider or ConfiguredTaxonomy()
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics(logger)

    # -- node types ----------------------------------------------------------

    def resolve_node_type(self, step: ProcessStep, mode: DiagramMode) -> Tuple[str, Optional[str], Optional[int]]:
        """
        Resolve the diagram node type of a step.

        Order: original element type if still legal in the mode; in P&ID
        mode the rendering category of the legacy class; the legacy class
        table; the taxonomy class table; the mode fallback.

        Returns:
            (node type, category, symbol index)
        """
        original = step.original_element_type
        provider = self.taxonomy_provider

        if original and provider.is_node_type_valid(original, mode.value):
            return original, None, None

        category_missed = False
        if mode == DiagramMode.PID and original:
            category = taxonomy.legacy_class_to_category(original)
            node_type = taxonomy.category_to_node_type(category) if category else None
            if node_type and provider.is_node_type_valid(node_type, mode.value):
                return node_type, category, taxonomy.legacy_class_to_symbol_index(original)
            category_missed = True

        node_type = self._resolve_without_category(step, mode)
        if category_missed:
            self.diagnostics.structural(
                f'No DEXPI category mapping for ComponentClass "{original}" - '
                f'using simple node type "{node_type}"'
            )
        return node_type, None, None

    def _resolve_without_category(self, step: ProcessStep, mode: DiagramMode) -> str:
        legacy_type = taxonomy.legacy_class_to_node_type(step.original_element_type)
        if legacy_type and self.taxonomy_provider.is_node_type_valid(legacy_type, mode.value):
            return legacy_type

        mapped = taxonomy.taxonomy_to_node_type(step.taxonomy_type, mode)
        if mapped:
            return mapped

        fallback = taxonomy.fallback_node_type(mode)
        self.diagnostics.structural(
            f'Unknown DEXPI type "{step.taxonomy_type}" for step "{step.name}" - '
            f'using fallback type "{fallback}"'
        )
        return fallback

    # -- nodes ---------------------------------------------------------------

    def step_to_node(self, step: ProcessStep, mode: DiagramMode, transform: CoordinateTransform) -> GraphNode:
        node_type, category, symbol_index = self.resolve_node_type(step, mode)

        x, y, width, height = 0.0, 0.0, None, None
        if step.layout is not None:
            x, y = transform.forward(step.layout.x, step.layout.y)
            width = transform.length(step.layout.width)
            height = transform.length(step.layout.height)

        return GraphNode(
            id=step.id,
            type=node_type,
            x=x,
            y=y,
            width=width,
            height=height,
            label=self._label(step),
            description=step.description,
            properties={p.name: format_quantity(p.value, p.unit) for p in step.parameters},
            category=category,
            symbol_index=symbol_index,
            nozzles=[
                NozzleInfo(id=p.id, label=p.name, direction=p.direction.value)
                for p in step.ports if p.nozzle
            ],
        )

    def _label(self, step: ProcessStep) -> Optional[str]:
        """Step name, except the node-type placeholder written for unlabelled nodes."""
        original = step.original_element_type
        if original and step.name == original and (
            taxonomy.is_node_type_supported(original)
            or any(self.taxonomy_provider.is_node_type_valid(original, mode.value) for mode in DiagramMode)
        ):
            return None
        return step.name or None

    def external_port_to_node(self, port: ExternalPort, transform: CoordinateTransform) -> GraphNode:
        boundary_types = self.taxonomy_provider.boundary_node_types()
        x, y = (0.0, 0.0)
        if port.layout is not None:
            x, y = transform.forward(port.layout.x, port.layout.y)
        return GraphNode(
            id=port.id,
            type=boundary_types[0] if boundary_types else taxonomy.BOUNDARY_NODE_TYPE,
            x=x,
            y=y,
            label=port.name,
            properties={DIRECTION: port.direction.value},
        )

    # -- edges ---------------------------------------------------------------

    def _resolve_endpoint(
        self,
        port_id: str,
        table: Dict[str, PortRef],
        connection_id: str,
        role: str
    ) -> PortRef:
        ref = table.get(port_id)
        if ref is not None:
            return ref

        node_id = extract_node_id(port_id)
        if node_id is not None:
            self.diagnostics.structural(
                f'Could not find {role} port "{port_id}" for connection "{connection_id}" - '
                f'using node "{node_id}" from port ID pattern'
            )
            return PortRef(node_id)

        self.diagnostics.structural(
            f'Could not find {role} port "{port_id}" for connection "{connection_id}" - '
            f'using port ID as node ID'
        )
        return PortRef(port_id)

    def resolve_edge_type(self, connection: ProcessConnection, mode: DiagramMode) -> str:
        original = connection.original_element_type
        if original and (
            self.taxonomy_provider.is_edge_type_valid(original, mode.value)
            or taxonomy.is_edge_type_supported(original)
        ):
            return original
        return taxonomy.taxonomy_to_edge_type(connection.taxonomy_type) or taxonomy.fallback_edge_type()

    @staticmethod
    def _handle(port_id: str, ref: PortRef, direction: str) -> Optional[str]:
        """Handle to restore on the edge, only for unmodified "{node}_{dir}_{handle}" ids."""
        if ref.handle == DEFAULT_HANDLE:
            return None
        if port_id != f"{ref.node_id}_{direction}_{ref.handle}":
            return None
        return ref.handle

    def connection_to_edge(
        self,
        connection: ProcessConnection,
        table: Dict[str, PortRef],
        mode: DiagramMode
    ) -> GraphEdge:
        source = self._resolve_endpoint(connection.from_port, table, connection.id, "source")
        target = self._resolve_endpoint(connection.to_port, table, connection.id, "target")

        properties = {STREAM_TYPE: taxonomy.flow_to_stream_type(connection.flow_type)}
        stream = connection.stream_properties
        if stream is not None:
            for key, quantity in ((FLOW_RATE, stream.flow_rate),
                                  (TEMPERATURE, stream.temperature),
                                  (PRESSURE, stream.pressure)):
                if quantity is not None:
                    properties[key] = format_quantity(quantity.value, quantity.unit)
            if stream.composition:
                properties[COMPOSITION] = stream.composition

        return GraphEdge(
            id=connection.id,
            source=source.node_id,
            target=target.node_id,
            source_handle=self._handle(connection.from_port, source, "out"),
            target_handle=self._handle(connection.to_port, target, "in"),
            type=self.resolve_edge_type(connection, mode),
            label=connection.label,
            properties=properties,
            inline_components=list(connection.inline_components),
        )

    # -- document ------------------------------------------------------------

    def build(self, document: DexpiDocument) -> ImportResult:
        """
        Convert a parsed document into nodes and edges.

        Args:
            document: Parsed DEXPI 2.0 or Proteus document

        Returns:
            ImportResult (warnings are collected in self.diagnostics)
        """
        model = document.process_model
        mode = detect_mode(model)
        transform = transform_for_document(document, self.conversion)

        nodes = [self.step_to_node(step, mode, transform) for step in model.steps]
        nodes.extend(self.external_port_to_node(port, transform) for port in model.external_ports)

        table = build_port_table(model)
        edges = [self.connection_to_edge(c, table, mode) for c in model.connections]

        layout_nodes_without_position(nodes, self.layout)

        metadata = model.metadata
        logger.info(
            f"Imported '{model.name}' as {mode.value}: {len(nodes)} nodes, {len(edges)} edges, "
            f"{len(self.diagnostics)} warnings"
        )
        return ImportResult(
            nodes=nodes,
            edges=edges,
            mode=mode,
            metadata=ImportMetadata(
                name=model.name,
                description=model.description,
                created_at=metadata.created_at if metadata else None,
                application_source=metadata.application_source if metadata else None,
                version=document.version,
            ),
            warnings=list(self.diagnostics.messages),
        )


def build_graph(
    document: DexpiDocument,
    conversion: Optional[ConversionParameters] = None,
    layout: Optional[LayoutParameters] = None,
    taxonomy_provider: Optional[ITaxonomyProvider] = None,
    diagnostics: Optional[Diagnostics] = None
) -> ImportResult:
    """Convert a parsed document into an ImportResult."""
    builder = GraphBuilder(conversion, layout, taxonomy_provider, diagnostics)
    return builder.build(document)
