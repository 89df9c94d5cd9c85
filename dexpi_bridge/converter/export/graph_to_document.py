"""
Graph -> DEXPI process model.

Export never fails: unsupported node and edge types degrade to generic
DEXPI classes and every degradation is recorded as a warning.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
import logging
import uuid

from pydantic import BaseModel, Field

from dexpi_bridge.converter.diagnostics import Diagnostics
from dexpi_bridge.converter.mapping import taxonomy
from dexpi_bridge.converter.mapping.provider import ConfiguredTaxonomy
from dexpi_bridge.converter.models.document import (
    DiagramType,
    ExternalPort,
    FlowType,
    Layout,
    Parameter,
    PhysicalQuantity,
    Port,
    PortDirection,
    ProcessConnection,
    ProcessModel,
    ProcessModelMetadata,
    ProcessStep,
    StreamProperties,
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
    GraphSnapshot,
)
from dexpi_bridge.interfaces.taxonomy import ITaxonomyProvider
from dexpi_bridge.services.config_service import ConversionParameters
from dexpi_bridge.utils.type_utils import parse_quantity

logger = logging.getLogger(__name__)

DEFAULT_HANDLE = "default"

PLAYGROUND_WARNING = (
    "Playground mode is not a standard DEXPI diagram type - export may not be fully compliant"
)


class ConvertOptions(BaseModel):
    """Caller-supplied document attributes for an export."""
    name: Optional[str] = Field(None, description="Model name; defaults to '<diagram type> Diagram'")
    description: Optional[str] = None
    model_id: Optional[str] = Field(None, description="Model id; a random id is generated when omitted")
    timestamp: Optional[str] = Field(None, description="ISO timestamp for created/updated metadata")


def unsupported_node_message(node: GraphNode) -> str:
    return (
        f'Node "{node.label or node.id}" has unsupported type "{node.type}" - '
        f'will be exported as generic process step'
    )


def unsupported_edge_message(edge: GraphEdge) -> str:
    return (
        f'Edge "{edge.label or edge.id}" has unsupported type "{edge.type}" - '
        f'will be exported as material flow'
    )


def mode_to_diagram_type(mode: DiagramMode) -> DiagramType:
    """pfd -> PFD, pid -> P&ID, everything else BFD."""
    mode = DiagramMode(mode)
    if mode == DiagramMode.PFD:
        return DiagramType.PFD
    if mode == DiagramMode.PID:
        return DiagramType.PID
    return DiagramType.BFD


def source_port_id(edge: GraphEdge) -> str:
    return f"{edge.source}_out_{edge.source_handle or DEFAULT_HANDLE}"


def target_port_id(edge: GraphEdge) -> str:
    return f"{edge.target}_in_{edge.target_handle or DEFAULT_HANDLE}"


class ProcessModelBuilder:
    """
    Builds a ProcessModel from one graph snapshot.

    Ports are synthesized from edges: every edge contributes an outlet
    ``{source}_out_{handle}`` on its source and an inlet
    ``{target}_in_{handle}`` on its target, registered once per owner.
    """

    def __init__(
        self,
        conversion: Optional[ConversionParameters] = None,
        taxonomy_provider: Optional[ITaxonomyProvider] = None,
        diagnostics: Optional[Diagnostics] = None
    ):
        self.conversion = conversion or ConversionParameters()
        self.taxonomy_provider = taxonomy_provider or ConfiguredTaxonomy()
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics(logger)

    # -- ports ---------------------------------------------------------------

    def build_port_map(self, snapshot: GraphSnapshot) -> Dict[str, List[Port]]:
        port_map: Dict[str, List[Port]] = {node.id: [] for node in snapshot.nodes}

        for edge in snapshot.edges:
            flow_type = taxonomy.stream_type_to_flow(edge.property_value(STREAM_TYPE))
            self._register_port(port_map, Port(
                id=source_port_id(edge),
                name=edge.source_handle or "Output",
                direction=PortDirection.OUTLET,
                flow_type=flow_type,
                owner_step_id=edge.source,
            ))
            self._register_port(port_map, Port(
                id=target_port_id(edge),
                name=edge.target_handle or "Input",
                direction=PortDirection.INLET,
                flow_type=flow_type,
                owner_step_id=edge.target,
            ))

        return port_map

    @staticmethod
    def _register_port(port_map: Dict[str, List[Port]], port: Port) -> None:
        ports = port_map.setdefault(port.owner_step_id, [])
        if all(existing.id != port.id for existing in ports):
            ports.append(port)

    # -- nodes ---------------------------------------------------------------

    def node_to_step(self, node: GraphNode, ports: List[Port]) -> ProcessStep:
        """
        One ProcessStep per process node.

        Name is required, so unlabelled nodes are named after their type;
        the importer reads that placeholder back as no label. A label
        spelled exactly like the node type is therefore not preserved.
        """
        taxonomy_type = taxonomy.diagram_type_to_taxonomy(node.type)
        if taxonomy_type is None:
            self.diagnostics.structural(unsupported_node_message(node))
            taxonomy_type = taxonomy.GENERIC_PROCESS_STEP

        parameters = [
            Parameter(name=key, value=value)
            for key, value in node.properties.items()
            if value
        ]

        return ProcessStep(
            id=node.id,
            taxonomy_type=taxonomy_type,
            name=node.label or node.type,
            description=node.description,
            ports=ports,
            parameters=parameters,
            layout=Layout(x=node.x, y=node.y, width=node.width, height=node.height),
            original_element_type=node.type,
        )

    def boundary_direction(self, node: GraphNode) -> PortDirection:
        """
        Explicit ``direction`` property, else the x-position heuristic.

        Nodes left of ``boundary_inlet_max_x`` are feeds (inlets); anything
        further right is a product (outlet).
        """
        explicit = node.properties.get(DIRECTION)
        if explicit:
            try:
                return PortDirection(explicit.strip().lower())
            except ValueError:
                self.diagnostics.structural(
                    f'Boundary node "{node.label or node.id}" has unknown direction "{explicit}" - '
                    f'inferring from position'
                )
        if node.x < self.conversion.boundary_inlet_max_x:
            return PortDirection.INLET
        return PortDirection.OUTLET

    def node_to_external_port(self, node: GraphNode) -> ExternalPort:
        return ExternalPort(
            id=node.id,
            name=node.label or "External",
            direction=self.boundary_direction(node),
            flow_type=FlowType.MATERIAL,
            layout=Layout(x=node.x, y=node.y, width=node.width, height=node.height),
        )

    # -- edges ---------------------------------------------------------------

    def _quantity(self, edge: GraphEdge, key: str) -> Optional[PhysicalQuantity]:
        text = edge.property_value(key)
        if text is None:
            return None
        parsed = parse_quantity(text)
        if parsed is None:
            self.diagnostics.structural(
                f'Edge "{edge.id}" has unparseable {key} "{text}" - value not exported'
            )
            return None
        value, unit = parsed
        return PhysicalQuantity(value=value, unit=unit)

    def stream_properties(self, edge: GraphEdge) -> Optional[StreamProperties]:
        properties = StreamProperties(
            flow_rate=self._quantity(edge, FLOW_RATE),
            temperature=self._quantity(edge, TEMPERATURE),
            pressure=self._quantity(edge, PRESSURE),
            composition=edge.property_value(COMPOSITION),
        )
        return None if properties.is_empty() else properties

    def edge_to_connection(self, edge: GraphEdge, node_ids: set) -> ProcessConnection:
        for endpoint in (edge.source, edge.target):
            if endpoint not in node_ids:
                self.diagnostics.structural(
                    f'Edge "{edge.id}" references unknown node "{endpoint}"'
                )

        taxonomy_type = taxonomy.edge_type_to_taxonomy(edge.type)
        if taxonomy_type is None:
            self.diagnostics.structural(unsupported_edge_message(edge))
            taxonomy_type = taxonomy.MATERIAL_FLOW

        return ProcessConnection(
            id=edge.id,
            taxonomy_type=taxonomy_type,
            from_port=source_port_id(edge),
            to_port=target_port_id(edge),
            flow_type=taxonomy.stream_type_to_flow(edge.property_value(STREAM_TYPE)),
            label=edge.label,
            stream_properties=self.stream_properties(edge),
            original_element_type=edge.type,
            inline_components=list(edge.inline_components),
        )

    # -- model ---------------------------------------------------------------

    def build(
        self,
        snapshot: GraphSnapshot,
        mode: DiagramMode,
        options: Optional[ConvertOptions] = None
    ) -> ProcessModel:
        """
        Convert a snapshot into a process model.

        Args:
            snapshot: Nodes and edges of the diagram
            mode: Diagram mode the snapshot was drawn in
            options: Name, description, id and timestamp overrides

        Returns:
            Process model (warnings are collected in self.diagnostics)
        """
        mode = DiagramMode(mode)
        options = options or ConvertOptions()
        diagram_type = mode_to_diagram_type(mode)

        if mode == DiagramMode.PLAYGROUND:
            self.diagnostics.semantic(PLAYGROUND_WARNING)

        boundary_nodes = [n for n in snapshot.nodes if self.taxonomy_provider.is_boundary(n.type)]
        step_nodes = [n for n in snapshot.nodes if not self.taxonomy_provider.is_boundary(n.type)]
        port_map = self.build_port_map(snapshot)
        node_ids = set(snapshot.node_ids())

        timestamp = options.timestamp or datetime.now(timezone.utc).isoformat()
        model = ProcessModel(
            id=options.model_id or f"pm_{uuid.uuid4().hex[:12]}",
            name=options.name or f"{diagram_type.value} Diagram",
            description=options.description,
            diagram_type=diagram_type,
            steps=[self.node_to_step(n, port_map.get(n.id, [])) for n in step_nodes],
            external_ports=[self.node_to_external_port(n) for n in boundary_nodes],
            connections=[self.edge_to_connection(e, node_ids) for e in snapshot.edges],
            metadata=ProcessModelMetadata(
                created_at=timestamp,
                updated_at=timestamp,
                application_source=self.conversion.application_source,
            ),
        )

        logger.info(
            f"Built {diagram_type.value} process model '{model.name}': {len(model.steps)} steps, "
            f"{len(model.external_ports)} external ports, {len(model.connections)} connections"
        )
        return model


def build_process_model(
    snapshot: GraphSnapshot,
    mode: DiagramMode,
    options: Optional[ConvertOptions] = None,
    conversion: Optional[ConversionParameters] = None,
    taxonomy_provider: Optional[ITaxonomyProvider] = None
) -> Tuple[ProcessModel, List[str]]:
    """
    Convert a graph snapshot into a process model.

    Returns:
        (process model, warnings)
    """
    diagnostics = Diagnostics(logger)
    builder = ProcessModelBuilder(conversion, taxonomy_provider, diagnostics)
    model = builder.build(snapshot, mode, options)
    return model, list(diagnostics.messages)
