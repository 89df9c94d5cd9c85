"""
DEXPI 1.x (Proteus schema) parser.

Reads a PlantModel document into the same document model as the 2.0
parser:

- top-level ``Equipment`` elements become process steps, their ``Nozzle``
  children become ports
- ``PipingNetworkSystem`` segments become material-flow connections;
  valves and fittings on a segment are attached to its connection as
  inline components
- ``PipeOffPageConnector`` elements become external ports
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import logging
import math
import re

from dexpi_bridge.converter.diagnostics import Diagnostics
from dexpi_bridge.converter.errors import FatalParseError
from dexpi_bridge.converter.mapping import taxonomy
from dexpi_bridge.converter.models.document import (
    DexpiDocument,
    DexpiFormat,
    DiagramType,
    ExternalPort,
    FlowType,
    InlineComponent,
    Layout,
    Parameter,
    Point,
    Port,
    PortDirection,
    ProcessConnection,
    ProcessModel,
    ProcessModelMetadata,
    ProcessStep,
)
from dexpi_bridge.converter.xml.tree import XmlNode, parse_xml
from dexpi_bridge.utils.type_utils import coerce_numeric

logger = logging.getLogger(__name__)

PLANT_MODEL_ROOT = "PlantModel"
DEFAULT_NODE_MARKER = "-DefaultNode"

# Equipment classes that indicate a detailed (P&ID-level) drawing
DETAILED_CLASS_MARKERS = ("Pump", "HeatExchanger", "Column", "Reactor")

_ATTRIBUTE_SUFFIXES = re.compile(r'(AssignmentClass|NumericalValueRepresentation|Specialization)$')
_CAPITALS = re.compile(r'([A-Z])')


@dataclass
class PortEntry:
    """Where a legacy connection id points to."""
    step_id: str
    direction: PortDirection = PortDirection.INLET
    node_index: Optional[int] = None
    position: Optional[Point] = None


@dataclass
class PendingInlineComponent:
    """Valve or fitting read from a segment, before it is placed on a connection."""
    id: str
    component_class: str
    category: str
    symbol_index: int
    label: Optional[str]
    position: Point
    rotation: float
    connection_node_ids: List[str] = field(default_factory=list)

    def place(self, fraction: float) -> InlineComponent:
        return InlineComponent(
            id=self.id,
            component_class=self.component_class,
            category=self.category,
            symbol_index=self.symbol_index,
            label=self.label,
            position=min(1.0, max(0.0, fraction)),
            original_position=self.position,
            rotation=self.rotation,
        )


@dataclass
class PlantInformation:
    """Header attributes of a PlantModel."""
    version: Optional[str] = None
    originating_system: Optional[str] = None
    date: Optional[str] = None
    discipline: Optional[str] = None
    drawing_name: Optional[str] = None


# ============================================================================
# Attribute helpers
# ============================================================================

def generic_attribute(node: XmlNode, name: str) -> Optional[str]:
    """Value of a GenericAttribute in the element's own GenericAttributes sets."""
    for attributes in node.children("GenericAttributes"):
        for attribute in attributes.children("GenericAttribute"):
            if attribute.attr("Name") == name:
                return attribute.attr("Value")
    return None


def format_attribute_name(name: str) -> str:
    """
    Turn an RDL attribute name into a readable parameter name.

    "NominalDiameterNumericalValueRepresentation" -> "Nominal Diameter"
    """
    stripped = _ATTRIBUTE_SUFFIXES.sub("", name)
    return _CAPITALS.sub(r" \1", stripped).strip()


def generic_attributes_to_parameters(node: XmlNode) -> List[Parameter]:
    parameters = []
    for attributes in node.children("GenericAttributes"):
        for attribute in attributes.children("GenericAttribute"):
            name = attribute.attr("Name")
            value = attribute.attr("Value")
            if not name or not value:
                continue
            # Tag names are used as the step name
            if "TagName" in name:
                continue
            parameters.append(Parameter(
                name=format_attribute_name(name),
                value=coerce_numeric(value),
                unit=attribute.attr("Units"),
            ))
    return parameters


def _location(node: XmlNode) -> Optional[Point]:
    location = node.find("Position/Location")
    if location is None:
        return None
    return Point(x=location.attr_float("X"), y=location.attr_float("Y"))


def _rotation(node: XmlNode) -> float:
    reference = node.find("Position/Reference")
    if reference is None:
        return 0.0
    return math.degrees(math.atan2(reference.attr_float("Y", 0.0), reference.attr_float("X", 1.0)))


def read_plant_information(root: XmlNode) -> Optional[PlantInformation]:
    plant_info = root.child("PlantInformation")
    if plant_info is None:
        return None
    drawing = root.child("Drawing")
    return PlantInformation(
        version=plant_info.attr("ApplicationVersion") or plant_info.attr("SchemaVersion"),
        originating_system=plant_info.attr("OriginatingSystem"),
        date=plant_info.attr("Date"),
        discipline=plant_info.attr("Discipline"),
        drawing_name=drawing.attr("Name") if drawing is not None else None,
    )


def top_level_equipment(root: XmlNode) -> List[XmlNode]:
    """
    Equipment elements directly below the root.

    Templates without a ComponentClass and sub-components (chambers, tube
    bundles, impellers) are skipped.
    """
    result = []
    for equipment in root.children("Equipment"):
        component_class = equipment.attr("ComponentClass")
        if not component_class:
            continue
        if taxonomy.is_skipped_sub_component(component_class):
            continue
        result.append(equipment)
    return result


def detect_diagram_type(equipment: List[XmlNode], discipline: Optional[str]) -> DiagramType:
    """
    Classify the drawing.

    An explicit discipline wins. Otherwise nozzles or detailed equipment
    classes imply P&ID; anything else is treated as BFD.
    """
    if discipline == "PID":
        return DiagramType.PID
    if discipline == "PFD":
        return DiagramType.PFD
    if discipline == "BFD":
        return DiagramType.BFD

    for node in equipment:
        if any(True for _ in node.descendants("Nozzle")):
            return DiagramType.PID
        component_class = node.attr("ComponentClass") or ""
        if any(marker in component_class for marker in DETAILED_CLASS_MARKERS):
            return DiagramType.PID
    return DiagramType.BFD


# ============================================================================
# Parser
# ============================================================================

class ProteusParser:
    """
    Single-use parser for one PlantModel tree.

    Connection ids in Proteus refer to nozzles, piping nodes or components;
    every id seen while reading equipment and piping components is recorded
    in the port table so segment endpoints can be resolved afterwards.
    """

    def __init__(self, root: XmlNode, diagnostics: Optional[Diagnostics] = None):
        self.root = root
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics(logger)
        self.port_table: Dict[str, PortEntry] = {}
        self.steps: List[ProcessStep] = []
        self.connections: List[ProcessConnection] = []
        self.external_ports: List[ExternalPort] = []

    def parse(self) -> DexpiDocument:
        if self.root.name != PLANT_MODEL_ROOT:
            raise FatalParseError(
                f"Expected root element '{PLANT_MODEL_ROOT}', found '{self.root.name}'"
            )

        info = read_plant_information(self.root)
        if info is None:
            self.diagnostics.structural("PlantInformation element is missing")
            info = PlantInformation()

        equipment = top_level_equipment(self.root)
        for index, node in enumerate(equipment):
            self.steps.append(self._parse_equipment(node, index))

        piping_index = 0
        for system in self.root.descendants("PipingNetworkSystem"):
            inline_by_segment, piping_steps = self._parse_piping_components(system, piping_index)
            self.steps.extend(piping_steps)
            piping_index += len(piping_steps)
            self._parse_external_connectors(system)
            self._parse_segment_connections(system, inline_by_segment)

        model = ProcessModel(
            id="pm_imported",
            name=info.drawing_name or "Imported DEXPI Diagram",
            diagram_type=detect_diagram_type(equipment, info.discipline),
            steps=self.steps,
            connections=self.connections,
            external_ports=self.external_ports,
            metadata=ProcessModelMetadata(
                application_source=info.originating_system,
                created_at=info.date,
            ),
        )
        logger.info(
            f"Parsed Proteus model: {len(model.steps)} steps, {len(model.external_ports)} "
            f"external ports, {len(model.connections)} connections ({model.diagram_type.value})"
        )
        return DexpiDocument(
            version=info.version or "1.x",
            process_model=model,
            source_format=DexpiFormat.PROTEUS,
        )

    # -- equipment -----------------------------------------------------------

    def _parse_equipment(self, node: XmlNode, index: int) -> ProcessStep:
        step_id = node.attr("ID") or f"equipment_{index}"
        component_class = node.attr("ComponentClass") or "Equipment"
        location = _location(node)

        ports: List[Port] = []
        for nozzle_index, nozzle in enumerate(node.children("Nozzle")):
            ports.extend(self._parse_nozzle(nozzle, step_id, nozzle_index))

        self.port_table.setdefault(step_id, PortEntry(step_id=step_id))
        logger.debug(f"Equipment '{step_id}' ({component_class}) with {len(ports)} ports")

        return ProcessStep(
            id=step_id,
            taxonomy_type=taxonomy.legacy_class_to_taxonomy(component_class),
            name=generic_attribute(node, "TagNameAssignmentClass") or component_class,
            ports=ports,
            parameters=generic_attributes_to_parameters(node),
            layout=Layout(x=location.x, y=location.y) if location else None,
            original_element_type=component_class,
        )

    def _nozzle_direction(self, nozzle: XmlNode, nozzle_id: str, label: str) -> PortDirection:
        connection_points = nozzle.child("ConnectionPoints")
        flow_out = connection_points.attr("FlowOut") if connection_points is not None else None
        if flow_out is not None:
            return PortDirection.OUTLET if flow_out in ("1", "true") else PortDirection.INLET

        names = f"{nozzle_id} {label}".lower()
        if "out" in names or "discharge" in names:
            return PortDirection.OUTLET
        return PortDirection.INLET

    def _parse_nozzle(self, nozzle: XmlNode, step_id: str, index: int) -> List[Port]:
        nozzle_id = nozzle.attr("ID") or f"{step_id}_nozzle_{index}"
        label = generic_attribute(nozzle, "SubTagNameAssignmentClass") or f"N{index + 1}"
        position = _location(nozzle)
        direction = self._nozzle_direction(nozzle, nozzle_id, label)

        ports = [Port(
            id=nozzle_id,
            name=label,
            direction=direction,
            flow_type=FlowType.MATERIAL,
            owner_step_id=step_id,
            nozzle=True,
        )]
        self.port_table[nozzle_id] = PortEntry(step_id=step_id, direction=direction, position=position)

        # PipingNode ids on the nozzle are what Connection elements reference
        connection_points = nozzle.child("ConnectionPoints")
        if connection_points is not None:
            for node in connection_points.children("Node"):
                node_id = node.attr("ID")
                if not node_id or DEFAULT_NODE_MARKER in node_id:
                    continue
                self.port_table[node_id] = PortEntry(
                    step_id=step_id,
                    direction=direction,
                    position=_location(node) or position,
                )
                ports.append(Port(
                    id=node_id,
                    name=f"{label} ({node_id})",
                    direction=direction,
                    flow_type=FlowType.MATERIAL,
                    owner_step_id=step_id,
                ))
        return ports

    # -- piping components ---------------------------------------------------

    def _parse_piping_components(
        self,
        system: XmlNode,
        start_index: int
    ) -> Tuple[Dict[str, List[PendingInlineComponent]], List[ProcessStep]]:
        inline_by_segment: Dict[str, List[PendingInlineComponent]] = {}
        steps: List[ProcessStep] = []
        index = start_index

        for segment_number, segment in enumerate(system.descendants("PipingNetworkSegment")):
            segment_id = segment.attr("ID") or f"segment_{segment_number}"
            pending = []
            for component in segment.children("PipingComponent"):
                component_class = component.attr("ComponentClass") or "PipingComponent"
                if taxonomy.is_inline_component_class(component_class):
                    pending.append(self._parse_inline_component(component, component_class))
                else:
                    steps.append(self._parse_piping_step(component, component_class, index))
                    index += 1
            if pending:
                inline_by_segment[segment_id] = pending

        return inline_by_segment, steps

    def _parse_inline_component(self, node: XmlNode, component_class: str) -> PendingInlineComponent:
        component_id = node.attr("ID") or f"inline_{component_class.lower()}_{len(self.port_table)}"
        position = _location(node) or Point()

        node_ids = []
        connection_points = node.child("ConnectionPoints")
        if connection_points is not None:
            for point in connection_points.children("Node"):
                node_id = point.attr("ID")
                if node_id and DEFAULT_NODE_MARKER not in node_id:
                    node_ids.append(node_id)
                    self.port_table[node_id] = PortEntry(step_id=component_id, position=position)
        self.port_table[component_id] = PortEntry(step_id=component_id, position=position)

        return PendingInlineComponent(
            id=component_id,
            component_class=component_class,
            category=taxonomy.inline_component_category(component_class),
            symbol_index=taxonomy.inline_component_symbol_index(component_class),
            label=(
                generic_attribute(node, "PipingComponentNameAssignmentClass")
                or generic_attribute(node, "TagNameAssignmentClass")
            ),
            position=position,
            rotation=_rotation(node),
            connection_node_ids=node_ids,
        )

    def _parse_piping_step(self, node: XmlNode, component_class: str, index: int) -> ProcessStep:
        step_id = node.attr("ID") or f"piping_component_{index}"
        ports: List[Port] = []

        connection_points = node.child("ConnectionPoints")
        if connection_points is not None:
            flow_in = connection_points.attr("FlowIn")
            flow_out = connection_points.attr("FlowOut")
            for node_index, point in enumerate(connection_points.children("Node")):
                node_id = point.attr("ID")
                if node_id and DEFAULT_NODE_MARKER in node_id:
                    continue

                if flow_out is not None and flow_out == str(node_index + 1):
                    direction = PortDirection.OUTLET
                elif flow_in is not None and flow_in == str(node_index + 1):
                    direction = PortDirection.INLET
                elif point.attr("Type") == "process":
                    direction = PortDirection.INLET if node_index == 1 else PortDirection.OUTLET
                else:
                    direction = PortDirection.INLET

                ports.append(Port(
                    id=node_id or f"{step_id}_port_{node_index}",
                    name=f"Port {node_index + 1}",
                    direction=direction,
                    flow_type=FlowType.MATERIAL,
                    owner_step_id=step_id,
                ))
                if node_id:
                    self.port_table[node_id] = PortEntry(
                        step_id=step_id,
                        direction=direction,
                        node_index=node_index,
                        position=_location(point),
                    )
            self.port_table[step_id] = PortEntry(step_id=step_id, node_index=0)

        location = _location(node)
        return ProcessStep(
            id=step_id,
            taxonomy_type=taxonomy.legacy_class_to_taxonomy(component_class),
            name=(
                generic_attribute(node, "PipingComponentNameAssignmentClass")
                or generic_attribute(node, "TagNameAssignmentClass")
                or component_class
            ),
            ports=ports,
            parameters=generic_attributes_to_parameters(node),
            layout=Layout(x=location.x, y=location.y) if location else None,
            original_element_type=component_class.lower(),
        )

    # -- external connectors -------------------------------------------------

    def _parse_external_connectors(self, system: XmlNode) -> None:
        for connector in system.descendants("PipeOffPageConnector"):
            component_class = connector.attr("ComponentClass") or ""
            if "FlowIn" in component_class:
                direction = PortDirection.INLET
            elif "FlowOut" in component_class:
                direction = PortDirection.OUTLET
            else:
                continue

            number = len(self.external_ports)
            kind = "in" if direction == PortDirection.INLET else "out"
            connector_id = connector.attr("ID") or f"ext_{kind}_{number}"
            default_name = (
                f"External Input {number + 1}" if direction == PortDirection.INLET
                else f"External Output {number + 1}"
            )
            location = _location(connector)

            self.external_ports.append(ExternalPort(
                id=connector_id,
                name=generic_attribute(connector, "PipeConnectorNumberAssignmentClass") or default_name,
                direction=direction,
                flow_type=FlowType.MATERIAL,
                layout=Layout(x=location.x, y=location.y) if location else None,
            ))
            self.port_table[connector_id] = PortEntry(step_id=connector_id, direction=direction)

    # -- connections ---------------------------------------------------------

    def _parse_segment_connections(
        self,
        system: XmlNode,
        inline_by_segment: Dict[str, List[PendingInlineComponent]]
    ) -> None:
        label = piping_label(system)

        inline_ids = set()
        for components in inline_by_segment.values():
            for component in components:
                inline_ids.add(component.id)
                inline_ids.update(component.connection_node_ids)

        for segment_number, segment in enumerate(system.descendants("PipingNetworkSegment")):
            segment_id = segment.attr("ID") or f"segment_{segment_number}"
            pending = inline_by_segment.get(segment_id, [])
            endpoints = self._segment_endpoints(segment, inline_ids)

            if len(endpoints) >= 2:
                from_id, _from_position = endpoints[0]
                to_id, _to_position = endpoints[-1]
                self._add_connection(
                    from_id, to_id, label,
                    place_inline_components(pending, center_line(segment)),
                )
                continue

            for connection in segment.children("Connection"):
                from_id = connection.attr("FromID")
                to_id = connection.attr("ToID")
                if not from_id or not to_id:
                    continue
                if from_id in inline_ids or to_id in inline_ids:
                    continue
                self._add_connection(
                    self._resolve_with_index(from_id, connection.attr("FromNode")),
                    self._resolve_with_index(to_id, connection.attr("ToNode")),
                    label,
                    [component.place(0.5) for component in pending],
                )

    def _add_connection(
        self,
        from_port: str,
        to_port: str,
        label: Optional[str],
        inline_components: List[InlineComponent]
    ) -> None:
        connection_id = f"conn_{len(self.connections)}"
        self.connections.append(ProcessConnection(
            id=connection_id,
            taxonomy_type=taxonomy.MATERIAL_FLOW,
            from_port=from_port,
            to_port=to_port,
            flow_type=FlowType.MATERIAL,
            label=label,
            inline_components=inline_components,
        ))
        logger.debug(
            f"Connection '{connection_id}': {from_port} -> {to_port} "
            f"({len(inline_components)} inline components)"
        )

    def _segment_endpoints(self, segment: XmlNode, inline_ids: set) -> List[Tuple[str, Point]]:
        """
        Segment ends in flow order.

        Incoming off-page connectors come first, then connection ends with a
        known position, then outgoing off-page connectors.
        """
        endpoint_ids: Dict[str, None] = {}
        for connection in segment.children("Connection"):
            for key in ("FromID", "ToID"):
                value = connection.attr(key)
                if value and value not in inline_ids:
                    endpoint_ids[value] = None

        incoming: List[Tuple[str, Point]] = []
        outgoing: List[Tuple[str, Point]] = []
        for connector in segment.children("PipeOffPageConnector"):
            connector_id = connector.attr("ID")
            if not connector_id:
                continue
            endpoint_ids.pop(connector_id, None)
            target = outgoing if "FlowOut" in (connector.attr("ComponentClass") or "") else incoming
            target.append((connector_id, _location(connector) or Point()))

        endpoints = list(incoming)
        for port_id in endpoint_ids:
            entry = self.port_table.get(port_id)
            if entry is not None and entry.position is not None:
                endpoints.append((port_id, entry.position))
        endpoints.extend(outgoing)
        return endpoints

    def _resolve_with_index(self, component_id: str, node_index: Optional[str]) -> str:
        """Map a component id plus 1-based node index to a registered port id."""
        entry = self.port_table.get(component_id)
        if entry is not None and entry.node_index is None:
            return component_id

        if node_index and node_index.isdigit():
            wanted = int(node_index) - 1
            for port_id, candidate in self.port_table.items():
                if candidate.step_id == component_id and candidate.node_index == wanted and port_id != component_id:
                    return port_id
        return component_id


# ============================================================================
# Piping geometry
# ============================================================================

def piping_label(system: XmlNode) -> Optional[str]:
    """Line label of a piping system, falling back to the first segment label."""
    for label in system.children("Label"):
        if "PipingNetworkSystemLabel" in (label.attr("ComponentClass") or ""):
            text = label.child("Text")
            if text is not None and text.attr("String"):
                return text.attr("String")

    for segment in system.descendants("PipingNetworkSegment"):
        for label in segment.children("Label"):
            if "PipingNetworkSegmentLabel" in (label.attr("ComponentClass") or ""):
                text = label.child("Text")
                if text is not None and text.attr("String"):
                    return text.attr("String")
    return None


def _same_point(a: Point, b: Point, tolerance: float = 0.5) -> bool:
    return abs(a.x - b.x) < tolerance and abs(a.y - b.y) < tolerance


def center_line(segment: XmlNode) -> List[Point]:
    """CenterLine coordinates of a segment with consecutive duplicates removed."""
    points: List[Point] = []
    for line in segment.children("CenterLine"):
        for coordinate in line.children("Coordinate"):
            point = Point(x=coordinate.attr_float("X"), y=coordinate.attr_float("Y"))
            if not points or not _same_point(point, points[-1]):
                points.append(point)
    return points


def project_onto_segment(point: Point, start: Point, end: Point) -> float:
    """Parameter t in [0, 1] of the projection of point onto start-end."""
    dx = end.x - start.x
    dy = end.y - start.y
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return 0.0
    t = ((point.x - start.x) * dx + (point.y - start.y) * dy) / length_sq
    return max(0.0, min(1.0, t))


def place_inline_components(
    components: List[PendingInlineComponent],
    path: List[Point]
) -> List[InlineComponent]:
    """
    Place inline components along a piping path.

    Each component is projected onto the nearest path segment and its
    distance along the path normalized to 0.05..0.95. Without a usable path
    the components are spread evenly.

    Args:
        components: Components read from the segment
        path: CenterLine coordinates

    Returns:
        Inline components sorted by position along the path
    """
    if not components:
        return []
    if len(path) < 2:
        return [
            component.place((i + 1) / (len(components) + 1))
            for i, component in enumerate(components)
        ]

    lengths = [math.hypot(b.x - a.x, b.y - a.y) for a, b in zip(path, path[1:])]
    total = sum(lengths) or 1.0

    placed = []
    for component in components:
        best_distance = math.inf
        along = 0.0
        cumulative = 0.0
        for (start, end), length in zip(zip(path, path[1:]), lengths):
            t = project_onto_segment(component.position, start, end)
            px = start.x + t * (end.x - start.x)
            py = start.y + t * (end.y - start.y)
            distance = math.hypot(component.position.x - px, component.position.y - py)
            if distance < best_distance:
                best_distance = distance
                along = cumulative + t * length
            cumulative += length
        placed.append(component.place(max(0.05, min(0.95, along / total))))

    return sorted(placed, key=lambda c: c.position)


def parse_proteus_root(root: XmlNode, diagnostics: Optional[Diagnostics] = None) -> DexpiDocument:
    return ProteusParser(root, diagnostics).parse()


def parse_proteus_xml(xml, diagnostics: Optional[Diagnostics] = None) -> DexpiDocument:
    """
    Parse Proteus 1.x XML text.

    Raises:
        FatalParseError: Malformed XML or a root other than PlantModel
    """
    return parse_proteus_root(parse_xml(xml), diagnostics)
