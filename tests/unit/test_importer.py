"""
Unit tests for document -> graph conversion, coordinates and auto-layout.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import pytest

from dexpi_bridge.converter.diagnostics import Diagnostics
from dexpi_bridge.converter.importer import (
    CoordinateTransform,
    GraphBuilder,
    build_graph,
    build_port_table,
    detect_mode,
    layout_nodes_without_position,
    needs_transform,
    transform_for_document,
)
from dexpi_bridge.converter.importer.document_to_graph import extract_handle, extract_node_id
from dexpi_bridge.converter.mapping import taxonomy
from dexpi_bridge.converter.models.document import (
    DexpiDocument,
    DexpiFormat,
    DiagramType,
    ExternalPort,
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
from dexpi_bridge.converter.models.graph import DiagramMode, GraphNode
from dexpi_bridge.converter.xml.proteus_parser import parse_proteus_xml
from dexpi_bridge.services.config_service import ConversionParameters, LayoutParameters


OWN_METADATA = ProcessModelMetadata(application_source="dexpi-bridge")


def make_step(step_id, taxonomy_type=taxonomy.REACTING, original=None, ports=(), layout=None, **kwargs):
    return ProcessStep(
        id=step_id,
        taxonomy_type=taxonomy_type,
        name=kwargs.pop("name", step_id.upper()),
        ports=list(ports),
        layout=layout,
        original_element_type=original,
        **kwargs
    )


def make_document(steps=(), connections=(), external_ports=(), diagram_type=DiagramType.PFD,
                  metadata=OWN_METADATA, source_format=DexpiFormat.DEXPI_XML):
    return DexpiDocument(
        process_model=ProcessModel(
            id="pm1",
            name="Test",
            diagram_type=diagram_type,
            steps=list(steps),
            connections=list(connections),
            external_ports=list(external_ports),
            metadata=metadata,
        ),
        source_format=source_format,
    )


@pytest.fixture
def connected_document():
    """Two steps, one boundary, connections with every kind of port reference."""
    source = make_step(
        "src", original="reactor", layout=Layout(x=100, y=100),
        ports=[
            Port(id="src_out_2", name="2", direction=PortDirection.OUTLET, owner_step_id="src"),
            Port(id="src_out_default", name="Output", direction=PortDirection.OUTLET, owner_step_id="src"),
        ],
        parameters=[Parameter(name="volume", value=12.0, unit="m3")],
    )
    mixer = make_step(
        "mix", taxonomy_type=taxonomy.MIXING_MATERIAL, layout=Layout(x=300, y=100),
        ports=[Port(id="mix_in_a", name="a", owner_step_id="mix")],
    )
    feed = ExternalPort(id="feed", name="Feed", layout=Layout(x=10, y=100))
    connections = [
        ProcessConnection(
            id="c1", taxonomy_type=taxonomy.MATERIAL_FLOW,
            from_port="src_out_2", to_port="mix_in_a",
            label="100 kg/hr", original_element_type="material_stream",
            stream_properties=StreamProperties(
                flow_rate=PhysicalQuantity(value=100, unit="kg/h"),
                composition="H2O",
            ),
        ),
        ProcessConnection(
            id="c2", taxonomy_type=taxonomy.ENERGY_FLOW,
            from_port="ghost_out_1", to_port="mystery",
        ),
        ProcessConnection(
            id="c3", taxonomy_type=taxonomy.MATERIAL_FLOW,
            from_port="feed_out_default", to_port="src",
        ),
    ]
    return make_document([source, mixer], connections, [feed])


class TestCoordinateTransform:
    """Tests for the DEXPI <-> canvas transform."""

    def test_offset_from_largest_y(self):
        document = make_document(
            [make_step("a", layout=Layout(x=0, y=40)), make_step("b", layout=Layout(x=0, y=100))],
            source_format=DexpiFormat.PROTEUS,
        )
        transform = CoordinateTransform.for_model(document.process_model)
        assert transform.scale == 4.0
        assert transform.offset == 600.0
        assert transform.forward(10, 100) == (40.0, 200.0)

    def test_inverse_round_trip(self):
        transform = CoordinateTransform(scale=4.0, offset=600.0)
        assert transform.inverse(*transform.forward(12.5, 33.0)) == pytest.approx((12.5, 33.0))

    def test_without_inversion(self):
        conversion = ConversionParameters(invert_y_axis=False, position_scale_factor=2.0)
        transform = CoordinateTransform.for_model(make_document().process_model, conversion)
        assert transform.offset == 0.0
        assert transform.forward(3, 4) == (6.0, 8.0)

    def test_length(self):
        assert CoordinateTransform().length(20.0) == 80.0
        assert CoordinateTransform().length(None) is None

    def test_needs_transform(self):
        assert needs_transform(make_document(source_format=DexpiFormat.PROTEUS))
        assert not needs_transform(make_document())
        assert needs_transform(make_document(metadata=None))
        foreign = make_document(metadata=ProcessModelMetadata(application_source="OtherTool"))
        assert needs_transform(foreign)
        assert not needs_transform(foreign, ConversionParameters(transform_foreign_documents=False))

    def test_identity_for_own_documents(self):
        assert transform_for_document(make_document()) == CoordinateTransform.identity()


class TestAutoLayout:
    """Tests for placing nodes without a position."""

    def test_grid_when_nothing_is_placed(self):
        nodes = [GraphNode(id=f"n{i}") for i in range(5)]
        assert layout_nodes_without_position(nodes) == 5
        assert nodes[0].position == (100.0, 100.0)
        assert nodes[3].position == (850.0, 100.0)
        assert nodes[4].position == (100.0, 250.0)

    def test_column_beside_placed_nodes(self):
        nodes = [GraphNode(id="a", x=400, y=50), GraphNode(id="b"), GraphNode(id="c")]
        assert layout_nodes_without_position(nodes) == 2
        assert nodes[0].position == (400.0, 50.0)
        assert nodes[1].position == (550.0, 100.0)
        assert nodes[2].position == (550.0, 250.0)

    def test_nothing_to_do(self):
        nodes = [GraphNode(id="a", x=1, y=0)]
        assert layout_nodes_without_position(nodes, LayoutParameters(grid_columns=1)) == 0
        assert nodes[0].position == (1.0, 0.0)


class TestPortReferences:
    """Tests for port id helpers and the port table."""

    def test_extract_handle(self):
        assert extract_handle("src_out_2", "src") == "2"
        assert extract_handle("src_in_default", "src") == "default"
        assert extract_handle("N1", "src") == "N1"

    def test_extract_node_id(self):
        assert extract_node_id("my_node_out_3") == "my_node"
        assert extract_node_id("tank_in_default") == "tank"
        assert extract_node_id("mystery") is None

    def test_port_table(self, connected_document):
        table = build_port_table(connected_document.process_model)
        assert table["src_out_2"].node_id == "src"
        assert table["src_out_2"].handle == "2"
        assert table["mix"].handle == "default"
        assert table["feed_in_default"].node_id == "feed"

    def test_handled_boundary_references(self):
        document = make_document(
            [make_step("r1", ports=[Port(id="r1_in_left", name="left", owner_step_id="r1")])],
            [
                ProcessConnection(id="e1", taxonomy_type=taxonomy.MATERIAL_FLOW,
                                  from_port="feed_out_right", to_port="r1_in_left"),
                ProcessConnection(id="e2", taxonomy_type=taxonomy.MATERIAL_FLOW,
                                  from_port="r1_out_default", to_port="product_in_top"),
            ],
            [
                ExternalPort(id="feed", name="Feed"),
                ExternalPort(id="product", name="Product", direction=PortDirection.OUTLET),
            ],
        )
        table = build_port_table(document.process_model)
        assert (table["feed_out_right"].node_id, table["feed_out_right"].handle) == ("feed", "right")
        assert (table["product_in_top"].node_id, table["product_in_top"].handle) == ("product", "top")

        result = build_graph(document)
        assert [(e.source, e.source_handle) for e in result.edges] == [("feed", "right"), ("r1", None)]
        assert [(e.target, e.target_handle) for e in result.edges] == [("r1", "left"), ("product", "top")]
        assert not any("feed_out_right" in w or "product_in_top" in w for w in result.warnings)


class TestGraphBuilder:
    """Tests for GraphBuilder.build."""

    @pytest.fixture
    def result(self, connected_document):
        return build_graph(connected_document)

    def test_nodes(self, result):
        assert [node.id for node in result.nodes] == ["src", "mix", "feed"]
        assert [node.type for node in result.nodes] == ["reactor", "mixer", "input_output"]
        assert result.mode == DiagramMode.PFD

    def test_own_document_positions_unchanged(self, result):
        assert result.nodes[0].position == (100.0, 100.0)
        assert result.nodes[1].position == (300.0, 100.0)

    def test_step_parameters_become_properties(self, result):
        assert result.nodes[0].properties == {"volume": "12 m3"}

    def test_boundary_node(self, result):
        feed = result.nodes[2]
        assert feed.label == "Feed"
        assert feed.properties == {"direction": "inlet"}

    def test_handles_restored(self, result):
        edge = result.edges[0]
        assert (edge.source, edge.target) == ("src", "mix")
        assert edge.source_handle == "2"
        assert edge.target_handle == "a"
        assert edge.label == "100 kg/hr"

    def test_edge_properties(self, result):
        edge = result.edges[0]
        assert edge.type == "material_stream"
        assert edge.properties == {
            "stream_type": "material",
            "flow_rate": "100 kg/h",
            "composition": "H2O",
        }

    def test_edge_type_from_class(self, result):
        assert result.edges[1].type == "energy_stream"

    def test_port_pattern_fallback(self, result):
        edge = result.edges[1]
        assert edge.source == "ghost"
        assert edge.target == "mystery"
        assert (
            'Could not find source port "ghost_out_1" for connection "c2" - '
            'using node "ghost" from port ID pattern'
        ) in result.warnings
        assert (
            'Could not find target port "mystery" for connection "c2" - '
            'using port ID as node ID'
        ) in result.warnings

    def test_external_port_alias(self, result):
        edge = result.edges[2]
        assert (edge.source, edge.target) == ("feed", "src")
        assert edge.source_handle is None
        assert edge.target_handle is None

    def test_metadata(self, result):
        assert result.metadata.name == "Test"
        assert result.metadata.version == "2.0"
        assert result.metadata.application_source == "dexpi-bridge"

    def test_warnings_shared_with_diagnostics(self, connected_document):
        diagnostics = Diagnostics()
        result = GraphBuilder(diagnostics=diagnostics).build(connected_document)
        assert result.warnings == diagnostics.messages
        assert len(diagnostics) == 2

    def test_type_placeholder_name_is_no_label(self):
        document = make_document([
            make_step("r1", original="reactor", name="reactor"),
            make_step("r2", original="reactor", name="R-2"),
            make_step("p1", original="CentrifugalPump", name="CentrifugalPump"),
        ])
        labels = [node.label for node in build_graph(document).nodes]
        assert labels == [None, "R-2", "CentrifugalPump"]


class TestNodeTypeResolution:
    """Tests for the node type fallback chain."""

    def test_unknown_class_uses_mode_fallback(self):
        step = make_step("x", taxonomy_type="Process/Process.Teleporting", name="X")
        result = build_graph(make_document([step]))
        assert result.nodes[0].type == "vessel"
        assert result.warnings == [
            'Unknown DEXPI type "Process/Process.Teleporting" for step "X" - using fallback type "vessel"'
        ]

    def test_original_type_wins_when_valid(self):
        step = make_step("t", taxonomy_type=taxonomy.STORING, original="tank")
        assert build_graph(make_document([step])).nodes[0].type == "tank"

    def test_original_type_ignored_when_invalid_for_mode(self):
        step = make_step("t", taxonomy_type=taxonomy.STORING, original="tank")
        result = build_graph(make_document([step], diagram_type=DiagramType.BFD))
        assert result.nodes[0].type == "storage"

    def test_pid_category_miss(self):
        step = make_step("f", taxonomy_type=taxonomy.GENERIC_PROCESS_STEP, original="FluxCapacitor", name="F")
        result = build_graph(make_document([step], diagram_type=DiagramType.PID))
        assert result.nodes[0].type == "vessels"
        assert result.nodes[0].category is None
        assert any('No DEXPI category mapping for ComponentClass "FluxCapacitor"' in w for w in result.warnings)

    def test_detect_mode(self):
        reacting = make_step("r")
        assert detect_mode(make_document([reacting], diagram_type=None).process_model) == DiagramMode.PFD
        generic = make_step("g", taxonomy_type=taxonomy.GENERIC_PROCESS_STEP)
        assert detect_mode(make_document([generic], diagram_type=None).process_model) == DiagramMode.BFD
        assert detect_mode(make_document(diagram_type=DiagramType.PID).process_model) == DiagramMode.PID


class TestLegacyImport:
    """Proteus documents through the graph builder."""

    def test_pump_with_discharge_nozzle(self):
        xml = (
            '<PlantModel><PlantInformation SchemaVersion="3.3.3"/>'
            '<Equipment ID="P-101" ComponentClass="CentrifugalPump">'
            '<Nozzle ID="P-101-Discharge"/></Equipment></PlantModel>'
        )
        result = build_graph(parse_proteus_xml(xml))
        node = result.nodes[0]

        assert result.mode == DiagramMode.PID
        assert node.type == "pumps_iso"
        assert node.category == "Pumps_ISO"
        assert node.symbol_index == 0
        assert [(n.id, n.direction) for n in node.nozzles] == [("P-101-Discharge", "outlet")]
        assert node.position == (100.0, 100.0)
        assert result.warnings == []

    def test_positions_are_transformed(self):
        xml = (
            '<PlantModel><PlantInformation SchemaVersion="3.3.3"/>'
            '<Equipment ID="T-1" ComponentClass="Tank">'
            '<Position><Location X="10" Y="20"/></Position></Equipment></PlantModel>'
        )
        node = build_graph(parse_proteus_xml(xml)).nodes[0]
        # offset = (20 + 50) * 4
        assert node.position == (40.0, 200.0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
