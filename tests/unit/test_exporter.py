"""
Unit tests for graph -> process model conversion.
"""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import pytest

from dexpi_bridge.converter.export.graph_to_document import (
    PLAYGROUND_WARNING,
    ConvertOptions,
    ProcessModelBuilder,
    build_process_model,
    mode_to_diagram_type,
)
from dexpi_bridge.converter.mapping import taxonomy
from dexpi_bridge.converter.models.document import DiagramType, FlowType, PortDirection
from dexpi_bridge.converter.models.graph import DiagramMode, GraphEdge, GraphNode, GraphSnapshot
from dexpi_bridge.services.config_service import ConversionParameters


@pytest.fixture
def reactor_to_tank():
    """Reactor feeding a tank with one labelled material stream."""
    return GraphSnapshot(
        nodes=[
            GraphNode(id="n1", type="reactor", x=100, y=100, label="R-101"),
            GraphNode(id="n2", type="tank", x=300, y=100, label="T-101"),
        ],
        edges=[
            GraphEdge(id="e1", source="n1", target="n2", type="material_stream", label="100 kg/hr"),
        ],
    )


class TestProcessModel:
    """Tests for model-level attributes."""

    def test_reactor_to_tank(self, reactor_to_tank):
        model, warnings = build_process_model(reactor_to_tank, DiagramMode.PFD)

        assert warnings == []
        assert model.diagram_type == DiagramType.PFD
        assert model.name == "PFD Diagram"
        assert [s.taxonomy_type for s in model.steps] == [taxonomy.REACTING, taxonomy.STORING]
        connection = model.connections[0]
        assert connection.label == "100 kg/hr"
        assert connection.from_port == "n1_out_default"
        assert connection.to_port == "n2_in_default"
        assert connection.taxonomy_type == taxonomy.MATERIAL_FLOW

    def test_positions_written_unchanged(self, reactor_to_tank):
        model, _ = build_process_model(reactor_to_tank, DiagramMode.PFD)
        assert (model.steps[1].layout.x, model.steps[1].layout.y) == (300.0, 100.0)

    def test_options(self, reactor_to_tank):
        options = ConvertOptions(name="Plant", description="Demo", model_id="pm_fixed",
                                 timestamp="2024-01-01T00:00:00+00:00")
        model, _ = build_process_model(reactor_to_tank, "pfd", options)
        assert model.id == "pm_fixed"
        assert model.name == "Plant"
        assert model.description == "Demo"
        assert model.metadata.created_at == "2024-01-01T00:00:00+00:00"
        assert model.metadata.application_source == "dexpi-bridge"

    def test_generated_model_id(self, reactor_to_tank):
        model, _ = build_process_model(reactor_to_tank, DiagramMode.PFD)
        assert model.id.startswith("pm_")

    @pytest.mark.parametrize("mode,expected", [
        (DiagramMode.PFD, DiagramType.PFD),
        (DiagramMode.PID, DiagramType.PID),
        (DiagramMode.BFD, DiagramType.BFD),
        (DiagramMode.PLAYGROUND, DiagramType.BFD),
    ])
    def test_mode_to_diagram_type(self, mode, expected):
        assert mode_to_diagram_type(mode) == expected

    def test_empty_snapshot(self):
        model, warnings = build_process_model(GraphSnapshot(), DiagramMode.BFD)
        assert model.steps == []
        assert model.connections == []
        assert warnings == []


class TestPorts:
    """Tests for ports synthesized from edges."""

    def test_ports_from_edges(self, reactor_to_tank):
        model, _ = build_process_model(reactor_to_tank, DiagramMode.PFD)
        source_ports = model.steps[0].ports
        target_ports = model.steps[1].ports
        assert [(p.id, p.name, p.direction) for p in source_ports] == [
            ("n1_out_default", "Output", PortDirection.OUTLET)
        ]
        assert [(p.id, p.name, p.direction) for p in target_ports] == [
            ("n2_in_default", "Input", PortDirection.INLET)
        ]

    def test_ports_registered_once(self):
        snapshot = GraphSnapshot(
            nodes=[GraphNode(id="s", type="splitter"), GraphNode(id="a", type="tank"), GraphNode(id="b", type="tank")],
            edges=[
                GraphEdge(id="e1", source="s", target="a", source_handle="top"),
                GraphEdge(id="e2", source="s", target="b", source_handle="top"),
                GraphEdge(id="e3", source="s", target="b", source_handle="bottom", target_handle="side"),
            ],
        )
        model, _ = build_process_model(snapshot, DiagramMode.PFD)
        splitter = model.steps[0]
        assert [p.id for p in splitter.ports] == ["s_out_top", "s_out_bottom"]
        assert [p.name for p in splitter.ports] == ["top", "bottom"]
        assert [p.id for p in model.steps[2].ports] == ["b_in_default", "b_in_side"]
        assert model.connections[2].from_port == "s_out_bottom"
        assert model.connections[2].to_port == "b_in_side"

    def test_port_flow_type_from_stream_type(self):
        snapshot = GraphSnapshot(
            nodes=[GraphNode(id="a", type="pump"), GraphNode(id="b", type="tank")],
            edges=[GraphEdge(id="e1", source="a", target="b", type="energy_stream",
                             properties={"streamType": "energy"})],
        )
        model, _ = build_process_model(snapshot, DiagramMode.PFD)
        assert model.steps[0].ports[0].flow_type == FlowType.ENERGY
        assert model.connections[0].flow_type == FlowType.ENERGY


class TestBoundaryNodes:
    """Tests for external port export."""

    def _snapshot(self, *nodes):
        return GraphSnapshot(nodes=list(nodes))

    def test_explicit_direction(self):
        node = GraphNode(id="b1", type="input_output", x=10, label="Product",
                         properties={"direction": "Outlet"})
        model, _ = build_process_model(self._snapshot(node), DiagramMode.BFD)
        assert model.steps == []
        assert model.external_ports[0].direction == PortDirection.OUTLET
        assert model.external_ports[0].name == "Product"

    def test_position_heuristic(self):
        feed = GraphNode(id="feed", type="input_output", x=50)
        product = GraphNode(id="product", type="input_output", x=900)
        model, _ = build_process_model(self._snapshot(feed, product), DiagramMode.BFD)
        assert [p.direction for p in model.external_ports] == [PortDirection.INLET, PortDirection.OUTLET]

    def test_heuristic_threshold_is_configurable(self):
        builder = ProcessModelBuilder(ConversionParameters(boundary_inlet_max_x=1000))
        assert builder.boundary_direction(GraphNode(id="p", type="input_output", x=900)) == PortDirection.INLET

    def test_unknown_direction_warns(self):
        node = GraphNode(id="b1", type="input_output", x=500, properties={"direction": "sideways"})
        model, warnings = build_process_model(self._snapshot(node), DiagramMode.BFD)
        assert model.external_ports[0].direction == PortDirection.OUTLET
        assert len(warnings) == 1
        assert "sideways" in warnings[0]


class TestDegradation:
    """Tests for unsupported types and properties."""

    def test_playground_export(self):
        snapshot = GraphSnapshot(
            nodes=[GraphNode(id="r1", type="rectangle", label="Box"), GraphNode(id="r2", type="circle")],
            edges=[GraphEdge(id="e1", source="r1", target="r2", type="wavy")],
        )
        model, warnings = build_process_model(snapshot, DiagramMode.PLAYGROUND)

        assert model.diagram_type == DiagramType.BFD
        assert warnings[0] == PLAYGROUND_WARNING
        assert (
            'Node "Box" has unsupported type "rectangle" - will be exported as generic process step'
        ) in warnings
        assert all(s.taxonomy_type == taxonomy.GENERIC_PROCESS_STEP for s in model.steps)
        assert model.steps[0].original_element_type == "rectangle"
        assert model.connections[0].taxonomy_type == taxonomy.MATERIAL_FLOW
        assert 'Edge "e1" has unsupported type "wavy" - will be exported as material flow' in warnings

    def test_dangling_edge_warns(self):
        snapshot = GraphSnapshot(
            nodes=[GraphNode(id="a", type="tank")],
            edges=[GraphEdge(id="e1", source="a", target="ghost")],
        )
        model, warnings = build_process_model(snapshot, DiagramMode.PFD)
        assert 'Edge "e1" references unknown node "ghost"' in warnings
        assert model.connections[0].to_port == "ghost_in_default"

    def test_stream_properties(self):
        snapshot = GraphSnapshot(
            nodes=[GraphNode(id="a", type="pump"), GraphNode(id="b", type="tank")],
            edges=[GraphEdge(
                id="e1", source="a", target="b", type="material_stream",
                properties={"flowRate": "5 t/h", "temperature": "25 °C", "composition": "H2O"},
            )],
        )
        model, warnings = build_process_model(snapshot, DiagramMode.PFD)
        stream = model.connections[0].stream_properties
        assert warnings == []
        assert (stream.flow_rate.value, stream.flow_rate.unit) == (5.0, "t/h")
        assert (stream.temperature.value, stream.temperature.unit) == (25.0, "°C")
        assert stream.pressure is None
        assert stream.composition == "H2O"

    def test_unparseable_quantity_dropped(self):
        snapshot = GraphSnapshot(
            nodes=[GraphNode(id="a", type="pump"), GraphNode(id="b", type="tank")],
            edges=[GraphEdge(id="e1", source="a", target="b", properties={"flow_rate": "lots"})],
        )
        model, warnings = build_process_model(snapshot, DiagramMode.PFD)
        assert model.connections[0].stream_properties is None
        assert warnings == ['Edge "e1" has unparseable flow_rate "lots" - value not exported']

    def test_node_properties_become_parameters(self):
        node = GraphNode(id="t", type="tank", properties={"volume": "15 m3", "empty": ""})
        model, _ = build_process_model(GraphSnapshot(nodes=[node]), DiagramMode.PFD)
        parameters = model.steps[0].parameters
        assert [(p.name, p.value) for p in parameters] == [("volume", "15 m3")]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
