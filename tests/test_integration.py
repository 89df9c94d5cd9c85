"""
Integration tests for the complete conversion pipeline.
"""

import json
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest

from dexpi_bridge import (
    DexpiExporter,
    DexpiImporter,
    FatalParseError,
    export_to_dexpi,
    import_from_dexpi,
    parse_dexpi_to_model,
    validate,
)
from dexpi_bridge.converter.cli import EXIT_FAILURE, EXIT_FATAL_PARSE, EXIT_OK, main
from dexpi_bridge.converter.export.graph_to_document import ConvertOptions
from dexpi_bridge.converter.models.document import DexpiFormat, DiagramType
from dexpi_bridge.converter.models.graph import DiagramMode, GraphEdge, GraphNode, GraphSnapshot

CONFIG_ARGS = ["--config", str(project_root / "config.yaml")]

PUMP_PLANT_MODEL = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    '<PlantModel><PlantInformation SchemaVersion="3.3.3"/>'
    '<Equipment ID="P-101" ComponentClass="CentrifugalPump">'
    '<Nozzle ID="P-101-Discharge"/></Equipment></PlantModel>'
)

LOWERCASE_DOCUMENT = (
    '<DEXPI-Document xmlns="https://dexpi.org/schema/2.0" version="2.0">'
    '<Object id="pm1" type="Process/ProcessModel">'
    '<Data property="Name"><String>Lowercase</String></Data>'
    '<Components property="processsteps">'
    '<Object id="s1" type="Process/Process.Reacting"><Data property="Name"><String>R-1</String></Data></Object>'
    '<Object id="s2" type="Process/Process.Storing"><Data property="Name"><String>T-1</String></Data></Object>'
    '</Components>'
    '<Components property="processConnections">'
    '<Object id="c1" type="Process/Process.MaterialFlow">'
    '<Data property="FromPort"><String>s1_out_default</String></Data>'
    '<Data property="ToPort"><String>s2_in_default</String></Data>'
    '</Object>'
    '</Components>'
    '</Object></DEXPI-Document>'
)


@pytest.fixture
def pfd_snapshot():
    """Feed -> reactor -> tank with handles and stream properties."""
    return GraphSnapshot(
        nodes=[
            GraphNode(id="feed", type="input_output", x=50, y=100, label="Feed",
                      properties={"direction": "inlet"}),
            GraphNode(id="r1", type="reactor", x=200, y=100, label="R-101",
                      properties={"volume": "15 m3"}),
            GraphNode(id="t1", type="tank", x=400, y=150, label="T-101"),
        ],
        edges=[
            GraphEdge(id="e1", source="feed", target="r1", type="material_stream",
                      properties={"stream_type": "material"}),
            GraphEdge(id="e2", source="r1", target="t1", source_handle="right", target_handle="top",
                      type="material_stream", label="100 kg/hr",
                      properties={"stream_type": "material", "flow_rate": "100 kg/h"}),
        ],
    )


class TestRoundTrip:
    """Export followed by import restores the graph."""

    def test_graph_restored(self, pfd_snapshot):
        exported = export_to_dexpi(pfd_snapshot, "pfd", name="Round Trip")
        assert exported.warnings == []

        imported = import_from_dexpi(exported.xml)
        assert imported.warnings == []
        assert imported.mode == DiagramMode.PFD
        assert imported.metadata.name == "Round Trip"

        nodes = {node.id: node for node in imported.nodes}
        for original in pfd_snapshot.nodes:
            restored = nodes[original.id]
            assert restored.type == original.type
            assert restored.position == original.position
            assert restored.label == original.label
            assert restored.properties == original.properties

        edges = {edge.id: edge for edge in imported.edges}
        for original in pfd_snapshot.edges:
            restored = edges[original.id]
            assert (restored.source, restored.target) == (original.source, original.target)
            assert restored.source_handle == original.source_handle
            assert restored.target_handle == original.target_handle
            assert restored.type == original.type
            assert restored.label == original.label
            assert restored.properties == original.properties

    def test_handled_boundary_edge_round_trip(self):
        snapshot = GraphSnapshot(
            nodes=[
                GraphNode(id="feed", type="input_output", x=50, y=100, properties={"direction": "inlet"}),
                GraphNode(id="r1", type="reactor", x=200, y=100, label="R-101"),
                GraphNode(id="product", type="input_output", x=400, y=100, properties={"direction": "outlet"}),
            ],
            edges=[
                GraphEdge(id="e1", source="feed", target="r1", source_handle="right", target_handle="left"),
                GraphEdge(id="e2", source="r1", target="product", target_handle="top"),
            ],
        )
        imported = import_from_dexpi(export_to_dexpi(snapshot, "pfd").xml)
        edges = {edge.id: edge for edge in imported.edges}

        assert imported.warnings == []
        assert (edges["e1"].source, edges["e1"].source_handle) == ("feed", "right")
        assert (edges["e1"].target, edges["e1"].target_handle) == ("r1", "left")
        assert (edges["e2"].target, edges["e2"].target_handle) == ("product", "top")

    def test_signed_and_exponent_quantities_round_trip(self):
        snapshot = GraphSnapshot(
            nodes=[GraphNode(id="a", type="pump"), GraphNode(id="b", type="tank")],
            edges=[GraphEdge(id="e1", source="a", target="b",
                             properties={"temperature": "-10 C", "pressure": "1e5 Pa"})],
        )
        exported = export_to_dexpi(snapshot, "pfd")
        assert exported.warnings == []

        properties = import_from_dexpi(exported.xml).edges[0].properties
        assert properties["temperature"] == "-10 C"
        assert properties["pressure"] == "100000 Pa"

    def test_unlabelled_node_stays_unlabelled(self):
        snapshot = GraphSnapshot(nodes=[GraphNode(id="r1", type="reactor", x=100, y=100)])
        imported = import_from_dexpi(export_to_dexpi(snapshot, "pfd").xml)
        assert imported.nodes[0].label is None

    def test_second_export_is_identical(self, pfd_snapshot):
        exporter = DexpiExporter()
        options = ConvertOptions(model_id="pm_fixed", timestamp="2024-01-01T00:00:00+00:00")

        first = exporter.export(pfd_snapshot, DiagramMode.PFD, options)
        imported = DexpiImporter().import_document(first.xml)
        second = exporter.export(imported.to_snapshot(), imported.mode, options)

        assert second.xml == first.xml

    def test_bfd_round_trip(self):
        snapshot = GraphSnapshot(
            nodes=[
                GraphNode(id="b1", type="process_block", x=100, y=100, label="Reaction"),
                GraphNode(id="b2", type="storage", x=300, y=100, label="Store"),
            ],
            edges=[GraphEdge(id="e1", source="b1", target="b2", type="energy_stream")],
        )
        imported = import_from_dexpi(export_to_dexpi(snapshot, DiagramMode.BFD).xml)
        assert imported.mode == DiagramMode.BFD
        assert [node.type for node in imported.nodes] == ["process_block", "storage"]
        assert imported.edges[0].type == "energy_stream"
        assert imported.edges[0].properties == {"stream_type": "material"}


class TestScenarios:
    """End-to-end behavior of the documented conversions."""

    def test_reactor_to_tank_export(self):
        snapshot = GraphSnapshot(
            nodes=[
                GraphNode(id="n1", type="reactor", x=100, y=100),
                GraphNode(id="n2", type="tank", x=300, y=100),
            ],
            edges=[GraphEdge(id="e1", source="n1", target="n2", label="100 kg/hr")],
        )
        result = export_to_dexpi(snapshot, "pfd")
        connection = result.process_model.connections[0]

        assert result.process_model.diagram_type == DiagramType.PFD
        assert connection.label == "100 kg/hr"
        assert connection.from_port == "n1_out_default"
        assert connection.to_port == "n2_in_default"
        assert "100 kg/hr" in result.xml

    def test_legacy_pump_import(self):
        result = import_from_dexpi(PUMP_PLANT_MODEL)
        node = result.nodes[0]

        assert result.mode == DiagramMode.PID
        assert node.id == "P-101"
        assert node.type == "pumps_iso"
        assert node.category == "Pumps_ISO"
        assert node.symbol_index == 0
        assert node.nozzles[0].direction == "outlet"
        assert "DEXPI 1.x format detected (version: 3.3.3)" in result.warnings

    def test_lowercase_components_import(self):
        result = import_from_dexpi(LOWERCASE_DOCUMENT)
        assert [node.type for node in result.nodes] == ["reactor", "tank"]
        assert (result.edges[0].source, result.edges[0].target) == ("s1", "s2")
        assert result.mode == DiagramMode.PFD

    def test_parse_only(self):
        document = parse_dexpi_to_model(PUMP_PLANT_MODEL.encode("utf-8"))
        assert document.source_format == DexpiFormat.PROTEUS
        assert document.process_model.steps[0].id == "P-101"

    def test_unknown_root_is_fatal(self):
        with pytest.raises(FatalParseError) as exc_info:
            import_from_dexpi("<Drawing/>")
        assert str(exc_info.value).startswith("Invalid DEXPI XML: Unrecognized DEXPI format")
        assert len(exc_info.value.errors) == 1

    def test_validate_facade(self):
        assert validate(LOWERCASE_DOCUMENT).valid
        assert not validate("not xml").valid

    def test_export_to_file(self, tmp_path, pfd_snapshot):
        output = tmp_path / "nested" / "plant.xml"
        warnings = DexpiExporter().export_to_file(pfd_snapshot, DiagramMode.PFD, output)
        assert warnings == []
        imported = DexpiImporter().import_file(output)
        assert len(imported.nodes) == 3


class TestCli:
    """Command-line round trip."""

    @pytest.fixture(autouse=True)
    def reset_logging(self):
        yield
        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

    @pytest.fixture
    def graph_file(self, tmp_path, pfd_snapshot):
        path = tmp_path / "graph.json"
        data = pfd_snapshot.model_dump(mode="json")
        data["mode"] = "pfd"
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    def test_export_then_import(self, tmp_path, graph_file):
        xml_file = tmp_path / "plant.xml"
        json_file = tmp_path / "imported.json"

        assert main(CONFIG_ARGS + ["export", str(graph_file), "-o", str(xml_file), "--name", "CLI"]) == EXIT_OK
        assert xml_file.read_text(encoding="utf-8").startswith("<?xml")

        assert main(CONFIG_ARGS + ["import", str(xml_file), "-o", str(json_file)]) == EXIT_OK
        data = json.loads(json_file.read_text(encoding="utf-8"))
        assert data["mode"] == "pfd"
        assert data["metadata"]["name"] == "CLI"
        assert [node["id"] for node in data["nodes"]] == ["r1", "t1", "feed"]

    def test_import_relayout(self, tmp_path, graph_file):
        xml_file = tmp_path / "plant.xml"
        json_file = tmp_path / "imported.json"
        main(CONFIG_ARGS + ["export", str(graph_file), "-o", str(xml_file)])

        assert main(CONFIG_ARGS + ["import", str(xml_file), "-o", str(json_file), "--relayout"]) == EXIT_OK
        nodes = {node["id"]: node for node in json.loads(json_file.read_text(encoding="utf-8"))["nodes"]}
        assert (nodes["feed"]["x"], nodes["r1"]["x"], nodes["t1"]["x"]) == (100.0, 350.0, 600.0)

    def test_validate_exit_codes(self, tmp_path, capsys):
        good = tmp_path / "good.xml"
        good.write_text(PUMP_PLANT_MODEL, encoding="utf-8")
        bad = tmp_path / "bad.xml"
        bad.write_text('<PlantModel><Equipment ComponentClass="Tank"/></PlantModel>', encoding="utf-8")

        assert main(CONFIG_ARGS + ["validate", str(good)]) == EXIT_OK
        report = json.loads(capsys.readouterr().out)
        assert report["valid"] is True

        assert main(CONFIG_ARGS + ["validate", str(bad)]) == EXIT_FAILURE
        report = json.loads(capsys.readouterr().out)
        assert report["errors"] == ["Equipment element is missing ID attribute"]

    def test_fatal_import(self, tmp_path, capsys):
        broken = tmp_path / "broken.xml"
        broken.write_text("<DEXPI-Document>", encoding="utf-8")
        assert main(CONFIG_ARGS + ["import", str(broken)]) == EXIT_FATAL_PARSE
        assert "XML Parse Error" in capsys.readouterr().err

    def test_missing_input(self, tmp_path):
        assert main(CONFIG_ARGS + ["import", str(tmp_path / "absent.xml")]) == EXIT_FAILURE


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
