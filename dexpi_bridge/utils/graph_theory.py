"""
Graph theory utilities for process diagrams.

Provides connectivity checks and a layered layout using NetworkX:
- Isolated node detection
- Dangling edge detection (edges whose endpoints are not nodes)
- Layered left-to-right layout following the flow direction
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple
import networkx as nx

from dexpi_bridge.converter.models.document import ProcessModel
from dexpi_bridge.converter.models.graph import GraphNode, GraphSnapshot
from dexpi_bridge.services.config_service import LayoutParameters

logger = logging.getLogger(__name__)

EdgeTuple = Tuple[str, str, str]


class ProcessGraphAnalyzer:
    """
    Directed-graph view of a diagram or process model.

    Nodes are node/step ids; edges are (edge id, source, target) tuples.
    Edges referencing unknown nodes are kept aside as dangling instead of
    creating implicit nodes.
    """

    def __init__(self, node_ids: Iterable[str], edges: Iterable[EdgeTuple]):
        """
        Initialize the analyzer.

        Args:
            node_ids: Ids of all nodes
            edges: (edge id, source node id, target node id) tuples
        """
        self.graph = nx.DiGraph()
        self.graph.add_nodes_from(node_ids)
        self.dangling: List[EdgeTuple] = []

        for edge_id, source, target in edges:
            if source in self.graph and target in self.graph:
                self.graph.add_edge(source, target, id=edge_id)
            else:
                self.dangling.append((edge_id, source, target))

    @classmethod
    def from_snapshot(cls, snapshot: GraphSnapshot) -> "ProcessGraphAnalyzer":
        return cls(
            snapshot.node_ids(),
            [(edge.id, edge.source, edge.target) for edge in snapshot.edges],
        )

    @classmethod
    def from_process_model(cls, model: ProcessModel) -> "ProcessGraphAnalyzer":
        """Resolve FromPort/ToPort references to their owning step or external port."""
        owners: Dict[str, str] = {}
        for step in model.steps:
            owners[step.id] = step.id
            for port in step.ports:
                owners[port.id] = step.id
        for ext_port in model.external_ports:
            for alias in (ext_port.id, f"{ext_port.id}_out_default", f"{ext_port.id}_in_default"):
                owners[alias] = ext_port.id

        node_ids = [step.id for step in model.steps] + [port.id for port in model.external_ports]
        edges = [
            (conn.id, owners.get(conn.from_port, conn.from_port), owners.get(conn.to_port, conn.to_port))
            for conn in model.connections
        ]
        return cls(node_ids, edges)

    def isolated_nodes(self) -> List[str]:
        """Nodes without any incoming or outgoing edge, in insertion order."""
        isolated = set(nx.isolates(self.graph))
        return [node for node in self.graph.nodes() if node in isolated]

    def dangling_edges(self) -> List[EdgeTuple]:
        return list(self.dangling)

    def layers(self) -> List[List[str]]:
        """
        Group nodes into flow layers.

        Cycles (recycle streams) are collapsed into strongly connected
        components first so every node still lands in exactly one layer.
        """
        if self.graph.number_of_nodes() == 0:
            return []

        condensed = nx.condensation(self.graph)
        order = {node: index for index, node in enumerate(self.graph.nodes())}
        layers: List[List[str]] = []
        for generation in nx.topological_generations(condensed):
            members: List[str] = []
            for component in generation:
                members.extend(condensed.nodes[component]["members"])
            layers.append(sorted(members, key=order.get))
        return layers

    def layered_layout(self, params: Optional[LayoutParameters] = None) -> Dict[str, Tuple[float, float]]:
        """
        Compute left-to-right positions by flow layer.

        Args:
            params: Grid start and spacing settings

        Returns:
            Mapping of node id to (x, y)
        """
        params = params or LayoutParameters()
        positions: Dict[str, Tuple[float, float]] = {}
        for column, members in enumerate(self.layers()):
            for row, node_id in enumerate(members):
                positions[node_id] = (
                    params.grid_start_x + column * params.grid_spacing_x,
                    params.grid_start_y + row * params.grid_spacing_y,
                )
        return positions


def apply_layered_layout(
    nodes: List[GraphNode],
    analyzer: ProcessGraphAnalyzer,
    params: Optional[LayoutParameters] = None
) -> None:
    """Overwrite node positions with the layered layout."""
    positions = analyzer.layered_layout(params)
    for node in nodes:
        if node.id in positions:
            node.x, node.y = positions[node.id]
    logger.info(f"Re-laid out {len(positions)} nodes in {len(analyzer.layers())} layers")
