"""
DEXPI document -> diagram graph.
"""

from .coordinates import CoordinateTransform, needs_transform, transform_for_document
from .document_to_graph import GraphBuilder, build_graph, build_port_table, detect_mode
from .layout import layout_nodes_without_position

__all__ = [
    "CoordinateTransform",
    "needs_transform",
    "transform_for_document",
    "GraphBuilder",
    "build_graph",
    "build_port_table",
    "detect_mode",
    "layout_nodes_without_position",
]
