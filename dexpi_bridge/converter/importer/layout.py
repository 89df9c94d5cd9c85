"""
Placement of imported nodes that carry no position.
"""

from typing import List, Optional
import logging

from dexpi_bridge.converter.models.graph import GraphNode
from dexpi_bridge.services.config_service import LayoutParameters

logger = logging.getLogger(__name__)


def layout_grid(nodes: List[GraphNode], params: LayoutParameters) -> None:
    for index, node in enumerate(nodes):
        column = index % params.grid_columns
        row = index // params.grid_columns
        node.x = params.grid_start_x + column * params.grid_spacing_x
        node.y = params.grid_start_y + row * params.grid_spacing_y


def layout_beside(pending: List[GraphNode], placed: List[GraphNode], params: LayoutParameters) -> None:
    """Stack pending nodes in one column right of the placed nodes."""
    max_x = max((node.x for node in placed), default=0.0)
    max_x = max(max_x, 0.0)
    for index, node in enumerate(pending):
        node.x = max_x + params.column_spacing
        node.y = params.column_start_y + index * params.column_spacing


def layout_nodes_without_position(nodes: List[GraphNode], params: Optional[LayoutParameters] = None) -> int:
    """
    Give every node left at the origin a position.

    If no node has a position the whole diagram is laid out as a grid;
    otherwise the missing ones are placed in a column beside the
    bounding box of the positioned nodes.

    Args:
        nodes: Nodes to update in place
        params: Spacing settings

    Returns:
        Number of nodes that were placed
    """
    params = params or LayoutParameters()
    pending = [node for node in nodes if node.needs_layout()]
    if not pending:
        return 0

    if len(pending) == len(nodes):
        layout_grid(pending, params)
    else:
        placed = [node for node in nodes if not node.needs_layout()]
        layout_beside(pending, placed, params)

    logger.debug(f"Auto-placed {len(pending)} of {len(nodes)} nodes")
    return len(pending)
