"""
Interface for the externally owned taxonomy configuration.
"""

from abc import ABC, abstractmethod
from typing import List, Optional


class ITaxonomyProvider(ABC):
    """Legal element-type strings per diagram mode and per rendering category."""

    @abstractmethod
    def node_types(self, mode: str) -> List[str]:
        """Node types the canvas accepts in the given mode."""
        pass

    @abstractmethod
    def edge_types(self, mode: str) -> List[str]:
        """Edge types the canvas accepts in the given mode."""
        pass

    @abstractmethod
    def boundary_node_types(self) -> List[str]:
        """Node types exported as external ports instead of process steps."""
        pass

    @abstractmethod
    def categories(self) -> List[str]:
        """Rendering categories available in detailed modes."""
        pass

    def is_node_type_valid(self, node_type: Optional[str], mode: str) -> bool:
        if not node_type:
            return False
        return node_type in self.node_types(mode) or node_type in self.boundary_node_types()

    def is_edge_type_valid(self, edge_type: Optional[str], mode: str) -> bool:
        if not edge_type:
            return False
        return edge_type in self.edge_types(mode)

    def is_boundary(self, node_type: Optional[str]) -> bool:
        return node_type in self.boundary_node_types()
