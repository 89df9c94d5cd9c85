"""
Taxonomy provider backed by the `taxonomy:` section of config.yaml.
"""

from typing import List, Optional, Union

from dexpi_bridge.interfaces.taxonomy import ITaxonomyProvider
from dexpi_bridge.converter.models.graph import DiagramMode
from dexpi_bridge.services.config_service import TaxonomyConfig


class ConfiguredTaxonomy(ITaxonomyProvider):
    """Legal element types per mode, read from configuration."""

    def __init__(self, config: Optional[TaxonomyConfig] = None):
        self.config = config or TaxonomyConfig()

    @staticmethod
    def _key(mode: Union[DiagramMode, str]) -> str:
        return mode.value if isinstance(mode, DiagramMode) else str(mode)

    def node_types(self, mode: Union[DiagramMode, str]) -> List[str]:
        entry = self.config.modes.get(self._key(mode))
        return list(entry.node_types) if entry else []

    def edge_types(self, mode: Union[DiagramMode, str]) -> List[str]:
        entry = self.config.modes.get(self._key(mode))
        return list(entry.edge_types) if entry else []

    def boundary_node_types(self) -> List[str]:
        return list(self.config.boundary_node_types)

    def categories(self) -> List[str]:
        return list(self.config.categories)
