"""
Pydantic models for the diagram graph (canvas side of the converter).
"""

from typing import Any, Dict, List, Optional, Tuple
from pydantic import BaseModel, Field, field_validator
from enum import Enum

from dexpi_bridge.converter.models.document import InlineComponent
from dexpi_bridge.utils.type_utils import as_text


class DiagramMode(str, Enum):
    """Diagram editing modes of the canvas."""
    PLAYGROUND = "playground"
    BFD = "bfd"
    PFD = "pfd"
    PID = "pid"


# Well-known property keys on edges and boundary nodes
STREAM_TYPE = "stream_type"
FLOW_RATE = "flow_rate"
TEMPERATURE = "temperature"
PRESSURE = "pressure"
COMPOSITION = "composition"
DIRECTION = "direction"

# camelCase spellings written by the canvas
PROPERTY_ALIASES: Dict[str, str] = {
    "streamType": STREAM_TYPE,
    "flowRate": FLOW_RATE,
}


def _stringify_properties(value: Any) -> Any:
    if not isinstance(value, dict):
        return value
    result: Dict[str, str] = {}
    for key, item in value.items():
        if item is None:
            continue
        result[str(key)] = as_text(item) if not isinstance(item, str) else item
    return result


class NozzleInfo(BaseModel):
    """Nozzle of a P&ID equipment node."""
    id: str
    label: str
    direction: str = "inlet"


class GraphNode(BaseModel):
    """A node on the diagram canvas."""
    id: str = Field(description="Unique node identifier")
    type: str = Field("default", description="Diagram node type, e.g. 'reactor' or 'pumps_iso'")
    x: float = 0.0
    y: float = 0.0
    width: Optional[float] = None
    height: Optional[float] = None
    label: Optional[str] = None
    description: Optional[str] = None
    properties: Dict[str, str] = Field(default_factory=dict)
    category: Optional[str] = Field(None, description="Rendering category (P&ID mode)")
    symbol_index: Optional[int] = Field(None, description="Symbol variant within the category")
    nozzles: List[NozzleInfo] = Field(default_factory=list)

    @field_validator('properties', mode='before')
    @classmethod
    def stringify_properties(cls, v: Any) -> Any:
        return _stringify_properties(v)

    @property
    def position(self) -> Tuple[float, float]:
        return self.x, self.y

    def needs_layout(self) -> bool:
        return self.x == 0 and self.y == 0


class GraphEdge(BaseModel):
    """A directed edge on the diagram canvas."""
    id: str
    source: str
    target: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None
    type: str = "default"
    label: Optional[str] = None
    properties: Dict[str, str] = Field(default_factory=dict)
    inline_components: List[InlineComponent] = Field(default_factory=list)

    @field_validator('properties', mode='before')
    @classmethod
    def normalize_properties(cls, v: Any) -> Any:
        v = _stringify_properties(v)
        if isinstance(v, dict):
            return {PROPERTY_ALIASES.get(key, key): value for key, value in v.items()}
        return v

    def property_value(self, key: str) -> Optional[str]:
        value = self.properties.get(key)
        return value if value else None


class GraphSnapshot(BaseModel):
    """Nodes and edges of a diagram at one point in time."""
    nodes: List[GraphNode] = Field(default_factory=list)
    edges: List[GraphEdge] = Field(default_factory=list)

    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]

    def node_types(self) -> List[str]:
        return [node.type for node in self.nodes]
