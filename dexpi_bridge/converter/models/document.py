"""
Pydantic models for the DEXPI document (interchange side of the converter).
"""

from typing import Dict, List, Optional, Union
from pydantic import BaseModel, Field, field_validator
from enum import Enum


class DiagramType(str, Enum):
    """DEXPI diagram types, lowest to highest detail."""
    BFD = "BFD"
    PFD = "PFD"
    PID = "P&ID"


class DexpiFormat(str, Enum):
    """Source dialect of a parsed document."""
    DEXPI_XML = "dexpi-xml"
    PROTEUS = "proteus"
    UNKNOWN = "unknown"


class PortDirection(str, Enum):
    """Port direction."""
    INLET = "inlet"
    OUTLET = "outlet"


class FlowType(str, Enum):
    """Kind of flow carried by a port or connection."""
    MATERIAL = "material"
    ENERGY = "energy"
    UTILITY = "utility"
    INFORMATION = "information"


class Point(BaseModel):
    """A plain coordinate pair."""
    x: float = 0.0
    y: float = 0.0


class Layout(BaseModel):
    """Position and optional size of a step or external port."""
    x: float = Field(0.0, description="Horizontal position")
    y: float = Field(0.0, description="Vertical position")
    width: Optional[float] = Field(None, description="Rendered width")
    height: Optional[float] = Field(None, description="Rendered height")


class Parameter(BaseModel):
    """Named parameter of a process step."""
    name: str
    value: Union[float, str]
    unit: Optional[str] = None


class Port(BaseModel):
    """Directional connection point owned by a process step."""
    id: str = Field(description="Unique port identifier")
    name: str = Field(description="Port name (handle name, 'Input'/'Output' or nozzle tag)")
    direction: PortDirection = PortDirection.INLET
    flow_type: FlowType = FlowType.MATERIAL
    owner_step_id: Optional[str] = Field(None, description="Id of the owning step")
    nozzle: bool = Field(False, description="True for primary equipment nozzles")


class ExternalPort(BaseModel):
    """Boundary node acting as both a port and a visible element."""
    id: str
    name: str
    direction: PortDirection = PortDirection.INLET
    flow_type: FlowType = FlowType.MATERIAL
    layout: Optional[Layout] = None


class ProcessStep(BaseModel):
    """A process step (equipment or functional block)."""
    id: str = Field(description="Unique step identifier")
    taxonomy_type: str = Field(description="DEXPI process class, e.g. 'Process/Process.Reacting'")
    name: str = Field(description="Display name")
    description: Optional[str] = None
    ports: List[Port] = Field(default_factory=list)
    parameters: List[Parameter] = Field(default_factory=list)
    layout: Optional[Layout] = None
    original_element_type: Optional[str] = Field(
        None,
        description="Diagram node type or legacy ComponentClass; takes precedence over "
                    "taxonomy_type on import when still valid in the target mode"
    )


class PhysicalQuantity(BaseModel):
    """A value with a unit."""
    value: float
    unit: str = ""


class StreamProperties(BaseModel):
    """Stream attributes of a connection."""
    flow_rate: Optional[PhysicalQuantity] = None
    temperature: Optional[PhysicalQuantity] = None
    pressure: Optional[PhysicalQuantity] = None
    composition: Optional[str] = None

    def is_empty(self) -> bool:
        return (
            self.flow_rate is None
            and self.temperature is None
            and self.pressure is None
            and not self.composition
        )


class InlineComponent(BaseModel):
    """Valve or fitting drawn on a pipe instead of as a separate node."""
    id: str
    component_class: str = Field(description="Legacy ComponentClass, e.g. 'GateValve'")
    category: str = Field("Valves", description="Rendering category")
    symbol_index: int = Field(0, ge=0, description="Symbol variant within the category")
    label: Optional[str] = None
    position: float = Field(0.5, ge=0.0, le=1.0, description="Fraction along the connection path")
    original_position: Optional[Point] = None
    rotation: float = Field(0.0, description="Rotation in degrees")

    @field_validator('symbol_index', mode='before')
    @classmethod
    def coerce_symbol_index(cls, v):
        if isinstance(v, float):
            return int(v)
        return v


class ProcessConnection(BaseModel):
    """Directed flow between two ports."""
    id: str
    taxonomy_type: str = Field(description="DEXPI connection class, e.g. 'Process/Process.MaterialFlow'")
    from_port: str
    to_port: str
    flow_type: FlowType = FlowType.MATERIAL
    label: Optional[str] = None
    stream_properties: Optional[StreamProperties] = None
    original_element_type: Optional[str] = Field(None, description="Diagram edge type for round trips")
    inline_components: List[InlineComponent] = Field(default_factory=list)


class ProcessModelMetadata(BaseModel):
    """Provenance information of a process model."""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    application_source: Optional[str] = None
    custom_attributes: Dict[str, str] = Field(default_factory=dict)


class ProcessModel(BaseModel):
    """Root of the DEXPI process model."""
    id: str
    name: str
    description: Optional[str] = None
    diagram_type: Optional[DiagramType] = Field(None, description="None when the document does not declare it")
    steps: List[ProcessStep] = Field(default_factory=list)
    connections: List[ProcessConnection] = Field(default_factory=list)
    external_ports: List[ExternalPort] = Field(default_factory=list)
    metadata: Optional[ProcessModelMetadata] = None

    def step_types(self) -> List[str]:
        return [step.taxonomy_type for step in self.steps]

    def known_port_references(self) -> List[str]:
        """All strings a connection may legally use as FromPort/ToPort."""
        references: List[str] = []
        for step in self.steps:
            references.extend(port.id for port in step.ports)
            references.append(step.id)
        for ext_port in self.external_ports:
            references.extend([
                ext_port.id,
                f"{ext_port.id}_out_default",
                f"{ext_port.id}_in_default",
            ])
        return references


class DexpiDocument(BaseModel):
    """A parsed or to-be-serialized DEXPI document."""
    version: str = "2.0"
    process_model: ProcessModel
    source_format: DexpiFormat = DexpiFormat.DEXPI_XML
