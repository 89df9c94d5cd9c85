"""
Bidirectional type mappings between diagram element types, DEXPI 2.0 process
classes and DEXPI 1.x (Proteus) ComponentClass names.

All tables are immutable module-level mappings; every lookup is a pure
function. Lookups on legacy class names are case-insensitive so that a class
resolves to the same type and symbol variant regardless of input casing.
"""

from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Union
import logging

from dexpi_bridge.converter.models.graph import DiagramMode
from dexpi_bridge.converter.models.document import FlowType

logger = logging.getLogger(__name__)

PROCESS_PREFIX = "Process/Process."

GENERIC_PROCESS_STEP = "Process/Process.GenericProcessStep"
EXTERNAL_PORT = "Process/Process.ExternalPort"
STORING = "Process/Process.Storing"
REACTING = "Process/Process.Reacting"
SEPARATING = "Process/Process.Separating"
SPLITTING = "Process/Process.Splitting"
TRANSPORTING_LIQUIDS = "Process/Process.TransportingLiquids"
TRANSPORTING_GASES = "Process/Process.TransportingGases"
COMPRESSING = "Process/Process.Compressing"
HEATING_COOLING = "Process/Process.HeatingCooling"
MIXING_MATERIAL = "Process/Process.MixingMaterial"
THROTTLING = "Process/Process.Throttling"

MATERIAL_FLOW = "Process/Process.MaterialFlow"
ENERGY_FLOW = "Process/Process.EnergyFlow"
UTILITY_FLOW = "Process/Process.UtilityFlow"
INFORMATION_FLOW = "Process/Process.InformationFlow"

BOUNDARY_NODE_TYPE = "input_output"
FALLBACK_EDGE_TYPE = "material_stream"


def _frozen(table: dict) -> Mapping:
    return MappingProxyType(table)


def _casefold_index(table: Mapping) -> Mapping:
    return MappingProxyType({key.lower(): value for key, value in table.items()})


# ============================================================================
# Diagram node types <-> DEXPI 2.0 process classes
# ============================================================================

NODE_TYPE_TO_TAXONOMY = _frozen({
    # BFD
    "process_block": GENERIC_PROCESS_STEP,
    "input_output": EXTERNAL_PORT,
    "storage": STORING,
    # PFD
    "reactor": REACTING,
    "tank": STORING,
    "vessel": STORING,
    "pump": TRANSPORTING_LIQUIDS,
    "compressor": COMPRESSING,
    "heat_exchanger": HEATING_COOLING,
    "column": SEPARATING,
    "valve": THROTTLING,
    "mixer": MIXING_MATERIAL,
    "splitter": SPLITTING,
    # P&ID (category based)
    "pumps": TRANSPORTING_LIQUIDS,
    "pumps_iso": TRANSPORTING_LIQUIDS,
    "pumps_din": TRANSPORTING_LIQUIDS,
    "compressors": COMPRESSING,
    "compressors_iso": COMPRESSING,
    "vessels": STORING,
    "separators": SEPARATING,
    "heat_exchangers": HEATING_COOLING,
    "mixers": MIXING_MATERIAL,
    "agitators": MIXING_MATERIAL,
    "filters": SEPARATING,
    "centrifuges": SEPARATING,
    "driers": HEATING_COOLING,
    "valves": THROTTLING,
    "instruments": GENERIC_PROCESS_STEP,
    "flow_sensors": GENERIC_PROCESS_STEP,
    "fittings": GENERIC_PROCESS_STEP,
    "piping": GENERIC_PROCESS_STEP,
})

TAXONOMY_TO_NODE_TYPE = _frozen({
    GENERIC_PROCESS_STEP: "process_block",
    EXTERNAL_PORT: "input_output",
    STORING: "storage",
    REACTING: "reactor",
    SEPARATING: "column",
    SPLITTING: "splitter",
    TRANSPORTING_LIQUIDS: "pump",
    TRANSPORTING_GASES: "compressor",
    COMPRESSING: "compressor",
    HEATING_COOLING: "heat_exchanger",
    MIXING_MATERIAL: "mixer",
    THROTTLING: "valve",
})

# Detailed (P&ID) mode renders by category
TAXONOMY_TO_PID_NODE_TYPE = _frozen({
    STORING: "vessels",
    REACTING: "vessels",
    SEPARATING: "separators",
    TRANSPORTING_LIQUIDS: "pumps_iso",
    TRANSPORTING_GASES: "compressors_iso",
    COMPRESSING: "compressors_iso",
    HEATING_COOLING: "heat_exchangers",
    MIXING_MATERIAL: "mixers",
    THROTTLING: "valves",
})

# ============================================================================
# Diagram edge types <-> DEXPI 2.0 connection classes
# ============================================================================

EDGE_TYPE_TO_TAXONOMY = _frozen({
    "material_stream": MATERIAL_FLOW,
    "energy_stream": ENERGY_FLOW,
    "utility_stream": UTILITY_FLOW,
    "signal": INFORMATION_FLOW,
    # Generic types
    "stream": MATERIAL_FLOW,
    "default": MATERIAL_FLOW,
    "arrow": MATERIAL_FLOW,
    "dashed": ENERGY_FLOW,
})

TAXONOMY_TO_EDGE_TYPE = _frozen({
    MATERIAL_FLOW: "material_stream",
    ENERGY_FLOW: "energy_stream",
    UTILITY_FLOW: "utility_stream",
    INFORMATION_FLOW: "signal",
})

STREAM_TO_FLOW = _frozen({
    "material": FlowType.MATERIAL,
    "energy": FlowType.ENERGY,
    "utility": FlowType.UTILITY,
    "signal": FlowType.INFORMATION,
    "information": FlowType.INFORMATION,
})

FLOW_TO_STREAM = _frozen({
    FlowType.MATERIAL: "material",
    FlowType.ENERGY: "energy",
    FlowType.UTILITY: "utility",
    FlowType.INFORMATION: "signal",
})

# ============================================================================
# Mode detection
# ============================================================================

BFD_NODE_TYPES = frozenset({"process_block", "input_output", "storage"})

PFD_NODE_TYPES = frozenset({
    "reactor", "tank", "vessel", "pump", "compressor",
    "heat_exchanger", "column", "valve", "mixer", "splitter",
})

BFD_TAXONOMY_TYPES = frozenset({GENERIC_PROCESS_STEP, EXTERNAL_PORT})

_FALLBACK_NODE_TYPES = _frozen({
    DiagramMode.PID: "vessels",
    DiagramMode.PFD: "vessel",
    DiagramMode.BFD: "process_block",
    DiagramMode.PLAYGROUND: "process_block",
})

# ============================================================================
# DEXPI 1.x (Proteus) ComponentClass tables
# ============================================================================

LEGACY_CLASS_TO_TAXONOMY = _frozen({
    # Pumps
    "CentrifugalPump": TRANSPORTING_LIQUIDS,
    "PositiveDisplacementPump": TRANSPORTING_LIQUIDS,
    "Pump": TRANSPORTING_LIQUIDS,
    "ReciprocatingPump": TRANSPORTING_LIQUIDS,
    # Compressors
    "Compressor": COMPRESSING,
    "CentrifugalCompressor": COMPRESSING,
    "PositiveDisplacementCompressor": COMPRESSING,
    # Vessels and tanks
    "Vessel": STORING,
    "PressureVessel": STORING,
    "Tank": STORING,
    "StorageTank": STORING,
    "Drum": STORING,
    # Reactors
    "Reactor": REACTING,
    "ShellandTubeReactor": REACTING,
    "FixedBedReactor": REACTING,
    "FluidizedBedReactor": REACTING,
    # Heat exchangers
    "HeatExchanger": HEATING_COOLING,
    "ShellandTubeHeatExchanger": HEATING_COOLING,
    "TubularHeatExchanger": HEATING_COOLING,
    "PlateHeatExchanger": HEATING_COOLING,
    "AirCooler": HEATING_COOLING,
    "Cooler": HEATING_COOLING,
    "Heater": HEATING_COOLING,
    # Columns and separators
    "Column": SEPARATING,
    "DistillationColumn": SEPARATING,
    "AbsorptionColumn": SEPARATING,
    "PackedColumn": SEPARATING,
    "Separator": SEPARATING,
    "GasLiquidSeparator": SEPARATING,
    "Filter": SEPARATING,
    # Mixers
    "Mixer": MIXING_MATERIAL,
    "StaticMixer": MIXING_MATERIAL,
    # Valves
    "Valve": THROTTLING,
    "ControlValve": THROTTLING,
    "CheckValve": THROTTLING,
    "SwingCheckValve": THROTTLING,
    "GlobeValve": THROTTLING,
    "BallValve": THROTTLING,
    "ButterflyValve": THROTTLING,
    "GateValve": THROTTLING,
    "SafetyValve": THROTTLING,
    "SpringLoadedGlobeSafetyValve": THROTTLING,
    # Fittings
    "PipeReducer": GENERIC_PROCESS_STEP,
    "PipeTee": GENERIC_PROCESS_STEP,
    "BlindFlange": GENERIC_PROCESS_STEP,
    "Flange": GENERIC_PROCESS_STEP,
    "Equipment": GENERIC_PROCESS_STEP,
})

LEGACY_CLASS_TO_NODE_TYPE = _frozen({
    "CentrifugalPump": "pump",
    "PositiveDisplacementPump": "pump",
    "Pump": "pump",
    "ReciprocatingPump": "pump",
    "Compressor": "compressor",
    "CentrifugalCompressor": "compressor",
    "PositiveDisplacementCompressor": "compressor",
    "Vessel": "vessel",
    "PressureVessel": "vessel",
    "Tank": "tank",
    "StorageTank": "tank",
    "Drum": "vessel",
    "Reactor": "reactor",
    "ShellandTubeReactor": "reactor",
    "FixedBedReactor": "reactor",
    "FluidizedBedReactor": "reactor",
    "HeatExchanger": "heat_exchanger",
    "ShellandTubeHeatExchanger": "heat_exchanger",
    "TubularHeatExchanger": "heat_exchanger",
    "PlateHeatExchanger": "heat_exchanger",
    "AirCooler": "heat_exchanger",
    "Cooler": "heat_exchanger",
    "Heater": "heat_exchanger",
    "Column": "column",
    "DistillationColumn": "column",
    "AbsorptionColumn": "column",
    "PackedColumn": "column",
    "Separator": "column",
    "GasLiquidSeparator": "column",
    "Filter": "column",
    "Mixer": "mixer",
    "StaticMixer": "mixer",
    "Valve": "valve",
    "ControlValve": "valve",
    "CheckValve": "valve",
    "SwingCheckValve": "valve",
    "GlobeValve": "valve",
    "BallValve": "valve",
    "ButterflyValve": "valve",
    "GateValve": "valve",
    "SafetyValve": "valve",
    "SpringLoadedGlobeSafetyValve": "valve",
    "PipeReducer": "process_block",
    "PipeTee": "process_block",
    "BlindFlange": "process_block",
    "Flange": "process_block",
    "Equipment": "process_block",
})

LEGACY_CLASS_TO_CATEGORY = _frozen({
    # Pumps
    "CentrifugalPump": "Pumps_ISO",
    "PositiveDisplacementPump": "Pumps_ISO",
    "Pump": "Pumps_ISO",
    "ReciprocatingPump": "Pumps_ISO",
    "DiaphragmPump": "Pumps_ISO",
    "GearPump": "Pumps_ISO",
    "ScrewPump": "Pumps_ISO",
    # Compressors
    "Compressor": "Compressors_ISO",
    "CentrifugalCompressor": "Compressors_ISO",
    "PositiveDisplacementCompressor": "Compressors_ISO",
    "ReciprocatingCompressor": "Compressors_ISO",
    "ScrewCompressor": "Compressors_ISO",
    "Blower": "Compressors_ISO",
    "Fan": "Compressors_ISO",
    # Vessels and tanks
    "Vessel": "Vessels",
    "PressureVessel": "Vessels",
    "Tank": "Vessels",
    "StorageTank": "Vessels",
    "Drum": "Vessels",
    "Accumulator": "Vessels",
    "Receiver": "Vessels",
    # Heat exchangers
    "HeatExchanger": "Heat_Exchangers",
    "ShellandTubeHeatExchanger": "Heat_Exchangers",
    "TubularHeatExchanger": "Heat_Exchangers",
    "PlateHeatExchanger": "Heat_Exchangers",
    "AirCooler": "Heat_Exchangers",
    "Cooler": "Heat_Exchangers",
    "Heater": "Heat_Exchangers",
    "Condenser": "Heat_Exchangers",
    "Reboiler": "Heat_Exchangers",
    "Evaporator": "Heat_Exchangers",
    # Columns and separators
    "Column": "Separators",
    "DistillationColumn": "Separators",
    "AbsorptionColumn": "Separators",
    "PackedColumn": "Separators",
    "Separator": "Separators",
    "GasLiquidSeparator": "Separators",
    "Cyclone": "Separators",
    "Scrubber": "Separators",
    # Filters
    "Filter": "Filters",
    "Strainer": "Filters",
    # Mixers and agitators
    "Mixer": "Mixers",
    "StaticMixer": "Mixers",
    "Agitator": "Agitators",
    "Stirrer": "Agitators",
    # Valves
    "Valve": "Valves",
    "ControlValve": "Valves",
    "CheckValve": "Valves",
    "SwingCheckValve": "Valves",
    "GateValve": "Valves",
    "GlobeValve": "Valves",
    "BallValve": "Valves",
    "ButterflyValve": "Valves",
    "SafetyValve": "Valves",
    "SpringLoadedGlobeSafetyValve": "Valves",
    "PressureReliefValve": "Valves",
    # Fittings
    "PipeReducer": "Fittings",
    "PipeTee": "Fittings",
    "BlindFlange": "Fittings",
    "Flange": "Fittings",
    # Reactors use the vessel symbols
    "Reactor": "Vessels",
    "ShellandTubeReactor": "Vessels",
    "FixedBedReactor": "Vessels",
    "FluidizedBedReactor": "Vessels",
    "ContinuousStirredTankReactor": "Vessels",
    "PlugFlowReactor": "Vessels",
})

LEGACY_CLASS_TO_SYMBOL_INDEX = _frozen({
    "Valve": 0,
    "GateValve": 1,
    "GlobeValve": 2,
    "BallValve": 3,
    "ButterflyValve": 4,
    "CheckValve": 5,
    "SwingCheckValve": 5,
    "PlugValve": 6,
    "NeedleValve": 7,
    "DiaphragmValve": 8,
    "PinchValve": 9,
    "SafetyValve": 10,
    "SpringLoadedGlobeSafetyValve": 10,
    "PressureReliefValve": 10,
    "ControlValve": 11,
    "ThreeWayValve": 12,
})

# Nested equipment that never becomes a standalone step
SKIPPED_SUB_COMPONENT_CLASSES = frozenset({"Chamber", "TubeBundle", "Impeller", "Displacer"})

# Piping components drawn on the pipe rather than as nodes, with their
# rendering category and edge-symbol variant
INLINE_COMPONENT_CATEGORY = _frozen({
    "Valve": "Valves",
    "ControlValve": "Valves",
    "CheckValve": "Valves",
    "SwingCheckValve": "Valves",
    "GlobeValve": "Valves",
    "BallValve": "Valves",
    "ButterflyValve": "Valves",
    "GateValve": "Valves",
    "SafetyValve": "Valves",
    "SpringLoadedGlobeSafetyValve": "Valves",
    "NeedleValve": "Valves",
    "PlugValve": "Valves",
    "DiaphragmValve": "Valves",
    "PinchValve": "Valves",
    "ReliefValve": "Valves",
    "RotaryValve": "Valves",
    "ThreeWayValve": "Valves",
    "FourWayValve": "Valves",
    "AngleValve": "Valves",
    "RegulatingValve": "Valves",
    "PipeReducer": "Fittings",
    "PipeTee": "Fittings",
    "BlindFlange": "Fittings",
    "Flange": "Fittings",
    "Elbow": "Fittings",
    "Cap": "Fittings",
    "Union": "Fittings",
    "Coupling": "Fittings",
})

INLINE_COMPONENT_SYMBOL_INDEX = _frozen({
    "GateValve": 0,
    "GlobeValve": 1,
    "BallValve": 2,
    "ButterflyValve": 3,
    "CheckValve": 4,
    "SwingCheckValve": 4,
    "ControlValve": 5,
    "SafetyValve": 6,
    "SpringLoadedGlobeSafetyValve": 6,
    "ReliefValve": 6,
    "NeedleValve": 7,
    "PlugValve": 8,
    "DiaphragmValve": 9,
    "ThreeWayValve": 10,
    "Valve": 0,
    "PipeReducer": 0,
    "PipeTee": 1,
    "Flange": 2,
    "BlindFlange": 3,
    "Elbow": 4,
})

_LEGACY_TAXONOMY_CI = _casefold_index(LEGACY_CLASS_TO_TAXONOMY)
_LEGACY_NODE_TYPE_CI = _casefold_index(LEGACY_CLASS_TO_NODE_TYPE)
_LEGACY_CATEGORY_CI = _casefold_index(LEGACY_CLASS_TO_CATEGORY)
_LEGACY_SYMBOL_CI = _casefold_index(LEGACY_CLASS_TO_SYMBOL_INDEX)
_INLINE_CATEGORY_CI = _casefold_index(INLINE_COMPONENT_CATEGORY)
_INLINE_SYMBOL_CI = _casefold_index(INLINE_COMPONENT_SYMBOL_INDEX)
_TAXONOMY_TO_NODE_TYPE_CI = _casefold_index(TAXONOMY_TO_NODE_TYPE)
_TAXONOMY_TO_PID_NODE_TYPE_CI = _casefold_index(TAXONOMY_TO_PID_NODE_TYPE)


def _lookup(table: Mapping, casefolded: Mapping, key: Optional[str]):
    """Exact match, then case-insensitive match; None on miss."""
    if not key:
        return None
    if key in table:
        return table[key]
    return casefolded.get(key.lower())


def _mode(mode: Union[DiagramMode, str]) -> DiagramMode:
    return mode if isinstance(mode, DiagramMode) else DiagramMode(mode)


# ============================================================================
# Diagram -> DEXPI
# ============================================================================

def diagram_type_to_taxonomy(node_type: Optional[str]) -> Optional[str]:
    """
    Map a diagram node type to its DEXPI process class.

    Args:
        node_type: Diagram node type, e.g. "reactor"

    Returns:
        DEXPI class or None when unsupported (the caller applies a fallback)
    """
    if not node_type:
        return None
    return NODE_TYPE_TO_TAXONOMY.get(node_type)


def edge_type_to_taxonomy(edge_type: Optional[str]) -> Optional[str]:
    """Map a diagram edge type to its DEXPI connection class, None when unsupported."""
    if not edge_type:
        return None
    return EDGE_TYPE_TO_TAXONOMY.get(edge_type)


def stream_type_to_flow(stream_type: Optional[str]) -> FlowType:
    """Map an edge stream attribute to a flow type; unknown streams are material."""
    if not stream_type:
        return FlowType.MATERIAL
    return STREAM_TO_FLOW.get(stream_type.lower(), FlowType.MATERIAL)


def flow_to_stream_type(flow_type: Union[FlowType, str, None]) -> str:
    """Map a flow type back to the edge stream attribute."""
    try:
        return FLOW_TO_STREAM[FlowType(flow_type)]
    except ValueError:
        return "material"


def is_node_type_supported(node_type: Optional[str]) -> bool:
    return bool(node_type) and node_type in NODE_TYPE_TO_TAXONOMY


def is_edge_type_supported(edge_type: Optional[str]) -> bool:
    return bool(edge_type) and edge_type in EDGE_TYPE_TO_TAXONOMY


# ============================================================================
# DEXPI -> Diagram
# ============================================================================

def fallback_node_type(mode: Union[DiagramMode, str]) -> str:
    """Node type used when nothing else resolves in the given mode."""
    return _FALLBACK_NODE_TYPES[_mode(mode)]


def fallback_edge_type() -> str:
    """Edge type used for unknown DEXPI connection classes."""
    return FALLBACK_EDGE_TYPE


def taxonomy_to_node_type(taxonomy_type: Optional[str], mode: Union[DiagramMode, str]) -> Optional[str]:
    """
    Map a DEXPI process class to a diagram node type for the given mode.

    Storing becomes "tank" in PFD mode; P&ID mode maps to category node types.

    Returns:
        Node type or None when the class is unknown
    """
    mode = _mode(mode)
    if mode == DiagramMode.PID:
        return _lookup(TAXONOMY_TO_PID_NODE_TYPE, _TAXONOMY_TO_PID_NODE_TYPE_CI, taxonomy_type)

    node_type = _lookup(TAXONOMY_TO_NODE_TYPE, _TAXONOMY_TO_NODE_TYPE_CI, taxonomy_type)
    if node_type == "storage" and mode == DiagramMode.PFD:
        return "tank"
    return node_type


def taxonomy_to_edge_type(taxonomy_type: Optional[str]) -> Optional[str]:
    """Map a DEXPI connection class to a diagram edge type, None when unknown."""
    if not taxonomy_type:
        return None
    return TAXONOMY_TO_EDGE_TYPE.get(taxonomy_type)


def legacy_class_to_taxonomy(component_class: Optional[str]) -> str:
    """
    Map a Proteus ComponentClass to a DEXPI process class.

    Args:
        component_class: e.g. "CentrifugalPump" (any casing)

    Returns:
        DEXPI class, GenericProcessStep on a miss
    """
    return _lookup(LEGACY_CLASS_TO_TAXONOMY, _LEGACY_TAXONOMY_CI, component_class) or GENERIC_PROCESS_STEP


def legacy_class_to_node_type(component_class: Optional[str]) -> Optional[str]:
    """Map a Proteus ComponentClass to a PFD-level node type, None on a miss."""
    return _lookup(LEGACY_CLASS_TO_NODE_TYPE, _LEGACY_NODE_TYPE_CI, component_class)


def legacy_class_to_category(component_class: Optional[str]) -> Optional[str]:
    """Map a Proteus ComponentClass to its rendering category, None on a miss."""
    return _lookup(LEGACY_CLASS_TO_CATEGORY, _LEGACY_CATEGORY_CI, component_class)


def category_to_node_type(category: str) -> str:
    """Rendering category to node type: lowercase, whitespace to underscores."""
    return "_".join(category.lower().split())


def legacy_class_to_symbol_index(component_class: Optional[str]) -> int:
    """Symbol variant within the category; 0 (generic symbol) when unmapped."""
    index = _lookup(LEGACY_CLASS_TO_SYMBOL_INDEX, _LEGACY_SYMBOL_CI, component_class)
    return 0 if index is None else index


def taxonomy_or_legacy_name_to_diagram_type(name: Optional[str], mode: Union[DiagramMode, str]) -> str:
    """
    Resolve a DEXPI class or Proteus ComponentClass to a diagram node type.

    Tries an exact match, then a case-insensitive match, then the mode
    fallback. In P&ID mode the rendering category is preferred.

    Args:
        name: DEXPI class or legacy class name
        mode: Target diagram mode

    Returns:
        Node type (never None)
    """
    mode = _mode(mode)
    if mode == DiagramMode.PID:
        category = legacy_class_to_category(name)
        if category:
            return category_to_node_type(category)

    return (
        legacy_class_to_node_type(name)
        or taxonomy_to_node_type(name, mode)
        or fallback_node_type(mode)
    )


# ============================================================================
# Inline components
# ============================================================================

def is_inline_component_class(component_class: Optional[str]) -> bool:
    return _lookup(INLINE_COMPONENT_CATEGORY, _INLINE_CATEGORY_CI, component_class) is not None


def inline_component_category(component_class: Optional[str]) -> str:
    return _lookup(INLINE_COMPONENT_CATEGORY, _INLINE_CATEGORY_CI, component_class) or "Valves"


def inline_component_symbol_index(component_class: Optional[str]) -> int:
    index = _lookup(INLINE_COMPONENT_SYMBOL_INDEX, _INLINE_SYMBOL_CI, component_class)
    return 0 if index is None else index


def is_skipped_sub_component(component_class: Optional[str]) -> bool:
    return component_class in SKIPPED_SUB_COMPONENT_CLASSES


# ============================================================================
# Mode detection
# ============================================================================

def detect_mode_from_node_types(node_types: Iterable[str]) -> DiagramMode:
    """PFD if any PFD type is present, else BFD if any BFD type, else playground."""
    node_types = list(node_types)
    if any(t in PFD_NODE_TYPES for t in node_types):
        return DiagramMode.PFD
    if any(t in BFD_NODE_TYPES for t in node_types):
        return DiagramMode.BFD
    return DiagramMode.PLAYGROUND


def detect_mode_from_taxonomy_types(taxonomy_types: Iterable[str]) -> DiagramMode:
    """PFD only when every class is outside the BFD set; mixed or empty is BFD."""
    taxonomy_types = list(taxonomy_types)
    has_bfd = any(t in BFD_TAXONOMY_TYPES for t in taxonomy_types)
    has_pfd = any(t not in BFD_TAXONOMY_TYPES for t in taxonomy_types)
    if has_pfd and not has_bfd:
        return DiagramMode.PFD
    return DiagramMode.BFD
