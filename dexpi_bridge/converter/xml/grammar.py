"""
Generic DEXPI 2.0 grammar.

Every concept in a DEXPI 2.0 document is one of three shapes:

- ``Object[id, type]`` with ordered children
- ``Data[property]`` wrapping a scalar (String/Double/Boolean) or a nested Object
- ``Components[property]`` holding an ordered list of Objects

A single encode/decode pair converts between this grammar and lxml
elements; the model mapping in serializer.py and dexpi_parser.py never
touches XML directly.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple, Union
import logging

from lxml import etree

from dexpi_bridge.converter.xml.tree import XmlNode
from dexpi_bridge.utils.type_utils import as_text, format_number, parse_number

logger = logging.getLogger(__name__)

DEXPI_NAMESPACE = "https://dexpi.org/schema/2.0"
XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"

Scalar = Union[str, float, bool]


# ============================================================================
# Property-name resolvers
# ============================================================================

NameResolver = Callable[[str, Sequence[str]], Optional[str]]


def resolve_exact(name: str, available: Sequence[str]) -> Optional[str]:
    return name if name in available else None


def resolve_lowercase(name: str, available: Sequence[str]) -> Optional[str]:
    lowered = name.lower()
    return lowered if lowered in available else None


def resolve_lower_first(name: str, available: Sequence[str]) -> Optional[str]:
    camel = name[:1].lower() + name[1:]
    return camel if camel in available else None


def resolve_case_insensitive(name: str, available: Sequence[str]) -> Optional[str]:
    lowered = name.lower()
    for candidate in available:
        if candidate.lower() == lowered:
            return candidate
    return None


PROPERTY_RESOLVERS: Tuple[NameResolver, ...] = (
    resolve_exact,
    resolve_lowercase,
    resolve_lower_first,
    resolve_case_insensitive,
)


def resolve_property(
    name: str,
    available: Sequence[str],
    resolvers: Sequence[NameResolver] = PROPERTY_RESOLVERS
) -> Optional[str]:
    """
    Find the spelling of a property name actually present in a document.

    Args:
        name: Canonical property name, e.g. "ProcessSteps"
        available: Property names present on the object
        resolvers: Strategies tried in order

    Returns:
        The matching available name, or None
    """
    for resolver in resolvers:
        match = resolver(name, available)
        if match is not None:
            return match
    return None


# ============================================================================
# Grammar nodes
# ============================================================================

@dataclass
class DataEntry:
    """Named leaf holding a scalar or a nested object."""
    property: str
    value: Union[Scalar, "DexpiObject"]


@dataclass
class ComponentsEntry:
    """Named ordered list of child objects."""
    property: str
    objects: List["DexpiObject"] = field(default_factory=list)


@dataclass
class DexpiObject:
    """Typed object with ordered Data and Components children."""
    type: str
    id: Optional[str] = None
    children: List[Union[DataEntry, ComponentsEntry]] = field(default_factory=list)

    # -- building ------------------------------------------------------------

    def add_data(self, property: str, value: Union[Scalar, "DexpiObject", None]) -> "DexpiObject":
        """Append a Data child; None values are skipped."""
        if value is not None:
            self.children.append(DataEntry(property, value))
        return self

    def add_components(self, property: str, objects: Sequence["DexpiObject"]) -> "DexpiObject":
        """Append a Components child; empty lists are skipped."""
        if objects:
            self.children.append(ComponentsEntry(property, list(objects)))
        return self

    # -- reading -------------------------------------------------------------

    @property
    def data_entries(self) -> List[DataEntry]:
        return [c for c in self.children if isinstance(c, DataEntry)]

    @property
    def components_entries(self) -> List[ComponentsEntry]:
        return [c for c in self.children if isinstance(c, ComponentsEntry)]

    def has_data(self, name: str) -> bool:
        return self._data_entry(name) is not None

    def _data_entry(self, name: str) -> Optional[DataEntry]:
        entries = self.data_entries
        match = resolve_property(name, [e.property for e in entries])
        if match is None:
            return None
        for entry in entries:
            if entry.property == match:
                return entry
        return None

    def value(self, name: str) -> Union[Scalar, "DexpiObject", None]:
        entry = self._data_entry(name)
        return entry.value if entry else None

    def text(self, name: str) -> Optional[str]:
        """Scalar Data value as text; None when absent, empty or nested."""
        value = self.value(name)
        if value is None or isinstance(value, DexpiObject):
            return None
        text = as_text(value)
        return text if text else None

    def number(self, name: str) -> Optional[float]:
        value = self.value(name)
        if isinstance(value, DexpiObject):
            return None
        return parse_number(value)

    def flag(self, name: str) -> bool:
        value = self.value(name)
        if isinstance(value, bool):
            return value
        return isinstance(value, str) and value.strip().lower() in ("true", "1")

    def nested(self, name: str) -> Optional["DexpiObject"]:
        """Object wrapped by a Data child."""
        value = self.value(name)
        return value if isinstance(value, DexpiObject) else None

    def components(self, *names: str) -> List["DexpiObject"]:
        """
        Child objects of the first Components property found.

        Args:
            *names: Property names tried in order, e.g. ("StreamProperties", "Properties")

        Returns:
            Objects of the matching Components entry, or an empty list
        """
        entries = self.components_entries
        available = [e.property for e in entries]
        for name in names:
            match = resolve_property(name, available)
            if match is None:
                continue
            for entry in entries:
                if entry.property == match:
                    return entry.objects
        return []

    def first_component(self, *names: str) -> Optional["DexpiObject"]:
        objects = self.components(*names)
        return objects[0] if objects else None


# ============================================================================
# Encode / decode
# ============================================================================

def _tag(name: str) -> str:
    return f"{{{DEXPI_NAMESPACE}}}{name}"


def _encode_scalar(parent: etree._Element, value: Scalar) -> None:
    if isinstance(value, bool):
        element = etree.SubElement(parent, _tag("Boolean"))
        element.text = "true" if value else "false"
    elif isinstance(value, (int, float)):
        element = etree.SubElement(parent, _tag("Double"))
        element.text = format_number(value)
    else:
        element = etree.SubElement(parent, _tag("String"))
        element.text = str(value)


def encode_object(obj: DexpiObject, parent: Optional[etree._Element] = None) -> etree._Element:
    """
    Encode a grammar object as an lxml element.

    Args:
        obj: Object to encode
        parent: Element to append to (a detached element is created when None)

    Returns:
        The created Object element
    """
    if parent is None:
        element = etree.Element(_tag("Object"), nsmap={None: DEXPI_NAMESPACE})
    else:
        element = etree.SubElement(parent, _tag("Object"))

    if obj.id is not None:
        element.set("id", obj.id)
    element.set("type", obj.type)

    for child in obj.children:
        if isinstance(child, DataEntry):
            data_el = etree.SubElement(element, _tag("Data"))
            data_el.set("property", child.property)
            if isinstance(child.value, DexpiObject):
                encode_object(child.value, data_el)
            else:
                _encode_scalar(data_el, child.value)
        else:
            components_el = etree.SubElement(element, _tag("Components"))
            components_el.set("property", child.property)
            for nested in child.objects:
                encode_object(nested, components_el)

    return element


def _decode_data(node: XmlNode) -> Union[Scalar, DexpiObject]:
    value_nodes = node.children()
    if not value_nodes:
        return node.element.text or ""

    value_node = value_nodes[0]
    kind = value_node.name
    raw = value_node.element.text or ""

    if kind == "Object":
        return decode_object(value_node)
    if kind == "Boolean":
        return raw.strip().lower() in ("true", "1")
    if kind in ("Double", "Integer", "Float"):
        number = parse_number(raw)
        if number is None:
            logger.debug(f"Non-numeric {kind} value '{raw}' kept as text")
            return raw.strip()
        return number
    return raw


def decode_object(node: XmlNode) -> DexpiObject:
    """
    Decode an Object element (and everything below it) into the grammar.

    Unknown child elements are ignored; Data and Components are matched by
    local name so prefixed and default-namespace documents decode alike.
    """
    obj = DexpiObject(type=node.attr("type", "") or "", id=node.attr("id"))

    for child in node.children():
        if child.name == "Data":
            property_name = child.attr("property")
            if property_name:
                obj.children.append(DataEntry(property_name, _decode_data(child)))
        elif child.name == "Components":
            property_name = child.attr("property")
            if property_name:
                objects = [decode_object(o) for o in child.children("Object")]
                obj.children.append(ComponentsEntry(property_name, objects))

    return obj
