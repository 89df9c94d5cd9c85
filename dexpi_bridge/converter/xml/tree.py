"""
Typed tree walker over lxml elements.

All raw XML access goes through XmlNode so the parsers and the validator
only deal with local names, attributes and child nodes.
"""

from typing import Iterator, List, Optional, Union
import logging

from lxml import etree

from dexpi_bridge.converter.errors import FatalParseError

logger = logging.getLogger(__name__)


def _make_parser() -> etree.XMLParser:
    return etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        remove_comments=True,
        remove_pis=True,
    )


def parse_xml(xml: Union[str, bytes]) -> "XmlNode":
    """
    Parse XML text into the root node.

    Args:
        xml: Document text (str or UTF-8 bytes)

    Returns:
        Root XmlNode

    Raises:
        FatalParseError: If the text is not well-formed XML
    """
    data = xml.encode("utf-8") if isinstance(xml, str) else xml
    if not data or not data.strip():
        raise FatalParseError("XML Parse Error: document is empty")

    try:
        root = etree.fromstring(data, _make_parser())
    except etree.XMLSyntaxError as e:
        raise FatalParseError(f"XML Parse Error: {e}") from e

    return XmlNode(root)


class XmlNode:
    """Read-only view of one XML element."""

    __slots__ = ("element",)

    def __init__(self, element: etree._Element):
        self.element = element

    def __repr__(self) -> str:
        return f"XmlNode({self.name!r})"

    @property
    def name(self) -> str:
        """Local name without namespace."""
        return etree.QName(self.element).localname

    @property
    def namespace(self) -> Optional[str]:
        return etree.QName(self.element).namespace

    @property
    def text(self) -> str:
        return (self.element.text or "").strip()

    def attr(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Attribute value; empty strings count as missing."""
        value = self.element.get(name)
        return value if value else default

    def attr_float(self, name: str, default: float = 0.0) -> float:
        value = self.element.get(name)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            logger.debug(f"Non-numeric {name}='{value}' on <{self.name}>, using {default}")
            return default

    def children(self, name: Optional[str] = None) -> List["XmlNode"]:
        """Direct element children, optionally filtered by local name."""
        result = []
        for child in self.element:
            if not isinstance(child.tag, str):
                continue
            node = XmlNode(child)
            if name is None or node.name == name:
                result.append(node)
        return result

    def child(self, name: str) -> Optional["XmlNode"]:
        for node in self.children(name):
            return node
        return None

    def find(self, path: str) -> Optional["XmlNode"]:
        """Follow a slash-separated path of direct children, e.g. "Position/Location"."""
        node: Optional[XmlNode] = self
        for part in path.split("/"):
            if node is None:
                return None
            node = node.child(part)
        return node

    def descendants(self, name: str) -> Iterator["XmlNode"]:
        """All elements below this one with the given local name, in document order."""
        for element in self.element.iterdescendants():
            if isinstance(element.tag, str) and etree.QName(element).localname == name:
                yield XmlNode(element)
