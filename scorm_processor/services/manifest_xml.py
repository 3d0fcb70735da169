"""
Manifest XML tree

Parses manifest text into a small typed tree with local-name based lookup
helpers. Namespace prefixes vary wildly between real-world packages
(imscp, adlcp, imsss, imsmd, lom ...), so tags and attribute names are
stored by local name only and every lookup returns an optional value.
"""

import re
import codecs
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Union
import xml.etree.ElementTree as ET

from .exceptions import XmlError

logger = logging.getLogger(__name__)

_XML_DECL_ENCODING = re.compile(rb"""^\s*<\?xml[^>]*encoding\s*=\s*["']([A-Za-z0-9._-]+)["']""")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def local_name(tag: str) -> str:
    """Strip a ``{namespace}`` or ``prefix:`` qualifier from a tag/attribute name."""
    if tag.startswith("{"):
        tag = tag.split("}", 1)[1]
    if ":" in tag:
        tag = tag.split(":", 1)[1]
    return tag


def parse_int(value: Optional[str]) -> Optional[int]:
    """Leading-integer parse; returns None when no digits are present."""
    if value is None:
        return None
    match = _LEADING_INT.match(value)
    return int(match.group(1)) if match else None


def parse_float(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value.strip())
    except ValueError:
        return None


@dataclass
class XmlNode:
    """Element with local-name tag, attributes and ordered children"""
    tag: str
    attributes: Dict[str, str] = field(default_factory=dict)
    children: List["XmlNode"] = field(default_factory=list)
    text: str = ""

    def attr(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.attributes.get(name, default)

    def attr_ci(self, name: str) -> Optional[str]:
        """Case-insensitive attribute lookup (adlcp:scormtype vs adlcp:scormType)."""
        wanted = name.lower()
        for key, value in self.attributes.items():
            if key.lower() == wanted:
                return value
        return None

    def first_child_named(self, name: str) -> Optional["XmlNode"]:
        for child in self.children:
            if child.tag == name:
                return child
        return None

    def children_named(self, name: str) -> List["XmlNode"]:
        return [child for child in self.children if child.tag == name]

    def iter_descendants(self, name: Optional[str] = None) -> Iterator["XmlNode"]:
        """Yield descendants in document order (self excluded)."""
        stack = list(reversed(self.children))
        while stack:
            node = stack.pop()
            if name is None or node.tag == name:
                yield node
            stack.extend(reversed(node.children))

    def first_descendant_named(self, name: str) -> Optional["XmlNode"]:
        return next(self.iter_descendants(name), None)

    def child_text(self, name: str) -> Optional[str]:
        child = self.first_child_named(name)
        if child is None:
            return None
        return child.text or None


def _node(element: ET.Element) -> XmlNode:
    return XmlNode(
        tag=local_name(element.tag),
        attributes={local_name(k): v for k, v in element.attrib.items()},
        text=(element.text or "").strip(),
    )


def _convert(root: ET.Element) -> XmlNode:
    # Explicit stack: nesting depth of a manifest is unbounded
    top = _node(root)
    stack = [(root, top)]
    while stack:
        element, node = stack.pop()
        for child in element:
            # Comments and processing instructions have non-str tags
            if not isinstance(child.tag, str):
                continue
            child_node = _node(child)
            node.children.append(child_node)
            stack.append((child, child_node))
    return top


def decode_manifest(raw: bytes) -> str:
    """
    Decode manifest bytes to text honouring a BOM or the XML declaration.

    Raises:
        XmlError: If the bytes cannot be decoded with the declared encoding
    """
    if raw.startswith(codecs.BOM_UTF8):
        encoding = "utf-8-sig"
    elif raw.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        encoding = "utf-16"
    else:
        match = _XML_DECL_ENCODING.match(raw)
        encoding = match.group(1).decode("ascii") if match else "utf-8"

    try:
        return raw.decode(encoding)
    except LookupError as e:
        raise XmlError(f"Unknown manifest encoding '{encoding}'") from e
    except UnicodeDecodeError as e:
        raise XmlError(f"Manifest is not valid {encoding}: {e}") from e


def parse_xml(text: Union[str, bytes]) -> XmlNode:
    """
    Parse XML text into an XmlNode tree.

    Args:
        text: Manifest text (or raw bytes, which are decoded first)

    Returns:
        Root node of the document

    Raises:
        XmlError: If the document is empty or not well-formed
    """
    if isinstance(text, bytes):
        text = decode_manifest(text)
    if not text or not text.strip():
        raise XmlError("Manifest is empty")

    # Declaration is redundant once decoded; expat rejects some declared
    # encodings on str input.
    text = re.sub(r"^\s*<\?xml[^>]*\?>", "", text.lstrip("\ufeff"), count=1)

    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise XmlError(f"Invalid XML format: {e}") from e
    return _convert(root)
