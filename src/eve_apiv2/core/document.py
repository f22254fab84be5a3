"""
EVE API v2 Response Documents

Thin wrapper around an ElementTree root for the XML API's envelope:

    <eveapi version="2">
      <currentTime>2013-09-01 12:00:00</currentTime>
      <result> ... </result>
      <cachedUntil>2013-09-01 13:00:00</cachedUntil>
    </eveapi>

Paths are ElementTree paths relative to the root element. A trailing
"/@attr" segment reads an attribute instead of element text, so
"result/key/@accessMask" works the same way in every call site.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from typing import Optional

from .constants import API_DATETIME_FORMAT


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an XML API timestamp ("YYYY-MM-DD HH:MM:SS", always UTC).

    Returns:
        Timezone-aware datetime, or None for empty or malformed input
    """
    if not value:
        return None
    try:
        parsed = datetime.strptime(value.strip(), API_DATETIME_FORMAT)
    except ValueError:
        return None
    return parsed.replace(tzinfo=timezone.utc)


def to_int(value: Optional[str]) -> Optional[int]:
    """Convert API text to int, None when empty or not a number."""
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        try:
            return int(float(value))
        except ValueError:
            return None


def to_float(value: Optional[str]) -> Optional[float]:
    """Convert API text to float, None when empty or not a number."""
    if value is None or value == "":
        return None
    try:
        return float(value)
    except ValueError:
        return None


def node_value(node: ET.Element, name: str) -> Optional[str]:
    """
    Read a value from a row node.

    Attributes win over child elements, which covers both the rowset
    style (<row typeID="3300" .../>) and nested text (<description>).
    """
    if name in node.attrib:
        return node.attrib[name]
    child = node.find(name)
    if child is None:
        return None
    return (child.text or "").strip()


class Document:
    """Parsed XML API response."""

    def __init__(self, root: ET.Element) -> None:
        self.root = root

    @classmethod
    def from_bytes(cls, body: bytes | str) -> "Document":
        """
        Parse a response body.

        Raises:
            xml.etree.ElementTree.ParseError: If the body is not XML
        """
        return cls(ET.fromstring(body))

    def first_value(self, path: str) -> Optional[str]:
        """
        Return the first value at path, or None when absent.

        Empty elements yield an empty string; callers decide what that means.
        """
        element_path, _, attribute = path.partition("/@")
        if not attribute and path.startswith("@"):
            return self.root.attrib.get(path[1:])

        node = self.root.find(element_path) if element_path else self.root
        if node is None:
            return None
        if attribute:
            return node.attrib.get(attribute)
        return (node.text or "").strip()

    def all_nodes(self, path: str) -> list[ET.Element]:
        """Return every element matching path (possibly empty)."""
        return self.root.findall(path)

    def rowset(self, name: str, parent: Optional[ET.Element] = None) -> list[ET.Element]:
        """Rows of the named <rowset> anywhere below parent (default: result)."""
        base = parent if parent is not None else self.root.find("result")
        if base is None:
            return []
        return base.findall(f".//rowset[@name='{name}']/row")

    @property
    def current_time(self) -> Optional[datetime]:
        return parse_datetime(self.first_value("currentTime"))

    @property
    def cached_until(self) -> Optional[datetime]:
        """Server-declared expiry of this document."""
        return parse_datetime(self.first_value("cachedUntil"))

    @property
    def error(self) -> Optional[tuple[Optional[int], str]]:
        """(code, message) of an <error> element, or None on success."""
        node = self.root.find("error")
        if node is None:
            return None
        return to_int(node.attrib.get("code")), (node.text or "").strip()
