"""Small XML helpers shared by request rendering and response parsing."""

from __future__ import annotations

import re
from typing import Any

from lxml import etree

from nexpose_api.errors import ResponseParseError

# Characters outside the XML 1.0 Char production. They cannot appear in a
# document at all, not even as character references, so they are dropped.
_XML_RESTRICTED = re.compile(
    "[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]"
)

_XML_ENTITIES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#39;",
}

# No DTD loading, no entity expansion, no network access.
_PARSER = etree.XMLParser(
    resolve_entities=False,
    no_network=True,
    load_dtd=False,
    huge_tree=False,
)


def xml_escape(value: str | None) -> str | None:
    """Escape a string for use as XML text or as a quoted attribute value.

    Replaces ``& < > " '`` with entity references and drops characters that
    XML cannot represent. ``None`` passes through so callers can keep
    "explicitly null" distinct from "empty".
    """
    if value is None:
        return None
    if not value:
        return value
    cleaned = _XML_RESTRICTED.sub("", value)
    return "".join(_XML_ENTITIES.get(c, c) for c in cleaned)


def to_wire_text(value: Any) -> str | None:
    """Render a Python scalar the way the server expects it in XML.

    Booleans become ``1``/``0``; other scalars use ``str()``.
    """
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def parse_xml(data: bytes | str) -> etree._Element:
    """Parse an XML document and return its root element.

    Raises:
        ResponseParseError: If *data* is not well-formed XML.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    try:
        return etree.fromstring(data, parser=_PARSER)
    except etree.XMLSyntaxError as e:
        raise ResponseParseError(f"Error parsing XML: {e}") from e


def parse_fragment(markup: str, wrapper: str = "Fragment") -> etree._Element:
    """Parse rendered generator output, which may have several top-level elements.

    The markup is wrapped in a ``<wrapper>`` element so it forms a document.
    """
    return parse_xml(f"<{wrapper}>{markup}</{wrapper}>")


def to_string(element: etree._Element) -> str:
    """Serialize an element (or document) back to unicode text."""
    return etree.tostring(element, encoding="unicode")
