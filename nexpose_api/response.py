"""Response navigation: XPath extraction over a parsed API response.

APIResponse wraps one parsed document plus the raw text it came from and
never mutates either. ElementReader gives typed result objects soft
defaults: an absent attribute reads as 0 / 0.0 / "" / False so that
older clients keep working when the server adds or drops fields. A value
that is present but cannot be converted is a ResponseParseError.
"""

from __future__ import annotations

from email import policy
from email.parser import BytesParser
from typing import Any

from lxml import etree

from nexpose_api.errors import ResponseParseError
from nexpose_api.xml_utils import parse_xml

_TRUE_VALUES = frozenset({"1", "true"})
_FALSE_VALUES = frozenset({"0", "false"})


def _to_int(value: str, source: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        raise ResponseParseError(f"Expected an integer for {source}, got '{value}'") from None


def _to_float(value: str, source: str) -> float:
    try:
        return float(value.strip())
    except ValueError:
        raise ResponseParseError(f"Expected a number for {source}, got '{value}'") from None


def _to_bool(value: str, source: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ResponseParseError(f"Expected a boolean for {source}, got '{value}'")


def _xpath(context: etree._Element, path: str) -> Any:
    try:
        return context.xpath(path)
    except etree.XPathError as e:
        raise ResponseParseError(f"Invalid XPath '{path}': {e}") from e


def _scalar(result: Any) -> str | None:
    """Collapse an XPath result to a string, or None when nothing matched."""
    if isinstance(result, list):
        if not result:
            return None
        result = result[0]
    if result is None:
        return None
    if isinstance(result, etree._Element):
        return result.text or ""
    if isinstance(result, bool):
        return "true" if result else "false"
    if isinstance(result, float) and result.is_integer():
        return str(int(result))
    return str(result)


def split_multipart(content_type: str, content: bytes) -> tuple[bytes, bytes]:
    """Split a reply into its XML part and any payload that follows it.

    A reply that is not ``multipart/*`` is returned whole as the XML part
    with an empty payload. Otherwise the first MIME part is the XML and the
    decoded bodies of the remaining parts are concatenated.

    Raises:
        ResponseParseError: If a multipart reply holds no parts.
    """
    if not content_type.strip().lower().startswith("multipart/"):
        return content, b""
    header = f"Content-Type: {content_type}\r\n\r\n".encode("latin-1")
    message = BytesParser(policy=policy.HTTP).parsebytes(header + content)
    parts = list(message.iter_parts())
    if not parts:
        raise ResponseParseError("Multipart reply holds no parts")
    xml = parts[0].get_payload(decode=True) or b""
    payload = b"".join(part.get_payload(decode=True) or b"" for part in parts[1:])
    return xml, payload


class APIResponse:
    """A parsed API response.

    Usage:
        response = APIResponse(b'<LoginResponse success="1" session-id="ab"/>')
        response.grab("/LoginResponse/@session-id")  # "ab"
    """

    def __init__(self, response_xml: bytes | str, request_xml: str | None = None) -> None:
        """Parse *response_xml*.

        Args:
            response_xml: Raw response body.
            request_xml: The body that was sent, kept for diagnostics.

        Raises:
            ResponseParseError: If the body is not well-formed XML.
        """
        if isinstance(response_xml, bytes):
            text = response_xml.decode("utf-8", errors="replace")
        else:
            text = response_xml
        self._response_xml = text
        self._request_xml = request_xml
        self._root = parse_xml(response_xml)

    @property
    def response_xml(self) -> str:
        return self._response_xml

    @property
    def request_xml(self) -> str | None:
        return self._request_xml

    @property
    def root(self) -> etree._Element:
        return self._root

    def grab(self, path: str) -> str | None:
        """Return the string value of the first match of *path*, or None."""
        return _scalar(_xpath(self._root, path))

    def grab_node(self, path: str) -> etree._Element | None:
        """Return the first element matching *path*, or None."""
        for node in self.grab_nodes(path):
            return node
        return None

    def grab_nodes(self, path: str) -> list[etree._Element]:
        """Return every element matching *path* in document order."""
        result = _xpath(self._root, path)
        if not isinstance(result, list):
            return []
        return [node for node in result if isinstance(node, etree._Element)]

    def grab_int(self, path: str, default: int = 0) -> int:
        value = self.grab(path)
        return default if value is None or value == "" else _to_int(value, path)

    def grab_float(self, path: str, default: float = 0.0) -> float:
        value = self.grab(path)
        return default if value is None or value == "" else _to_float(value, path)

    def grab_bool(self, path: str, default: bool = False) -> bool:
        value = self.grab(path)
        return default if value is None or value == "" else _to_bool(value, path)

    def has_failure(self) -> bool:
        return self.grab_node("//Failure") is not None

    def failure_message(self) -> str | None:
        """Describe the first Failure element, or None if there is none.

        Uses the Failure's ``message`` attribute, falling back to the text of
        a nested ``Message`` element (the server uses both shapes).
        """
        failure = self.grab_node("//Failure")
        if failure is None:
            return None
        message = failure.get("message")
        if not message:
            nested = failure.xpath(".//Message | .//message")
            if nested:
                message = "".join(nested[0].itertext()).strip()
        return message or "Unknown failure"

    @property
    def success(self) -> bool:
        """The root ``success`` attribute; True when absent and no Failure is present."""
        value = self._root.get("success")
        if value is None or value == "":
            return not self.has_failure()
        return _to_bool(value, f"/{self._root.tag}/@success")

    def __repr__(self) -> str:
        return f"APIResponse(root=<{self._root.tag}>, bytes={len(self._response_xml)})"


class ElementReader:
    """Typed, soft-defaulting attribute access on a single element."""

    def __init__(self, element: etree._Element) -> None:
        self._element = element

    @property
    def element(self) -> etree._Element:
        return self._element

    def _source(self, name: str) -> str:
        return f"<{self._element.tag} {name}>"

    def string(self, name: str, default: str = "") -> str:
        value = self._element.get(name)
        return default if value is None else value

    def optional_string(self, name: str) -> str | None:
        return self._element.get(name)

    def integer(self, name: str, default: int = 0) -> int:
        value = self._element.get(name)
        if value is None or value == "":
            return default
        return _to_int(value, self._source(name))

    def number(self, name: str, default: float = 0.0) -> float:
        value = self._element.get(name)
        if value is None or value == "":
            return default
        return _to_float(value, self._source(name))

    def boolean(self, name: str, default: bool = False) -> bool:
        value = self._element.get(name)
        if value is None or value == "":
            return default
        return _to_bool(value, self._source(name))

    def text(self, path: str, default: str = "") -> str:
        """Text of the first child matching *path* (an XPath relative to the element)."""
        value = _scalar(_xpath(self._element, path))
        return default if value is None else value

    def children(self, path: str) -> list[etree._Element]:
        result = _xpath(self._element, path)
        if not isinstance(result, list):
            return []
        return [node for node in result if isinstance(node, etree._Element)]
